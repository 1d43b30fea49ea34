"""Cached device state and catalog models.

Parsing is tolerant: a payload missing expected fields yields defaults for
those fields instead of discarding the whole poll.
"""

from dataclasses import dataclass, field


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Segment:
    """A device-side lighting zone."""
    effect_id: int = 0
    palette_id: int = 0
    speed: int = 128
    intensity: int = 128

    @classmethod
    def from_json(cls, data: dict) -> 'Segment':
        return cls(
            effect_id=_as_int(data.get('fx')),
            palette_id=_as_int(data.get('pal')),
            speed=_as_int(data.get('sx'), 128),
            intensity=_as_int(data.get('ix'), 128),
        )


@dataclass
class RelayModule:
    """Relay outputs reported by the MultiRelay usermod."""
    relays: list[tuple[int, bool]] = field(default_factory=list)

    @property
    def relay_count(self) -> int:
        return len(self.relays)

    def state_of(self, relay_id: int) -> bool:
        """On/off state of a relay; unknown relays read as off."""
        for rid, on in self.relays:
            if rid == relay_id:
                return on
        return False

    @classmethod
    def from_json(cls, data) -> 'RelayModule | None':
        """Parse a MultiRelay block; None unless it lists at least one relay."""
        if not isinstance(data, dict) or not isinstance(data.get('relays'), list):
            return None
        relays = []
        for entry in data['relays']:
            if isinstance(entry, dict):
                relays.append((_as_int(entry.get('relay'), -1), bool(entry.get('state', False))))
        if not relays:
            return None
        return cls(relays=relays)


@dataclass
class DeviceState:
    """Snapshot of a device's state block."""
    on: bool = False
    brightness: int = 0
    preset_id: int = 0
    playlist_id: int = 0
    segments: list[Segment] = field(default_factory=list)
    relay: RelayModule | None = None

    @classmethod
    def from_json(cls, data: dict) -> 'DeviceState':
        raw_segments = data.get('seg')
        if not isinstance(raw_segments, list):
            raw_segments = []
        segments = [Segment.from_json(s) for s in raw_segments if isinstance(s, dict)]
        return cls(
            on=bool(data.get('on', False)),
            brightness=_as_int(data.get('bri')),
            preset_id=_as_int(data.get('ps')),
            playlist_id=_as_int(data.get('pl')),
            segments=segments,
            relay=RelayModule.from_json(data.get('MultiRelay')),
        )

    @classmethod
    def default_on(cls, brightness: int) -> 'DeviceState':
        """State synthesized before the first poll when the user dials brightness."""
        return cls(on=True, brightness=brightness, segments=[Segment()])

    @property
    def soft_on(self) -> bool:
        """On flag set and brightness above zero."""
        return self.on and self.brightness > 0

    def primary_segment(self) -> Segment:
        """Segment 0, created if the device reported none."""
        if not self.segments:
            self.segments.append(Segment())
        return self.segments[0]


@dataclass(frozen=True)
class Preset:
    id: int
    name: str


@dataclass
class Catalog:
    """Effect, palette and preset names reported by the device."""
    effects: list[str] = field(default_factory=list)
    palettes: list[str] = field(default_factory=list)
    presets: list[Preset] = field(default_factory=list)

    def find_preset(self, preset_id: int) -> Preset | None:
        for preset in self.presets:
            if preset.id == preset_id:
                return preset
        return None


def parse_presets(data) -> list[Preset]:
    """Build the preset list from a presets.json payload.

    Key "0" (the device's scratch slot), empty entries and non-numeric keys
    are skipped. Result is sorted by ID.
    """
    presets = []
    if isinstance(data, dict):
        for key, value in data.items():
            if key == '0' or not value or not isinstance(value, dict):
                continue
            try:
                preset_id = int(key)
            except ValueError:
                continue
            presets.append(Preset(id=preset_id, name=value.get('n') or f"Preset {key}"))
    presets.sort(key=lambda p: p.id)
    return presets
