"""Status glyph composition and rendering.

compose_display() reduces a session to the handful of fields shown on the
dial's touch strip; render_svg() turns those into a 200x100 SVG image.
"""

import base64
from dataclasses import dataclass
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from core.config import DEFAULT_DEVICE_NAME, MAX_BRIGHTNESS
from models.types import Mode
from models.utils import round_half_up, truncate

if TYPE_CHECKING:
    from core.session import DeviceSession

MODE_LABELS = {
    Mode.BRIGHTNESS: 'BRIGHTN',
    Mode.EFFECT: 'EFFECT',
    Mode.PRESET: 'PRESET',
    Mode.PALETTE: 'PALETTE',
    Mode.RELAY: 'RELAY',
}

SETUP_REQUIRED = 'Setup Req.'
NO_CONNECTION = 'NO CONN'
LOADING = 'Loading...'
NO_RELAY = 'NO RELAY'

# Canvas character budgets
MAX_TITLE_CHARS = 22
MAX_VALUE_CHARS = 18
BAR_WIDTH = 192

BACKGROUND = '#000000'
SELECTING_BACKGROUND = '#3984E9'
DEFAULT_OFFLINE_COLOR = '#FF9800'
ACCENT = '#3984E9'


@dataclass(frozen=True)
class DisplayState:
    """Everything the renderer needs; percent is None when no bar is drawn."""
    name: str
    label: str
    value: str
    error: bool = False
    selecting: bool = False
    percent: int | None = None
    active: bool = False


def brightness_percent(brightness: int) -> int:
    return round_half_up(brightness / MAX_BRIGHTNESS * 100)


def _mode_value(session: 'DeviceSession') -> str:
    state = session.state
    catalog = session.catalog
    mode = session.mode

    if mode is Mode.BRIGHTNESS:
        if not state.soft_on:
            return 'OFF'
        return f"{brightness_percent(state.brightness)}%"

    if mode is Mode.EFFECT:
        fx = state.segments[0].effect_id if state.segments else 0
        return catalog.effects[fx] if 0 <= fx < len(catalog.effects) else f"ID {fx}"

    if mode is Mode.PALETTE:
        pal = state.segments[0].palette_id if state.segments else 0
        return catalog.palettes[pal] if 0 <= pal < len(catalog.palettes) else f"ID {pal}"

    if mode is Mode.PRESET:
        preset_id = state.preset_id
        if preset_id <= 0 and session.last_good_preset_id > 0:
            preset_id = session.last_good_preset_id
        preset = catalog.find_preset(preset_id)
        if preset:
            return preset.name
        return f"ID {preset_id}" if preset_id > 0 else 'None'

    if not session.has_relay_module:
        return NO_RELAY
    return 'ON' if session.relay_state else 'OFF'


def compose_display(session: 'DeviceSession') -> DisplayState:
    """Reduce session fields to what the glyph shows."""
    if not session.address:
        return DisplayState(DEFAULT_DEVICE_NAME, 'SETUP', session.last_error or SETUP_REQUIRED, error=True)

    name = session.device_name or DEFAULT_DEVICE_NAME
    if session.connection_error:
        return DisplayState(name, 'STATUS', NO_CONNECTION, error=True)

    state = session.state
    if state is None:
        return DisplayState(name, 'STATUS', LOADING)

    if session.selecting:
        return DisplayState(name, 'SELECT', MODE_LABELS[session.pending_mode],
                            selecting=True, active=state.soft_on)

    return DisplayState(
        name,
        MODE_LABELS[session.mode],
        _mode_value(session),
        percent=brightness_percent(state.brightness),
        active=state.soft_on,
    )


def value_font_size(value: str, selecting: bool) -> int:
    """Value text shrinks in fixed steps as it gets longer."""
    if selecting:
        return 20
    length = len(value)
    if length > 15:
        return 14
    if length > 13:
        return 16
    if length > 10:
        return 18
    if length > 7:
        return 20
    return 24


def render_svg(display: DisplayState, settings: dict | None = None) -> str:
    """Render a DisplayState to the 200x100 touch-strip SVG."""
    settings = settings or {}

    background = BACKGROUND
    if display.error:
        if settings.get('showOfflineColor'):
            background = settings.get('offlineColor') or DEFAULT_OFFLINE_COLOR
    elif display.selecting:
        background = SELECTING_BACKGROUND

    label_colour = '#FFFFFF' if (display.selecting or display.error) else ACCENT
    name = truncate(display.name, MAX_TITLE_CHARS - (len(display.label) + 3))
    value = truncate(display.value, MAX_VALUE_CHARS)
    font_size = value_font_size(value, display.selecting)

    parts = [
        '<svg width="200" height="100" viewBox="0 0 200 100" xmlns="http://www.w3.org/2000/svg">',
        f'<rect width="200" height="100" fill="{escape(background)}"/>',
        '<text x="5" y="22" text-anchor="start" font-family="sans-serif" font-size="14" '
        f'font-weight="600" fill="#FFFFFF">{escape(name)} '
        f'(<tspan fill="{label_colour}">{escape(display.label)}</tspan>)</text>',
        '<text x="127" y="60" text-anchor="middle" font-family="sans-serif" '
        f'font-size="{font_size}" font-weight="bold" fill="#FFFFFF">{escape(value)}</text>',
    ]

    if display.value == NO_CONNECTION:
        parts.append('<text x="127" y="85" text-anchor="middle" font-family="sans-serif" '
                     'font-size="14" font-weight="bold" fill="#DDDDDD">(OFFLINE?)</text>')

    if display.percent is not None:
        stroke = '#FFFFFF' if display.active else '#666666'
        fill = ACCENT if display.active else '#444444'
        width = BAR_WIDTH * max(0, min(display.percent, 100)) / 100
        parts.append(
            f'<rect x="4" y="76" width="{BAR_WIDTH}" height="10" rx="5" ry="5" fill="none" '
            f'stroke="{stroke}" stroke-width="1"/>'
            f'<rect x="5" y="77" width="{BAR_WIDTH - 2}" height="8" fill="#333333" rx="4" ry="4"/>'
            f'<rect x="5" y="77" width="{width:g}" height="8" fill="{fill}" rx="4" ry="4"/>'
        )

    parts.append('</svg>')
    return ''.join(parts)


def to_data_uri(svg: str) -> str:
    """Encode an SVG document as a base64 data URI for the host."""
    encoded = base64.b64encode(svg.encode('utf-8')).decode('ascii')
    return f"data:image/svg+xml;base64,{encoded}"
