"""DeviceSession: per-context controller for one WLED device binding.

A session owns the cached device state, a self-rescheduling poll timer,
the selection-menu timeout and the power-toggle debounce clock. Every
input handler, timer callback and settings write-back runs under the
session lock; poll network I/O runs outside it and only the merge is
locked.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from core.client import WledClient
from core.config import (
    BRIGHTNESS_STEP,
    DEFAULT_BRIGHTNESS,
    DEFAULT_DEVICE_NAME,
    MAX_BRIGHTNESS,
    POLL_INTERVAL,
    SELECT_TIMEOUT,
    TOGGLE_DEBOUNCE,
)
from core.errors import MalformedPayload, ProbeError
from models.display import SETUP_REQUIRED, compose_display, render_svg, to_data_uri
from models.state import Catalog, DeviceState, parse_presets
from models.types import BASE_MODES, DeviceSettings, Mode
from models.utils import validate_address

logger = logging.getLogger(__name__)

OFFLINE = 'Offline'


def wrap_index(index: int, step: int, length: int) -> int:
    """Step through a list of length items, wrapping at both ends."""
    return (index + step) % length


class DeviceSession:
    """Stateful controller for one control-surface context."""

    def __init__(self, context_id: str, host, settings: DeviceSettings | None = None,
                 client: WledClient | None = None, timer_factory=threading.Timer,
                 clock=time.monotonic, dispatch=None):
        """Initialise DeviceSession.

        Args:
            context_id: Host context identifier
            host: Host boundary (get_settings/set_settings/set_display)
            settings: Initial settings payload from the appear event
            client: Device API client (default: WledClient())
            timer_factory: Callable(interval, function) returning a startable,
                cancellable timer; threading.Timer by default
            clock: Monotonic clock in seconds, used for the tap debounce
            dispatch: Callable(fn, *args) running fire-and-forget commands;
                defaults to a single-worker pool so commands stay ordered
        """
        self.context_id = context_id
        self.host = host
        self.client = client or WledClient()
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.RLock()

        self._executor = None
        if dispatch is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"wled-cmd-{context_id}")
            dispatch = self._executor.submit
        self._dispatch = dispatch

        self.settings: DeviceSettings = dict(settings or {})
        self.address = validate_address(self.settings.get('ipAddress'))
        self.mode = Mode.parse(self.settings.get('mode'))
        self.pending_mode = self.mode
        self.selecting = False

        self.state: DeviceState | None = None
        self.catalog = Catalog()
        self.device_name = DEFAULT_DEVICE_NAME
        self.connection_error = self.address is None
        self.last_error = None if self.address else SETUP_REQUIRED

        self.last_good_brightness = DEFAULT_BRIGHTNESS
        self.last_good_preset_id = 0
        self.last_toggle_time: float | None = None

        self.has_relay_module = False
        self.relay_state = False

        self._poll_timer = None
        self._poll_generation = 0
        self._select_timer = None
        self._closed = False

    # ===== Lifecycle =====

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self):
        """Begin polling if configured, otherwise show the setup glyph."""
        with self._lock:
            if self.address:
                self._start_polling()
            else:
                self.render()

    def update_settings(self, settings: DeviceSettings):
        """Apply a settings payload pushed by the host."""
        with self._lock:
            if self._closed:
                return
            self.settings = dict(settings or {})
            address = validate_address(self.settings.get('ipAddress'))
            if address != self.address:
                self._forget_device()
            self.address = address
            if self.settings.get('mode'):
                self.mode = Mode.parse(self.settings['mode'], self.mode)
                if not self.selecting:
                    self.pending_mode = self.mode

            if self.address:
                self._start_polling()
            else:
                self._stop_polling()
                self.connection_error = True
                self.last_error = SETUP_REQUIRED
                self.render()

    def _forget_device(self):
        # Cached catalog indices belong to the previous device
        self.state = None
        self.catalog = Catalog()
        self.device_name = DEFAULT_DEVICE_NAME
        self.last_good_preset_id = 0
        self.has_relay_module = False
        self.relay_state = False

    def close(self):
        """Tear down: cancel timers and ignore any in-flight poll."""
        with self._lock:
            self._closed = True
            self._stop_polling()
            self._cancel_select_timeout()
            self.selecting = False
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        logger.info("Session %s closed", self.context_id)

    # ===== Polling =====

    def _start_polling(self):
        self._stop_polling()
        logger.info("Session %s polling %s", self.context_id, self.address)
        self._arm_poll(0)

    def _stop_polling(self):
        self._poll_generation += 1
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def _arm_poll(self, delay: float):
        generation = self._poll_generation
        timer = self._timer_factory(delay, lambda: self._poll_tick(generation))
        timer.daemon = True
        self._poll_timer = timer
        timer.start()

    def _poll_tick(self, generation: int):
        """Timer callback: one poll cycle, then arm the next one."""
        with self._lock:
            if self._closed or generation != self._poll_generation:
                return
            self._poll_timer = None
        try:
            self.poll_once(generation)
        except Exception:
            logger.exception("Session %s: poll cycle failed", self.context_id)
        finally:
            with self._lock:
                if not self._closed and generation == self._poll_generation:
                    self._arm_poll(POLL_INTERVAL)

    def _is_current(self, generation: int | None) -> bool:
        if self._closed:
            return False
        return generation is None or generation == self._poll_generation

    def poll_once(self, generation: int | None = None) -> bool:
        """Fetch and merge device state, catalogs and presets.

        Each step fails independently: a failed presets fetch keeps the
        state that was already merged. Returns True if the device answered.
        """
        with self._lock:
            address = self.address
        if not address:
            return False

        try:
            data = self.client.fetch_device(address)
        except (ProbeError, MalformedPayload) as e:
            with self._lock:
                if not self._is_current(generation):
                    return False
                if not self.connection_error or self.last_error != OFFLINE:
                    logger.warning("Session %s: %s unreachable (%s)", self.context_id, address, e)
                else:
                    logger.debug("Session %s: %s still unreachable (%s)", self.context_id, address, e)
                self.connection_error = True
                self.last_error = OFFLINE
                self.render()
            return False

        presets = None
        try:
            presets = parse_presets(self.client.fetch_presets(address))
        except (ProbeError, MalformedPayload) as e:
            logger.debug("Session %s: presets unavailable (%s)", self.context_id, e)

        with self._lock:
            if not self._is_current(generation) or address != self.address:
                return False
            self._merge_device(data)
            if presets is not None:
                self.catalog.presets = presets
            if self.connection_error and self.last_error == OFFLINE:
                logger.info("Session %s: %s back online", self.context_id, address)
            self.connection_error = False
            self.last_error = None
            self.render()
        return True

    def _merge_device(self, data: dict):
        state = data.get('state')
        if isinstance(state, dict):
            self.state = DeviceState.from_json(state)
            if self.state.preset_id > 0:
                self.last_good_preset_id = self.state.preset_id
            self._detect_relay()
        elif state is not None:
            logger.debug("Session %s: ignoring malformed state block", self.context_id)

        info = data.get('info')
        if isinstance(info, dict) and info.get('name'):
            self.device_name = str(info['name'])

        if isinstance(data.get('effects'), list):
            self.catalog.effects = [str(e) for e in data['effects']]
        if isinstance(data.get('palettes'), list):
            self.catalog.palettes = [str(p) for p in data['palettes']]

    def relay_id(self) -> int:
        try:
            return int(self.settings.get('relayId') or 0)
        except (TypeError, ValueError):
            return 0

    def _detect_relay(self):
        relay = self.state.relay
        if relay is not None:
            self.has_relay_module = True
            relay_count = relay.relay_count
            self.relay_state = relay.state_of(self.relay_id())
        else:
            self.has_relay_module = False
            relay_count = 0

        if (self.settings.get('relayCount') != relay_count
                or self.settings.get('hasMultiRelay') != self.has_relay_module):
            self.settings = {**self.settings, 'hasMultiRelay': self.has_relay_module,
                             'relayCount': relay_count}
            self._write_settings()

    def _write_settings(self):
        self.host.set_settings(self.context_id, dict(self.settings))

    def apply_found_devices(self, devices: list[dict]):
        """Store scanner results in settings so the inspector can list them."""
        with self._lock:
            if self._closed:
                return
            self.settings = {**self.settings, 'foundDevices': list(devices)}
            self._write_settings()

    # ===== Selection menu =====

    def allowed_modes(self) -> list[Mode]:
        modes = list(BASE_MODES)
        if self.has_relay_module and self.settings.get('showRelay', True) is not False:
            modes.append(Mode.RELAY)
        return modes

    def press(self):
        """Dial press: open the selection menu, or commit the highlighted mode."""
        with self._lock:
            if self._closed:
                return
            if self.selecting:
                self._cancel_select_timeout()
                self.selecting = False
                self.mode = self.pending_mode
                self.settings = {**self.settings, 'mode': self.mode.value}
                self._write_settings()
            else:
                self.selecting = True
                modes = self.allowed_modes()
                self.pending_mode = self.mode if self.mode in modes else modes[0]
                self._arm_select_timeout()
            self.render()

    def _cycle_pending_mode(self, ticks: int):
        modes = self.allowed_modes()
        idx = modes.index(self.pending_mode) if self.pending_mode in modes else 0
        self.pending_mode = modes[wrap_index(idx, 1 if ticks > 0 else -1, len(modes))]

    def _arm_select_timeout(self):
        self._cancel_select_timeout()
        timer = None

        def fire():
            self._on_select_timeout(timer)

        timer = self._timer_factory(SELECT_TIMEOUT, fire)
        timer.daemon = True
        self._select_timer = timer
        timer.start()

    def _cancel_select_timeout(self):
        if self._select_timer is not None:
            self._select_timer.cancel()
            self._select_timer = None

    def _on_select_timeout(self, timer):
        """Close the menu without committing after SELECT_TIMEOUT of inactivity."""
        with self._lock:
            # A timer cancelled too late to stop may still fire
            if self._closed or timer is not self._select_timer:
                return
            self._select_timer = None
            if self.selecting:
                self.selecting = False
                self.pending_mode = self.mode
                self.render()

    # ===== Rotation =====

    def rotate(self, ticks: int):
        """Dial rotation: move the menu highlight, or adjust the active mode."""
        with self._lock:
            if self._closed or not self.address or not ticks:
                return

            if self.selecting:
                self._cycle_pending_mode(ticks)
                self._arm_select_timeout()
                self.render()
                return

            if self.mode is Mode.BRIGHTNESS:
                self._change_brightness(ticks)
            elif self.mode is Mode.EFFECT:
                self._change_effect(ticks)
            elif self.mode is Mode.PALETTE:
                self._change_palette(ticks)
            elif self.mode is Mode.PRESET:
                self._change_preset(ticks)
            elif self.mode is Mode.RELAY:
                self._change_relay(ticks)

    def _change_brightness(self, ticks: int):
        current = self.state.brightness if self.state else 0
        brightness = max(0, min(MAX_BRIGHTNESS, current + ticks * BRIGHTNESS_STEP))
        if self.state is None:
            self.state = DeviceState.default_on(brightness)
        else:
            self.state.brightness = brightness
            self.state.on = True
        self._send({'on': True, 'bri': brightness})
        self.render()

    def _change_effect(self, ticks: int):
        if self.state is None or not self.catalog.effects:
            return
        segment = self.state.primary_segment()
        segment.effect_id = wrap_index(segment.effect_id, ticks, len(self.catalog.effects))
        self._send({'seg': [{'id': 0, 'fx': segment.effect_id}]})
        self.render()

    def _change_palette(self, ticks: int):
        if self.state is None or not self.catalog.palettes:
            return
        segment = self.state.primary_segment()
        segment.palette_id = wrap_index(segment.palette_id, ticks, len(self.catalog.palettes))
        self._send({'seg': [{'id': 0, 'pal': segment.palette_id}]})
        self.render()

    def _change_preset(self, ticks: int):
        presets = self.catalog.presets
        if not presets:
            return
        current = self.state.preset_id if self.state else 0
        ids = [p.id for p in presets]
        idx = ids.index(current) if current in ids else 0
        preset = presets[wrap_index(idx, ticks, len(presets))]
        if self.state is not None:
            self.state.preset_id = preset.id
        self.last_good_preset_id = preset.id
        self._send({'ps': preset.id})
        self.render()

    def _change_relay(self, ticks: int):
        if not self.has_relay_module:
            return
        requested = ticks > 0
        # Fast rotation emits many ticks in the same direction
        if requested == self.relay_state:
            return
        self.relay_state = requested
        self._send({'MultiRelay': {'relay': self.relay_id(), 'on': requested}})
        self.render()

    # ===== Power toggle =====

    def tap(self):
        """Touch tap: soft power toggle by dimming to zero and restoring."""
        with self._lock:
            if self._closed or not self.address or self.state is None:
                return

            now = self._clock()
            if self.last_toggle_time is not None and now - self.last_toggle_time < TOGGLE_DEBOUNCE:
                return
            self.last_toggle_time = now

            if self.state.soft_on:
                self.last_good_brightness = self.state.brightness
                self.state.brightness = 0
                self._send({'bri': 0})
            else:
                restored = self.last_good_brightness
                if not restored or restored <= 0:
                    restored = DEFAULT_BRIGHTNESS
                self.state.brightness = restored
                self.state.on = True
                self._send({'on': True, 'bri': restored})
            self.render()

    # ===== Output =====

    def _send(self, patch: dict):
        self._dispatch(self.client.send_state, self.address, patch)

    def render(self):
        """Compose and push the status glyph to the host."""
        with self._lock:
            if self._closed:
                return
            svg = render_svg(compose_display(self), self.settings)
            self.host.set_display(self.context_id, to_data_uri(svg))
