"""SessionRegistry: maps host context IDs to device sessions.

Sessions are created on first appearance and closed (timers cancelled)
on disappearance. Host messages decoded by the console host are routed
here through handle_message().
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from core import discovery
from core.session import DeviceSession

logger = logging.getLogger(__name__)

SCAN_EVENT = 'startScan'


class SessionRegistry:
    """Owns every DeviceSession, keyed by context ID."""

    def __init__(self, host, client=None, scanner=None, **session_options):
        """Initialise SessionRegistry.

        Args:
            host: Host boundary passed to every session
            client: Shared WledClient (default: one per session)
            scanner: Callable returning found devices (default: discovery.scan)
            **session_options: Extra DeviceSession keyword arguments
                (timer_factory, clock, dispatch)
        """
        self.host = host
        self.client = client
        self.scanner = scanner or discovery.scan
        self._session_options = session_options
        self._sessions: dict[str, DeviceSession] = {}
        self._lock = threading.Lock()
        self._scan_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='wled-scan-job')

    def get(self, context_id: str) -> DeviceSession | None:
        with self._lock:
            return self._sessions.get(context_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, context_id: str) -> bool:
        with self._lock:
            return context_id in self._sessions

    # ===== Lifecycle events =====

    def appear(self, context_id: str, settings: dict | None = None) -> DeviceSession:
        """Create (or refresh) the session for a context that became visible."""
        if not settings:
            settings = self.host.get_settings(context_id)

        with self._lock:
            session = self._sessions.get(context_id)
            if session is None:
                session = DeviceSession(context_id, self.host, settings, client=self.client,
                                        **self._session_options)
                self._sessions[context_id] = session
                created = True
            else:
                created = False

        if created:
            logger.info("Context %s appeared", context_id)
            session.start()
        else:
            session.update_settings(settings)
        return session

    def disappear(self, context_id: str) -> bool:
        """Close and forget a session. Returns False for unknown contexts."""
        with self._lock:
            session = self._sessions.pop(context_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Context %s disappeared", context_id)
        return True

    def settings_changed(self, context_id: str, settings: dict):
        session = self.get(context_id)
        if session is not None:
            session.update_settings(settings)

    # ===== Input events =====

    def press(self, context_id: str):
        session = self.get(context_id)
        if session is not None:
            session.press()

    def rotate(self, context_id: str, ticks: int):
        session = self.get(context_id)
        if session is not None:
            session.rotate(ticks)

    def tap(self, context_id: str):
        session = self.get(context_id)
        if session is not None:
            session.tap()

    def custom_message(self, context_id: str, payload: dict | None) -> Future | None:
        """Handle a message from the inspector panel.

        Only {"event": "startScan"} is understood; the scan runs on a
        background worker and its result lands in the session's settings.

        Returns:
            Future for the scan, or None if the message was ignored
        """
        if not isinstance(payload, dict) or payload.get('event') != SCAN_EVENT:
            logger.debug("Ignoring custom message for %s: %r", context_id, payload)
            return None
        if self.get(context_id) is None:
            return None
        logger.info("Scan requested by %s", context_id)
        return self._scan_executor.submit(self._run_scan, context_id)

    def _run_scan(self, context_id: str) -> list[dict]:
        devices = self.scanner()
        # The context may have gone away while scanning
        session = self.get(context_id)
        if session is not None:
            session.apply_found_devices(devices)
        return devices

    # ===== Host messages =====

    def handle_message(self, message: dict) -> bool:
        """Dispatch one decoded host message.

        Message shape: {"event": str, "context": str, "payload": dict}

        Returns:
            True if the event was recognised and dispatched
        """
        if not isinstance(message, dict):
            logger.warning("Ignoring non-object host message: %r", message)
            return False

        event = message.get('event')
        context_id = message.get('context')
        payload = message.get('payload') or {}
        if not isinstance(payload, dict):
            payload = {}
        if not context_id:
            logger.warning("Ignoring %s message without context", event)
            return False

        if event == 'appear':
            self.appear(context_id, payload.get('settings'))
        elif event == 'disappear':
            self.disappear(context_id)
        elif event == 'settingsChanged':
            self.settings_changed(context_id, payload.get('settings') or {})
        elif event == 'press':
            self.press(context_id)
        elif event == 'rotate':
            try:
                ticks = int(payload.get('ticks', 0))
            except (TypeError, ValueError):
                logger.warning("Ignoring rotate with bad ticks: %r", payload.get('ticks'))
                return False
            self.rotate(context_id, ticks)
        elif event == 'tap':
            self.tap(context_id)
        elif event == 'customMessage':
            self.custom_message(context_id, payload)
        else:
            logger.warning("Ignoring unknown host event %r", event)
            return False
        return True

    def close(self):
        """Tear down every session and stop the scan worker."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
        self._scan_executor.shutdown(wait=False)
