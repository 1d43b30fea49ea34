"""WledClient for WLED JSON API interactions.

Wraps the probe layer with the endpoints a session needs: full device
state, the preset list, device identity and state patches.
"""

import logging

from core.config import COMMAND_TIMEOUT, PRESETS_TIMEOUT, SCAN_TIMEOUT, STATE_TIMEOUT
from core.errors import MalformedPayload, ProbeError
from core.probe import fetch_json, probe

logger = logging.getLogger(__name__)


class WledClient:
    """Talks to WLED devices over the JSON API."""

    def __init__(self, state_timeout: float = STATE_TIMEOUT,
                 presets_timeout: float = PRESETS_TIMEOUT,
                 command_timeout: float = COMMAND_TIMEOUT):
        self.state_timeout = state_timeout
        self.presets_timeout = presets_timeout
        self.command_timeout = command_timeout

    def fetch_device(self, address: str) -> dict:
        """Fetch state, info, effects and palettes in one request.

        Raises:
            ProbeError: device unreachable, timed out or returned an error status
            MalformedPayload: body was not a JSON object
        """
        data = fetch_json(address, '/json', self.state_timeout)
        if not isinstance(data, dict):
            raise MalformedPayload(f"{address}/json returned {type(data).__name__}, expected object")
        return data

    def fetch_presets(self, address: str) -> dict:
        """Fetch the preset table keyed by preset ID string."""
        data = fetch_json(address, '/presets.json', self.presets_timeout)
        if not isinstance(data, dict):
            raise MalformedPayload(f"{address}/presets.json returned {type(data).__name__}, expected object")
        return data

    def fetch_info(self, address: str, timeout: float = SCAN_TIMEOUT) -> dict | None:
        """Fetch the identity block used by discovery, or None if unavailable."""
        result = probe(address, '/json/info', timeout)
        if result.ok and isinstance(result.payload, dict):
            return result.payload
        return None

    def send_state(self, address: str, patch: dict) -> bool:
        """POST a partial state patch. Never raises.

        The next poll reconciles the real device state, so failures are
        only logged.
        """
        try:
            fetch_json(address, '/json/state', self.command_timeout, method='POST', body=patch)
        except (ProbeError, MalformedPayload) as e:
            logger.debug("Command %s to %s failed: %s", patch, address, e)
            return False
        return True
