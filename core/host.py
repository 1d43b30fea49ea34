"""Host boundary: settings persistence and display output.

Host is the capability a session calls back into. ConsoleHost implements
it for the `run` command: settings go to the settings store file and
every outbound call is written to a stream as one JSON line.
"""

import json
import logging
import threading
from pathlib import Path

from core.config import load_config, save_config

logger = logging.getLogger(__name__)


class Host:
    """Outbound calls a session makes to its host."""

    def get_settings(self, context_id: str) -> dict:
        raise NotImplementedError

    def set_settings(self, context_id: str, settings: dict):
        raise NotImplementedError

    def set_display(self, context_id: str, image: str):
        raise NotImplementedError


class ConsoleHost(Host):
    """Host writing JSON-lines messages and persisting settings to disk."""

    def __init__(self, output, store_path: Path | None = None, persist: bool = True):
        self.output = output
        self.store_path = store_path
        self.persist = persist
        self._lock = threading.Lock()
        self._config = load_config(store_path) if persist else {'contexts': {}}

    def _emit(self, message: dict):
        line = json.dumps(message, separators=(',', ':'))
        with self._lock:
            self.output.write(line + '\n')
            self.output.flush()

    def get_settings(self, context_id: str) -> dict:
        with self._lock:
            return dict(self._config['contexts'].get(context_id, {}))

    def set_settings(self, context_id: str, settings: dict):
        with self._lock:
            self._config['contexts'][context_id] = dict(settings)
            if self.persist:
                try:
                    save_config(self._config, self.store_path)
                except OSError as e:
                    logger.error("Failed to save settings for %s: %s", context_id, e)
        self._emit({'event': 'setSettings', 'context': context_id, 'payload': settings})

    def set_display(self, context_id: str, image: str):
        self._emit({'event': 'setDisplay', 'context': context_id, 'payload': {'image': image}})
