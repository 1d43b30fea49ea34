"""Configuration constants and settings persistence.

This module handles:
- Timing and network constants shared by sessions and the scanner
- Loading/saving the per-context settings store used by the console host
"""

import json
import os
from pathlib import Path

# Settings store location (per-context settings written by the console host)
CONFIG_FILE = Path(os.getenv('WLED_DIAL_CONFIG', Path.home() / '.wled_dial' / 'settings.json'))

# Polling
POLL_INTERVAL = 3.0
STATE_TIMEOUT = 3.0
PRESETS_TIMEOUT = 2.0
COMMAND_TIMEOUT = 2.5

# Input handling
SELECT_TIMEOUT = 3.0
TOGGLE_DEBOUNCE = 0.5
BRIGHTNESS_STEP = 10
DEFAULT_BRIGHTNESS = 128
MAX_BRIGHTNESS = 255

# Discovery
SCAN_TIMEOUT = 1.5
SCAN_BATCH_SIZE = 256
WELL_KNOWN_HOSTS = ('wled.local', 'wled-light.local')
# Common home-router prefixes are swept first
SUBNET_PRIORITY = ('192.168.178', '192.168.1', '192.168.0')

DEFAULT_DEVICE_NAME = 'WLED'
UNKNOWN_DEVICE_NAME = 'Unknown WLED'


def load_config(path: Path | None = None) -> dict:
    """Load the settings store from disk.

    Returns:
        Dict with a 'contexts' key mapping context IDs to settings dicts
    """
    path = path or CONFIG_FILE
    if path.exists():
        with open(path, 'r') as f:
            config = json.load(f)
        config.setdefault('contexts', {})
        return config
    return {'contexts': {}}


def save_config(config: dict, path: Path | None = None):
    """Save the settings store to disk.

    Args:
        config: Settings store dict to save
        path: Override for CONFIG_FILE
    """
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        json.dump(config, f, indent=2)
