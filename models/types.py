"""Type definitions for WLED dial control.

This module provides the control-mode enum and TypedDict definitions for
the settings payload exchanged with the host.
"""

from enum import Enum
from typing import TypedDict


class Mode(str, Enum):
    """Control dimension a dial rotation affects."""
    BRIGHTNESS = 'BRIGHTNESS'
    EFFECT = 'EFFECT'
    PRESET = 'PRESET'
    PALETTE = 'PALETTE'
    RELAY = 'RELAY'

    @classmethod
    def parse(cls, value, default: 'Mode | None' = None) -> 'Mode':
        """Parse a persisted mode string, falling back to default (BRIGHTNESS)."""
        try:
            return cls(value)
        except ValueError:
            return default or cls.BRIGHTNESS


# Menu order; RELAY is appended only when a relay module is present
BASE_MODES = (Mode.BRIGHTNESS, Mode.EFFECT, Mode.PRESET, Mode.PALETTE)


class AddressKind(str, Enum):
    """Validator classification of a device address."""
    IPV4 = 'ipv4'
    HOSTNAME = 'hostname'
    INVALID = 'invalid'


class FoundDevice(TypedDict):
    """Device found by the network scanner."""
    ip: str
    name: str


class DeviceSettings(TypedDict, total=False):
    """Per-context settings persisted by the host."""
    ipAddress: str
    mode: str
    relayId: str
    relayCount: int
    hasMultiRelay: bool
    showRelay: bool
    foundDevices: list[FoundDevice]
    showOfflineColor: bool
    offlineColor: str
