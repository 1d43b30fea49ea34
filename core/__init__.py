"""Core functionality for WLED dial control.

This package contains:
- session: DeviceSession per-context controller (polling, input, display)
- registry: SessionRegistry mapping host contexts to sessions
- discovery: Subnet sweep for WLED devices
- client / probe: Device JSON API access with bounded timeouts
- host: Host boundary and the JSON-lines console host
- config: Constants and settings store persistence
"""
