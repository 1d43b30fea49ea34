"""CLI command modules.

This package contains:
- control: Device commands (validate, status, brightness, power)
- discovery: Network scan command
- run: Host bridge driving dial sessions from stdin
- setup: Help command and coloured group
"""
