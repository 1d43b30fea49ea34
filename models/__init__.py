"""Data models and utility functions.

This package contains:
- types: Mode enum and settings TypedDicts
- state: Cached device state, relay module and catalog models
- display: Status glyph composition and SVG rendering
- utils: Address validation and text helpers
"""
