"""Centralized file paths for page-bridge.

All persistent file locations in one place; the CLI, the HTTP bridge and the
coordinator's settings store share them.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    'CONFIG_PATH',
    'PAGE_BRIDGE_DIR',
    'SETTINGS_PATH',
]

PAGE_BRIDGE_DIR = Path.home() / '.page-bridge'

# Runtime configuration (timeouts, marker class, log level)
CONFIG_PATH = PAGE_BRIDGE_DIR / 'config.json'

# User settings edited through the options surface
SETTINGS_PATH = PAGE_BRIDGE_DIR / 'settings.json'
