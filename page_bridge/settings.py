"""User settings and the stores that persist them.

The coordinator owns the authoritative copy. Other contexts read it through
``getSettings`` and may fall back to ``Settings()`` when the coordinator is
unreachable, so settings are eventually consistent across contexts.
"""

from __future__ import annotations

__all__ = [
    'EXPORT_VERSION',
    'JsonFileSettingsStore',
    'MemorySettingsStore',
    'Settings',
    'SettingsExport',
    'SettingsStore',
    'export_settings',
    'import_settings',
    'merge_settings',
]

import asyncio
import json
import logging
import pathlib
import time
import typing
from collections.abc import Mapping
from typing import Literal

import filelock
import pydantic

from page_bridge.models import WireModel

logger = logging.getLogger(__name__)

EXPORT_VERSION = '1.0.0'

Theme: typing.TypeAlias = Literal['light', 'dark', 'auto']
ToolbarPosition: typing.TypeAlias = Literal['top-right', 'top-left', 'bottom-right', 'bottom-left']
StorageType: typing.TypeAlias = Literal['local', 'sync']


class Settings(WireModel):
    """Every user-facing setting with its default."""

    # General
    enable_plugin: bool = True
    auto_start: bool = False
    show_notifications: bool = True
    data_collection: bool = False

    # Features
    enable_highlight: bool = True
    enable_extract: bool = True
    enable_screenshot: bool = True
    enable_analyze: bool = True
    enable_context_menu: bool = True

    # Appearance
    theme: Theme = 'light'
    toolbar_position: ToolbarPosition = 'top-right'
    toolbar_opacity: float = pydantic.Field(default=0.9, ge=0.0, le=1.0)
    enable_animations: bool = True

    # Privacy
    storage_type: StorageType = 'local'
    data_retention: int = pydantic.Field(default=30, ge=0)

    # Advanced
    debug_mode: bool = False
    performance_monitoring: bool = False
    auto_update: bool = True


class SettingsExport(WireModel):
    """Export file layout."""

    settings: Settings
    timestamp: float
    version: str


def merge_settings(current: Settings, partial: Mapping[str, typing.Any]) -> Settings:
    """Validated merge of wire-keyed ``partial`` over ``current``.

    Raises:
        pydantic.ValidationError: Unknown key or invalid value.
    """
    return Settings.model_validate({**current.to_wire(), **partial})


def export_settings(settings: Settings) -> str:
    export = SettingsExport(settings=settings, timestamp=time.time(), version=EXPORT_VERSION)
    return json.dumps(export.to_wire(), indent=2, ensure_ascii=False)


def import_settings(raw: str | bytes) -> Settings:
    """Parse an export file; missing keys take their defaults.

    Raises:
        ValueError: Not JSON, no ``settings`` object, or invalid values.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f'Settings import is not valid JSON: {e}') from e

    if not isinstance(data, dict) or not isinstance(data.get('settings'), dict):
        raise ValueError('Settings import has no settings object')

    try:
        return merge_settings(Settings(), data['settings'])
    except pydantic.ValidationError as e:
        raise ValueError(f'Settings import is invalid: {e}') from e


class SettingsStore(typing.Protocol):
    """Persistent settings storage used by the coordinator."""

    async def get_settings(self) -> Settings: ...

    async def set_settings(self, partial: Mapping[str, typing.Any]) -> Settings: ...

    async def replace_settings(self, settings: Settings) -> None: ...

    async def clear(self) -> None: ...


class MemorySettingsStore:
    """Settings held in memory for the lifetime of the process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    async def get_settings(self) -> Settings:
        return self._settings or Settings()

    async def set_settings(self, partial: Mapping[str, typing.Any]) -> Settings:
        self._settings = merge_settings(await self.get_settings(), partial)
        return self._settings

    async def replace_settings(self, settings: Settings) -> None:
        self._settings = settings

    async def clear(self) -> None:
        self._settings = None


class JsonFileSettingsStore:
    """Settings in a JSON file, written atomically under a file lock.

    Several processes (CLI, HTTP bridge) may share one settings file.
    """

    def __init__(self, path: pathlib.Path) -> None:
        self._path = path
        self._lock = filelock.FileLock(path.with_suffix('.lock'))

    @property
    def path(self) -> pathlib.Path:
        return self._path

    async def get_settings(self) -> Settings:
        return await asyncio.to_thread(self._load)

    async def set_settings(self, partial: Mapping[str, typing.Any]) -> Settings:
        return await asyncio.to_thread(self._update, dict(partial))

    async def replace_settings(self, settings: Settings) -> None:
        await asyncio.to_thread(self._replace, settings)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    def _load(self) -> Settings:
        """Load from file. Returns defaults if not exists."""
        if not self._path.exists():
            return Settings()
        return Settings.model_validate_json(self._path.read_text())

    def _update(self, partial: dict[str, typing.Any]) -> Settings:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            settings = merge_settings(self._load(), partial)
            self._save_unlocked(settings)
        logger.debug(f'Updated settings {sorted(partial)} in {self._path}')
        return settings

    def _replace(self, settings: Settings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._save_unlocked(settings)

    def _clear(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._path.unlink(missing_ok=True)
        logger.info(f'Cleared settings at {self._path}')

    def _save_unlocked(self, settings: Settings) -> None:
        """Atomic write without acquiring lock (caller must hold lock)."""
        temp_path = self._path.with_suffix('.tmp')
        temp_path.write_text(json.dumps(settings.to_wire(), indent=2) + '\n')
        temp_path.rename(self._path)
