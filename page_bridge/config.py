"""Runtime configuration.

Process-level knobs that are not user settings: how long a caller waits for
a response, which class marks highlight wrappers, where settings persist and
how loud logging is.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal, TypeAlias

import pydantic

from page_bridge.models import StrictModel
from page_bridge.paths import CONFIG_PATH, SETTINGS_PATH

__all__ = [
    'LogLevel',
    'RuntimeConfig',
    'load_config',
    'save_config',
]

logger = logging.getLogger(__name__)

LogLevel: TypeAlias = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR']


class RuntimeConfig(StrictModel):
    """Process-wide runtime configuration."""

    request_timeout: float = pydantic.Field(default=30.0, gt=0)
    marker_class: str = 'plugin-highlight'
    settings_path: str = str(SETTINGS_PATH)
    log_level: LogLevel = 'INFO'


def load_config(path: Path = CONFIG_PATH) -> RuntimeConfig:
    """Load config from ``path``; defaults when the file does not exist.

    Raises:
        ValueError: If the file exists but is invalid.
    """
    if not path.exists():
        return RuntimeConfig()

    try:
        return RuntimeConfig.model_validate_json(path.read_text())
    except pydantic.ValidationError as e:
        raise ValueError(f'Invalid config file at {path}: {e}') from e


def save_config(config: RuntimeConfig, path: Path = CONFIG_PATH) -> None:
    """Save config, creating parent directories if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(mode='json'), indent=2) + '\n')
    logger.info(f'Saved runtime config to {path}')
