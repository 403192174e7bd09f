"""Tests for runtime configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from page_bridge.config import RuntimeConfig, load_config, save_config


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / 'absent.json')

    assert config == RuntimeConfig()
    assert config.request_timeout == 30.0
    assert config.marker_class == 'plugin-highlight'


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / 'dir' / 'config.json'
    config = RuntimeConfig(request_timeout=5.0, log_level='DEBUG', settings_path=str(tmp_path / 's.json'))

    save_config(config, path)

    assert load_config(path) == config


@pytest.mark.parametrize(
    'content',
    [
        '{"request_timeout": 0}',
        '{"log_level": "LOUD"}',
        '{"unknown": 1}',
        'not json',
    ],
)
def test_invalid_file_raises_value_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / 'config.json'
    path.write_text(content)

    with pytest.raises(ValueError, match='Invalid config file'):
        load_config(path)
