"""Shared fixtures: a running extension with in-memory collaborators, and sample pages."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from page_bridge.config import RuntimeConfig
from page_bridge.runtime import Extension
from page_bridge.settings import MemorySettingsStore

CONTACT_FORM = """
<html>
<head><title>Apply now</title></head>
<body>
  <h1>Application</h1>
  <form id="apply" action="/submit" method="post">
    <label for="applicant">姓名</label>
    <input type="text" id="applicant" name="applicant">
    <input type="tel" name="mobile" placeholder="Your phone">
    <input type="email" name="contact_email" placeholder="Your email">
    <textarea name="home_address"></textarea>
    <input type="hidden" name="phone_hidden">
    <button type="submit">Send</button>
  </form>
  <p>This notice is 重要 for every applicant.</p>
</body>
</html>
"""


class FakeScreenshot:
    """Screenshot capture returning a fixed data URL and remembering what it captured."""

    def __init__(self) -> None:
        self.captured: list[int] = []

    async def capture(self, tab_id: int) -> str:
        self.captured.append(tab_id)
        return 'data:image/png;base64,iVBORw0KGgo='


async def settle(delay: float = 0.01) -> None:
    """Let queued fire-and-forget messages drain."""
    await asyncio.sleep(delay)


@pytest.fixture
def runtime_config(tmp_path: Path) -> RuntimeConfig:
    return RuntimeConfig(request_timeout=2.0, settings_path=str(tmp_path / 'settings.json'))


@pytest.fixture
def screenshot() -> FakeScreenshot:
    return FakeScreenshot()


@pytest.fixture
async def extension(runtime_config: RuntimeConfig, screenshot: FakeScreenshot) -> AsyncIterator[Extension]:
    async with Extension(runtime_config, settings_store=MemorySettingsStore(), screenshot=screenshot) as ext:
        yield ext
