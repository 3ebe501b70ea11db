"""Pytest configuration and shared fixtures for the ScreenSync test suite.

Guarantees:
- No external network requests (Playwright mocked, HTTP via `responses`)
- Isolated state (config singleton cleared, all paths under tmp_path)

The Playwright mock chain mirrors ``async_playwright().start()`` ->
``chromium.launch()`` -> ``new_context()`` -> ``new_page()`` so the real
BrowserManager and ScreenerSession code paths run against it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_mock import MockerFixture

from config.settings import GlobalConfig

SCREENER_URL = "https://chartink.com/screener/fno-breakouts"
RELEASE_URL = "https://api.github.test/repos/acme/fno-list/releases/latest"
ASSET_URL = "https://github.test/acme/fno-list/releases/download/v1/fno.txt"


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Clears the lru_cache singleton before and after the test and points
    every path at tmp_path.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    output_dir = tmp_path / "output"
    log_dir.mkdir()
    output_dir.mkdir()

    test_env = {
        "APP_NAME": "ScreenSync-Test",
        "ENVIRONMENT": "development",
        "DEBUG": "false",
        "HEADLESS": "true",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "NAVIGATION_TIMEOUT_MS": "5000",
        "EXPORT_CONTROL_TIMEOUT_MS": "1000",
        "EXPORT_TIMEOUT_MS": "1000",
        "DOWNLOAD_DIR": str(tmp_path / "downloads"),
        "RELEASE_API_BASE": "https://api.github.test/",
        "REFERENCE_REPOSITORY": "acme/fno-list",
        "HTTP_TIMEOUT_SEC": "5",
        "OUTPUT_DIR": str(output_dir),
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("SCREENER_URL", raising=False)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def csv_factory() -> Callable[..., bytes]:
    """Factory fixture for Chartink-style CSV exports.

    Example:
        def test_extract(csv_factory):
            content = csv_factory(["TCS", "", " INFY "])
    """

    def _generate_csv(symbols: list[str], encoding: str = "utf-8") -> bytes:
        lines = ["Sr.,Stock Name,Symbol,Links,% Chg,Price,Volume"]
        for idx, symbol in enumerate(symbols, start=1):
            lines.append(f"{idx},Company {idx},{symbol},P&F | Fundamentals,1.25,{100 + idx},{1000 * idx}")
        return ("\n".join(lines) + "\n").encode(encoding)

    return _generate_csv


@dataclass
class PlaywrightMocks:
    """Handles on every layer of the mocked Playwright chain."""

    async_playwright: MagicMock
    playwright: MagicMock
    browser: MagicMock
    context: MagicMock
    page: MagicMock
    control: MagicMock
    download: MagicMock


def build_playwright_mocks(export_content: bytes = b"Symbol\nTCS\n") -> PlaywrightMocks:
    """Create a Playwright mock chain whose page exports ``export_content``."""

    async def _save_as(path: Any) -> None:
        Path(path).write_bytes(export_content)

    download = MagicMock()
    download.suggested_filename = "chartink.csv"
    download.url = "https://chartink.com/export.csv"
    download.save_as = AsyncMock(side_effect=_save_as)

    control = MagicMock()
    control.wait_for = AsyncMock()
    control.click = AsyncMock()

    locator = MagicMock()
    locator.first = control

    page = MagicMock()
    page.url = SCREENER_URL
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.locator = MagicMock(return_value=locator)
    page.wait_for_event = AsyncMock(return_value=download)
    page.close = AsyncMock()

    context = MagicMock()
    context.add_init_script = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    async_playwright_instance = MagicMock()
    async_playwright_instance.start = AsyncMock(return_value=playwright)

    return PlaywrightMocks(
        async_playwright=MagicMock(return_value=async_playwright_instance),
        playwright=playwright,
        browser=browser,
        context=context,
        page=page,
        control=control,
        download=download,
    )


@pytest.fixture
def playwright_mocks(mocker: MockerFixture) -> PlaywrightMocks:
    """Patch ``src.browser.async_playwright`` with a working mock chain."""
    mocks = build_playwright_mocks()
    mocker.patch("src.browser.async_playwright", mocks.async_playwright)
    return mocks


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring full stack",
    )
