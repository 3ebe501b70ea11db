"""Screener session driver.

Drives one headless browser session against a screener report and hands
back the bytes of its CSV export. The sequence is:

1. Validate the request URL (no side effects before this passes)
2. Recreate an empty working directory for downloads
3. Launch the browser and wait for the report to go network-idle
4. Wait for the export control, then click it and wait for the download
   as one joined wait
5. Save the download, read it back and let every scope unwind

The click and the download wait must be in flight together: the download
event can fire before the click call returns, so waiting on it afterwards
can miss it.
"""

import asyncio
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Awaitable

from playwright.async_api import (
    Download,
    Error as PlaywrightError,
    Locator,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)
from pydantic import ValidationError

from config.settings import GlobalConfig, get_config
from src.browser import BrowserManager
from src.exceptions import (
    ExportControlNotFoundError,
    ExportError,
    ExportTimeoutError,
    InvalidRequestError,
)
from src.logger import get_logger
from src.models import ExportedTable, ScreenerRequest

log = get_logger(__name__)


def build_request(url: str, config: GlobalConfig | None = None) -> ScreenerRequest:
    """Validate a raw URL into a ScreenerRequest.

    Args:
        url: URL as supplied by the caller.
        config: Optional GlobalConfig. Uses singleton if not provided.

    Raises:
        InvalidRequestError: If the URL is empty or outside the screener service.
    """
    config = config or get_config()
    try:
        return ScreenerRequest(url=url, url_prefix=config.screener_url_prefix)
    except ValidationError as exc:
        reason = "; ".join(err["msg"] for err in exc.errors())
        raise InvalidRequestError(url=str(url), reason=reason) from exc


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Provide an empty directory that is removed on every exit path.

    Any directory already at ``path`` (stale downloads from an aborted run)
    is deleted first.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    log.debug("Working directory prepared", path=str(path))
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
            log.debug("Working directory removed", path=str(path))
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("Failed to remove working directory", path=str(path), error=str(exc))


async def join(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and wait for all of them.

    If any fails, the others are cancelled and the first failure is
    re-raised unwrapped.

    Returns:
        Results in argument order.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(aw) for aw in aws]
    except ExceptionGroup as exc_group:
        raise exc_group.exceptions[0] from None
    return [task.result() for task in tasks]


class ScreenerSession:
    """Extracts the CSV export of a screener report.

    Attributes:
        config: GlobalConfig with selectors, timeouts and paths.

    Example:
        session = ScreenerSession(config)
        table = await session.export(build_request(url, config))
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    async def export(self, request: ScreenerRequest) -> ExportedTable:
        """Open the report, trigger its export and return the exported bytes.

        The browser and the working directory are released before this
        method returns or raises.

        Raises:
            BrowserInitializationError: If the browser cannot start.
            NavigationTimeoutError: If the report never reaches network idle.
            NavigationError: On other navigation failures.
            ExportControlNotFoundError: If the export control never appears.
            ExportTimeoutError: If no download arrives after the click.
            ExportError: On other click/download failures.
        """
        log.info("Starting screener export", url=request.url)

        with working_directory(self.config.download_dir) as workdir:
            async with BrowserManager.create(self.config, downloads_path=workdir) as browser:
                page = await browser.new_page()
                await browser.navigate(page, request.url)

                control = await self._locate_export_control(page)
                download = await self._trigger_export(page, control)
                table = await self._save_export(download, workdir)

        log.info("Screener export captured", filename=table.filename, bytes=table.size)
        return table

    async def _locate_export_control(self, page: Page) -> Locator:
        selector = self.config.export_control_selector
        text = self.config.export_control_text
        timeout_ms = self.config.export_control_timeout_ms

        control = page.locator(selector, has_text=text).first
        try:
            await control.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ExportControlNotFoundError(
                selector=selector, text=text, url=page.url, timeout_ms=timeout_ms
            ) from exc

        log.debug("Export control located", selector=selector, text=text)
        return control

    async def _trigger_export(self, page: Page, control: Locator) -> Download:
        timeout_ms = self.config.export_timeout_ms
        try:
            download, _ = await join(
                page.wait_for_event("download", timeout=timeout_ms),
                control.click(timeout=timeout_ms),
            )
        except PlaywrightTimeoutError as exc:
            raise ExportTimeoutError(url=page.url, timeout_ms=timeout_ms) from exc
        except PlaywrightError as exc:
            raise ExportError(url=page.url, reason=exc.message) from exc

        log.debug("Download received", suggested_filename=download.suggested_filename)
        return download

    async def _save_export(self, download: Download, workdir: Path) -> ExportedTable:
        target = workdir / self.config.export_filename
        target.unlink(missing_ok=True)

        try:
            await download.save_as(target)
        except PlaywrightError as exc:
            raise ExportError(url=download.url, reason=f"save failed: {exc.message}") from exc

        content = target.read_bytes()
        target.unlink()

        return ExportedTable(
            content=content,
            encoding=self.config.export_encoding,
            filename=self.config.export_filename,
        )
