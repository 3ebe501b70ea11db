"""Custom exception hierarchy for ScreenSync.

Every failure a reconciliation run can hit is a typed exception tagged with
the pipeline stage it belongs to. The orchestrator maps any of them to a
single failed RunOutcome without inspecting stage internals.

Design Rationale:
    - Each stage raises its own exception types; none are retried
    - Context (URL, selector, status code, path) travels with the exception
    - Stage tags live on the class so subclasses inherit them
"""

from datetime import UTC, datetime
from typing import Any, ClassVar

from src.models import PipelineStage


class ScreenSyncError(Exception):
    """Base exception for all ScreenSync errors.

    Attributes:
        stage: Pipeline stage the error belongs to.
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    stage: ClassVar[PipelineStage | None] = None

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class InvalidRequestError(ScreenSyncError):
    """Raised when a screener URL is outside the report service.

    Raised before any browser, working directory or network activity.
    """

    stage = PipelineStage.REQUEST

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid screener URL '{url}': {reason}",
            context={"url": url, "reason": reason},
        )


class BrowserInitializationError(ScreenSyncError):
    """Raised when the headless browser fails to start.

    Common causes are missing Playwright browser binaries or resource
    constraints on the host.
    """

    stage = PipelineStage.SESSION

    def __init__(self, reason: str, browser_type: str = "chromium") -> None:
        super().__init__(
            message=f"Failed to initialize {browser_type} browser: {reason}",
            context={"browser_type": browser_type, "reason": reason},
        )


class NavigationError(ScreenSyncError):
    """Raised when the screener page cannot be loaded."""

    stage = PipelineStage.NAVIGATION

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Navigation to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )


class NavigationTimeoutError(NavigationError):
    """Raised when the page does not reach network idle in time."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(
            url=url,
            reason=f"network idle not reached within {timeout_ms}ms",
        )
        self.timeout_ms = timeout_ms


class ExportControlNotFoundError(ScreenSyncError):
    """Raised when the export control never becomes visible.

    Usually means the site layout changed or the report failed to render.
    """

    stage = PipelineStage.EXPORT

    def __init__(self, selector: str, text: str, url: str, timeout_ms: int) -> None:
        super().__init__(
            message=(
                f"Export control '{selector}' with text '{text}' "
                f"not visible within {timeout_ms}ms"
            ),
            context={"selector": selector, "text": text, "url": url, "timeout_ms": timeout_ms},
        )


class ExportError(ScreenSyncError):
    """Raised when triggering or receiving the export fails."""

    stage = PipelineStage.EXPORT

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            message=f"Export from '{url}' failed: {reason}",
            context={"url": url, "reason": reason},
        )


class ExportTimeoutError(ExportError):
    """Raised when the download event does not arrive in time."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(url=url, reason=f"no download within {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class MalformedExportError(ScreenSyncError):
    """Raised when exported bytes cannot be parsed as delimited text."""

    stage = PipelineStage.PARSE

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(
            message=f"Export '{filename}' is not parseable as delimited text: {reason}",
            context={"filename": filename, "reason": reason},
        )


class ReferenceMetadataError(ScreenSyncError):
    """Raised when the release metadata endpoint returns an unusable answer."""

    stage = PipelineStage.REFERENCE

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Release metadata request to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )


class ReferenceAssetMissingError(ScreenSyncError):
    """Raised when the latest release has no asset with the list suffix.

    There is no fallback to a cached list.
    """

    stage = PipelineStage.REFERENCE

    def __init__(self, repository: str, suffix: str, asset_names: list[str]) -> None:
        super().__init__(
            message=f"Latest release of '{repository}' has no asset ending in '{suffix}'",
            context={"repository": repository, "suffix": suffix, "assets": asset_names},
        )


class ReferenceFetchError(ScreenSyncError):
    """Raised on transport failures or when the list asset cannot be downloaded."""

    stage = PipelineStage.REFERENCE

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Reference download from '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )


class OutputWriteError(ScreenSyncError):
    """Raised when the output artifacts cannot be written."""

    stage = PipelineStage.OUTPUT

    def __init__(self, output_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to write artifacts to '{output_dir}': {reason}",
            context={"output_dir": output_dir, "reason": reason},
        )


class LoggingInitializationError(ScreenSyncError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error: the application cannot proceed
    without a functioning logging infrastructure.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
