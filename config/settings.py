"""Global configuration management using pydantic-settings.

Every tunable of the reconciliation run (screener selectors, timeouts,
reference feed coordinates, artifact names) is loaded from environment
variables or a local .env file, with strict type validation at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlobalConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment (development/staging/production).
        debug: Enable verbose tracebacks in log output.
        headless: Run Chromium without a visible window.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        screener_url: Default screener URL when none is passed on the CLI.
        screener_url_prefix: Prefix every accepted screener URL must start with.
        navigation_timeout_ms: Upper bound for reaching network idle.
        export_control_timeout_ms: Upper bound for the export control to appear.
        export_timeout_ms: Upper bound for the download event.
        export_control_selector: CSS selector of the export control.
        export_control_text: Visible text the export control must contain.
        export_filename: File name the export is saved under.
        export_encoding: Text encoding of the exported table.
        symbol_column: Header name of the symbol column in the export.
        download_dir: Transient working directory for browser downloads.
        user_agents: User-agent pool for the browser context.
        release_api_base: Base URL of the release metadata API.
        reference_repository: ``owner/name`` of the reference list repository.
        reference_asset_suffix: Suffix identifying the list asset in a release.
        exchange_prefix: Literal token stripped from each reference entry.
        http_user_agent: User-Agent header for release feed requests.
        http_timeout_sec: Timeout for each release feed request.
        output_dir: Directory receiving the three text artifacts.
        extracted_filename: Artifact name for extracted screener symbols.
        reference_filename: Artifact name for the normalized reference list.
        matched_filename: Artifact name for the matched symbols.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="ScreenSync", description="Application identifier")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Browser Configuration
    headless: bool = Field(default=True, description="Run browser in headless mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Screener Report
    screener_url: str | None = Field(
        default=None, description="Screener URL used when none is given on the CLI"
    )
    screener_url_prefix: str = Field(
        default="https://chartink.com/screener/",
        description="Required prefix of every screener URL",
    )
    navigation_timeout_ms: int = Field(
        default=120000, ge=5000, le=600000, description="Network idle timeout"
    )
    export_control_timeout_ms: int = Field(
        default=60000, ge=1000, le=300000, description="Export control wait timeout"
    )
    export_timeout_ms: int = Field(
        default=60000, ge=1000, le=300000, description="Download event timeout"
    )
    export_control_selector: str = Field(
        default="span.hidden.sm\\:flex", description="Export control selector"
    )
    export_control_text: str = Field(
        default="CSV", description="Text carried by the export control"
    )
    export_filename: str = Field(
        default="chartink.csv", description="Saved export file name"
    )
    export_encoding: str = Field(
        default="utf-8-sig", description="Encoding of the exported table"
    )
    symbol_column: str = Field(default="Symbol", description="Symbol column header")
    download_dir: Path = Field(
        default=Path("downloads"), description="Transient download directory"
    )
    user_agents: list[str] = Field(
        default=[
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        ],
        min_length=1,
        description="User-agent pool for the browser context",
    )

    # Reference Release Feed
    release_api_base: str = Field(
        default="https://api.github.com", description="Release metadata API base URL"
    )
    reference_repository: str = Field(
        default="MaheshTechnicals/FNO-Stocks-list",
        description="Repository publishing the reference list",
    )
    reference_asset_suffix: str = Field(
        default=".txt", min_length=1, description="Reference asset name suffix"
    )
    exchange_prefix: str = Field(
        default="NSE:", description="Exchange qualifier stripped from entries"
    )
    http_user_agent: str = Field(
        default="ScreenSync", description="User-Agent for release feed requests"
    )
    http_timeout_sec: float = Field(
        default=30.0, ge=1.0, le=300.0, description="Release feed request timeout"
    )

    # Output Configuration
    output_dir: Path = Field(default=Path("output"), description="Artifact output directory")
    extracted_filename: str = Field(default="symbols.txt", description="Extracted symbols artifact")
    reference_filename: str = Field(default="nse.txt", description="Reference list artifact")
    matched_filename: str = Field(default="final.txt", description="Matched symbols artifact")

    @field_validator("log_dir", "output_dir", "download_dir", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("release_api_base")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Drop trailing slashes so endpoint paths join cleanly."""
        return value.rstrip("/")

    @field_validator("reference_repository")
    @classmethod
    def validate_repository(cls, value: str) -> str:
        """Ensure the repository is given as ``owner/name``."""
        owner, sep, name = value.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Repository must look like 'owner/name', got '{value}'")
        return f"{owner}/{name}"


@lru_cache(maxsize=1)
def get_config() -> GlobalConfig:
    """Retrieve the singleton GlobalConfig instance.

    Returns:
        GlobalConfig: The validated configuration instance.
    """
    return GlobalConfig()
