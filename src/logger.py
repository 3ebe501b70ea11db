"""Structured logging configuration using loguru.

Two sinks are installed once at bootstrap:
- a colorized, human-readable stderr sink for operators running the tool
- a rotating JSON-lines file sink for later inspection of past runs

The log directory is probed for writability before any sink is added so
a misconfigured deployment fails at startup rather than mid-run.
"""

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from src.exceptions import LoggingInitializationError

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> "
    "<cyan>{name}</cyan> <level>{message}</level> <dim>{extra}</dim>"
)

_LOG_FILE_PATTERN = "screensync_{time:YYYY-MM-DD}.json"


def _to_json_line(record: dict[str, Any]) -> str:
    """Render a loguru record as one JSON object per line.

    Bound and keyword context ends up under ``context``; an attached
    exception is summarized by type and value.
    """
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    context = {k: v for k, v in record["extra"].items() if k != "json_line"}
    if context:
        entry["context"] = context

    exception = record["exception"]
    if exception is not None and exception.type is not None:
        entry["exception"] = {"type": exception.type.__name__, "value": str(exception.value)}

    return json.dumps(entry, default=str) + "\n"


def _render_json(record: dict[str, Any]) -> bool:
    record["extra"]["json_line"] = _to_json_line(record)
    return True


def _probe_log_directory(log_dir: Path) -> None:
    """Create ``log_dir`` if needed and make sure it accepts writes.

    Raises:
        LoggingInitializationError: If creation or the write probe fails.
    """
    probe = log_dir / ".write_probe"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        probe.touch()
        probe.unlink()
    except PermissionError as exc:
        raise LoggingInitializationError(str(log_dir), f"permission denied ({exc})") from exc
    except OSError as exc:
        raise LoggingInitializationError(str(log_dir), f"directory not usable ({exc})") from exc


def configure_logging(config: GlobalConfig | None = None) -> None:
    """Install the console and JSON file sinks.

    Call once during bootstrap, before the pipeline starts logging.

    Raises:
        LoggingInitializationError: If the log directory is not writable.
    """
    config = config or get_config()

    logger.remove()
    _probe_log_directory(config.log_dir)

    logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )
    logger.add(
        str(config.log_dir / _LOG_FILE_PATTERN),
        format="{extra[json_line]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        filter=_render_json,
    )

    logger.debug(
        "Logging configured",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
    )


def get_logger(name: str) -> "logger":
    """Return the shared logger bound with the calling module's name.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Export saved", path="downloads/chartink.csv")
    """
    return logger.bind(module=name)
