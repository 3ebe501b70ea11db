"""ScreenSync Entry Point.

Bootstrap and orchestration layer. Contains no business logic; all
functional code resides in /src.

Startup order:
    1. Load and validate configuration, then resolve and check the URL
    2. Initialize logging infrastructure (fail-fast on error)
    3. Run one reconciliation pass
    4. Map the run outcome to a process exit code

Usage:
    python main.py https://chartink.com/screener/<scan-name>
    # or
    SCREENER_URL=https://chartink.com/screener/<scan-name> python main.py
"""

import argparse
import asyncio
import sys

from loguru import logger

from config.settings import GlobalConfig, get_config
from src.exceptions import InvalidRequestError, LoggingInitializationError
from src.logger import configure_logging
from src.models import PipelineStage, RunOutcome
from src.pipeline import ReconciliationPipeline
from src.session import build_request

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_REJECTED = 2
EXIT_INTERRUPTED = 130


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="screensync",
        description="Intersect a screener result set with the latest F&O reference list.",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="Screener URL (defaults to the SCREENER_URL setting)",
    )
    return parser.parse_args(argv)


def _validate_startup_requirements(config: GlobalConfig) -> None:
    """Ensure the output directory exists before any work starts.

    Raises:
        SystemExit: If the output directory cannot be created.
    """
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.critical(
            "Failed to create output directory",
            output_dir=str(config.output_dir),
            error=str(exc),
        )
        sys.exit(EXIT_FAILURE)

    logger.debug(
        "Output directory ready",
        output_dir=str(config.output_dir),
        download_dir=str(config.download_dir),
    )


async def _run_pipeline(config: GlobalConfig, url: str) -> RunOutcome:
    """Run one reconciliation pass for ``url``."""
    logger.info(
        "Reconciliation run starting",
        app_name=config.app_name,
        environment=config.environment,
        url=url,
        reference_repository=config.reference_repository,
    )
    return await ReconciliationPipeline(config).run(url)


def _report(outcome: RunOutcome) -> int:
    """Log the run summary and translate the outcome into an exit code."""
    if outcome.succeeded:
        logger.info(
            "Summary report",
            extracted=outcome.extracted_count,
            reference=outcome.reference_count,
            matched=outcome.matched_count,
            artifacts={key: str(path) for key, path in outcome.artifacts.items()},
        )
        return EXIT_OK

    if outcome.stage is PipelineStage.REQUEST:
        logger.critical("Request rejected", cause=outcome.cause)
        return EXIT_REJECTED

    logger.critical(
        "Run failed",
        stage=outcome.stage.value if outcome.stage else None,
        cause=outcome.cause,
    )
    return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    """Run one reconciliation pass from the command line.

    Returns:
        Exit code (0 success, 1 failure, 2 rejected request, 130 interrupted).
    """
    args = _parse_args(argv)

    # Settings are validated by pydantic before anything else happens
    try:
        config = get_config()
    except Exception as exc:
        # No sinks yet, so report straight to stderr
        print(f"FATAL: invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    url = args.url or config.screener_url
    if not url:
        logger.critical("No screener URL given; pass one as an argument or set SCREENER_URL")
        return EXIT_REJECTED

    # A rejected URL must not leave logs or directories behind
    try:
        build_request(url, config)
    except InvalidRequestError as exc:
        logger.critical("Request rejected", cause=exc.message)
        return EXIT_REJECTED

    # Logging must come up before the first log call that reaches the file sink
    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    _validate_startup_requirements(config)

    try:
        outcome = asyncio.run(_run_pipeline(config, url))
    except KeyboardInterrupt:
        logger.warning("Run interrupted (Ctrl+C)")
        return EXIT_INTERRUPTED

    return _report(outcome)


if __name__ == "__main__":
    sys.exit(main())
