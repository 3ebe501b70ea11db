"""Integration tests for end-to-end pipeline execution.

Validates ReconciliationPipeline and main.py including:
- Full run with mocked Playwright and HTTP
- Stage-tagged failure outcomes with no partial artifacts
- Cleanup of browser and working directory on failure
- Exit code mapping and logging bootstrap

Playwright and the release feed are mocked; the internal wiring between
session, extractor, fetcher, reconciler and writer is real.
"""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import responses
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pytest_mock import MockerFixture

from config.settings import GlobalConfig
from src.models import ExportedTable, PipelineStage, RunOutcome
from src.pipeline import ReconciliationPipeline
from tests.conftest import (
    ASSET_URL,
    RELEASE_URL,
    SCREENER_URL,
    PlaywrightMocks,
    build_playwright_mocks,
)


def release_payload(*names: str) -> dict:
    return {
        "tag_name": "v1",
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://github.test/acme/fno-list/releases/download/v1/{name}",
            }
            for name in names
        ],
    }


def artifact_files(config: GlobalConfig) -> list[Path]:
    return sorted(config.output_dir.glob("*.txt"))


class TestPipelineOrchestration:
    """Test suite for ReconciliationPipeline.run()."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    @responses.activate
    async def test_successful_run_writes_three_artifacts(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
        csv_factory,
    ) -> None:
        mocks = build_playwright_mocks(csv_factory(["TCS", "INFY", "FOO"]))
        mocker.patch("src.browser.async_playwright", mocks.async_playwright)
        responses.get(RELEASE_URL, json=release_payload("fno.txt"))
        responses.get(ASSET_URL, body="NSE:TCS\nNSE:RELIANCE\nNSE:INFY\n")

        outcome = await ReconciliationPipeline(mock_config).run(SCREENER_URL)

        assert outcome.succeeded
        assert (outcome.extracted_count, outcome.reference_count, outcome.matched_count) == (3, 3, 2)
        assert outcome.artifacts["matched"].read_text() == "TCS\nINFY"
        assert outcome.artifacts["reference"].read_text() == "TCS\nRELIANCE\nINFY"
        assert outcome.artifacts["extracted"].read_text() == "TCS\nINFY\nFOO"
        assert not mock_config.download_dir.exists()
        mocks.browser.close.assert_awaited_once()

    @pytest.mark.integration
    @pytest.mark.asyncio
    @responses.activate
    async def test_invalid_url_rejected_before_side_effects(
        self,
        mock_config: GlobalConfig,
        playwright_mocks: PlaywrightMocks,
    ) -> None:
        outcome = await ReconciliationPipeline(mock_config).run("http://evil.example/screener/x")

        assert not outcome.succeeded
        assert outcome.stage is PipelineStage.REQUEST
        assert "evil.example" in outcome.cause
        playwright_mocks.async_playwright.assert_not_called()
        assert len(responses.calls) == 0
        assert not mock_config.download_dir.exists()
        assert artifact_files(mock_config) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    @responses.activate
    async def test_missing_reference_asset_writes_nothing(
        self,
        mock_config: GlobalConfig,
        playwright_mocks: PlaywrightMocks,
    ) -> None:
        responses.get(RELEASE_URL, json=release_payload("fno.csv"))

        outcome = await ReconciliationPipeline(mock_config).run(SCREENER_URL)

        assert not outcome.succeeded
        assert outcome.stage is PipelineStage.REFERENCE
        assert "no asset ending in '.txt'" in outcome.cause
        assert artifact_files(mock_config) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    @responses.activate
    async def test_export_control_timeout_cleans_up(
        self,
        mock_config: GlobalConfig,
        playwright_mocks: PlaywrightMocks,
    ) -> None:
        playwright_mocks.control.wait_for = AsyncMock(
            side_effect=PlaywrightTimeoutError("Timeout 1000ms exceeded.")
        )

        outcome = await ReconciliationPipeline(mock_config).run(SCREENER_URL)

        assert not outcome.succeeded
        assert outcome.stage is PipelineStage.EXPORT
        assert "not visible" in outcome.cause
        assert not mock_config.download_dir.exists()
        playwright_mocks.browser.close.assert_awaited_once()
        playwright_mocks.playwright.stop.assert_awaited_once()
        assert len(responses.calls) == 0
        assert artifact_files(mock_config) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_navigation_timeout_reported_with_stage(
        self,
        mock_config: GlobalConfig,
        playwright_mocks: PlaywrightMocks,
    ) -> None:
        playwright_mocks.page.goto.side_effect = PlaywrightTimeoutError("Timeout exceeded")

        outcome = await ReconciliationPipeline(mock_config).run(SCREENER_URL)

        assert outcome.stage is PipelineStage.NAVIGATION
        assert "network idle" in outcome.cause

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_malformed_export_stops_before_reference(
        self,
        mock_config: GlobalConfig,
    ) -> None:
        session = MagicMock()
        session.export = AsyncMock(return_value=ExportedTable(content=b"", filename="chartink.csv"))
        fetcher = MagicMock()

        outcome = await ReconciliationPipeline(
            mock_config, session=session, fetcher=fetcher
        ).run(SCREENER_URL)

        assert outcome.stage is PipelineStage.PARSE
        fetcher.fetch.assert_not_called()
        assert artifact_files(mock_config) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unexpected_error_attributed_to_current_stage(
        self,
        mock_config: GlobalConfig,
    ) -> None:
        session = MagicMock()
        session.export = AsyncMock(
            return_value=ExportedTable(content=b"Symbol\nTCS\n", filename="chartink.csv")
        )
        fetcher = MagicMock()
        fetcher.fetch = MagicMock(side_effect=KeyError("assets"))

        outcome = await ReconciliationPipeline(
            mock_config, session=session, fetcher=fetcher
        ).run(SCREENER_URL)

        assert outcome.stage is PipelineStage.REFERENCE
        assert outcome.cause.startswith("KeyError")
        assert artifact_files(mock_config) == []


class TestRunOutcome:
    """Test suite for outcome construction."""

    def test_failure_carries_stage_and_cause(self) -> None:
        outcome = RunOutcome.failure(PipelineStage.OUTPUT, "disk full")

        assert not outcome.succeeded
        assert outcome.stage is PipelineStage.OUTPUT
        assert outcome.cause == "disk full"
        assert outcome.matched_count == 0


class TestMainEntryPoint:
    """Test suite for main.py exit codes."""

    @pytest.mark.integration
    def test_main_handles_keyboard_interrupt(
        self,
        mocker: MockerFixture,
        mock_config: GlobalConfig,
    ) -> None:
        """Verify Ctrl+C (SIGINT) causes graceful shutdown with exit code 130."""

        def interrupted(coro):
            coro.close()
            raise KeyboardInterrupt()

        mocker.patch("main.asyncio.run", side_effect=interrupted)
        mocker.patch("main.configure_logging")

        from main import main

        assert main([SCREENER_URL]) == 130

    @pytest.mark.integration
    def test_main_rejected_url_exit_code(
        self,
        mocker: MockerFixture,
        mock_config: GlobalConfig,
        playwright_mocks: PlaywrightMocks,
        tmp_path: Path,
    ) -> None:
        """A rejected URL exits with 2 before logs or output directories are created."""
        mocker.patch.object(mock_config, "log_dir", tmp_path / "fresh-logs")
        mocker.patch.object(mock_config, "output_dir", tmp_path / "fresh-output")
        run = mocker.patch("main.asyncio.run")

        from main import main

        assert main(["http://evil.example/screener/x"]) == 2
        run.assert_not_called()
        playwright_mocks.async_playwright.assert_not_called()
        assert not (tmp_path / "fresh-logs").exists()
        assert not (tmp_path / "fresh-output").exists()

    @pytest.mark.integration
    def test_main_without_url_exit_code(
        self,
        mocker: MockerFixture,
        mock_config: GlobalConfig,
    ) -> None:
        mocker.patch("main.configure_logging")
        run = mocker.patch("main.asyncio.run")

        from main import main

        assert main([]) == 2
        run.assert_not_called()

    @pytest.mark.integration
    def test_main_uses_configured_url_and_maps_failure(
        self,
        mocker: MockerFixture,
        mock_config: GlobalConfig,
    ) -> None:
        mocker.patch("main.configure_logging")
        mocker.patch.object(mock_config, "screener_url", SCREENER_URL)
        pipeline_cls = mocker.patch("main.ReconciliationPipeline")
        pipeline_cls.return_value.run = AsyncMock(
            return_value=RunOutcome.failure(PipelineStage.EXPORT, "no download")
        )

        from main import main

        assert main([]) == 1
        pipeline_cls.return_value.run.assert_awaited_once_with(SCREENER_URL)

    @pytest.mark.integration
    def test_main_success_exit_code(
        self,
        mocker: MockerFixture,
        mock_config: GlobalConfig,
    ) -> None:
        mocker.patch("main.configure_logging")
        pipeline_cls = mocker.patch("main.ReconciliationPipeline")
        pipeline_cls.return_value.run = AsyncMock(
            return_value=RunOutcome(succeeded=True, extracted_count=3, reference_count=3, matched_count=2)
        )

        from main import main

        assert main([SCREENER_URL]) == 0


class TestLoggingInfrastructure:
    """Test suite for structured logging setup."""

    @pytest.fixture(autouse=True)
    def _reset_loguru(self):
        from loguru import logger

        yield
        logger.remove()
        logger.add(sys.stderr)

    def test_log_file_contains_valid_json(self, mock_config: GlobalConfig) -> None:
        """Verify every file log line is a JSON object with the core fields."""
        from src.logger import configure_logging, get_logger

        configure_logging(mock_config)

        log = get_logger(__name__)
        log.info("Export saved", path="downloads/chartink.csv")

        log_files = list(mock_config.log_dir.glob("screensync_*.json"))
        assert len(log_files) == 1

        entries = [json.loads(line) for line in log_files[0].read_text().splitlines() if line]
        assert entries
        for entry in entries:
            assert {"timestamp", "level", "message"} <= entry.keys()
        assert entries[-1]["context"]["path"] == "downloads/chartink.csv"

    def test_logging_fails_fast_with_unwritable_directory(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        from src.exceptions import LoggingInitializationError
        from src.logger import configure_logging

        mocker.patch.object(Path, "mkdir", side_effect=PermissionError("Access denied"))

        with pytest.raises(LoggingInitializationError) as exc_info:
            configure_logging(mock_config)

        assert str(mock_config.log_dir) in str(exc_info.value)
