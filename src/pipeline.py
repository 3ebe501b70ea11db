"""Reconciliation pipeline orchestrator.

Sequences one reconciliation pass:

    request -> screener export -> symbol extraction -> reference fetch
            -> reconciliation -> artifact write

and folds whatever happens into a single RunOutcome. Browser and working
directory scopes unwind inside ScreenerSession.export, so by the time an
outcome is reported every resource has been released. Artifacts are only
written after every earlier stage succeeded.
"""

import asyncio

from config.settings import GlobalConfig, get_config
from src.exceptions import ScreenSyncError
from src.extractor import TableExtractor
from src.logger import get_logger
from src.models import PipelineStage, RunOutcome
from src.reconciler import build_result
from src.reference import ReferenceFetcher
from src.session import ScreenerSession, build_request
from src.writer import ArtifactWriter

log = get_logger(__name__)


class ReconciliationPipeline:
    """Runs one extraction-and-reconciliation pass.

    Collaborators are created from the config unless injected, which keeps
    the orchestration testable without a browser or network.

    Attributes:
        config: GlobalConfig shared by all stages.
        session: Screener session driver.
        extractor: Tabular extractor.
        fetcher: Reference dataset fetcher.
        writer: Artifact writer.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        session: ScreenerSession | None = None,
        extractor: TableExtractor | None = None,
        fetcher: ReferenceFetcher | None = None,
        writer: ArtifactWriter | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session = session or ScreenerSession(self.config)
        self.extractor = extractor or TableExtractor(self.config)
        self.fetcher = fetcher or ReferenceFetcher(self.config)
        self.writer = writer or ArtifactWriter(self.config)
        self._stage = PipelineStage.REQUEST

    async def run(self, url: str) -> RunOutcome:
        """Execute the pipeline for ``url`` and report the outcome.

        Never raises for pipeline failures; they are returned as a failed
        RunOutcome naming the stage and cause.
        """
        try:
            outcome = await self._execute(url)
        except ScreenSyncError as exc:
            stage = exc.stage or self._stage
            log.error(
                "Pipeline failed",
                stage=stage.value,
                error_type=type(exc).__name__,
                cause=exc.message,
                context=exc.context,
            )
            return RunOutcome.failure(stage, exc.message)
        except Exception as exc:
            log.exception(
                "Unexpected pipeline failure",
                stage=self._stage.value,
                error=str(exc),
            )
            return RunOutcome.failure(self._stage, f"{type(exc).__name__}: {exc}")

        log.info(
            "Pipeline completed successfully",
            extracted=outcome.extracted_count,
            reference=outcome.reference_count,
            matched=outcome.matched_count,
        )
        return outcome

    async def _execute(self, url: str) -> RunOutcome:
        self._stage = PipelineStage.REQUEST
        request = build_request(url, self.config)

        self._stage = PipelineStage.EXPORT
        table = await self.session.export(request)

        self._stage = PipelineStage.PARSE
        extracted = self.extractor.extract_symbols(table)

        self._stage = PipelineStage.REFERENCE
        reference = await asyncio.to_thread(self.fetcher.fetch)

        self._stage = PipelineStage.RECONCILE
        result = build_result(extracted, reference)
        log.info("Reconciliation complete", **result.counts())

        self._stage = PipelineStage.OUTPUT
        artifacts = self.writer.write(result)

        return RunOutcome.success(result, artifacts)
