"""Pydantic data model for a single reconciliation run.

Every entity here lives for exactly one run: the validated screener request,
the transient export, the release metadata, the three symbol sequences and
the terminal outcome handed to the presentation layer.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PipelineStage(str, Enum):
    """Stage of the pipeline a failure originated from."""

    REQUEST = "request"
    SESSION = "session"
    NAVIGATION = "navigation"
    EXPORT = "export"
    PARSE = "parse"
    REFERENCE = "reference"
    RECONCILE = "reconcile"
    OUTPUT = "output"


class ScreenerRequest(BaseModel):
    """A screener report URL checked against the report service prefix.

    Attributes:
        url: Trimmed screener URL.
        url_prefix: Origin and path prefix the URL must start with.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Screener report URL")
    url_prefix: str = Field(..., min_length=1, description="Required URL prefix")

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, value: object) -> object:
        """Trim surrounding whitespace from pasted URLs."""
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_prefix(self) -> "ScreenerRequest":
        """Reject URLs outside the screener service."""
        if not self.url.startswith(self.url_prefix):
            raise ValueError(
                f"URL '{self.url}' does not start with '{self.url_prefix}'"
            )
        return self


class ExportedTable(BaseModel):
    """Raw bytes of a downloaded tabular export."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    encoding: str = "utf-8-sig"
    filename: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a published release."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    browser_download_url: str


class ReferenceRelease(BaseModel):
    """Metadata of the latest published reference release.

    Only the fields needed for asset selection are kept; everything else
    the release API returns is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    tag_name: str | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @field_validator("assets", mode="before")
    @classmethod
    def null_assets(cls, value: object) -> object:
        return [] if value is None else value

    def find_asset(self, suffix: str) -> ReleaseAsset | None:
        """Return the first asset whose name ends with ``suffix``.

        Args:
            suffix: Expected file name suffix, e.g. ``.txt``.

        Returns:
            The matching asset, or None if the release carries no such file.
        """
        return next((a for a in self.assets if a.name.endswith(suffix)), None)


class ReconciliationResult(BaseModel):
    """The three output sequences of a successful reconciliation.

    Attributes:
        extracted: Screener symbols in extraction order.
        reference: Normalized reference symbols in source line order.
        matched: Extracted symbols present in the reference set, in
            extraction order.
    """

    model_config = ConfigDict(frozen=True)

    extracted: list[str]
    reference: list[str]
    matched: list[str]

    def counts(self) -> dict[str, int]:
        return {
            "extracted": len(self.extracted),
            "reference": len(self.reference),
            "matched": len(self.matched),
        }


class RunOutcome(BaseModel):
    """Terminal state of one pipeline execution.

    A successful outcome carries the three sequence counts and the artifact
    paths; a failed one carries the originating stage and a readable cause.
    """

    model_config = ConfigDict(frozen=True)

    succeeded: bool
    stage: PipelineStage | None = None
    cause: str | None = None
    extracted_count: int = 0
    reference_count: int = 0
    matched_count: int = 0
    artifacts: dict[str, Path] = Field(default_factory=dict)

    @classmethod
    def success(
        cls, result: ReconciliationResult, artifacts: dict[str, Path]
    ) -> "RunOutcome":
        counts = result.counts()
        return cls(
            succeeded=True,
            extracted_count=counts["extracted"],
            reference_count=counts["reference"],
            matched_count=counts["matched"],
            artifacts=artifacts,
        )

    @classmethod
    def failure(cls, stage: PipelineStage, cause: str) -> "RunOutcome":
        return cls(succeeded=False, stage=stage, cause=cause)
