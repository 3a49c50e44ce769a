"""
Schemas for Cheatsheet AI.

This module defines the data structures passed between the source loader,
the per-source pipeline and the batch driver.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Outcome(str, Enum):
    """Terminal state of one pipeline run."""
    SUCCESS = "success"
    FAILURE = "failure"


class FailureReason(str, Enum):
    """Step at which a pipeline run stopped."""
    WORKSPACE_FAILED = "workspace_failed"
    CLONE_FAILED = "clone_failed"
    DOCS_PATH_MISSING = "docs_path_missing"
    EXTRACTOR_MISSING = "extractor_missing"
    EXTRACTION_FAILED = "extraction_failed"
    NO_DOCUMENTATION_EXTRACTED = "no_documentation_extracted"
    GENERATION_FAILED = "generation_failed"
    PERSIST_FAILED = "persist_failed"
    UNEXPECTED = "unexpected"


class GenerationFailureKind(str, Enum):
    """Why the generation API did not produce a cheatsheet."""
    NO_CONTENT = "no_content"
    BLOCKED = "blocked"
    ABNORMAL_FINISH = "abnormal_finish"
    API_ERROR = "api_error"


class SourceSpec(BaseModel):
    """One documentation source to turn into a cheatsheet."""
    name: str = Field(min_length=1)
    repository_url: str = Field(min_length=1)
    docs_relative_path: str = Field(min_length=1)
    origin: str = Field(min_length=1)

    class Config:
        """Pydantic configuration."""
        frozen = True


class PipelineResult(BaseModel):
    """Outcome of processing one SourceSpec."""
    source: SourceSpec
    outcome: Outcome
    reason: Optional[FailureReason] = None
    generation_failure: Optional[GenerationFailureKind] = None
    detail: Optional[str] = None
    output_path: Optional[str] = None

    @classmethod
    def success(cls, source: SourceSpec, output_path: str) -> "PipelineResult":
        return cls(source=source, outcome=Outcome.SUCCESS, output_path=output_path)

    @classmethod
    def failure(
        cls,
        source: SourceSpec,
        reason: FailureReason,
        detail: Optional[str] = None,
        generation_failure: Optional[GenerationFailureKind] = None,
    ) -> "PipelineResult":
        return cls(
            source=source,
            outcome=Outcome.FAILURE,
            reason=reason,
            detail=detail,
            generation_failure=generation_failure,
        )

    @property
    def succeeded(self) -> bool:
        return self.outcome == Outcome.SUCCESS


class BatchTally(BaseModel):
    """Running success/failure counts for a batch."""
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0

    class Config:
        """Pydantic configuration."""
        validate_assignment = True

    def record(self, result: PipelineResult) -> None:
        """Fold one pipeline result into the tally."""
        self.attempted += 1
        if result.succeeded:
            self.succeeded += 1
        else:
            self.failed += 1
