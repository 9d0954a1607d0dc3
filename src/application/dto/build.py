from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ProcessingTask(BaseModel):
    """Pairs a source document with its expected output path. Consumed exactly once."""

    model_config = ConfigDict(frozen=True)

    source_path: Path
    output_path: Path


class TaskStatus(str, Enum):
    """How a task's post was obtained."""

    PROCESSED = "processed"
    SKIPPED = "skipped"


class DocumentFailure(BaseModel):
    """A document that could not be built, with the reason."""

    source_path: Path
    error: str


class BuildRequest(BaseModel):
    """Request DTO for the build use case."""

    content_dir: Path
    output_dir: Path
    force: bool = False
    workers: int | None = None


class BuildReport(BaseModel):
    """Result DTO for the build use case."""

    processed: int = 0
    skipped: int = 0
    posts_written: int = 0
    index_path: Path | None = None
    duration_seconds: float = 0.0
    failures: list[DocumentFailure] = []

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
