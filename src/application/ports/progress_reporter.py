"""Port interface for reporting progress during a build."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class ProgressContext(Protocol):
    """Context for build-level progress."""

    def update(self, completed: int, description: str | None = None) -> None:
        """Update progress with the number of finished documents."""
        ...

    def finish(self, description: str | None = None) -> None:
        """Mark the build as complete."""
        ...


class ProgressReporterPort(ABC):
    """Port for reporting progress while documents are processed."""

    @abstractmethod
    def start_batch(
        self,
        total_documents: int,
        description: str = "Processing files...",
    ) -> ProgressContext:
        """
        Start progress reporting for a build.

        Args:
            total_documents: Total number of documents to process
            description: Description for progress bar

        Returns:
            ProgressContext for updating progress
        """
        pass


class NullProgressContext:
    """Progress context that reports nothing."""

    def update(self, completed: int, description: str | None = None) -> None:
        pass

    def finish(self, description: str | None = None) -> None:
        pass


class NullProgressReporter(ProgressReporterPort):
    """Progress reporter used when progress output is disabled."""

    def start_batch(
        self,
        total_documents: int,
        description: str = "Processing files...",
    ) -> ProgressContext:
        return NullProgressContext()
