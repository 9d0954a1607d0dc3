"""Rich-based progress reporter adapter for site builds."""

from __future__ import annotations

import logging
import sys
import time

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ...application.ports.progress_reporter import ProgressContext, ProgressReporterPort

logger = logging.getLogger(__name__)


class RichProgressContext:
    """Build-level progress bar using Rich."""

    def __init__(self, progress: Progress, task_id: TaskID, total_documents: int) -> None:
        """
        Initialize progress context.

        Args:
            progress: Rich Progress instance (already started)
            task_id: Task ID of the build progress bar
            total_documents: Total number of documents
        """
        self.progress = progress
        self.task_id = task_id
        self.total_documents = total_documents
        self.completed = 0

    def update(self, completed: int, description: str | None = None) -> None:
        self.completed = completed
        if description is None:
            self.progress.update(self.task_id, completed=completed)
        else:
            self.progress.update(self.task_id, completed=completed, description=description)

    def finish(self, description: str | None = None) -> None:
        if description is None:
            self.progress.update(self.task_id, completed=self.total_documents)
        else:
            self.progress.update(self.task_id, completed=self.total_documents, description=description)
        self.progress.stop()


class LoggingProgressContext:
    """Fallback progress context for non-interactive mode using logging."""

    def __init__(self, total_documents: int, description: str) -> None:
        self.total_documents = total_documents
        self.description = description
        self.completed = 0
        self.start_time = time.time()
        logger.info(f"Starting: {description} ({total_documents} documents)")

    def update(self, completed: int, description: str | None = None) -> None:
        self.completed = completed
        elapsed = time.time() - self.start_time
        percentage = (completed / self.total_documents * 100) if self.total_documents > 0 else 0
        logger.debug(
            f"Progress: {completed}/{self.total_documents} documents "
            f"({percentage:.1f}%) - Elapsed: {elapsed:.1f}s"
        )

    def finish(self, description: str | None = None) -> None:
        elapsed = time.time() - self.start_time
        logger.info(
            f"Completed: {description or self.description} - "
            f"{self.total_documents} documents in {elapsed:.1f}s"
        )


class RichProgressReporterAdapter(ProgressReporterPort):
    """Rich progress bars on a terminal, structured log lines otherwise."""

    def __init__(self, console: Console | None = None) -> None:
        # Detect non-interactive mode (non-TTY)
        self.is_interactive = sys.stdout.isatty()
        self.console = console or Console(file=sys.stdout if self.is_interactive else sys.stderr)

    def start_batch(
        self,
        total_documents: int,
        description: str = "Processing files...",
    ) -> ProgressContext:
        if not self.is_interactive:
            return LoggingProgressContext(total_documents=total_documents, description=description)

        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        progress.start()
        task_id = progress.add_task(description, total=total_documents)
        return RichProgressContext(progress=progress, task_id=task_id, total_documents=total_documents)
