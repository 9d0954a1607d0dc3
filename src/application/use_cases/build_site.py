from __future__ import annotations

import contextvars
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ...domain.errors import BuildFailedError, ConfigurationError, DocumentProcessingError, PostReadError
from ...domain.services.slug import slug_from_path
from ...domain.services.staleness import StalenessService
from ..dto.build import BuildReport, BuildRequest, DocumentFailure, ProcessingTask, TaskStatus
from ..dto.posts import Post, PostIndex
from ..ports.post_store import PostStorePort
from ..ports.progress_reporter import NullProgressReporter, ProgressReporterPort
from .process_document import DocumentPipeline, process_document

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"
SOURCE_GLOB = "*.md"


@dataclass
class ProcessingStats:
    """Processed/skipped counters shared by worker threads."""

    processed: int = 0
    skipped: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, status: TaskStatus) -> None:
        with self._lock:
            if status is TaskStatus.PROCESSED:
                self.processed += 1
            else:
                self.skipped += 1


def collect_processing_tasks(content_dir: Path, output_dir: Path) -> list[ProcessingTask]:
    """
    Enumerate Markdown sources and their output paths.

    Sources are visited in sorted path order. When two sources map to the
    same slug, the later one wins and the earlier one is dropped with a
    warning, so every output path belongs to exactly one task.

    Args:
        content_dir: Root of the content tree
        output_dir: Directory receiving '<slug>.json' files

    Returns:
        Tasks in traversal order

    Raises:
        ConfigurationError: If content_dir is not a directory
    """
    if not content_dir.is_dir():
        raise ConfigurationError(
            f"Content directory not found: {content_dir}",
            hint="Set content_dir in citepress.toml",
        )

    tasks: dict[Path, ProcessingTask] = {}
    for source_path in sorted(path for path in content_dir.rglob(SOURCE_GLOB) if path.is_file()):
        output_path = output_dir / f"{slug_from_path(source_path)}.json"
        previous = tasks.pop(output_path, None)
        if previous is not None:
            logger.warning(
                f"Slug collision: {previous.source_path} and {source_path} both produce {output_path.name}; "
                f"keeping {source_path}",
                extra={"dropped": str(previous.source_path), "kept": str(source_path)},
            )
        tasks[output_path] = ProcessingTask(source_path=source_path, output_path=output_path)
    return list(tasks.values())


def should_process(source_path: Path, output_path: Path, force: bool = False) -> bool:
    """True when the task's output is stale (see StalenessService)."""
    return StalenessService.should_process(source_path, output_path, force)


def process_task(
    task: ProcessingTask,
    pipeline: DocumentPipeline,
    store: PostStorePort,
    force: bool = False,
    now: datetime | None = None,
) -> tuple[Post, TaskStatus]:
    """
    Produce the post of one task, reusing a fresh output when possible.

    A fresh output that cannot be read back is treated as stale and rebuilt.
    A source whose slug would overwrite the post index is rejected.

    Args:
        task: Source/output pair
        pipeline: Shared document collaborators
        store: Post store
        force: Rebuild regardless of timestamps
        now: Timestamp for documents without a date

    Returns:
        (post, PROCESSED or SKIPPED)

    Raises:
        DocumentProcessingError: If the document cannot be built or written, or
            its slug is reserved for the index
    """
    if task.output_path.name == INDEX_FILENAME:
        raise DocumentProcessingError(
            str(task.source_path), f"slug '{task.output_path.stem}' is reserved for the post index"
        )
    if not should_process(task.source_path, task.output_path, force):
        try:
            return store.read_post(task.output_path), TaskStatus.SKIPPED
        except PostReadError as e:
            logger.warning(f"Existing output unusable, reprocessing {task.source_path}: {e}")

    post = process_document(task.source_path, pipeline, now=now)
    try:
        store.write_post(post, task.output_path)
    except OSError as e:
        raise DocumentProcessingError(str(task.source_path), f"cannot write {task.output_path}: {e}") from e
    return post, TaskStatus.PROCESSED


def build_site(
    request: BuildRequest,
    pipeline: DocumentPipeline,
    store: PostStorePort,
    progress_reporter: ProgressReporterPort | None = None,
    now: datetime | None = None,
) -> BuildReport:
    """
    Build every post of the content tree and write the aggregated index.

    Tasks run on a thread pool. Per-document failures are collected and do
    not stop other documents. The index lists successful posts newest first;
    posts with equal dates keep traversal order.

    Args:
        request: Directories, force flag and worker count
        pipeline: Shared document collaborators (citation context already built)
        store: Post store
        progress_reporter: Optional progress reporter
        now: Timestamp for documents without a date

    Returns:
        BuildReport; failures are listed when only some documents failed

    Raises:
        ConfigurationError: If the content directory does not exist
        BuildFailedError: If there was at least one document and all of them failed
    """
    start_time = time.time()
    request.output_dir.mkdir(parents=True, exist_ok=True)
    tasks = collect_processing_tasks(request.content_dir, request.output_dir)
    logger.info(
        f"Found {len(tasks)} markdown files",
        extra={"content_dir": str(request.content_dir), "force": request.force},
    )

    stats = ProcessingStats()
    reporter = progress_reporter or NullProgressReporter()
    progress = reporter.start_batch(len(tasks))

    def run(task: ProcessingTask) -> Post:
        post, status = process_task(task, pipeline, store, request.force, now)
        stats.record(status)
        return post

    posts_by_position: dict[int, Post] = {}
    failures: list[DocumentFailure] = []
    with ThreadPoolExecutor(max_workers=request.workers) as executor:
        # each task runs in a copy of the caller's context (correlation ID)
        futures = {
            executor.submit(contextvars.copy_context().run, run, task): position
            for position, task in enumerate(tasks)
        }
        for completed, future in enumerate(as_completed(futures), start=1):
            position = futures[future]
            task = tasks[position]
            try:
                posts_by_position[position] = future.result()
            except Exception as e:
                logger.error(
                    f"Error processing {task.source_path}: {e}",
                    extra={"source_path": str(task.source_path)},
                    exc_info=not isinstance(e, DocumentProcessingError),
                )
                failures.append(DocumentFailure(source_path=task.source_path, error=str(e)))
            progress.update(completed)
    progress.finish("Processing complete!")

    failures.sort(key=lambda failure: str(failure.source_path))
    if tasks and not posts_by_position:
        raise BuildFailedError([(str(failure.source_path), failure.error) for failure in failures])
    if failures:
        logger.warning(
            f"{len(failures)} file(s) failed to process; continuing with {len(posts_by_position)} posts"
        )

    posts = [posts_by_position[position] for position in sorted(posts_by_position)]
    index_path = request.output_dir / INDEX_FILENAME
    store.write_index(PostIndex.from_posts(posts), index_path)

    duration = time.time() - start_time
    logger.info(
        f"Generated {len(posts)} posts ({stats.processed} processed, {stats.skipped} skipped)",
        extra={"processed": stats.processed, "skipped": stats.skipped, "duration_seconds": duration},
    )
    return BuildReport(
        processed=stats.processed,
        skipped=stats.skipped,
        posts_written=len(posts),
        index_path=index_path,
        duration_seconds=duration,
        failures=failures,
    )
