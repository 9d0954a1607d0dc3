"""Domain service deciding whether a derived artifact must be recomputed."""

from __future__ import annotations

from pathlib import Path


class StalenessService:
    """
    Decide between the Stale (recompute) and Fresh (reuse) states.

    A target is Stale when a rebuild is forced, when it does not exist, or when
    its modification time is not strictly newer than the source's.
    """

    @staticmethod
    def is_stale(source_mtime: float, output_mtime: float | None, force: bool = False) -> bool:
        """
        Pure staleness rule on modification timestamps.

        Args:
            source_mtime: Source modification time (seconds since epoch)
            output_mtime: Output modification time, or None if output is missing
            force: Rebuild regardless of timestamps

        Returns:
            True if the output must be recomputed
        """
        if force or output_mtime is None:
            return True
        return not output_mtime > source_mtime

    @staticmethod
    def should_process(source_path: Path, output_path: Path, force: bool = False) -> bool:
        """
        Apply the staleness rule to files on disk.

        Args:
            source_path: Source document (must exist)
            output_path: Derived artifact (may be missing)
            force: Rebuild regardless of timestamps

        Returns:
            True if the output must be recomputed

        Raises:
            OSError: If the source cannot be stat'ed
        """
        if force:
            return True
        source_mtime = source_path.stat().st_mtime
        try:
            output_mtime: float | None = output_path.stat().st_mtime
        except FileNotFoundError:
            output_mtime = None
        return StalenessService.is_stale(source_mtime, output_mtime)
