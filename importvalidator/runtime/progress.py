"""Rich-based progress display for workspace scans."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

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

logger = logging.getLogger("importvalidator.runtime.progress")


class ScanProgress:
    """Progress bar fed by the aggregator's ``(done, total)`` callback.

    Usage:
        progress = ScanProgress(console)
        with progress.display():
            service.scan_workspace(progress_callback=progress.update)
    """

    def __init__(self, console: Optional[Console] = None, enabled: bool = True) -> None:
        self.console = console or Console(stderr=True)
        self.enabled = enabled
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    @contextmanager
    def display(self, description: str = "Validating imports") -> Iterator["ScanProgress"]:
        if not self.enabled:
            yield self
            return

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._task = self._progress.add_task(description, total=None)
        try:
            with self._progress:
                yield self
        finally:
            self._progress = None
            self._task = None

    def update(self, done: int, total: int) -> None:
        if self._progress is None or self._task is None:
            return
        try:
            self._progress.update(self._task, completed=done, total=total)
        except Exception as e:
            # Display errors never propagate into the scan.
            logger.debug("Progress update failed: %s", e)
