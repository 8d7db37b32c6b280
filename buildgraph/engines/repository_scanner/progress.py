"""Progress reporting for scan jobs.

Observers register plain callables (sinks). Every event carries the job
identifier so one sink can serve many concurrent scans.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)

# Phase names, in pipeline order
PHASE_INITIALIZING = "Initializing"
PHASE_GIT = "Git"
PHASE_DATABASE = "Database"
PHASE_SOLUTIONS = "Solutions"
PHASE_PROJECTS = "Projects"
PHASE_ASSEMBLIES = "Assemblies"
PHASE_GRAPH = "Graph"
PHASE_PERSISTING = "Persisting"
PHASE_COMPLETE = "Complete"
PHASE_FAILED = "Failed"


class ProgressEventType(str, Enum):
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    job_id: uuid.UUID
    type: ProgressEventType
    phase: str
    message: str
    percent: int
    scan_id: uuid.UUID | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type is not ProgressEventType.PROGRESS


ProgressSink = Callable[[ProgressEvent], None]


@dataclass
class ScanProgress:
    """Progress channel of one scan job.

    Percentages never go backwards: a lower value than the last one
    reported is raised to it. Exactly one terminal event (``complete`` or
    ``fail``) is delivered; anything reported after it is dropped.
    A sink that raises is logged and does not affect other sinks or the scan.
    """

    job_id: uuid.UUID
    sinks: list[ProgressSink] = field(default_factory=list)
    events: list[ProgressEvent] = field(default_factory=list)
    _percent: int = 0
    _finished: bool = False

    @property
    def percent(self) -> int:
        return self._percent

    @property
    def finished(self) -> bool:
        return self._finished

    def report(self, phase: str, message: str, percent: int) -> None:
        if self._finished:
            logger.debug("progress.after_terminal", job_id=str(self.job_id), phase=phase)
            return
        self._emit(ProgressEventType.PROGRESS, phase, message, percent)

    def complete(self, scan_id: uuid.UUID, message: str = "Scan completed") -> None:
        if self._finished:
            logger.warning("progress.duplicate_terminal", job_id=str(self.job_id), type="completed")
            return
        self._finished = True
        self._emit(ProgressEventType.COMPLETED, PHASE_COMPLETE, message, 100, scan_id=scan_id)

    def fail(self, error: str) -> None:
        if self._finished:
            logger.warning("progress.duplicate_terminal", job_id=str(self.job_id), type="failed")
            return
        self._finished = True
        self._emit(
            ProgressEventType.FAILED, PHASE_FAILED, f"Scan failed: {error}", self._percent,
            error=error,
        )

    def _emit(
        self,
        type_: ProgressEventType,
        phase: str,
        message: str,
        percent: int,
        *,
        scan_id: uuid.UUID | None = None,
        error: str | None = None,
    ) -> None:
        self._percent = max(self._percent, min(max(percent, 0), 100))
        event = ProgressEvent(
            job_id=self.job_id,
            type=type_,
            phase=phase,
            message=message,
            percent=self._percent,
            scan_id=scan_id,
            error=error,
        )
        self.events.append(event)
        for sink in self.sinks:
            try:
                sink(event)
            except Exception:
                logger.warning("progress.sink_error", job_id=str(self.job_id), phase=phase,
                               exc_info=True)


def log_sink(event: ProgressEvent) -> None:
    """Sink that writes every event to the structured log."""
    logger.info(
        "scan.progress",
        job_id=str(event.job_id),
        type=event.type.value,
        phase=event.phase,
        percent=event.percent,
        message=event.message,
        scan_id=str(event.scan_id) if event.scan_id else None,
        error=event.error,
    )
