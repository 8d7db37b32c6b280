"""Scan jobs — run scans as independent asyncio tasks with a handle per job."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from buildgraph.engines.repository_scanner.progress import ProgressSink, ScanProgress
from buildgraph.engines.repository_scanner.scanner import RepositoryScanner, ScanOutcome
from buildgraph.exceptions import RepositoryNotFoundError, ScanCancelledError

logger = structlog.get_logger(__name__)


class ScanJob:
    """Handle to a submitted scan.

    ``wait()`` returns the :class:`ScanOutcome` once the scan has committed,
    or raises what made it fail (:class:`ScanCancelledError` if cancelled).
    """

    def __init__(self, job_id: uuid.UUID, repo_path: str, progress: ScanProgress) -> None:
        self.job_id = job_id
        self.repo_path = repo_path
        self.progress = progress
        self._task: asyncio.Task[ScanOutcome] | None = None

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> bool:
        """Request cancellation. The scan's transaction is rolled back."""
        if self._task is None:
            return False
        return self._task.cancel()

    async def wait(self) -> ScanOutcome:
        if self._task is None:
            raise RuntimeError(f"scan job {self.job_id} was never started")
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                raise ScanCancelledError(f"scan job {self.job_id} was cancelled") from None
            raise


class ScanJobRunner:
    """Submits scans as background tasks, bounded by a semaphore.

    Each job builds its graph without touching the database, then writes
    it in its own session and a single transaction, so a scan's rows become
    visible atomically on commit, and a failed or cancelled scan leaves
    nothing behind.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scanner: RepositoryScanner,
        max_concurrent: int = 2,
    ) -> None:
        self._session_factory = session_factory
        self._scanner = scanner
        self._sem = asyncio.Semaphore(max_concurrent)
        self._jobs: dict[uuid.UUID, ScanJob] = {}

    @property
    def jobs(self) -> list[ScanJob]:
        return list(self._jobs.values())

    def submit(self, repo_path: str | Path, *sinks: ProgressSink) -> ScanJob:
        """Start a scan and return its handle immediately.

        Raises :class:`RepositoryNotFoundError` synchronously if *repo_path*
        is not a directory; no job is created in that case.
        """
        path = Path(repo_path)
        if not path.is_dir():
            raise RepositoryNotFoundError(str(repo_path))

        job_id = uuid.uuid4()
        job = ScanJob(job_id, str(path), ScanProgress(job_id, list(sinks)))
        job._task = asyncio.create_task(self._run(job), name=f"scan-{job_id}")
        job._task.add_done_callback(lambda _task: self._on_done(job))
        self._jobs[job_id] = job
        logger.info("job.submitted", job_id=str(job_id), path=str(path))
        return job

    async def _run(self, job: ScanJob) -> ScanOutcome:
        try:
            async with self._sem:
                prepared = await self._scanner.prepare(job.repo_path, job.progress)
                # The write transaction spans only the inserts
                async with self._session_factory() as session:
                    async with session.begin():
                        outcome = await self._scanner.persist(session, prepared)
                # Committed: only now is the scan visible to readers
                job.progress.complete(outcome.scan_id)
                logger.info("job.completed", job_id=str(job.job_id), scan_id=str(outcome.scan_id))
                return outcome
        except asyncio.CancelledError:
            logger.warning("job.cancelled", job_id=str(job.job_id))
            job.progress.fail("cancelled")
            raise
        except Exception as exc:
            logger.exception("job.failed", job_id=str(job.job_id))
            job.progress.fail(str(exc) or type(exc).__name__)
            raise

    def _on_done(self, job: ScanJob) -> None:
        self._jobs.pop(job.job_id, None)
        # A task cancelled before it first ran never reaches _run's handlers
        if not job.progress.finished:
            job.progress.fail("cancelled")

    async def stop(self) -> None:
        """Cancel all running jobs and wait for them to exit."""
        tasks = [job._task for job in self._jobs.values() if job._task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._jobs.clear()
        logger.info("job_runner.stopped", cancelled=len(tasks))
