"""RepositoryScanner — standalone scan + integrated DB persistence."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.core.vcs import read_revision
from buildgraph.engines.repository_scanner.assembly import extract_assemblies
from buildgraph.engines.repository_scanner.discovery import DiscoveredPaths, discover
from buildgraph.engines.repository_scanner.graph import build_graph
from buildgraph.engines.repository_scanner.models import (
    LEVEL_INFO,
    LEVEL_WARNING,
    JournalEntry,
    ParsedProject,
    ParsedSolution,
    ScanGraph,
    ScanWarning,
)
from buildgraph.engines.repository_scanner.parsers import read_manifest
from buildgraph.engines.repository_scanner.parsers.project import parse_project
from buildgraph.engines.repository_scanner.parsers.solution import (
    build_project_guid_map,
    parse_solution,
)
from buildgraph.engines.repository_scanner.progress import (
    PHASE_ASSEMBLIES,
    PHASE_DATABASE,
    PHASE_GIT,
    PHASE_GRAPH,
    PHASE_INITIALIZING,
    PHASE_PERSISTING,
    PHASE_PROJECTS,
    PHASE_SOLUTIONS,
    ScanProgress,
)
from buildgraph.exceptions import ManifestParseError

if TYPE_CHECKING:
    from buildgraph.services.scan_service import ScanService

log = structlog.get_logger(__name__)

T = TypeVar("T")


def _map_isolated(
    fn: Callable[[str], tuple[T | None, ScanWarning | None]],
    paths: Sequence[str],
    workers: int,
) -> tuple[list[T], list[ScanWarning]]:
    """Run *fn* over *paths* on a thread pool, keeping input order."""
    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="buildgraph-parse") as pool:
            outcomes = list(pool.map(fn, paths))
    else:
        outcomes = [fn(p) for p in paths]

    parsed: list[T] = []
    warnings: list[ScanWarning] = []
    for record, warning in outcomes:
        if record is not None:
            parsed.append(record)
        if warning is not None:
            warnings.append(warning)
    return parsed, warnings


def _solution_or_warning(path: str) -> tuple[ParsedSolution | None, ScanWarning | None]:
    try:
        return parse_solution(path, read_manifest(path)), None
    except OSError as exc:
        log.warning("scanner.solution_unreadable", path=path, error=str(exc))
        return None, ScanWarning(phase=PHASE_SOLUTIONS, path=path, message=f"unreadable: {exc}")
    except Exception as exc:
        log.exception("scanner.solution_failed", path=path)
        return None, ScanWarning(phase=PHASE_SOLUTIONS, path=path, message=str(exc))


def parse_solutions(
    paths: Sequence[str], workers: int = 1
) -> tuple[list[ParsedSolution], list[ScanWarning]]:
    """Parse every solution file; a bad file becomes a warning, never an error."""
    return _map_isolated(_solution_or_warning, paths, workers)


def parse_projects(
    paths: Sequence[str], guid_map: dict[str, str], workers: int = 1
) -> tuple[list[ParsedProject], list[ScanWarning]]:
    """Parse every project file against the solution-derived GUID map.

    Malformed documents are skipped with a warning. Problems a project
    recorded on itself (e.g. a broken ``packages.config``) are surfaced as
    warnings too, without dropping the project.
    """

    def _one(path: str) -> tuple[ParsedProject | None, ScanWarning | None]:
        try:
            return parse_project(path, read_manifest(path), guid_map), None
        except ManifestParseError as exc:
            log.warning("scanner.project_malformed", path=path, error=exc.reason)
            return None, ScanWarning(
                phase=PHASE_PROJECTS, path=path, message=f"malformed: {exc.reason}"
            )
        except OSError as exc:
            log.warning("scanner.project_unreadable", path=path, error=str(exc))
            return None, ScanWarning(phase=PHASE_PROJECTS, path=path, message=f"unreadable: {exc}")
        except Exception as exc:
            log.exception("scanner.project_failed", path=path)
            return None, ScanWarning(phase=PHASE_PROJECTS, path=path, message=str(exc))

    projects, warnings = _map_isolated(_one, paths, workers)
    for project in projects:
        warnings.extend(
            ScanWarning(phase=PHASE_PROJECTS, path=project.file_path, message=msg)
            for msg in project.warnings
        )
    return projects, warnings


def scan(repo_path: str | Path, workers: int = 1) -> ScanGraph:
    """Scan a local repository for its build graph (no DB required).

    Raises :class:`~buildgraph.exceptions.RepositoryNotFoundError` if
    *repo_path* is not a directory.
    """
    found = discover(repo_path)
    solutions, solution_warnings = parse_solutions(found.solutions, workers)
    guid_map, map_warnings = build_project_guid_map(found.solutions)
    projects, project_warnings = parse_projects(found.projects, guid_map, workers)
    graph = build_graph(solutions, projects, extract_assemblies(projects))
    graph.warnings[:0] = [*found.warnings, *solution_warnings, *map_warnings, *project_warnings]
    return graph


@dataclass
class ScanOutcome:
    """What a persisted scan produced."""

    scan_id: uuid.UUID
    vcs_revision: str
    graph: ScanGraph
    edge_count: int = 0

    @property
    def warnings(self) -> list[ScanWarning]:
        return self.graph.warnings


class _Journal:
    """Collects phase transitions and warnings; mirrors phases to the progress channel."""

    def __init__(self, progress: ScanProgress) -> None:
        self.progress = progress
        self.entries: list[JournalEntry] = []

    def phase(self, phase: str, message: str, percent: int) -> None:
        self.entries.append(JournalEntry(phase=phase, message=message, level=LEVEL_INFO))
        self.progress.report(phase, message, percent)

    def warnings(self, warnings: Iterable[ScanWarning]) -> None:
        for w in warnings:
            self.entries.append(JournalEntry(phase=w.phase, message=str(w), level=LEVEL_WARNING))


@dataclass
class PreparedScan:
    """A fully built graph that has not been written anywhere yet."""

    repository_path: str
    vcs_revision: str
    scan_date: datetime
    graph: ScanGraph
    journal: _Journal

    @property
    def progress(self) -> ScanProgress:
        return self.journal.progress


class RepositoryScanner:
    """Integrated mode: scan + persist via the service layer.

    The work is split in two. :meth:`prepare` reads the repository and
    builds the graph without a session; :meth:`persist` writes it. Callers
    open the transaction around :meth:`persist` only, so concurrent scans
    never wait on each other's parsing. File I/O and parsing run in worker
    threads; the session is only used from the event loop.
    """

    def __init__(self, scan_service: ScanService, parse_workers: int = 1) -> None:
        self._scan_service = scan_service
        self._parse_workers = parse_workers

    async def prepare(self, repo_path: str | Path, progress: ScanProgress) -> PreparedScan:
        """Discover -> parse -> extract -> build. No database access.

        Raises :class:`~buildgraph.exceptions.RepositoryNotFoundError` if
        *repo_path* is not a directory.
        """
        scan_date = datetime.now(timezone.utc)
        journal = _Journal(progress)
        workers = self._parse_workers
        collected: list[ScanWarning] = []

        journal.phase(PHASE_INITIALIZING, f"Discovering manifests under {repo_path}", 0)
        found: DiscoveredPaths = await asyncio.to_thread(discover, repo_path)
        root = str(Path(repo_path).resolve())
        collected.extend(found.warnings)

        journal.phase(PHASE_GIT, "Reading version-control metadata", 5)
        revision = await asyncio.to_thread(read_revision, root)
        log.info("scan.started", path=root, revision=revision, job_id=str(progress.job_id))

        # ── Solutions ────────────────────────────────────────────────────
        journal.phase(PHASE_SOLUTIONS, f"Parsing {len(found.solutions)} solution file(s)", 20)
        solutions, warnings = await asyncio.to_thread(parse_solutions, found.solutions, workers)
        collected.extend(warnings)
        guid_map, warnings = await asyncio.to_thread(build_project_guid_map, found.solutions)
        collected.extend(warnings)
        journal.phase(PHASE_SOLUTIONS, f"Parsed {len(solutions)} solution(s)", 35)

        # ── Projects ─────────────────────────────────────────────────────
        journal.phase(PHASE_PROJECTS, f"Parsing {len(found.projects)} project file(s)", 40)
        projects, warnings = await asyncio.to_thread(
            parse_projects, found.projects, guid_map, workers
        )
        collected.extend(warnings)
        journal.phase(PHASE_PROJECTS, f"Parsed {len(projects)} project(s)", 60)

        # ── Assemblies ───────────────────────────────────────────────────
        journal.phase(PHASE_ASSEMBLIES, "Deriving assemblies", 70)
        extraction = await asyncio.to_thread(extract_assemblies, projects)
        journal.phase(PHASE_ASSEMBLIES, f"Derived {len(extraction.outputs)} output assemblies", 80)

        # ── Graph ────────────────────────────────────────────────────────
        graph = build_graph(solutions, projects, extraction)
        graph.warnings[:0] = collected
        journal.warnings(graph.warnings)
        journal.phase(PHASE_GRAPH, f"Built graph with {len(graph.edges)} edge(s)", 85)

        return PreparedScan(
            repository_path=root,
            vcs_revision=revision,
            scan_date=scan_date,
            graph=graph,
            journal=journal,
        )

    async def persist(self, session: AsyncSession, prepared: PreparedScan) -> ScanOutcome:
        """Write the scan row, its entities, edges and audit trail.

        Nothing is committed here; the caller's transaction decides when
        the scan becomes visible.
        """
        journal = prepared.journal
        graph = prepared.graph

        journal.phase(PHASE_DATABASE, "Creating scan record", 88)
        scan_row = await self._scan_service.create_scan(
            session,
            repository_path=prepared.repository_path,
            vcs_revision=prepared.vcs_revision,
            scan_date=prepared.scan_date,
        )

        journal.phase(PHASE_PERSISTING, "Writing entities and edges", 90)
        ids = await self._scan_service.bulk_append_entities(session, scan_row.id, graph)
        edge_count = await self._scan_service.bulk_append_edges(session, scan_row.id, graph, ids)
        journal.phase(
            PHASE_PERSISTING,
            f"Stored {len(graph.projects)} project(s), {len(graph.assemblies)} assemblies "
            f"and {edge_count} edge(s)",
            95,
        )
        await self._scan_service.record_events(session, scan_row.id, journal.entries)

        log.info(
            "scan.persisted",
            scan_id=str(scan_row.id),
            projects=len(graph.projects),
            edges=edge_count,
            warnings=len(graph.warnings),
        )
        return ScanOutcome(
            scan_id=scan_row.id,
            vcs_revision=prepared.vcs_revision,
            graph=graph,
            edge_count=edge_count,
        )

    async def run(
        self,
        session: AsyncSession,
        repo_path: str | Path,
        progress: ScanProgress,
    ) -> ScanOutcome:
        """:meth:`prepare` then :meth:`persist` on a session the caller owns."""
        prepared = await self.prepare(repo_path, progress)
        return await self.persist(session, prepared)
