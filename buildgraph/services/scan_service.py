"""ScanService — persistence of scan graphs (create, bulk append, query, delete)."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import Table
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.dao.assembly_dao import AssemblyDAO
from buildgraph.dao.edge_dao import EdgeDAO
from buildgraph.dao.package_dao import PackageDAO
from buildgraph.dao.project_dao import ProjectDAO
from buildgraph.dao.scan_dao import ScanDAO
from buildgraph.dao.scan_event_dao import ScanEventDAO
from buildgraph.dao.solution_dao import SolutionDAO
from buildgraph.engines.repository_scanner.identity import identifier_for_path
from buildgraph.engines.repository_scanner.models import (
    EdgeKind,
    EntityKey,
    JournalEntry,
    ScanGraph,
)
from buildgraph.models.assembly import Assembly
from buildgraph.models.edges import (
    assembly_dependencies,
    project_assemblies,
    project_packages,
    project_references,
    solution_projects,
)
from buildgraph.models.package import Package
from buildgraph.models.project import Project
from buildgraph.models.scan import Scan
from buildgraph.models.scan_event import ScanEvent
from buildgraph.models.solution import Solution
from buildgraph.services import NotFoundError

logger = structlog.get_logger(__name__)

# edge kind -> (junction, source column, target column, source ids, target ids)
_EDGE_TARGETS: dict[EdgeKind, tuple[Table, str, str, str, str]] = {
    EdgeKind.SOLUTION_PROJECT: (
        solution_projects, "solution_id", "project_id", "solutions", "projects",
    ),
    EdgeKind.PROJECT_REFERENCE: (
        project_references, "referencing_project_id", "referenced_project_id",
        "projects", "projects",
    ),
    EdgeKind.PROJECT_PACKAGE: (
        project_packages, "project_id", "package_id", "projects", "packages",
    ),
    EdgeKind.PROJECT_ASSEMBLY: (
        project_assemblies, "project_id", "assembly_id", "projects", "assemblies",
    ),
    EdgeKind.ASSEMBLY_DEPENDENCY: (
        assembly_dependencies, "referencing_assembly_id", "referenced_assembly_id",
        "assemblies", "assemblies",
    ),
}


@dataclass
class EntityIds:
    """Natural key -> row id maps for one scan, used to wire edges."""

    solutions: dict[str, uuid.UUID] = field(default_factory=dict)
    projects: dict[str, uuid.UUID] = field(default_factory=dict)
    packages: dict[tuple[str, str], uuid.UUID] = field(default_factory=dict)
    assemblies: dict[str, uuid.UUID] = field(default_factory=dict)


class ScanService:
    """Stateless service owning every write and read of scan graphs.

    The caller owns the transaction; nothing here commits.
    """

    def __init__(
        self,
        scan_dao: ScanDAO,
        solution_dao: SolutionDAO,
        project_dao: ProjectDAO,
        package_dao: PackageDAO,
        assembly_dao: AssemblyDAO,
        edge_dao: EdgeDAO,
        event_dao: ScanEventDAO,
    ) -> None:
        self._scan_dao = scan_dao
        self._solution_dao = solution_dao
        self._project_dao = project_dao
        self._package_dao = package_dao
        self._assembly_dao = assembly_dao
        self._edge_dao = edge_dao
        self._event_dao = event_dao

    # ── write ─────────────────────────────────────────────────────────────

    async def create_scan(
        self,
        session: AsyncSession,
        *,
        repository_path: str,
        vcs_revision: str,
        scan_date: datetime | None = None,
    ) -> Scan:
        return await self._scan_dao.create(
            session,
            repository_path=repository_path,
            vcs_revision=vcs_revision,
            scan_date=scan_date or datetime.now(timezone.utc),
        )

    async def bulk_append_entities(
        self, session: AsyncSession, scan_id: uuid.UUID, graph: ScanGraph
    ) -> EntityIds:
        """Insert every entity of *graph* under *scan_id*.

        Ids are assigned here, before insert, so edges can be wired without
        reading rows back. Projects go in before assemblies because build
        outputs point at their producing project.
        """
        ids = EntityIds()

        solution_rows = []
        for sln in graph.solutions:
            row_id = ids.solutions[sln.unique_identifier] = uuid.uuid4()
            solution_rows.append({
                "id": row_id,
                "scan_id": scan_id,
                "unique_identifier": sln.unique_identifier,
                "native_guid": sln.native_guid,
                "name": sln.name,
                "file_path": sln.file_path,
                "guid_method": sln.guid_method,
                "is_single_project": sln.is_single_project,
            })

        project_rows = []
        for proj in graph.projects:
            row_id = ids.projects[proj.unique_identifier] = uuid.uuid4()
            project_rows.append({
                "id": row_id,
                "scan_id": scan_id,
                "unique_identifier": proj.unique_identifier,
                "native_guid": proj.native_guid,
                "name": proj.name,
                "file_path": proj.file_path,
                "guid_method": proj.guid_method,
                "target_framework": proj.target_framework,
                "project_style": proj.project_style,
            })

        package_rows = []
        for pkg in graph.packages:
            row_id = ids.packages[(pkg.name, pkg.version)] = uuid.uuid4()
            package_rows.append({
                "id": row_id, "scan_id": scan_id, "name": pkg.name, "version": pkg.version,
            })

        assembly_rows = []
        for asm in graph.assemblies:
            row_id = ids.assemblies[asm.file_path] = uuid.uuid4()
            project_id = None
            if asm.project_file_path:
                project_id = ids.projects.get(identifier_for_path(asm.project_file_path))
            assembly_rows.append({
                "id": row_id,
                "scan_id": scan_id,
                "project_id": project_id,
                "unique_identifier": asm.unique_identifier,
                "name": asm.name,
                "kind": asm.kind,
                "file_path": asm.file_path,
                "version": asm.version,
            })

        await self._solution_dao.bulk_insert(session, solution_rows)
        await self._project_dao.bulk_insert(session, project_rows)
        await self._package_dao.bulk_insert(session, package_rows)
        await self._assembly_dao.bulk_insert(session, assembly_rows)
        logger.info(
            "store.entities_appended",
            scan_id=str(scan_id),
            solutions=len(solution_rows),
            projects=len(project_rows),
            packages=len(package_rows),
            assemblies=len(assembly_rows),
        )
        return ids

    async def bulk_append_edges(
        self, session: AsyncSession, scan_id: uuid.UUID, graph: ScanGraph, ids: EntityIds
    ) -> int:
        """Insert every edge of *graph*, resolving natural keys through *ids*.

        Both endpoints come from this scan's own id maps, so an edge can
        never cross scans. Returns the number of edge rows inserted.
        """
        rows_by_table: dict[Table, list[dict[str, Any]]] = {}
        seen: set[tuple[str, uuid.UUID, uuid.UUID]] = set()
        for edge in graph.edges:
            table, source_col, target_col, source_map, target_map = _EDGE_TARGETS[edge.kind]
            source_id = _lookup(ids, source_map, edge.source)
            target_id = _lookup(ids, target_map, edge.target)
            if source_id is None or target_id is None:
                logger.debug("store.edge_skipped", kind=edge.kind.value, source=str(edge.source),
                             target=str(edge.target))
                continue
            key = (table.name, source_id, target_id)
            if key in seen:
                continue
            seen.add(key)
            rows_by_table.setdefault(table, []).append(
                {source_col: source_id, target_col: target_id}
            )

        inserted = 0
        for table, rows in rows_by_table.items():
            inserted += await self._edge_dao.bulk_insert(session, table, rows)
        logger.info("store.edges_appended", scan_id=str(scan_id), edges=inserted)
        return inserted

    async def record_events(
        self,
        session: AsyncSession,
        scan_id: uuid.UUID,
        events: list[JournalEntry],
        start_sequence: int = 0,
    ) -> int:
        rows = [
            {
                "id": uuid.uuid4(),
                "scan_id": scan_id,
                "sequence": start_sequence + offset,
                "phase": ev.phase,
                "level": ev.level,
                "message": ev.message,
            }
            for offset, ev in enumerate(events)
        ]
        return await self._event_dao.bulk_insert(session, rows)

    async def delete_scan(self, session: AsyncSession, scan_id: uuid.UUID) -> None:
        """Delete a scan and, through the schema's cascades, its whole graph.

        Raises :class:`NotFoundError` if the scan does not exist.
        """
        if not await self._scan_dao.delete_cascade(session, scan_id):
            raise NotFoundError("scan not found")
        logger.info("store.scan_deleted", scan_id=str(scan_id))

    # ── read ──────────────────────────────────────────────────────────────

    async def get_scan(self, session: AsyncSession, scan_id: uuid.UUID) -> Scan:
        """Return scan by ID.

        Raises :class:`NotFoundError` if not found.
        """
        scan = await self._scan_dao.get_by_id(session, scan_id)
        if scan is None:
            raise NotFoundError("scan not found")
        return scan

    async def list_scans(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = 20,
        repository_path: str | None = None,
    ) -> dict:
        """Return paginated scans, newest first."""
        page = await self._scan_dao.list_paginated(session, cursor, page_size, repository_path)
        return {
            "data": page.data,
            "next_cursor": page.next_cursor,
            "has_more": page.has_more,
        }

    async def summarize(self, session: AsyncSession, scan_id: uuid.UUID) -> dict[str, int]:
        """Row counts per entity and edge table for one scan."""
        await self.get_scan(session, scan_id)
        counts = {
            "solutions": await self._solution_dao.count_by_scan(session, scan_id),
            "projects": await self._project_dao.count_by_scan(session, scan_id),
            "packages": await self._package_dao.count_by_scan(session, scan_id),
            "assemblies": await self._assembly_dao.count_by_scan(session, scan_id),
        }
        for table, *_ in _EDGE_TARGETS.values():
            counts[table.name] = await self._edge_dao.count_by_scan(session, table, scan_id)
        counts["events"] = await self._event_dao.count_by_scan(session, scan_id)
        return counts

    async def list_solutions(self, session: AsyncSession, scan_id: uuid.UUID) -> list[Solution]:
        return await self._solution_dao.list_by_scan(session, scan_id)

    async def list_projects(self, session: AsyncSession, scan_id: uuid.UUID) -> list[Project]:
        return await self._project_dao.list_by_scan(session, scan_id)

    async def list_packages(self, session: AsyncSession, scan_id: uuid.UUID) -> list[Package]:
        return await self._package_dao.list_by_scan(session, scan_id)

    async def list_assemblies(self, session: AsyncSession, scan_id: uuid.UUID) -> list[Assembly]:
        return await self._assembly_dao.list_by_scan(session, scan_id)

    async def list_events(self, session: AsyncSession, scan_id: uuid.UUID) -> list[ScanEvent]:
        return await self._event_dao.list_by_scan(session, scan_id)

    async def list_edges(
        self, session: AsyncSession, scan_id: uuid.UUID, kind: EdgeKind
    ) -> list[tuple[uuid.UUID, uuid.UUID]]:
        table = _EDGE_TARGETS[kind][0]
        return await self._edge_dao.list_by_scan(session, table, scan_id)


def _lookup(ids: EntityIds, map_name: str, key: EntityKey) -> uuid.UUID | None:
    return getattr(ids, map_name).get(key)


def create_scan_service() -> ScanService:
    """Wire a ScanService with default DAOs."""
    return ScanService(
        ScanDAO(),
        SolutionDAO(),
        ProjectDAO(),
        PackageDAO(),
        AssemblyDAO(),
        EdgeDAO(),
        ScanEventDAO(),
    )
