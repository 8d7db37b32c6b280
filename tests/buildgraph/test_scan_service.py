"""Tests for ScanService: bulk appends, reads and not-found handling."""

import uuid
from datetime import datetime, timezone

import pytest

from buildgraph.dao.base import InvalidCursorError
from buildgraph.engines.repository_scanner.models import (
    LEVEL_WARNING,
    Edge,
    EdgeKind,
    JournalEntry,
    ScanGraph,
)
from buildgraph.services import NotFoundError, ServiceError


async def _scan(service, session, path="/repo"):
    return await service.create_scan(session, repository_path=path, vcs_revision="abc123")


class TestCreateScan:
    async def test_fields(self, service, session):
        scan = await _scan(service, session)
        assert scan.repository_path == "/repo"
        assert scan.vcs_revision == "abc123"
        assert scan.scan_date is not None

    async def test_explicit_scan_date_kept(self, service, session):
        started = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        scan = await service.create_scan(
            session, repository_path="/repo", vcs_revision="abc123", scan_date=started
        )
        assert scan.scan_date.replace(tzinfo=None) == started.replace(tzinfo=None)

    async def test_get_scan(self, service, session):
        scan = await _scan(service, session)
        assert (await service.get_scan(session, scan.id)).id == scan.id

    async def test_get_missing_scan(self, service, session):
        with pytest.raises(NotFoundError):
            await service.get_scan(session, uuid.uuid4())

    def test_not_found_is_service_error(self):
        assert issubclass(NotFoundError, ServiceError)


class TestBulkAppend:
    async def test_entities(self, service, session, sample_graph):
        scan = await _scan(service, session)
        ids = await service.bulk_append_entities(session, scan.id, sample_graph)

        assert len(ids.projects) == 2
        assert set(ids.packages) == {("Serilog", "3.1.1"), ("Dapper", "2.1.0")}

        projects = await service.list_projects(session, scan.id)
        assert [p.name for p in projects] == ["App", "Lib"]
        assert all(p.scan_id == scan.id for p in projects)

        assemblies = {a.name: a for a in await service.list_assemblies(session, scan.id)}
        project_by_name = {p.name: p.id for p in projects}
        assert assemblies["App"].project_id == project_by_name["App"]
        assert assemblies["App"].kind == "Exe"
        assert assemblies["Lib"].project_id == project_by_name["Lib"]
        assert assemblies["System.Xml"].project_id is None
        assert assemblies["System.Xml"].kind == "GAC"

        solutions = await service.list_solutions(session, scan.id)
        assert [s.name for s in solutions] == ["All"]
        assert solutions[0].is_single_project is False

    async def test_edges(self, service, session, sample_graph):
        scan = await _scan(service, session)
        ids = await service.bulk_append_entities(session, scan.id, sample_graph)
        inserted = await service.bulk_append_edges(session, scan.id, sample_graph, ids)
        assert inserted == len(sample_graph.edges) == 9

        refs = await service.list_edges(session, scan.id, EdgeKind.PROJECT_REFERENCE)
        app, lib = sample_graph.projects
        assert refs == [(ids.projects[app.unique_identifier], ids.projects[lib.unique_identifier])]

    async def test_edge_with_unknown_endpoint_skipped(self, service, session, sample_graph):
        scan = await _scan(service, session)
        ids = await service.bulk_append_entities(session, scan.id, sample_graph)
        graph = ScanGraph(
            edges=[
                Edge(EdgeKind.PROJECT_REFERENCE, sample_graph.projects[0].unique_identifier, "nope"),
                Edge(EdgeKind.PROJECT_PACKAGE, "nope", ("Serilog", "3.1.1")),
            ]
        )
        assert await service.bulk_append_edges(session, scan.id, graph, ids) == 0

    async def test_empty_graph(self, service, session):
        scan = await _scan(service, session)
        ids = await service.bulk_append_entities(session, scan.id, ScanGraph())
        assert await service.bulk_append_edges(session, scan.id, ScanGraph(), ids) == 0
        summary = await service.summarize(session, scan.id)
        assert set(summary.values()) == {0}

    async def test_same_graph_under_two_scans(self, service, session, sample_graph):
        first = await _scan(service, session)
        second = await _scan(service, session)
        for scan in (first, second):
            ids = await service.bulk_append_entities(session, scan.id, sample_graph)
            await service.bulk_append_edges(session, scan.id, sample_graph, ids)
        assert await service.summarize(session, first.id) == await service.summarize(
            session, second.id
        )


class TestEvents:
    async def test_record_and_list_in_order(self, service, session):
        scan = await _scan(service, session)
        entries = [
            JournalEntry("Initializing", "Starting scan"),
            JournalEntry("Projects", "Bad.csproj: broken", LEVEL_WARNING),
            JournalEntry("Complete", "done"),
        ]
        assert await service.record_events(session, scan.id, entries) == 3

        events = await service.list_events(session, scan.id)
        assert [e.sequence for e in events] == [0, 1, 2]
        assert [e.phase for e in events] == ["Initializing", "Projects", "Complete"]
        assert events[1].level == LEVEL_WARNING
        assert events[0].level == "info"

    async def test_start_sequence(self, service, session):
        scan = await _scan(service, session)
        await service.record_events(session, scan.id, [JournalEntry("A", "a")], start_sequence=5)
        events = await service.list_events(session, scan.id)
        assert events[0].sequence == 5


class TestSummarize:
    async def test_keys(self, service, session, sample_graph):
        scan = await _scan(service, session)
        ids = await service.bulk_append_entities(session, scan.id, sample_graph)
        await service.bulk_append_edges(session, scan.id, sample_graph, ids)
        summary = await service.summarize(session, scan.id)
        assert summary == {
            "solutions": 1,
            "projects": 2,
            "packages": 2,
            "assemblies": 3,
            "solution_projects": 2,
            "project_references": 1,
            "project_packages": 3,
            "project_assemblies": 1,
            "assembly_dependencies": 2,
            "events": 0,
        }

    async def test_missing_scan(self, service, session):
        with pytest.raises(NotFoundError):
            await service.summarize(session, uuid.uuid4())


class TestListScans:
    async def test_page_shape(self, service, session):
        for _ in range(3):
            await _scan(service, session)
        page = await service.list_scans(session, page_size=2)
        assert set(page) == {"data", "next_cursor", "has_more"}
        assert len(page["data"]) == 2
        assert page["has_more"] is True

        rest = await service.list_scans(session, page["next_cursor"], 2)
        assert len(rest["data"]) == 1
        assert rest["has_more"] is False

    async def test_repository_filter(self, service, session):
        await _scan(service, session, "/a")
        await _scan(service, session, "/b")
        page = await service.list_scans(session, repository_path="/a")
        assert [s.repository_path for s in page["data"]] == ["/a"]

    async def test_bad_cursor(self, service, session):
        with pytest.raises(InvalidCursorError):
            await service.list_scans(session, "garbage")
