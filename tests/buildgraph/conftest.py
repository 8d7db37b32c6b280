"""Database fixtures for buildgraph tests.

Each test gets a fresh SQLite database file under ``tmp_path``. Point
``TEST_DATABASE_URL`` at another async URL (e.g. a PostgreSQL test
database via asyncpg) to run the same tests there; the schema is then
created and dropped around every test.
"""

import os
from pathlib import Path

import pytest
import pytest_asyncio

from buildgraph.core.database import (
    create_engine,
    create_schema,
    create_session_factory,
    drop_schema,
)
from buildgraph.engines.repository_scanner.assembly import extract_assemblies
from buildgraph.engines.repository_scanner.graph import build_graph
from buildgraph.engines.repository_scanner.identity import identifier_for_path
from buildgraph.engines.repository_scanner.models import (
    AssemblyReferenceDeclaration,
    PackageDeclaration,
    ParsedProject,
    ParsedSolution,
    ScanGraph,
    SolutionProjectEntry,
)
from buildgraph.services.scan_service import create_scan_service


@pytest.fixture
def db_url(tmp_path):
    return os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest_asyncio.fixture
async def engine(db_url):
    eng = create_engine(db_url)
    await drop_schema(eng)
    await create_schema(eng)
    yield eng
    await drop_schema(eng)
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    """Provide a transactional session that rolls back after each test."""
    async with session_factory() as sess:
        async with sess.begin():
            yield sess
            await sess.rollback()


def make_sample_graph(root: Path) -> ScanGraph:
    """A two-project solution graph touching every entity and edge kind."""
    lib_path = root / "Lib" / "Lib.csproj"
    app_path = root / "App" / "App.csproj"
    lib = _project(
        lib_path,
        packages=[PackageDeclaration("Serilog", "3.1.1")],
        assembly_references=[AssemblyReferenceDeclaration("System.Xml")],
    )
    app = _project(
        app_path,
        output_type="Exe",
        project_references=[str(lib_path)],
        packages=[PackageDeclaration("Serilog", "3.1.1"), PackageDeclaration("Dapper", "2.1.0")],
    )
    sln_path = root / "All.sln"
    sln = ParsedSolution(
        unique_identifier=identifier_for_path(sln_path),
        native_guid=None,
        name="All",
        file_path=str(sln_path),
        guid_method="Not found",
        is_single_project=False,
        projects=[
            SolutionProjectEntry("App\\App.csproj", str(app_path), "1111"),
            SolutionProjectEntry("Lib\\Lib.csproj", str(lib_path), "2222"),
        ],
    )
    projects = [app, lib]
    return build_graph([sln], projects, extract_assemblies(projects))


def _project(path: Path, **kwargs) -> ParsedProject:
    return ParsedProject(
        unique_identifier=identifier_for_path(path),
        native_guid=None,
        name=path.stem,
        file_path=str(path),
        guid_method="Not found",
        target_framework="net8.0",
        project_style="SDK-style",
        **kwargs,
    )


@pytest.fixture
def sample_graph(tmp_path) -> ScanGraph:
    return make_sample_graph(tmp_path / "repo")


@pytest.fixture
def service():
    return create_scan_service()
