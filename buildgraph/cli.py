"""CLI entry point: buildgraph.

Subcommands:
    buildgraph init-db                 # Create the schema
    buildgraph scan /path/to/repo      # Scan and persist a repository
    buildgraph inspect /path/to/repo   # Scan without a database
    buildgraph list                    # List stored scans, newest first
    buildgraph show SCAN_ID            # Show one scan's graph
    buildgraph delete SCAN_ID          # Delete a scan and everything under it
"""

from __future__ import annotations

import asyncio
import sys
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.core.config import Settings
from buildgraph.core.database import create_engine, create_schema, create_session_factory
from buildgraph.core.logging import setup_logging
from buildgraph.engines.repository_scanner.progress import ProgressEvent, log_sink
from buildgraph.engines.repository_scanner.scanner import RepositoryScanner, scan
from buildgraph.exceptions import BuildGraphError
from buildgraph.jobs import ScanJobRunner
from buildgraph.schemas.common import PageMeta, PaginatedResponse
from buildgraph.schemas.scan import (
    AssemblyResponse,
    InspectResponse,
    PackageResponse,
    ProjectResponse,
    ScanDetailResponse,
    ScanEventResponse,
    ScanResponse,
    ScanResultResponse,
    ScanSummary,
    SolutionResponse,
    WarningResponse,
)
from buildgraph.services import NotFoundError
from buildgraph.services.scan_service import ScanService, create_scan_service

T = TypeVar("T")


def _run_with_session(
    settings: Settings, fn: Callable[[AsyncSession, ScanService], Awaitable[T]]
) -> T:
    """Run *fn* inside one session/transaction against the configured database."""

    async def _main() -> T:
        engine = create_engine(settings.database_url)
        try:
            await create_schema(engine)
            async with create_session_factory(engine)() as session:
                async with session.begin():
                    return await fn(session, create_scan_service())
        finally:
            await engine.dispose()

    return asyncio.run(_main())


def _parse_scan_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise click.BadParameter(f"not a scan id: {value!r}") from None


def _echo_progress(event: ProgressEvent) -> None:
    click.echo(f"[{event.percent:3d}%] {event.phase}: {event.message}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """buildgraph: inventory .NET solutions, projects and their dependencies."""
    load_dotenv()
    setup_logging("DEBUG" if verbose else None)
    try:
        ctx.obj = Settings.from_env()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@main.command("init-db")
@click.pass_obj
def init_db(settings: Settings) -> None:
    """Create all tables in the configured database."""

    async def _main() -> None:
        engine = create_engine(settings.database_url)
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(_main())
    click.echo("Schema created.")


@main.command("scan")
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
def scan_cmd(settings: Settings, path: str, as_json: bool) -> None:
    """Scan a repository and store its build graph."""

    async def _main():
        engine = create_engine(settings.database_url)
        try:
            await create_schema(engine)
            factory = create_session_factory(engine)
            scanner = RepositoryScanner(create_scan_service(), settings.parse_workers)
            runner = ScanJobRunner(factory, scanner, settings.max_concurrent_scans)
            sinks = [log_sink] if as_json else [log_sink, _echo_progress]
            job = runner.submit(path, *sinks)
            outcome = await job.wait()
            async with factory() as session:
                summary = await create_scan_service().summarize(session, outcome.scan_id)
            return outcome, summary
        finally:
            await engine.dispose()

    try:
        outcome, summary = asyncio.run(_main())
    except BuildGraphError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        result = ScanResultResponse(
            scan_id=outcome.scan_id,
            vcs_revision=outcome.vcs_revision,
            edge_count=outcome.edge_count,
            summary=ScanSummary(**summary),
            warnings=[WarningResponse.model_validate(w) for w in outcome.warnings],
        )
        click.echo(result.model_dump_json(indent=2))
        return

    click.echo(f"\nScan complete: {outcome.scan_id}")
    click.echo(f"  Revision:   {outcome.vcs_revision}")
    for key in ("solutions", "projects", "packages", "assemblies"):
        click.echo(f"  {key.capitalize() + ':':<12}{summary[key]}")
    click.echo(f"  Edges:      {outcome.edge_count}")
    if outcome.warnings:
        click.echo(f"  Warnings:   {len(outcome.warnings)}")
        for warning in outcome.warnings:
            click.echo(f"    - [{warning.phase}] {warning}")


@main.command("inspect")
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
def inspect_cmd(settings: Settings, path: str, as_json: bool) -> None:
    """Scan a repository without touching the database."""
    try:
        graph = scan(path, settings.parse_workers)
    except BuildGraphError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    edge_counts = Counter(edge.kind.value for edge in graph.edges)
    result = InspectResponse(
        repository_path=path,
        solutions=len(graph.solutions),
        projects=len(graph.projects),
        packages=len(graph.packages),
        assemblies=len(graph.assemblies),
        edges=dict(edge_counts),
        warnings=[WarningResponse.model_validate(w) for w in graph.warnings],
    )
    if as_json:
        click.echo(result.model_dump_json(indent=2))
        return

    click.echo(f"Solutions:  {result.solutions}")
    for sln in graph.solutions:
        click.echo(f"  {sln.name}  [{sln.guid_method}]  {len(sln.projects)} project(s)")
    click.echo(f"Projects:   {result.projects}")
    for proj in graph.projects:
        click.echo(
            f"  {proj.name}  {proj.project_style}  {proj.target_framework}  "
            f"refs={proj.project_reference_count}"
        )
    click.echo(f"Packages:   {result.packages}")
    click.echo(f"Assemblies: {result.assemblies}")
    for kind, count in sorted(edge_counts.items()):
        click.echo(f"  {kind}: {count}")
    for warning in graph.warnings:
        click.echo(f"Warning [{warning.phase}]: {warning}", err=True)


@main.command("list")
@click.option("--repository", default=None, help="Only scans of this repository path")
@click.option("--limit", default=20, show_default=True, help="Page size")
@click.option("--cursor", default=None, help="Cursor from a previous page")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
def list_cmd(
    settings: Settings, repository: str | None, limit: int, cursor: str | None, as_json: bool
) -> None:
    """List stored scans, newest first."""

    async def _list(session: AsyncSession, service: ScanService) -> dict:
        return await service.list_scans(session, cursor, limit, repository)

    try:
        page = _run_with_session(settings, _list)
    except ValueError as exc:
        # InvalidCursorError
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        response = PaginatedResponse[ScanResponse](
            data=[ScanResponse.model_validate(s) for s in page["data"]],
            meta=PageMeta(next_cursor=page["next_cursor"], has_more=page["has_more"]),
        )
        click.echo(response.model_dump_json(indent=2))
        return

    if not page["data"]:
        click.echo("No scans.")
        return
    for row in page["data"]:
        click.echo(
            f"{row.id}  {row.scan_date:%Y-%m-%d %H:%M:%S}  {row.vcs_revision[:12]:<12}  "
            f"{row.repository_path}"
        )
    if page["has_more"]:
        click.echo(f"-- more: --cursor {page['next_cursor']}")


@main.command("show")
@click.argument("scan_id")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
def show_cmd(settings: Settings, scan_id: str, as_json: bool) -> None:
    """Show one scan: summary, projects and its audit trail."""
    pk = _parse_scan_id(scan_id)

    async def _detail(session: AsyncSession, service: ScanService) -> ScanDetailResponse:
        scan_row = await service.get_scan(session, pk)
        return ScanDetailResponse(
            scan=ScanResponse.model_validate(scan_row),
            summary=ScanSummary(**await service.summarize(session, pk)),
            solutions=[
                SolutionResponse.model_validate(s)
                for s in await service.list_solutions(session, pk)
            ],
            projects=[
                ProjectResponse.model_validate(p) for p in await service.list_projects(session, pk)
            ],
            packages=[
                PackageResponse.model_validate(p) for p in await service.list_packages(session, pk)
            ],
            assemblies=[
                AssemblyResponse.model_validate(a)
                for a in await service.list_assemblies(session, pk)
            ],
            events=[
                ScanEventResponse.model_validate(e) for e in await service.list_events(session, pk)
            ],
        )

    try:
        detail = _run_with_session(settings, _detail)
    except NotFoundError:
        click.echo(f"Error: scan {pk} not found", err=True)
        sys.exit(1)

    if as_json:
        click.echo(detail.model_dump_json(indent=2))
        return

    click.echo(f"Scan {detail.scan.id}")
    click.echo(f"  Repository: {detail.scan.repository_path}")
    click.echo(f"  Revision:   {detail.scan.vcs_revision}")
    click.echo(f"  Date:       {detail.scan.scan_date:%Y-%m-%d %H:%M:%S}")
    for key, value in detail.summary.model_dump().items():
        click.echo(f"  {key}: {value}")
    click.echo("Projects:")
    for proj in detail.projects:
        click.echo(
            f"  {proj.name}  {proj.project_style}  {proj.target_framework}  {proj.file_path}"
        )
    click.echo("Events:")
    for ev in detail.events:
        click.echo(f"  {ev.sequence:>3} {ev.level:<7} {ev.phase:<12} {ev.message}")


@main.command("delete")
@click.argument("scan_id")
@click.pass_obj
def delete_cmd(settings: Settings, scan_id: str) -> None:
    """Delete a scan and every entity and edge it produced."""
    pk = _parse_scan_id(scan_id)

    async def _delete(session: AsyncSession, service: ScanService) -> None:
        await service.delete_scan(session, pk)

    try:
        _run_with_session(settings, _delete)
    except NotFoundError:
        click.echo(f"Error: scan {pk} not found", err=True)
        sys.exit(1)
    click.echo(f"Deleted scan {pk}")


if __name__ == "__main__":
    main()
