"""SQLAlchemy ORM models — one file per table, junctions in edges.py."""

from buildgraph.models.assembly import Assembly
from buildgraph.models.edges import (
    EDGE_TABLES,
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

__all__ = [
    "Scan",
    "ScanEvent",
    "Solution",
    "Project",
    "Package",
    "Assembly",
    "EDGE_TABLES",
    "solution_projects",
    "project_references",
    "project_packages",
    "project_assemblies",
    "assembly_dependencies",
]
