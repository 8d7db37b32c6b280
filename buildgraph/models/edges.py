"""Junction tables for the scan graph edges.

Every junction is keyed by its ordered pair, so the primary key doubles as
the duplicate-edge guard. Exactly one foreign key per junction cascades:
the one pointing at ``projects`` (or at the referencing assembly for the
assembly self-reference). The other side is NO ACTION. Its rows still go
away on scan deletion because the project/assembly they hang off is itself
a cascade child of ``scans``; giving it a cascade too would open a second
delete path into the same table, which engines such as SQL Server reject.
The NO ACTION side is checked at commit (DEFERRABLE INITIALLY DEFERRED)
so cascade ordering inside the single scan DELETE never matters.

    scans ─┬─> solutions ··(no action)··> solution_projects <─(cascade)── projects
           ├─> projects ─(cascade)─> project_references ··(no action)··> projects
           ├─> packages ··(no action)··> project_packages <─(cascade)── projects
           ├─> assemblies ··(no action)··> project_assemblies <─(cascade)── projects
           └─> assemblies ─(cascade)─> assembly_dependencies ··(no action)··> assemblies
"""

from sqlalchemy import Column, ForeignKey, Index, Table, Uuid

from buildgraph.core.database import Base

solution_projects = Table(
    "solution_projects",
    Base.metadata,
    Column(
        "solution_id",
        Uuid,
        ForeignKey("solutions.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
        primary_key=True,
    ),
    Column(
        "project_id",
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("idx_solution_projects_project", "project_id"),
)

project_references = Table(
    "project_references",
    Base.metadata,
    Column(
        "referencing_project_id",
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "referenced_project_id",
        Uuid,
        ForeignKey("projects.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
        primary_key=True,
    ),
    Index("idx_project_references_referenced", "referenced_project_id"),
)

project_packages = Table(
    "project_packages",
    Base.metadata,
    Column(
        "project_id",
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "package_id",
        Uuid,
        ForeignKey("packages.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
        primary_key=True,
    ),
    Index("idx_project_packages_package", "package_id"),
)

project_assemblies = Table(
    "project_assemblies",
    Base.metadata,
    Column(
        "project_id",
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "assembly_id",
        Uuid,
        ForeignKey("assemblies.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
        primary_key=True,
    ),
    Index("idx_project_assemblies_assembly", "assembly_id"),
)

assembly_dependencies = Table(
    "assembly_dependencies",
    Base.metadata,
    Column(
        "referencing_assembly_id",
        Uuid,
        ForeignKey("assemblies.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "referenced_assembly_id",
        Uuid,
        ForeignKey("assemblies.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
        primary_key=True,
    ),
    Index("idx_assembly_dependencies_referenced", "referenced_assembly_id"),
)

EDGE_TABLES = (
    solution_projects,
    project_references,
    project_packages,
    project_assemblies,
    assembly_dependencies,
)
