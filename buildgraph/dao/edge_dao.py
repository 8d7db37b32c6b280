"""EdgeDAO — junction table operations.

Junction rows carry no ``scan_id``; they are scoped through the entity on
their cascading (owning) side.
"""

import uuid
from typing import Any

from sqlalchemy import Column, Table, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.models.assembly import Assembly
from buildgraph.models.edges import (
    assembly_dependencies,
    project_assemblies,
    project_packages,
    project_references,
    solution_projects,
)
from buildgraph.models.project import Project

# junction -> (owning column, owning entity table)
EDGE_OWNERS: dict[Table, tuple[Column, Table]] = {
    solution_projects: (solution_projects.c.project_id, Project.__table__),
    project_references: (project_references.c.referencing_project_id, Project.__table__),
    project_packages: (project_packages.c.project_id, Project.__table__),
    project_assemblies: (project_assemblies.c.project_id, Project.__table__),
    assembly_dependencies: (assembly_dependencies.c.referencing_assembly_id, Assembly.__table__),
}


class EdgeDAO:
    def _scoped(self, table: Table, scan_id: uuid.UUID):
        owner_col, owner_table = EDGE_OWNERS[table]
        return (
            select(table)
            .join(owner_table, owner_table.c.id == owner_col)
            .where(owner_table.c.scan_id == scan_id)
        )

    async def bulk_insert(
        self, session: AsyncSession, table: Table, rows: list[dict[str, Any]]
    ) -> int:
        if not rows:
            return 0
        await session.execute(insert(table), rows)
        return len(rows)

    async def list_by_scan(
        self, session: AsyncSession, table: Table, scan_id: uuid.UUID
    ) -> list[tuple[uuid.UUID, uuid.UUID]]:
        """Ordered pairs of *table* belonging to one scan."""
        result = await session.execute(self._scoped(table, scan_id))
        return [tuple(row) for row in result.all()]

    async def count_by_scan(self, session: AsyncSession, table: Table, scan_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(self._scoped(table, scan_id).subquery())
        result = await session.execute(stmt)
        return result.scalar_one()
