"""ScanDAO — scans table operations."""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.dao.base import BaseDAO, Page
from buildgraph.models.scan import Scan


class ScanDAO(BaseDAO[Scan]):
    model = Scan

    # ── read ──────────────────────────────────────────────────────────────

    async def list_paginated(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = 20,
        repository_path: str | None = None,
    ) -> Page[Scan]:
        """Newest-first scan list, optionally for one repository."""
        query = select(Scan)
        if repository_path is not None:
            query = query.where(Scan.repository_path == repository_path)
        return await self.paginate(session, query, cursor, page_size)

    # ── write ─────────────────────────────────────────────────────────────

    async def delete_cascade(self, session: AsyncSession, pk: uuid.UUID) -> bool:
        """Delete a scan with a single Core DELETE.

        Child rows go through the database's ON DELETE rules, not the ORM
        unit of work, so nothing has to be loaded first. Returns False if
        no such scan exists.
        """
        self._require_pk(pk)
        result = await session.execute(delete(Scan).where(Scan.id == pk))
        return result.rowcount > 0
