"""Generic base DAO — inserts (ORM) + cursor pagination (Core).

Scan graphs are append-only, so there is no update path here.
"""

import base64
import hashlib
import hmac
import json
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, insert, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from buildgraph.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

PAGE_SIZE_MIN = 1
PAGE_SIZE_MAX = 100
PAGE_SIZE_DEFAULT = 20

# HMAC secret for cursor signing.
# For shared deployments set BUILDGRAPH_CURSOR_SECRET.
_CURSOR_SECRET: bytes = os.environ.get(
    "BUILDGRAPH_CURSOR_SECRET", "changeme-cursor-secret"
).encode()


class InvalidCursorError(ValueError):
    """Raised when a cursor string cannot be decoded or has invalid signature."""


@dataclass
class Cursor:
    """Decoded cursor: (created_at, id)."""

    created_at: datetime
    id: uuid.UUID


@dataclass
class Page(Generic[ModelT]):
    """Paginated result set."""

    data: list[ModelT]
    next_cursor: str | None
    has_more: bool


def _sign(payload: str) -> str:
    """Return a truncated HMAC-SHA256 hex digest for *payload*."""
    return hmac.new(_CURSOR_SECRET, payload.encode(), hashlib.sha256).hexdigest()[:16]


def encode_cursor(created_at: datetime, row_id: uuid.UUID) -> str:
    """Encode (created_at, id) into a signed, URL-safe base64 string."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    payload = json.dumps(
        {
            "c": created_at.isoformat(),
            "i": str(row_id),
        }
    )
    sig = _sign(payload)
    return base64.urlsafe_b64encode(f"{payload}|{sig}".encode()).decode()


def decode_cursor(cursor: str) -> Cursor:
    """Decode a signed base64 cursor string back to (created_at, id).

    Raises ``InvalidCursorError`` for malformed or tampered cursors.
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        payload, sig = raw.rsplit("|", 1)
        expected = _sign(payload)
        if not hmac.compare_digest(sig, expected):
            raise InvalidCursorError(f"cursor signature mismatch: {cursor!r}")
        data = json.loads(payload)
        return Cursor(
            created_at=datetime.fromisoformat(data["c"]),
            id=uuid.UUID(data["i"]),
        )
    except InvalidCursorError:
        raise
    except (json.JSONDecodeError, KeyError, ValueError, UnicodeDecodeError) as exc:
        raise InvalidCursorError(f"invalid cursor: {cursor!r}") from exc


def _clamp_page_size(page_size: int) -> int:
    return max(PAGE_SIZE_MIN, min(page_size, PAGE_SIZE_MAX))


class BaseDAO(Generic[ModelT]):
    """Base data-access object. Subclasses set ``model`` class attribute."""

    model: type[ModelT]

    # ── ORM methods ──────────────────────────────────────────────────────

    @staticmethod
    def _require_pk(pk: uuid.UUID) -> None:
        """Raise ValueError if *pk* is None."""
        if pk is None:
            raise ValueError("pk must not be None")

    async def get_by_id(self, session: AsyncSession, pk: uuid.UUID) -> ModelT | None:
        self._require_pk(pk)
        return await session.get(self.model, pk)

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        obj = self.model(**values)
        session.add(obj)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def bulk_insert(self, session: AsyncSession, rows: list[dict[str, Any]]) -> int:
        """Insert many rows with one executemany-style statement.

        Rows must carry their own ``id`` so callers can wire edges without
        a RETURNING round trip. Python-side column defaults still apply.
        Returns the number of rows sent.
        """
        if not rows:
            return 0
        await session.execute(insert(self.model), rows)
        return len(rows)

    # ── Core methods ─────────────────────────────────────────────────────

    async def paginate(
        self,
        session: AsyncSession,
        query: Select,
        cursor: str | None = None,
        page_size: int = PAGE_SIZE_DEFAULT,
    ) -> Page[ModelT]:
        """Apply cursor-based pagination to *query*.

        The query must select from a table that has ``created_at`` and ``id``
        columns. Ordering (created_at DESC, id DESC) and LIMIT are appended
        by this method — callers should NOT add their own ORDER BY / LIMIT.

        Raises ``InvalidCursorError`` if *cursor* is malformed.
        """
        page_size = _clamp_page_size(page_size)
        table = self.model.__table__

        if cursor:
            cur = decode_cursor(cursor)
            query = query.where(tuple_(table.c.created_at, table.c.id) < (cur.created_at, cur.id))

        query = query.order_by(
            table.c.created_at.desc(),
            table.c.id.desc(),
        ).limit(page_size + 1)

        result = await session.execute(query)
        rows = list(result.scalars().all())

        has_more = len(rows) > page_size
        data = rows[:page_size]

        next_cursor = None
        if has_more and data:
            last = data[-1]
            next_cursor = encode_cursor(last.created_at, last.id)

        return Page(data=data, next_cursor=next_cursor, has_more=has_more)


class ScanScopedDAO(BaseDAO[ModelT]):
    """DAO for tables hanging directly off ``scans`` via ``scan_id``.

    Subclasses may set ``order_by`` to a column name for stable listings.
    """

    order_by: str = "name"

    async def list_by_scan(self, session: AsyncSession, scan_id: uuid.UUID) -> list[ModelT]:
        table = self.model.__table__
        stmt = (
            select(self.model)
            .where(table.c.scan_id == scan_id)
            .order_by(table.c[self.order_by], table.c.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_scan(self, session: AsyncSession, scan_id: uuid.UUID) -> int:
        table = self.model.__table__
        stmt = select(func.count()).select_from(table).where(table.c.scan_id == scan_id)
        result = await session.execute(stmt)
        return result.scalar_one()
