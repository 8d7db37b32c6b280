"""Tests for BaseDAO — cursor codec, create, bulk insert, pagination."""

import base64
import json
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from buildgraph.dao.base import (
    PAGE_SIZE_MAX,
    InvalidCursorError,
    _clamp_page_size,
    _sign,
    decode_cursor,
    encode_cursor,
)
from buildgraph.dao.package_dao import PackageDAO
from buildgraph.dao.scan_dao import ScanDAO
from buildgraph.models.package import Package
from buildgraph.models.scan import Scan


def _forge_cursor(payload: str) -> str:
    """Create a cursor with a valid HMAC signature but arbitrary payload."""
    sig = _sign(payload)
    return base64.urlsafe_b64encode(f"{payload}|{sig}".encode()).decode()


@pytest.fixture
def dao():
    return ScanDAO()


async def _scan(dao, session, path="/repo", revision="abc123") -> Scan:
    return await dao.create(session, repository_path=path, vcs_revision=revision)


# ── cursor encode / decode ───────────────────────────────────────────────


class TestCursorCodec:
    def test_roundtrip(self):
        dt = datetime(2026, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        uid = uuid.uuid4()
        decoded = decode_cursor(encode_cursor(dt, uid))
        assert decoded.created_at == dt
        assert decoded.id == uid

    def test_naive_datetime_gets_utc(self):
        naive = datetime(2026, 1, 15, 10, 30, 0)
        decoded = decode_cursor(encode_cursor(naive, uuid.uuid4()))
        assert decoded.created_at.tzinfo is not None

    def test_invalid_cursor_garbage(self):
        with pytest.raises(InvalidCursorError):
            decode_cursor("garbage")

    def test_invalid_cursor_empty(self):
        with pytest.raises(InvalidCursorError):
            decode_cursor("")

    def test_invalid_cursor_bad_json(self):
        with pytest.raises(InvalidCursorError, match="invalid cursor"):
            decode_cursor(_forge_cursor("not json"))

    def test_invalid_cursor_missing_keys(self):
        with pytest.raises(InvalidCursorError, match="invalid cursor"):
            decode_cursor(_forge_cursor(json.dumps({"x": 1})))

    def test_tampered_cursor_rejected(self):
        uid = uuid.uuid4()
        encoded = encode_cursor(datetime.now(timezone.utc), uid)
        raw = base64.urlsafe_b64decode(encoded.encode()).decode()
        payload, sig = raw.rsplit("|", 1)
        tampered_payload = payload.replace(str(uid), str(uuid.uuid4()))
        tampered = base64.urlsafe_b64encode(f"{tampered_payload}|{sig}".encode()).decode()
        with pytest.raises(InvalidCursorError, match="signature mismatch"):
            decode_cursor(tampered)

    def test_invalid_cursor_is_value_error(self):
        with pytest.raises(ValueError):
            decode_cursor("garbage")


class TestClampPageSize:
    @pytest.mark.parametrize(
        "requested, expected", [(0, 1), (-5, 1), (20, 20), (10_000, PAGE_SIZE_MAX)]
    )
    def test_clamp(self, requested, expected):
        assert _clamp_page_size(requested) == expected


# ── create / get ────────────────────────────────────────────────


class TestCreate:
    async def test_create_populates_defaults(self, dao, session):
        scan = await _scan(dao, session)
        assert isinstance(scan, Scan)
        assert scan.id is not None
        assert scan.created_at is not None
        assert scan.scan_date is not None

    async def test_create_missing_required_field(self, dao, session):
        with pytest.raises(IntegrityError):
            await dao.create(session, repository_path="/repo")


class TestGetById:
    async def test_found(self, dao, session):
        scan = await _scan(dao, session)
        found = await dao.get_by_id(session, scan.id)
        assert found is not None
        assert found.id == scan.id

    async def test_not_found(self, dao, session):
        assert await dao.get_by_id(session, uuid.uuid4()) is None

    async def test_none_pk_rejected(self, dao, session):
        with pytest.raises(ValueError, match="pk must not be None"):
            await dao.get_by_id(session, None)


# ── bulk insert ──────────────────────────────────────────────────────────


class TestBulkInsert:
    async def test_inserts_rows_with_given_ids(self, dao, session):
        scan = await _scan(dao, session)
        rows = [
            {"id": uuid.uuid4(), "scan_id": scan.id, "name": "Serilog", "version": "3.1.1"},
            {"id": uuid.uuid4(), "scan_id": scan.id, "name": "Dapper", "version": "2.1.0"},
        ]
        assert await PackageDAO().bulk_insert(session, rows) == 2

        result = await session.execute(select(Package.id).where(Package.scan_id == scan.id))
        assert set(result.scalars().all()) == {r["id"] for r in rows}

    async def test_empty_is_noop(self, session):
        assert await PackageDAO().bulk_insert(session, []) == 0

    async def test_unique_natural_key_enforced(self, dao, session):
        scan = await _scan(dao, session)
        row = {"scan_id": scan.id, "name": "Serilog", "version": "3.1.1"}
        with pytest.raises(IntegrityError):
            await PackageDAO().bulk_insert(
                session, [{"id": uuid.uuid4(), **row}, {"id": uuid.uuid4(), **row}]
            )

    async def test_count_by_scan(self, dao, session):
        first = await _scan(dao, session)
        second = await _scan(dao, session)
        pkg = PackageDAO()
        await pkg.bulk_insert(
            session,
            [{"id": uuid.uuid4(), "scan_id": first.id, "name": "A", "version": "1"}],
        )
        assert await pkg.count_by_scan(session, first.id) == 1
        assert await pkg.count_by_scan(session, second.id) == 0


# ── pagination ───────────────────────────────────────────────────────────


class TestPaginate:
    async def test_walks_all_pages_newest_first(self, dao, session):
        created = [await _scan(dao, session, revision=f"r{i}") for i in range(5)]

        seen = []
        cursor = None
        while True:
            page = await dao.list_paginated(session, cursor, page_size=2)
            seen.extend(page.data)
            if not page.has_more:
                assert page.next_cursor is None
                break
            assert len(page.data) == 2
            cursor = page.next_cursor

        assert len(seen) == 5
        assert {s.id for s in seen} == {s.id for s in created}
        keys = [(s.created_at, s.id) for s in seen]
        assert keys == sorted(keys, reverse=True)

    async def test_filter_by_repository(self, dao, session):
        await _scan(dao, session, path="/a")
        await _scan(dao, session, path="/b")
        page = await dao.list_paginated(session, repository_path="/b")
        assert [s.repository_path for s in page.data] == ["/b"]
        assert page.has_more is False

    async def test_invalid_cursor_raises(self, dao, session):
        with pytest.raises(InvalidCursorError):
            await dao.list_paginated(session, "garbage")
