"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///buildgraph.db"


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


@dataclass(frozen=True)
class Settings:
    """Scanner settings.

    Environment variables:
        BUILDGRAPH_DATABASE_URL          — SQLAlchemy async URL
        BUILDGRAPH_PARSE_WORKERS         — threads used to parse files within a phase
        BUILDGRAPH_MAX_CONCURRENT_SCANS  — scan jobs allowed to run at once
    """

    database_url: str = DEFAULT_DATABASE_URL
    parse_workers: int = 8
    max_concurrent_scans: int = 2

    @classmethod
    def from_env(cls) -> Settings:
        settings = cls(
            database_url=os.environ.get("BUILDGRAPH_DATABASE_URL", DEFAULT_DATABASE_URL),
            parse_workers=_env_int("BUILDGRAPH_PARSE_WORKERS", cls.parse_workers),
            max_concurrent_scans=_env_int(
                "BUILDGRAPH_MAX_CONCURRENT_SCANS", cls.max_concurrent_scans
            ),
        )
        if settings.parse_workers < 1:
            raise ValueError("BUILDGRAPH_PARSE_WORKERS must be >= 1")
        if settings.max_concurrent_scans < 1:
            raise ValueError("BUILDGRAPH_MAX_CONCURRENT_SCANS must be >= 1")
        return settings
