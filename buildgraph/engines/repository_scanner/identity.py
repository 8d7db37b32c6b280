"""Deterministic identifiers for scanned entities.

Identifiers are MD5 digests of a normalized key, formatted like a GUID.
MD5 is used for distribution only, not for any security property, so
collisions are neither checked nor disambiguated here; the graph builder
drops a second entity that lands on an identifier already taken.
"""

from __future__ import annotations

import hashlib
from pathlib import Path


def normalize_path(path: str | Path) -> str:
    """Fully resolved absolute path, lower-cased."""
    return str(Path(path).resolve()).lower()


def identifier_for(key: str) -> str:
    """Map *key* to an uppercase ``XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX`` token."""
    digest = hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest().upper()
    return f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:]}"


def identifier_for_path(path: str | Path) -> str:
    return identifier_for(normalize_path(path))


def identifier_for_assembly(project_path: str | Path, assembly_name: str) -> str:
    return identifier_for(f"{normalize_path(project_path)}|{assembly_name.lower()}")
