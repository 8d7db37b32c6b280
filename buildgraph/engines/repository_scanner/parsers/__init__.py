"""Manifest parsers — solution (.sln) and MSBuild project files."""

from __future__ import annotations

from pathlib import Path


def read_manifest(path: str | Path) -> str:
    """Read a manifest as text, dropping a UTF-8 BOM if present.

    Raises ``OSError`` if the file cannot be read.
    """
    return Path(path).read_text(encoding="utf-8-sig", errors="replace")


def resolve_relative(base_dir: str | Path, relative: str) -> Path:
    """Resolve a manifest-relative path written with Windows separators."""
    return (Path(base_dir) / relative.strip().replace("\\", "/")).resolve()
