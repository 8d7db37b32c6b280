"""Manifest discovery — find solution and project files under a repository root."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from buildgraph.engines.repository_scanner.models import ScanWarning
from buildgraph.exceptions import RepositoryNotFoundError

SOLUTION_EXTENSIONS = (".sln",)
PROJECT_EXTENSIONS = (".csproj", ".vbproj", ".fsproj")

logger = structlog.get_logger(__name__)


@dataclass
class DiscoveredPaths:
    solutions: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


def is_project_file(path: str) -> bool:
    return path.lower().endswith(PROJECT_EXTENSIONS)


def discover(root: str | Path) -> DiscoveredPaths:
    """Walk *root* and collect absolute solution and project file paths.

    Raises :class:`RepositoryNotFoundError` if *root* is not a directory.
    Directories that cannot be listed are skipped and reported as warnings.
    Both path lists are sorted so results are reproducible.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise RepositoryNotFoundError(str(root))
    root_path = root_path.resolve()

    result = DiscoveredPaths()

    def _on_error(exc: OSError) -> None:
        path = exc.filename or ""
        logger.warning("discovery.unreadable_dir", path=path, error=exc.strerror or str(exc))
        result.warnings.append(
            ScanWarning(phase="Discovery", path=path, message=f"directory skipped: {exc}")
        )

    for dirpath, _dirnames, filenames in os.walk(root_path, onerror=_on_error):
        for name in filenames:
            lowered = name.lower()
            if lowered.endswith(SOLUTION_EXTENSIONS):
                result.solutions.append(os.path.join(dirpath, name))
            elif lowered.endswith(PROJECT_EXTENSIONS):
                result.projects.append(os.path.join(dirpath, name))

    result.solutions.sort()
    result.projects.sort()
    logger.info(
        "discovery.completed",
        root=str(root_path),
        solutions=len(result.solutions),
        projects=len(result.projects),
        skipped_dirs=len(result.warnings),
    )
    return result
