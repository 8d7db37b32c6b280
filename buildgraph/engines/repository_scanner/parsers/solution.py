"""Parser for Visual Studio solution (.sln) files.

Solution files are line-oriented and matched with regular expressions.
Lines that do not match the ``Project(...)`` declaration exactly (unusual
whitespace, wrapped lines) are ignored rather than guessed at.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from pathlib import Path

import structlog

from buildgraph.engines.repository_scanner.discovery import is_project_file
from buildgraph.engines.repository_scanner.identity import identifier_for_path, normalize_path
from buildgraph.engines.repository_scanner.models import (
    GUID_FROM_REFERENCED_PROJECT,
    GUID_FROM_SOLUTION_GUID,
    GUID_NOT_FOUND,
    ParsedSolution,
    ScanWarning,
    SolutionProjectEntry,
)
from buildgraph.engines.repository_scanner.parsers import read_manifest, resolve_relative

_SOLUTION_GUID_RE = re.compile(r"SolutionGuid\s*=\s*\{([0-9A-Fa-f\-]+)\}")
_PROJECT_RE = re.compile(
    r'Project\("[^"]+"\)\s*=\s*"[^"]+"\s*,\s*"([^"]+)"\s*,\s*"\{([0-9A-Fa-f\-]+)\}"'
)

logger = structlog.get_logger(__name__)


def iter_project_entries(file_path: str | Path, content: str) -> Iterator[SolutionProjectEntry]:
    """Yield project-file entries declared by a solution, existing on disk or not.

    Solution folders and other non-project entries are skipped.
    """
    solution_dir = Path(file_path).parent
    for match in _PROJECT_RE.finditer(content):
        relative_path, guid = match.group(1), match.group(2)
        if not is_project_file(relative_path):
            continue
        yield SolutionProjectEntry(
            relative_path=relative_path,
            absolute_path=str(resolve_relative(solution_dir, relative_path)),
            native_guid=guid,
        )


def parse_solution(file_path: str | Path, content: str) -> ParsedSolution:
    """Extract solution metadata and the project entries that exist on disk.

    A solution whose only existing project entry is a single project takes
    that project's native GUID as its own, even over a ``SolutionGuid``.
    """
    path = Path(file_path)

    native_guid: str | None = None
    guid_method = GUID_NOT_FOUND
    guid_match = _SOLUTION_GUID_RE.search(content)
    if guid_match:
        native_guid = guid_match.group(1)
        guid_method = GUID_FROM_SOLUTION_GUID

    entries = [e for e in iter_project_entries(path, content) if Path(e.absolute_path).is_file()]

    is_single_project = len(entries) == 1
    if is_single_project:
        native_guid = entries[0].native_guid
        guid_method = GUID_FROM_REFERENCED_PROJECT

    return ParsedSolution(
        unique_identifier=identifier_for_path(path),
        native_guid=native_guid,
        name=path.stem,
        file_path=str(path),
        guid_method=guid_method,
        is_single_project=is_single_project,
        projects=entries,
    )


def build_project_guid_map(
    solution_paths: Iterable[str],
) -> tuple[dict[str, str], list[ScanWarning]]:
    """Second pass over all solutions: normalized project path -> native GUID.

    Legacy projects often do not declare their own GUID, so the solution is
    the source of truth. When several solutions list the same project the
    last one read wins. Unreadable solutions are skipped with a warning.
    """
    guid_map: dict[str, str] = {}
    warnings: list[ScanWarning] = []
    for solution_path in solution_paths:
        try:
            content = read_manifest(solution_path)
        except OSError as exc:
            logger.warning("solution.guid_map_read_failed", path=solution_path, error=str(exc))
            warnings.append(
                ScanWarning(phase="Projects", path=solution_path, message=f"unreadable: {exc}")
            )
            continue
        for entry in iter_project_entries(solution_path, content):
            guid_map[normalize_path(entry.absolute_path)] = entry.native_guid
    return guid_map, warnings
