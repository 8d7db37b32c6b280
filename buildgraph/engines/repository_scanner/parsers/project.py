"""Parser for MSBuild project files (.csproj, .vbproj, .fsproj).

Element lookups match on local names, so legacy projects that put every
element in the ``http://schemas.microsoft.com/developer/msbuild/2003``
namespace parse the same way as SDK-style projects.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from pathlib import Path

import structlog

from buildgraph.engines.repository_scanner.identity import identifier_for_path, normalize_path
from buildgraph.engines.repository_scanner.models import (
    GUID_FROM_PROJECT_ELEMENT,
    GUID_FROM_SOLUTION_FILE,
    GUID_NOT_FOUND,
    LEGACY_STYLE,
    NOT_AVAILABLE,
    SDK_STYLE,
    AssemblyReferenceDeclaration,
    PackageDeclaration,
    ParsedProject,
)
from buildgraph.engines.repository_scanner.parsers import read_manifest, resolve_relative
from buildgraph.exceptions import ManifestParseError

# Checked in order; the first element with a non-blank value wins.
TARGET_FRAMEWORK_ELEMENTS = ("TargetFramework", "TargetFrameworks", "TargetFrameworkVersion")

PACKAGES_CONFIG = "packages.config"

logger = structlog.get_logger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _iter_named(root: ET.Element, name: str) -> Iterator[ET.Element]:
    for element in root.iter():
        if isinstance(element.tag, str) and _local_name(element.tag) == name:
            yield element


def _first_text(root: ET.Element, name: str) -> str | None:
    """Stripped text of the first *name* element that has any, else None."""
    for element in _iter_named(root, name):
        if element.text and element.text.strip():
            return element.text.strip()
    return None


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if isinstance(child.tag, str) and _local_name(child.tag) == name:
            return child.text.strip() if child.text and child.text.strip() else None
    return None


def _split_assembly_identity(include: str) -> tuple[str, str | None]:
    """Split ``"Name, Version=1.0.0.0, Culture=neutral, ..."`` into (name, version)."""
    parts = [p.strip() for p in include.split(",")]
    version = None
    for part in parts[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "version" and value.strip():
            version = value.strip()
    return parts[0], version


def parse_project(
    file_path: str | Path,
    content: str,
    guid_map: Mapping[str, str] | None = None,
) -> ParsedProject:
    """Parse a project document.

    *guid_map* maps normalized project paths to the native GUID declared by
    a solution, used when the project does not declare its own.

    Raises :class:`ManifestParseError` if *content* is not well-formed XML.
    """
    path = Path(file_path)
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ManifestParseError(str(path), str(exc)) from exc

    project_style = SDK_STYLE if root.get("Sdk") is not None else LEGACY_STYLE

    native_guid: str | None = None
    guid_method = GUID_NOT_FOUND
    declared_guid = _first_text(root, "ProjectGuid")
    if declared_guid:
        native_guid = declared_guid.strip("{}")
        guid_method = GUID_FROM_PROJECT_ELEMENT
    elif guid_map:
        mapped = guid_map.get(normalize_path(path))
        if mapped:
            native_guid = mapped
            guid_method = GUID_FROM_SOLUTION_FILE

    target_framework = NOT_AVAILABLE
    for element_name in TARGET_FRAMEWORK_ELEMENTS:
        value = _first_text(root, element_name)
        if value:
            target_framework = value
            break

    project = ParsedProject(
        unique_identifier=identifier_for_path(path),
        native_guid=native_guid,
        name=path.stem,
        file_path=str(path),
        guid_method=guid_method,
        target_framework=target_framework,
        project_style=project_style,
        output_type=_first_text(root, "OutputType"),
        assembly_name=_first_text(root, "AssemblyName"),
    )

    for element in _iter_named(root, "ProjectReference"):
        include = element.get("Include")
        if include and include.strip():
            project.project_references.append(str(resolve_relative(path.parent, include)))

    for element in _iter_named(root, "PackageReference"):
        name = element.get("Include")
        if not name or not name.strip():
            # <PackageReference Update="..."> tweaks an existing item
            continue
        version = element.get("Version") or _child_text(element, "Version") or NOT_AVAILABLE
        project.packages.append(PackageDeclaration(name=name.strip(), version=version.strip()))

    for element in _iter_named(root, "Reference"):
        include = element.get("Include")
        if not include or not include.strip():
            continue
        name, version = _split_assembly_identity(include)
        hint = _child_text(element, "HintPath")
        project.assembly_references.append(
            AssemblyReferenceDeclaration(
                name=name,
                version=version,
                hint_path=str(resolve_relative(path.parent, hint)) if hint else None,
            )
        )

    _read_packages_config(path, project)
    return project


def _read_packages_config(project_path: Path, project: ParsedProject) -> None:
    """Add package declarations from a ``packages.config`` next to the project.

    A malformed ``packages.config`` only costs its own declarations; the
    problem is recorded on ``project.warnings``.
    """
    config_path = project_path.parent / PACKAGES_CONFIG
    if not config_path.is_file():
        return
    try:
        root = ET.fromstring(read_manifest(config_path))
    except (OSError, ET.ParseError) as exc:
        logger.warning("project.packages_config_unreadable", path=str(config_path), error=str(exc))
        project.warnings.append(f"{config_path}: packages.config skipped: {exc}")
        return

    for element in _iter_named(root, "package"):
        package_id = element.get("id")
        if not package_id or not package_id.strip():
            continue
        version = (element.get("version") or "").strip() or NOT_AVAILABLE
        project.packages.append(PackageDeclaration(name=package_id.strip(), version=version))
