"""Assembly extraction — derive build outputs and referenced binaries from projects."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path, PurePath

import structlog

from buildgraph.engines.repository_scanner.identity import (
    identifier_for,
    identifier_for_assembly,
    identifier_for_path,
)
from buildgraph.engines.repository_scanner.models import (
    DEFAULT_OUTPUT_TYPE,
    KIND_EXTERNAL,
    KIND_GAC,
    KIND_NUGET,
    AssemblyExtraction,
    DerivedAssembly,
    ParsedProject,
    ScanWarning,
)

EXECUTABLE_EXTENSION = ".exe"
MODULE_EXTENSION = ".netmodule"
LIBRARY_EXTENSION = ".dll"

_EXTENSION_BY_OUTPUT_TYPE = {
    "exe": EXECUTABLE_EXTENSION,
    "winexe": EXECUTABLE_EXTENSION,
    "module": MODULE_EXTENSION,
}

logger = structlog.get_logger(__name__)


def extension_for(output_type: str | None) -> str:
    """File extension implied by an ``OutputType`` value (case-insensitive)."""
    if not output_type:
        return LIBRARY_EXTENSION
    return _EXTENSION_BY_OUTPUT_TYPE.get(output_type.strip().lower(), LIBRARY_EXTENSION)


def extract_assembly(project: ParsedProject) -> DerivedAssembly:
    """Derive the assembly a project builds.

    The output sits next to the project file; intermediate output folders
    are build-configuration dependent and not modelled.
    """
    output_type = project.output_type or DEFAULT_OUTPUT_TYPE
    assembly_name = project.assembly_name or project.name
    file_name = assembly_name + extension_for(output_type)
    return DerivedAssembly(
        unique_identifier=identifier_for_assembly(project.file_path, assembly_name),
        name=assembly_name,
        kind=output_type,
        file_path=str(Path(project.file_path).parent / file_name),
        project_file_path=project.file_path,
    )


def reference_assemblies(project: ParsedProject) -> list[DerivedAssembly]:
    """Turn a project's ``<Reference>`` items into assembly records.

    Hint paths inside a ``packages`` folder are NuGet-restored binaries; other
    hint paths are external files. References without a hint path resolve
    from the GAC / framework and are keyed by their file name.
    """
    assemblies: list[DerivedAssembly] = []
    for ref in project.assembly_references:
        if ref.hint_path:
            parts = {part.lower() for part in PurePath(ref.hint_path).parts[:-1]}
            kind = KIND_NUGET if "packages" in parts else KIND_EXTERNAL
            assemblies.append(
                DerivedAssembly(
                    unique_identifier=identifier_for_path(ref.hint_path),
                    name=ref.name,
                    kind=kind,
                    file_path=ref.hint_path,
                    version=ref.version,
                )
            )
        else:
            file_name = ref.name + LIBRARY_EXTENSION
            assemblies.append(
                DerivedAssembly(
                    unique_identifier=identifier_for(f"{KIND_GAC.lower()}|{file_name.lower()}"),
                    name=ref.name,
                    kind=KIND_GAC,
                    file_path=file_name,
                    version=ref.version,
                )
            )
    return assemblies


def extract_assemblies(projects: Iterable[ParsedProject]) -> AssemblyExtraction:
    """Derive outputs and references for every project.

    A failure on one project is recorded as a warning and yields no assembly
    records for it; the remaining projects are still processed. Only the
    first project per identifier is extracted, matching the graph builder.
    """
    extraction = AssemblyExtraction()
    seen: set[str] = set()
    for project in projects:
        if project.unique_identifier in seen:
            continue
        seen.add(project.unique_identifier)
        try:
            output = extract_assembly(project)
            references = reference_assemblies(project)
        except Exception as exc:
            logger.exception("assembly.extract_failed", path=project.file_path)
            extraction.warnings.append(
                ScanWarning(phase="Assemblies", path=project.file_path, message=str(exc))
            )
            continue
        extraction.outputs[project.unique_identifier] = output
        extraction.references[project.unique_identifier] = references
    return extraction
