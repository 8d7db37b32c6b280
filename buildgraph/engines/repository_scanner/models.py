"""Data models for the repository scanner engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Display sentinel for values a manifest does not declare
NOT_AVAILABLE = "N/A"

SDK_STYLE = "SDK-style"
LEGACY_STYLE = "Legacy"

# How a native (IDE-assigned) identifier was obtained
GUID_FROM_SOLUTION_GUID = "SolutionGuid"
GUID_FROM_REFERENCED_PROJECT = "From referenced project"
GUID_FROM_PROJECT_ELEMENT = "ProjectGuid element"
GUID_FROM_SOLUTION_FILE = "From solution file"
GUID_NOT_FOUND = "Not found"

DEFAULT_OUTPUT_TYPE = "Library"

# Kinds for referenced (non-output) assemblies
KIND_EXTERNAL = "External"
KIND_NUGET = "NuGet"
KIND_GAC = "GAC"


@dataclass
class SolutionProjectEntry:
    """A ``Project(...)`` entry of a solution that resolved to a file on disk."""

    relative_path: str
    absolute_path: str
    native_guid: str


@dataclass
class ParsedSolution:
    unique_identifier: str
    native_guid: str | None
    name: str
    file_path: str
    guid_method: str
    is_single_project: bool
    projects: list[SolutionProjectEntry] = field(default_factory=list)


@dataclass(frozen=True)
class PackageDeclaration:
    name: str
    version: str


@dataclass
class AssemblyReferenceDeclaration:
    """A ``<Reference>`` item: a binary referenced directly by a project."""

    name: str
    version: str | None = None
    hint_path: str | None = None


@dataclass
class ParsedProject:
    unique_identifier: str
    native_guid: str | None
    name: str
    file_path: str
    guid_method: str
    target_framework: str
    project_style: str
    project_references: list[str] = field(default_factory=list)
    packages: list[PackageDeclaration] = field(default_factory=list)
    assembly_references: list[AssemblyReferenceDeclaration] = field(default_factory=list)
    output_type: str | None = None
    assembly_name: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def project_reference_count(self) -> int:
        return len(self.project_references)


@dataclass
class DerivedAssembly:
    """An assembly row before persistence.

    ``project_file_path`` is set only for build outputs and names the
    project that produces the assembly.
    """

    unique_identifier: str
    name: str
    kind: str
    file_path: str
    version: str | None = None
    project_file_path: str | None = None


@dataclass
class AssemblyExtraction:
    """Assemblies derived from every parsed project, keyed by project identifier."""

    outputs: dict[str, DerivedAssembly] = field(default_factory=dict)
    references: dict[str, list[DerivedAssembly]] = field(default_factory=dict)
    warnings: list[ScanWarning] = field(default_factory=list)


class EdgeKind(str, Enum):
    SOLUTION_PROJECT = "solution_project"
    PROJECT_REFERENCE = "project_reference"
    PROJECT_PACKAGE = "project_package"
    PROJECT_ASSEMBLY = "project_assembly"
    ASSEMBLY_DEPENDENCY = "assembly_dependency"


# Natural keys: identifier for solutions/projects, (name, version) for
# packages, file path for assemblies.
EntityKey = Union[str, tuple[str, str]]


@dataclass(frozen=True)
class Edge:
    kind: EdgeKind
    source: EntityKey
    target: EntityKey


@dataclass
class ScanWarning:
    """A non-fatal problem recorded while scanning."""

    phase: str
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


@dataclass
class ScanGraph:
    """Everything one scan produced, ready to be persisted."""

    solutions: list[ParsedSolution] = field(default_factory=list)
    projects: list[ParsedProject] = field(default_factory=list)
    packages: list[PackageDeclaration] = field(default_factory=list)
    assemblies: list[DerivedAssembly] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)

    def edges_of(self, kind: EdgeKind) -> list[Edge]:
        return [e for e in self.edges if e.kind is kind]


LEVEL_INFO = "info"
LEVEL_WARNING = "warning"


@dataclass
class JournalEntry:
    """One line of a scan's audit trail, persisted as a scan event."""

    phase: str
    message: str
    level: str = LEVEL_INFO
