"""Dependency graph construction — one consistent entity/edge set per scan."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from buildgraph.engines.repository_scanner.identity import normalize_path
from buildgraph.engines.repository_scanner.models import (
    AssemblyExtraction,
    DerivedAssembly,
    Edge,
    EdgeKind,
    EntityKey,
    PackageDeclaration,
    ParsedProject,
    ParsedSolution,
    ScanGraph,
    ScanWarning,
)

logger = structlog.get_logger(__name__)


class DependencyGraphBuilder:
    """Accumulates entities and edges, enforcing per-scan uniqueness.

    Entities are deduplicated on their natural key (first one wins) and
    edges on their ordered pair; self-loops are dropped.
    """

    def __init__(self) -> None:
        self.graph = ScanGraph()
        self._solution_ids: set[str] = set()
        self._project_ids: set[str] = set()
        self._project_by_path: dict[str, str] = {}
        self._packages: set[PackageDeclaration] = set()
        self._assembly_paths: set[str] = set()
        self._edge_keys: set[tuple[EdgeKind, EntityKey, EntityKey]] = set()

    # ── entities ─────────────────────────────────────────────────────────

    def add_solution(self, solution: ParsedSolution) -> bool:
        if solution.unique_identifier in self._solution_ids:
            self._duplicate("Solutions", solution.file_path, solution.unique_identifier)
            return False
        self._solution_ids.add(solution.unique_identifier)
        self.graph.solutions.append(solution)
        return True

    def add_project(self, project: ParsedProject) -> bool:
        if project.unique_identifier in self._project_ids:
            self._duplicate("Projects", project.file_path, project.unique_identifier)
            return False
        self._project_ids.add(project.unique_identifier)
        self._project_by_path[normalize_path(project.file_path)] = project.unique_identifier
        self.graph.projects.append(project)
        return True

    def add_package(self, package: PackageDeclaration) -> None:
        if package not in self._packages:
            self._packages.add(package)
            self.graph.packages.append(package)

    def add_assembly(self, assembly: DerivedAssembly) -> None:
        if assembly.file_path not in self._assembly_paths:
            self._assembly_paths.add(assembly.file_path)
            self.graph.assemblies.append(assembly)

    def project_for_path(self, path: str) -> str | None:
        """Identifier of the scanned project at *path*, or None if outside the scan."""
        return self._project_by_path.get(normalize_path(path))

    # ── edges ────────────────────────────────────────────────────────────

    def add_edge(self, kind: EdgeKind, source: EntityKey, target: EntityKey) -> bool:
        if source == target:
            return False
        key = (kind, source, target)
        if key in self._edge_keys:
            return False
        self._edge_keys.add(key)
        self.graph.edges.append(Edge(kind=kind, source=source, target=target))
        return True

    def _duplicate(self, phase: str, path: str, identifier: str) -> None:
        logger.warning("graph.duplicate_identifier", path=path, identifier=identifier)
        self.graph.warnings.append(
            ScanWarning(
                phase=phase,
                path=path,
                message=f"identifier {identifier} already used in this scan; entity skipped",
            )
        )


def build_graph(
    solutions: Iterable[ParsedSolution],
    projects: Iterable[ParsedProject],
    extraction: AssemblyExtraction,
) -> ScanGraph:
    """Materialize every entity and edge of one scan.

    Project references that point outside the scanned projects (another
    repository, an unparseable file) are dropped without a warning.
    """
    builder = DependencyGraphBuilder()

    for project in projects:
        builder.add_project(project)
    for solution in solutions:
        builder.add_solution(solution)

    # Outputs first so that a build output keeps its producing project when
    # another project also references the same file by hint path.
    for project in builder.graph.projects:
        output = extraction.outputs.get(project.unique_identifier)
        if output is not None:
            builder.add_assembly(output)

    for solution in builder.graph.solutions:
        for entry in solution.projects:
            target = builder.project_for_path(entry.absolute_path)
            if target is not None:
                builder.add_edge(EdgeKind.SOLUTION_PROJECT, solution.unique_identifier, target)

    for project in builder.graph.projects:
        source = project.unique_identifier
        output = extraction.outputs.get(source)

        for reference_path in project.project_references:
            target = builder.project_for_path(reference_path)
            if target is None:
                logger.debug("graph.unresolved_project_reference", source=project.file_path,
                              target=reference_path)
                continue
            builder.add_edge(EdgeKind.PROJECT_REFERENCE, source, target)
            target_output = extraction.outputs.get(target)
            if output is not None and target_output is not None:
                builder.add_edge(
                    EdgeKind.ASSEMBLY_DEPENDENCY, output.file_path, target_output.file_path
                )

        for package in project.packages:
            builder.add_package(package)
            builder.add_edge(EdgeKind.PROJECT_PACKAGE, source, (package.name, package.version))

        for assembly in extraction.references.get(source, []):
            builder.add_assembly(assembly)
            builder.add_edge(EdgeKind.PROJECT_ASSEMBLY, source, assembly.file_path)
            if output is not None:
                builder.add_edge(EdgeKind.ASSEMBLY_DEPENDENCY, output.file_path, assembly.file_path)

    graph = builder.graph
    graph.warnings.extend(extraction.warnings)
    logger.info(
        "graph.built",
        solutions=len(graph.solutions),
        projects=len(graph.projects),
        packages=len(graph.packages),
        assemblies=len(graph.assemblies),
        edges=len(graph.edges),
    )
    return graph
