"""Scan graph response schemas (CLI ``--json`` output)."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ScanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    repository_path: str
    vcs_revision: str
    scan_date: datetime
    created_at: datetime


class SolutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    unique_identifier: str
    native_guid: str | None
    name: str
    file_path: str
    guid_method: str
    is_single_project: bool


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    unique_identifier: str
    native_guid: str | None
    name: str
    file_path: str
    guid_method: str
    target_framework: str
    project_style: str


class PackageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    version: str


class AssemblyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID | None
    unique_identifier: str
    name: str
    kind: str
    file_path: str
    version: str | None


class ScanEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    phase: str
    level: str
    message: str


class ScanSummary(BaseModel):
    """Row counts per entity and edge table."""

    solutions: int
    projects: int
    packages: int
    assemblies: int
    solution_projects: int
    project_references: int
    project_packages: int
    project_assemblies: int
    assembly_dependencies: int
    events: int


class ScanDetailResponse(BaseModel):
    scan: ScanResponse
    summary: ScanSummary
    solutions: list[SolutionResponse]
    projects: list[ProjectResponse]
    packages: list[PackageResponse]
    assemblies: list[AssemblyResponse]
    events: list[ScanEventResponse]


class WarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phase: str
    path: str
    message: str


class InspectResponse(BaseModel):
    """Graph produced by a scan that was not persisted."""

    repository_path: str
    solutions: int
    projects: int
    packages: int
    assemblies: int
    edges: dict[str, int]
    warnings: list[WarningResponse]


class ScanResultResponse(BaseModel):
    """Outcome of a persisted scan."""

    scan_id: uuid.UUID
    vcs_revision: str
    edge_count: int
    summary: ScanSummary
    warnings: list[WarningResponse]
