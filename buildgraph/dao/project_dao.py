"""ProjectDAO — projects table operations."""

from buildgraph.dao.base import ScanScopedDAO
from buildgraph.models.project import Project


class ProjectDAO(ScanScopedDAO[Project]):
    model = Project
