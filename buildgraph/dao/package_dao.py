"""PackageDAO — packages table operations."""

from buildgraph.dao.base import ScanScopedDAO
from buildgraph.models.package import Package


class PackageDAO(ScanScopedDAO[Package]):
    model = Package
