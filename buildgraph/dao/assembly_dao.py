"""AssemblyDAO — assemblies table operations."""

from buildgraph.dao.base import ScanScopedDAO
from buildgraph.models.assembly import Assembly


class AssemblyDAO(ScanScopedDAO[Assembly]):
    model = Assembly
    order_by = "file_path"
