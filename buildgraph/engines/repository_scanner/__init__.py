"""Repository scanner engine — .NET solution/project build graphs."""

from buildgraph.engines.repository_scanner.models import ScanGraph, ScanWarning
from buildgraph.engines.repository_scanner.scanner import RepositoryScanner, ScanOutcome, scan

__all__ = ["RepositoryScanner", "ScanGraph", "ScanOutcome", "ScanWarning", "scan"]
