"""SolutionDAO — solutions table operations."""

from buildgraph.dao.base import ScanScopedDAO
from buildgraph.models.solution import Solution


class SolutionDAO(ScanScopedDAO[Solution]):
    model = Solution
