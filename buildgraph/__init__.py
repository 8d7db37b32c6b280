"""buildgraph: .NET repository structure scanner and dependency graph store."""

__version__ = "0.1.0"
