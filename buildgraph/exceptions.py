"""Custom exceptions for buildgraph."""


class BuildGraphError(Exception):
    """Base exception for all scanner errors."""


class RepositoryNotFoundError(BuildGraphError):
    """Raised when the repository root does not exist or is not a directory."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Repository path not found: {path}")


class ManifestParseError(BuildGraphError):
    """Raised when a solution or project file cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {path}: {reason}")


class ScanCancelledError(BuildGraphError):
    """Raised on a job handle whose scan was cancelled before commit."""
