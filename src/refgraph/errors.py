"""
Exception hierarchy for refgraph.

Only setup failures (unreadable project root, missing build descriptor)
are meant to terminate a run. Everything else degrades completeness and
is logged by the component that catches it.
"""

from __future__ import annotations


class RefGraphError(Exception):
    """Base exception for refgraph errors."""

    pass


class ConfigurationError(RefGraphError):
    """Raised when there's a configuration problem."""

    pass


class ProjectSetupError(RefGraphError):
    """Raised when the project root cannot be used at all."""

    pass


class BuildDescriptorError(ProjectSetupError):
    """Raised when the build descriptor is absent or unreadable."""

    pass


class SourceReadError(RefGraphError):
    """Raised when a single source unit cannot be read."""

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"Cannot read {path}: {cause}")
        self.path = path
        self.cause = cause


class ResolutionFailure(RefGraphError):
    """A single construct could not be resolved. Always recoverable."""

    pass


class ClassFileError(RefGraphError):
    """Raised when a class file inside a dependency archive is malformed."""

    pass


class StoreUnavailableError(RefGraphError):
    """Raised when the graph store cannot be reached at startup."""

    pass
