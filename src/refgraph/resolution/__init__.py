"""Java symbol resolution: type solvers and the scoped resolution context."""

from refgraph.resolution.context import (
    ExpressionType,
    ResolutionContext,
    TypeResolution,
    Unresolved,
)
from refgraph.resolution.declarations import MethodDeclaration, TypeDeclaration
from refgraph.resolution.solvers import (
    ArchiveTypeSolver,
    CombinedTypeSolver,
    PlatformTypeSolver,
    SourceTypeSolver,
    TypeSolver,
)

__all__ = [
    "ArchiveTypeSolver",
    "CombinedTypeSolver",
    "ExpressionType",
    "MethodDeclaration",
    "PlatformTypeSolver",
    "ResolutionContext",
    "SourceTypeSolver",
    "TypeDeclaration",
    "TypeResolution",
    "TypeSolver",
    "Unresolved",
]
