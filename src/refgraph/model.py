"""
Core records shared by the extraction engine, the reports and the graph
projector.

Definitions and references are created once and never mutated, so they
are frozen dataclasses and safe to hand across worker threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DefinitionKind(str, Enum):
    """Kinds of recorded declarations."""

    TYPE = "Type"
    METHOD = "Method"
    CONSTRUCTOR = "Constructor"


class OriginKind(str, Enum):
    """Where a declaration lives."""

    PROJECT = "Project"
    EXTERNAL = "External"


class ReportSection(str, Enum):
    """Which report a reference kind is written to."""

    TYPE = "type"
    METHOD = "method"


class ReferenceKind(str, Enum):
    """Syntactic role of a recorded reference. Values are report labels."""

    EXTENDS = "Extends"
    EXTENDS_TYPE_PARAMETER = "Extends Type Parameter"
    IMPLEMENTS = "Implements"
    IMPLEMENTS_TYPE_PARAMETER = "Implements Type Parameter"
    TYPE_PARAMETER_BOUND = "Type Parameter Bound"
    METHOD_TYPE_PARAMETER_BOUND = "Method Type Parameter Bound"
    FIELD_TYPE = "Field Type"
    FIELD_TYPE_PARAMETER = "Field Type Parameter"
    RETURN_TYPE = "Return Type"
    RETURN_TYPE_PARAMETER = "Return Type Parameter"
    PARAMETER_TYPE = "Parameter Type"
    PARAMETER_TYPE_PARAMETER = "Parameter Type Parameter"
    OBJECT_CREATION = "Object Creation"
    OBJECT_CREATION_TYPE_PARAMETER = "Object Creation Type Parameter"
    ANNOTATION = "Annotation"
    ANNOTATION_VALUE = "Annotation Value"
    METHOD_CALL = "Method Call"
    STATIC_METHOD_CALL = "Static Method Call"
    METHOD_REFERENCE = "Method Reference"
    STATIC_METHOD_REFERENCE = "Static Method Reference"
    LAMBDA_METHOD_CALL = "Lambda Method Call"
    CONSTRUCTOR_CALL = "Constructor Call"

    @property
    def section(self) -> ReportSection:
        if self in _METHOD_KINDS:
            return ReportSection.METHOD
        return ReportSection.TYPE

    @property
    def is_callable(self) -> bool:
        return self in _METHOD_KINDS

    def type_parameter_variant(self) -> ReferenceKind:
        """Kind used for generic arguments nested inside this kind's type."""
        return _TYPE_PARAMETER_VARIANTS.get(self, self)


_METHOD_KINDS = frozenset(
    {
        ReferenceKind.METHOD_CALL,
        ReferenceKind.STATIC_METHOD_CALL,
        ReferenceKind.METHOD_REFERENCE,
        ReferenceKind.STATIC_METHOD_REFERENCE,
        ReferenceKind.LAMBDA_METHOD_CALL,
        ReferenceKind.CONSTRUCTOR_CALL,
    }
)

_TYPE_PARAMETER_VARIANTS = {
    ReferenceKind.EXTENDS: ReferenceKind.EXTENDS_TYPE_PARAMETER,
    ReferenceKind.IMPLEMENTS: ReferenceKind.IMPLEMENTS_TYPE_PARAMETER,
    ReferenceKind.FIELD_TYPE: ReferenceKind.FIELD_TYPE_PARAMETER,
    ReferenceKind.RETURN_TYPE: ReferenceKind.RETURN_TYPE_PARAMETER,
    ReferenceKind.PARAMETER_TYPE: ReferenceKind.PARAMETER_TYPE_PARAMETER,
    ReferenceKind.OBJECT_CREATION: ReferenceKind.OBJECT_CREATION_TYPE_PARAMETER,
}


@dataclass(frozen=True, order=True)
class SourceLocation:
    """A file and 1-based line number."""

    file_path: str
    line: int

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}"


@dataclass(frozen=True)
class Definition:
    """Recorded declaration site of a type or callable."""

    canonical_name: str
    kind: DefinitionKind
    origin: OriginKind
    location: SourceLocation | None = None
    end_line: int | None = None

    @property
    def is_external(self) -> bool:
        return self.origin is OriginKind.EXTERNAL or self.location is None

    @classmethod
    def external(cls, canonical_name: str, kind: DefinitionKind) -> Definition:
        return cls(canonical_name=canonical_name, kind=kind, origin=OriginKind.EXTERNAL)

    def describe(self) -> str:
        if self.is_external:
            return f"{self.canonical_name} (external library)"
        return f"{self.canonical_name} (defined in {self.location})"


@dataclass(frozen=True)
class CallableKey:
    """
    Composite key for callable definitions.

    Overloads and same-named types in different packages collapse onto
    one key; the last write wins.
    """

    owner: str
    member: str

    def __str__(self) -> str:
        return f"{self.owner}.{self.member}"


@dataclass(frozen=True)
class Reference:
    """A use of a name at a source location."""

    target_name: str
    location: SourceLocation
    kind: ReferenceKind
    definition: Definition | None = None

    @property
    def simple_name(self) -> str:
        if "::" in self.target_name:
            return self.target_name.split("::", 1)[1].split("(", 1)[0]
        return self.target_name.rsplit(".", 1)[-1]

    def key(self) -> tuple[str, str, str, int]:
        """Identity used to compare two runs."""
        return (self.kind.value, self.target_name, self.location.file_path, self.location.line)


@dataclass(frozen=True)
class DeclarationSpan:
    """Line range of one callable declaration, overloads included."""

    identifier: str
    file_path: str
    start_line: int
    end_line: int
    kind: DefinitionKind = DefinitionKind.METHOD


@dataclass(frozen=True)
class GraphEdge:
    """Edge from an enclosing declaration to a referenced one."""

    source_id: str
    target_id: str


@dataclass
class ProjectionStats:
    """Outcome of projecting references into the graph store."""

    projected: int = 0
    skipped_no_enclosing: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.projected + self.skipped_no_enclosing + self.failed


def absolute_path(file_path: str) -> str:
    """Absolute form of a reported file path, as stored in the graph."""
    return str(Path(file_path).resolve())
