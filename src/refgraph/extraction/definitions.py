"""
Definition table and the pass-1 collector that fills it.

Types are keyed by qualified name. Callables are keyed by the simple name
of their owning type and their member name, so overloads and same-named
types in different packages share a key and the last write wins.
Constructors use the owning type's simple name as member name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

import structlog

from refgraph.extraction.canonical import canonical_identifier
from refgraph.model import (
    CallableKey,
    DeclarationSpan,
    Definition,
    DefinitionKind,
    OriginKind,
    SourceLocation,
    absolute_path,
)
from refgraph.parsing import syntax

if TYPE_CHECKING:
    from refgraph.parsing.parser import SourceUnit
    from refgraph.resolution.context import ResolutionContext

logger = structlog.get_logger(__name__)

_CALLABLE_NODES = frozenset(
    {"method_declaration", "constructor_declaration", "compact_constructor_declaration"}
)


class DefinitionTable:
    """Canonical name -> declaration site for everything declared in the project."""

    def __init__(self) -> None:
        self._types: dict[str, Definition] = {}
        self._callables: dict[CallableKey, Definition] = {}

    def add_type(self, definition: Definition) -> None:
        self._types[definition.canonical_name] = definition

    def add_callable(self, key: CallableKey, definition: Definition) -> None:
        previous = self._callables.get(key)
        if previous is not None and previous.canonical_name != definition.canonical_name:
            logger.debug(
                "Callable key overwritten",
                key=str(key),
                previous=previous.canonical_name,
                current=definition.canonical_name,
            )
        self._callables[key] = definition

    def type_definition(self, qualified_name: str) -> Definition | None:
        return self._types.get(qualified_name)

    def callable_definition(self, owner: str, member: str) -> Definition | None:
        return self._callables.get(CallableKey(owner, member))

    def constructor_definition(self, type_simple_name: str) -> Definition | None:
        return self._callables.get(CallableKey(type_simple_name, type_simple_name))

    @property
    def types(self) -> list[Definition]:
        return list(self._types.values())

    @property
    def callables(self) -> dict[CallableKey, Definition]:
        return dict(self._callables)

    def __iter__(self) -> Iterator[Definition]:
        yield from self._types.values()
        yield from self._callables.values()

    def __len__(self) -> int:
        return len(self._types) + len(self._callables)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DefinitionTable):
            return NotImplemented
        return self._types == other._types and self._callables == other._callables

    def merge(self, collected: CollectedDefinitions) -> None:
        for definition in collected.types:
            self.add_type(definition)
        for key, definition in collected.callables:
            self.add_callable(key, definition)


@dataclass
class CollectedDefinitions:
    """Pass-1 output for one source unit, in source order."""

    file_path: str
    types: list[Definition] = field(default_factory=list)
    callables: list[tuple[CallableKey, Definition]] = field(default_factory=list)
    spans: list[DeclarationSpan] = field(default_factory=list)


def collect_definitions(unit: SourceUnit, context: ResolutionContext) -> CollectedDefinitions:
    """Record every declared type and callable of one unit."""
    collected = CollectedDefinitions(unit.file_path)
    span_path = absolute_path(unit.file_path)

    for node in syntax.walk(unit.root):
        if node.type in syntax.TYPE_DECLARATION_NODES:
            decl = context.declaration_for(node, unit)
            if decl is None:
                continue
            collected.types.append(
                Definition(
                    canonical_name=decl.qualified_name,
                    kind=DefinitionKind.TYPE,
                    origin=OriginKind.PROJECT,
                    location=SourceLocation(unit.file_path, syntax.line(node)),
                    end_line=syntax.end_line(node),
                )
            )
        elif node.type in _CALLABLE_NODES:
            method = context.callable_declaration(node, unit)
            if method is None:
                continue
            identifier = canonical_identifier(method)
            kind = DefinitionKind.CONSTRUCTOR if method.is_constructor else DefinitionKind.METHOD
            collected.callables.append(
                (
                    CallableKey(method.owner_simple_name, method.name),
                    Definition(
                        canonical_name=identifier,
                        kind=kind,
                        origin=OriginKind.PROJECT,
                        location=SourceLocation(unit.file_path, syntax.line(node)),
                        end_line=syntax.end_line(node),
                    ),
                )
            )
            collected.spans.append(
                DeclarationSpan(
                    identifier=identifier,
                    file_path=span_path,
                    start_line=syntax.line(node),
                    end_line=syntax.end_line(node),
                    kind=kind,
                )
            )

    return collected
