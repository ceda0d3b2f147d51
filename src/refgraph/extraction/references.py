"""
Pass 2: reference extraction.

Each unit is walked once. Every syntax node that belongs to one of the
constructs in ``ConstructKind`` is handed to that construct's handler,
which resolves it and appends ``Reference`` records. A construct that
fails is skipped on its own; the walk always finishes the file.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import structlog

from refgraph.errors import ResolutionFailure
from refgraph.extraction.canonical import canonical_identifier
from refgraph.model import (
    Definition,
    DefinitionKind,
    OriginKind,
    Reference,
    ReferenceKind,
    SourceLocation,
)
from refgraph.parsing import syntax
from refgraph.resolution.context import Unresolved
from refgraph.resolution.declarations import MethodDeclaration

if TYPE_CHECKING:
    from refgraph.extraction.definitions import DefinitionTable
    from refgraph.parsing.parser import SourceUnit
    from refgraph.resolution.context import ResolutionContext

logger = structlog.get_logger(__name__)


class ConstructKind(str, Enum):
    """Constructs that produce references."""

    TYPE_DECLARATION = "type_declaration"
    FIELD_DECLARATION = "field_declaration"
    METHOD_DECLARATION = "method_declaration"
    CONSTRUCTOR_DECLARATION = "constructor_declaration"
    OBJECT_CREATION = "object_creation"
    ANNOTATION = "annotation"
    METHOD_INVOCATION = "method_invocation"
    METHOD_REFERENCE = "method_reference"
    LAMBDA = "lambda"
    EXPLICIT_CONSTRUCTOR_INVOCATION = "explicit_constructor_invocation"


# tree-sitter-java node type -> construct
CONSTRUCT_NODES: dict[str, ConstructKind] = {
    "class_declaration": ConstructKind.TYPE_DECLARATION,
    "interface_declaration": ConstructKind.TYPE_DECLARATION,
    "enum_declaration": ConstructKind.TYPE_DECLARATION,
    "record_declaration": ConstructKind.TYPE_DECLARATION,
    "annotation_type_declaration": ConstructKind.TYPE_DECLARATION,
    "field_declaration": ConstructKind.FIELD_DECLARATION,
    "constant_declaration": ConstructKind.FIELD_DECLARATION,
    "method_declaration": ConstructKind.METHOD_DECLARATION,
    "annotation_type_element_declaration": ConstructKind.METHOD_DECLARATION,
    "constructor_declaration": ConstructKind.CONSTRUCTOR_DECLARATION,
    "compact_constructor_declaration": ConstructKind.CONSTRUCTOR_DECLARATION,
    "object_creation_expression": ConstructKind.OBJECT_CREATION,
    "annotation": ConstructKind.ANNOTATION,
    "marker_annotation": ConstructKind.ANNOTATION,
    "method_invocation": ConstructKind.METHOD_INVOCATION,
    "method_reference": ConstructKind.METHOD_REFERENCE,
    "lambda_expression": ConstructKind.LAMBDA,
    "explicit_constructor_invocation": ConstructKind.EXPLICIT_CONSTRUCTOR_INVOCATION,
}

Handler = Callable[[Any, "SourceUnit", list[Reference]], None]


class ReferenceExtractor:
    """
    Turns syntax trees into references.

    Reads the definition table built in pass 1; never writes to it.
    """

    def __init__(self, context: ResolutionContext, definitions: DefinitionTable) -> None:
        self.context = context
        self.definitions = definitions
        self._handlers: dict[ConstructKind, Handler] = {
            ConstructKind.TYPE_DECLARATION: self._on_type_declaration,
            ConstructKind.FIELD_DECLARATION: self._on_field_declaration,
            ConstructKind.METHOD_DECLARATION: self._on_method_declaration,
            ConstructKind.CONSTRUCTOR_DECLARATION: self._on_constructor_declaration,
            ConstructKind.OBJECT_CREATION: self._on_object_creation,
            ConstructKind.ANNOTATION: self._on_annotation,
            ConstructKind.METHOD_INVOCATION: self._on_method_invocation,
            ConstructKind.METHOD_REFERENCE: self._on_method_reference,
            ConstructKind.LAMBDA: self._on_lambda,
            ConstructKind.EXPLICIT_CONSTRUCTOR_INVOCATION: self._on_explicit_constructor,
        }
        missing = set(ConstructKind) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for constructs: {sorted(k.value for k in missing)}")

    def extract(self, unit: SourceUnit) -> list[Reference]:
        """All references of one unit, in traversal order."""
        references: list[Reference] = []
        for node in syntax.walk(unit.root):
            construct = CONSTRUCT_NODES.get(node.type)
            if construct is None:
                continue
            try:
                self._handlers[construct](node, unit, references)
            except ResolutionFailure as e:
                logger.debug(
                    "Construct not resolved",
                    construct=construct.value,
                    path=unit.file_path,
                    line=syntax.line(node),
                    error=str(e),
                )
            except Exception as e:
                logger.warning(
                    "Construct skipped",
                    construct=construct.value,
                    path=unit.file_path,
                    line=syntax.line(node),
                    error=str(e),
                )
        return references

    # ------------------------------------------------------------------
    # Type uses

    def _on_type_declaration(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        extended, implemented = syntax.supertype_nodes(node)
        for type_node in extended:
            self._type_use(type_node, ReferenceKind.EXTENDS, unit, out)
        for type_node in implemented:
            self._type_use(type_node, ReferenceKind.IMPLEMENTS, unit, out)
        for bound in syntax.type_parameter_bounds(node):
            self._type_use(bound, ReferenceKind.TYPE_PARAMETER_BOUND, unit, out)
        if node.type == "record_declaration":
            for type_node, _, _ in syntax.formal_parameters(node):
                if type_node is not None:
                    self._type_use(type_node, ReferenceKind.PARAMETER_TYPE, unit, out)

    def _on_field_declaration(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        type_node = node.child_by_field_name("type")
        if type_node is not None:
            self._type_use(type_node, ReferenceKind.FIELD_TYPE, unit, out)

    def _on_method_declaration(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        for bound in syntax.type_parameter_bounds(node):
            self._type_use(bound, ReferenceKind.METHOD_TYPE_PARAMETER_BOUND, unit, out)
        return_node = node.child_by_field_name("type")
        if return_node is not None:
            self._type_use(return_node, ReferenceKind.RETURN_TYPE, unit, out)
        self._parameter_types(node, unit, out)

    def _on_constructor_declaration(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        for bound in syntax.type_parameter_bounds(node):
            self._type_use(bound, ReferenceKind.METHOD_TYPE_PARAMETER_BOUND, unit, out)
        self._parameter_types(node, unit, out)

    def _parameter_types(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        for type_node, _, _ in syntax.formal_parameters(node):
            if type_node is not None:
                self._type_use(type_node, ReferenceKind.PARAMETER_TYPE, unit, out)

    def _on_annotation(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            raise ResolutionFailure("Annotation without a name")
        self._type_name(syntax.text(name_node), name_node, ReferenceKind.ANNOTATION, unit, out)

        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return
        for argument in arguments.named_children:
            value = argument.child_by_field_name("value") if argument.type == "element_value_pair" else argument
            if value is not None:
                self._annotation_values(value, unit, out)

    def _annotation_values(self, value: Any, unit: SourceUnit, out: list[Reference]) -> None:
        if value.type == "class_literal":
            type_node = next(iter(value.named_children), None)
            if type_node is not None:
                self._type_use(type_node, ReferenceKind.ANNOTATION_VALUE, unit, out)
        elif value.type == "element_value_array_initializer":
            for element in value.named_children:
                self._annotation_values(element, unit, out)

    def _type_use(self, type_node: Any, kind: ReferenceKind, unit: SourceUnit, out: list[Reference]) -> None:
        """Record a written type and, recursively, its generic arguments."""
        node = syntax.element_type(type_node)
        if node is None or node.type in syntax.PRIMITIVE_TYPE_NODES:
            return
        if node.type == "wildcard":
            bound = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
            if bound:
                self._type_use(bound[-1], kind, unit, out)
            return
        if not syntax.is_class_type(node):
            return
        name = syntax.raw_type_name(node)
        if name == "var":
            return

        self._type_name(name, node, kind, unit, out)
        nested = kind.type_parameter_variant()
        for argument in syntax.type_arguments(node):
            self._type_use(argument, nested, unit, out)

    def _type_name(
        self,
        name: str,
        node: Any,
        kind: ReferenceKind,
        unit: SourceUnit,
        out: list[Reference],
        prefer_constructor: bool = False,
    ) -> None:
        location = SourceLocation(unit.file_path, syntax.line(node))
        try:
            resolution = self.context.resolve_type_name(name, node, unit)
        except ResolutionFailure as e:
            logger.debug("Type not resolved", name=name, location=str(location), error=str(e))
            out.append(Reference(self._fallback_name(name, unit), location, kind, None))
            return
        if resolution is None:
            # type variable
            return

        target = resolution.qualified_name
        definition = None
        if prefer_constructor:
            definition = self.definitions.constructor_definition(target.rsplit(".", 1)[-1])
        if definition is None:
            definition = self.definitions.type_definition(target)
        if definition is None:
            definition = Definition.external(target, DefinitionKind.TYPE)
        out.append(Reference(target, location, kind, definition))

    def _fallback_name(self, name: str, unit: SourceUnit) -> str:
        if "." in name:
            return name
        for imp in unit.imports:
            if not imp.is_static and not imp.on_demand and imp.simple_name == name:
                return imp.name
        return f"java.lang.{name}"

    # ------------------------------------------------------------------
    # Callables

    def _on_object_creation(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            raise ResolutionFailure("Object creation without a type")
        element = syntax.strip_annotations(type_node)
        if element is not None and syntax.is_class_type(element):
            self._type_name(
                syntax.raw_type_name(element),
                element,
                ReferenceKind.OBJECT_CREATION,
                unit,
                out,
                prefer_constructor=True,
            )
            for argument in syntax.type_arguments(element):
                self._type_use(argument, ReferenceKind.OBJECT_CREATION_TYPE_PARAMETER, unit, out)

        self._callable(node, self.context.resolve_object_creation(node, unit), unit, out)

    def _on_method_invocation(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        self._callable(node, self.context.resolve_invocation(node, unit), unit, out)

    def _on_method_reference(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        self._callable(node, self.context.resolve_method_reference(node, unit), unit, out)

    def _on_lambda(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        body = node.child_by_field_name("body")
        if body is None or body.type != "method_invocation":
            # block bodies and non-call expressions are not followed
            return
        self._callable(
            node,
            self.context.resolve_invocation(body, unit),
            unit,
            out,
            kind=ReferenceKind.LAMBDA_METHOD_CALL,
        )

    def _on_explicit_constructor(self, node: Any, unit: SourceUnit, out: list[Reference]) -> None:
        self._callable(node, self.context.resolve_explicit_constructor(node, unit), unit, out)

    def _callable(
        self,
        node: Any,
        resolved: MethodDeclaration | Unresolved,
        unit: SourceUnit,
        out: list[Reference],
        kind: ReferenceKind | None = None,
    ) -> None:
        location = SourceLocation(unit.file_path, syntax.line(node))
        if isinstance(resolved, Unresolved):
            logger.debug(
                "Callable not resolved",
                construct=node.type,
                location=str(location),
                reason=resolved.reason,
            )
            return

        identifier = canonical_identifier(resolved)
        if kind is None:
            kind = _callable_kind(node, resolved)
        out.append(Reference(identifier, location, kind, self._callable_definition(resolved, identifier)))

    def _callable_definition(self, method: MethodDeclaration, identifier: str) -> Definition:
        kind = DefinitionKind.CONSTRUCTOR if method.is_constructor else DefinitionKind.METHOD
        if method.origin is not OriginKind.PROJECT:
            return Definition.external(identifier, kind)

        found = self.definitions.callable_definition(method.owner_simple_name, method.name)
        if found is not None:
            return found
        # implicit members (default constructors, record accessors) live at their type
        location = method.location
        if location is None and method.declaring_type is not None:
            location = method.declaring_type.location
        return Definition(identifier, kind, OriginKind.PROJECT, location=location)


def _callable_kind(node: Any, method: MethodDeclaration) -> ReferenceKind:
    if node.type in ("object_creation_expression", "explicit_constructor_invocation") or method.is_constructor:
        return ReferenceKind.CONSTRUCTOR_CALL
    if node.type == "method_reference":
        if method.is_static:
            return ReferenceKind.STATIC_METHOD_REFERENCE
        return ReferenceKind.METHOD_REFERENCE
    if method.is_static:
        return ReferenceKind.STATIC_METHOD_CALL
    return ReferenceKind.METHOD_CALL
