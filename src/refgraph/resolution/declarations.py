"""
Resolved declarations and the indexer that builds them from source.

A ``TypeDeclaration`` is what every type solver hands back, whether it
came from a parsed unit, a dependency archive or the platform catalog.
Source declarations keep their member types as written; the resolution
context qualifies them in the declaring type's scope on demand.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from refgraph.model import OriginKind, SourceLocation
from refgraph.parsing import syntax

if TYPE_CHECKING:
    from refgraph.parsing.parser import SourceUnit

_GENERIC_ARGS = re.compile(r"<[^<>]*>")

PRIMITIVE_NAMES = frozenset(
    {"boolean", "byte", "char", "short", "int", "long", "float", "double", "void"}
)


def erase(type_text: str) -> str:
    """Drop type arguments and array dimensions from a described type."""
    previous = None
    while previous != type_text:
        previous = type_text
        type_text = _GENERIC_ARGS.sub("", type_text)
    return type_text.replace("...", "").replace("[]", "").strip()


@dataclass
class MethodDeclaration:
    """A method or constructor declaration."""

    owner: str
    name: str
    parameter_types: tuple[str, ...] = ()
    return_type: str | None = None
    is_static: bool = False
    is_constructor: bool = False
    is_varargs: bool = False
    is_implicit: bool = False
    origin: OriginKind = OriginKind.PROJECT
    location: SourceLocation | None = None
    end_line: int | None = None
    type_parameters: tuple[str, ...] = ()
    declaring_type: TypeDeclaration | None = field(default=None, repr=False, compare=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}"

    @property
    def owner_simple_name(self) -> str:
        return self.owner.rsplit(".", 1)[-1]

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def accepts(self, argument_count: int) -> bool:
        if self.is_varargs:
            return argument_count >= self.arity - 1
        return argument_count == self.arity


@dataclass
class TypeDeclaration:
    """A class, interface, enum, record or annotation type."""

    qualified_name: str
    kind: str = "class"
    origin: OriginKind = OriginKind.PROJECT
    location: SourceLocation | None = None
    end_line: int | None = None
    supertypes: tuple[str, ...] = ()
    superclass: str | None = None
    type_parameters: tuple[str, ...] = ()
    fields: dict[str, str] = field(default_factory=dict)
    methods: list[MethodDeclaration] = field(default_factory=list)
    constructors: list[MethodDeclaration] = field(default_factory=list)
    member_types: dict[str, str] = field(default_factory=dict)
    members_known: bool = True
    # members listed are a subset; unlisted ones are synthesised on use
    partial_members: bool = False
    unit: SourceUnit | None = field(default=None, repr=False, compare=False)
    outer: TypeDeclaration | None = field(default=None, repr=False, compare=False)

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]

    @property
    def is_source(self) -> bool:
        return self.unit is not None

    @property
    def implicit_supertypes(self) -> tuple[str, ...]:
        if self.kind == "enum":
            return ("java.lang.Enum",)
        if self.kind == "record":
            return ("java.lang.Record",)
        if self.kind == "annotation":
            return ("java.lang.annotation.Annotation",)
        return ()

    def methods_named(self, name: str) -> list[MethodDeclaration]:
        return [m for m in self.methods if m.name == name]

    def enclosing_chain(self) -> list[TypeDeclaration]:
        """This type followed by its outer types, innermost first."""
        chain = []
        current: TypeDeclaration | None = self
        while current is not None:
            chain.append(current)
            current = current.outer
        return chain


def index_unit(unit: SourceUnit) -> list[TypeDeclaration]:
    """
    Build declarations for every top-level and member type of a unit.

    Local and anonymous classes are not indexed.
    """
    declarations: list[TypeDeclaration] = []
    for child in unit.root.named_children:
        if child.type in syntax.TYPE_DECLARATION_NODES:
            _index_type(child, unit, None, declarations)
    return declarations


def _index_type(
    node: Any,
    unit: SourceUnit,
    outer: TypeDeclaration | None,
    out: list[TypeDeclaration],
) -> TypeDeclaration | None:
    name = syntax.declared_name(node)
    if not name:
        return None

    qualified = f"{outer.qualified_name}.{name}" if outer else unit.qualify(name)
    extended, implemented = syntax.supertype_nodes(node)
    decl = TypeDeclaration(
        qualified_name=qualified,
        kind=syntax.TYPE_DECLARATION_NODES[node.type],
        origin=OriginKind.PROJECT,
        location=SourceLocation(unit.file_path, syntax.line(node)),
        end_line=syntax.end_line(node),
        supertypes=tuple(syntax.raw_type_name(t) for t in extended + implemented),
        superclass=(
            syntax.raw_type_name(extended[0])
            if extended and node.type == "class_declaration"
            else None
        ),
        type_parameters=tuple(syntax.type_parameter_names(node)),
        unit=unit,
        outer=outer,
    )
    out.append(decl)

    components: tuple[str, ...] = ()
    if decl.kind == "record":
        components = _index_record_components(node, decl)

    _index_members(syntax.body_members(node), decl, unit, out)

    if decl.kind == "record":
        if not any(c.parameter_types == components for c in decl.constructors):
            decl.constructors.insert(0, _implicit_constructor(decl, components))
    elif decl.kind in ("class", "enum") and not decl.constructors:
        decl.constructors.append(_implicit_constructor(decl, ()))
    return decl


def _index_members(
    members: list[Any],
    decl: TypeDeclaration,
    unit: SourceUnit,
    out: list[TypeDeclaration],
) -> None:
    for member in members:
        if member.type in syntax.TYPE_DECLARATION_NODES:
            nested = _index_type(member, unit, decl, out)
            if nested is not None:
                decl.member_types[nested.simple_name] = nested.qualified_name
        elif member.type in ("field_declaration", "constant_declaration"):
            _index_field(member, decl)
        elif member.type == "enum_constant":
            constant = syntax.declared_name(member)
            if constant:
                decl.fields[constant] = decl.qualified_name
        elif member.type == "method_declaration":
            decl.methods.append(_method_from_node(member, decl, unit))
        elif member.type in ("constructor_declaration", "compact_constructor_declaration"):
            decl.constructors.append(_constructor_from_node(member, decl, unit))


def index_local_types(node: Any, unit: SourceUnit, outer: TypeDeclaration | None) -> list[TypeDeclaration]:
    """
    Index a type declared inside a block.

    The local type comes first, followed by its own member types.
    """
    declarations: list[TypeDeclaration] = []
    _index_type(node, unit, outer, declarations)
    return declarations


def index_anonymous(
    creation: Any,
    base_name: str,
    unit: SourceUnit,
    outer: TypeDeclaration | None,
) -> TypeDeclaration:
    """
    Index the body of an anonymous class.

    The declaration takes the created type's qualified name, so members
    declared in the body are reported against that type.
    """
    decl = TypeDeclaration(
        qualified_name=base_name,
        location=SourceLocation(unit.file_path, syntax.line(creation)),
        end_line=syntax.end_line(creation),
        unit=unit,
        outer=outer,
    )
    body = next((c for c in creation.named_children if c.type == "class_body"), None)
    if body is not None:
        _index_members(list(body.named_children), decl, unit, [])
    return decl


def callable_from_node(node: Any, decl: TypeDeclaration, unit: SourceUnit) -> MethodDeclaration | None:
    """Declaration for a method or constructor node owned by ``decl``."""
    if node.type == "method_declaration":
        return _method_from_node(node, decl, unit)
    if node.type in ("constructor_declaration", "compact_constructor_declaration"):
        return _constructor_from_node(node, decl, unit)
    return None


def _implicit_constructor(decl: TypeDeclaration, params: tuple[str, ...]) -> MethodDeclaration:
    return MethodDeclaration(
        owner=decl.qualified_name,
        name=decl.simple_name,
        parameter_types=params,
        is_constructor=True,
        is_implicit=True,
        location=decl.location,
        declaring_type=decl,
    )


def _index_field(node: Any, decl: TypeDeclaration) -> None:
    type_node = node.child_by_field_name("type")
    if type_node is None:
        return
    described = syntax.describe_type(type_node)
    for declarator in node.children_by_field_name("declarator"):
        name = declarator.child_by_field_name("name")
        if name is not None:
            decl.fields[syntax.text(name)] = described


def _index_record_components(node: Any, decl: TypeDeclaration) -> tuple[str, ...]:
    """Record components become fields plus implicit accessor methods."""
    component_types = []
    for type_node, name, _ in syntax.formal_parameters(node):
        if type_node is None or name is None:
            continue
        described = syntax.describe_type(type_node)
        component_types.append(described)
        decl.fields[name] = described
        decl.methods.append(
            MethodDeclaration(
                owner=decl.qualified_name,
                name=name,
                return_type=described,
                is_implicit=True,
                location=decl.location,
                declaring_type=decl,
            )
        )
    return tuple(component_types)


def _parameter_signature(node: Any) -> tuple[tuple[str, ...], bool]:
    types = []
    varargs = False
    for type_node, _, is_varargs in syntax.formal_parameters(node):
        described = syntax.describe_type(type_node) if type_node is not None else "?"
        if is_varargs:
            described += "..."
            varargs = True
        types.append(described)
    return tuple(types), varargs


def _method_from_node(node: Any, decl: TypeDeclaration, unit: SourceUnit) -> MethodDeclaration:
    params, varargs = _parameter_signature(node)
    return_node = node.child_by_field_name("type")
    return MethodDeclaration(
        owner=decl.qualified_name,
        name=syntax.declared_name(node) or "",
        parameter_types=params,
        return_type=syntax.describe_type(return_node) if return_node is not None else None,
        is_static=syntax.has_modifier(node, "static"),
        is_varargs=varargs,
        location=SourceLocation(unit.file_path, syntax.line(node)),
        end_line=syntax.end_line(node),
        type_parameters=tuple(syntax.type_parameter_names(node)),
        declaring_type=decl,
    )


def _constructor_from_node(node: Any, decl: TypeDeclaration, unit: SourceUnit) -> MethodDeclaration:
    if node.type == "compact_constructor_declaration":
        params = tuple(
            syntax.describe_type(t) for t, _, _ in syntax.formal_parameters(_record_node(node)) if t is not None
        )
        varargs = False
    else:
        params, varargs = _parameter_signature(node)
    return MethodDeclaration(
        owner=decl.qualified_name,
        name=decl.simple_name,
        parameter_types=params,
        is_constructor=True,
        is_varargs=varargs,
        location=SourceLocation(unit.file_path, syntax.line(node)),
        end_line=syntax.end_line(node),
        type_parameters=tuple(syntax.type_parameter_names(node)),
        declaring_type=decl,
    )


def _record_node(node: Any) -> Any:
    for parent in syntax.ancestors(node):
        if parent.type == "record_declaration":
            return parent
    return node
