"""
Resolution context: Java name scoping on top of the type solvers.

The context turns syntax nodes into declarations. Type names are looked
up the way the compiler scopes them; invocations are resolved by typing
the receiver expression and looking the member up by name and arity.
Only as much typing is done as is needed to pick a receiver type.

Expected misses come back as ``Unresolved``. ``ResolutionFailure`` is
raised only when a construct cannot be interpreted at all or a solver
cannot read a declaration.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

import structlog

from refgraph.errors import ClassFileError, ResolutionFailure
from refgraph.model import OriginKind
from refgraph.parsing import syntax
from refgraph.resolution.declarations import (
    PRIMITIVE_NAMES,
    MethodDeclaration,
    TypeDeclaration,
    callable_from_node,
    erase,
    index_anonymous,
    index_local_types,
)
from refgraph.resolution.solvers import (
    ArchiveTypeSolver,
    CombinedTypeSolver,
    PlatformTypeSolver,
    SourceTypeSolver,
)

if TYPE_CHECKING:
    from refgraph.parsing.parser import SourceUnit

logger = structlog.get_logger(__name__)

OBJECT = "java.lang.Object"
STRING = "java.lang.String"

_BLOCK_NODES = frozenset({"block", "constructor_body", "switch_block_statement_group"})

# Nodes that make a nested type declaration local
_LOCAL_SCOPE_NODES = frozenset(
    {"block", "constructor_body", "switch_block_statement_group", "object_creation_expression"}
)

_NUMERIC_RANK = {"byte": 1, "short": 2, "char": 2, "int": 3, "long": 4, "float": 5, "double": 6}

_BOXES = {
    "boolean": "Boolean",
    "byte": "Byte",
    "char": "Character",
    "double": "Double",
    "float": "Float",
    "int": "Integer",
    "long": "Long",
    "short": "Short",
}

_COMPARISON_OPERATORS = frozenset({"==", "!=", "<", ">", "<=", ">=", "&&", "||"})

_INTEGER_LITERALS = frozenset(
    {
        "decimal_integer_literal",
        "hex_integer_literal",
        "octal_integer_literal",
        "binary_integer_literal",
    }
)

_FLOAT_LITERALS = frozenset({"decimal_floating_point_literal", "hex_floating_point_literal"})

_COMMENT_NODES = frozenset({"line_comment", "block_comment"})


@dataclass(frozen=True)
class TypeResolution:
    """
    Outcome of resolving a type name.

    ``declaration`` is None when no solver knows the name. ``assumed`` marks
    the implicit ``java.lang`` guess for a simple name found nowhere else.
    """

    qualified_name: str
    declaration: TypeDeclaration | None = None
    assumed: bool = False

    @property
    def is_project(self) -> bool:
        return self.declaration is not None and self.declaration.origin is OriginKind.PROJECT


@dataclass(frozen=True)
class ExpressionType:
    """Static type of an expression, as far as it can be told."""

    name: str
    declaration: TypeDeclaration | None = None
    arguments: tuple[ExpressionType | None, ...] = ()
    is_type_name: bool = False

    @property
    def is_array(self) -> bool:
        return self.name.endswith("[]")

    @property
    def is_primitive(self) -> bool:
        return self.name in PRIMITIVE_NAMES

    @property
    def simple_name(self) -> str:
        return erase(self.name).rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Unresolved:
    """A construct that could not be tied to a declaration."""

    reason: str


@dataclass
class Scope:
    """Names visible at one point of a unit."""

    unit: SourceUnit | None
    chain: list[TypeDeclaration] = field(default_factory=list)
    type_variables: set[str] = field(default_factory=set)
    local_types: dict[str, TypeDeclaration] = field(default_factory=dict)

    @property
    def innermost(self) -> TypeDeclaration | None:
        return self.chain[0] if self.chain else None


def split_described(described: str) -> tuple[str, list[str], int]:
    """``Map<K,List<V>>[]`` -> (``Map``, [``K``, ``List<V>``], 1)."""
    described = described.strip()
    dims = 0
    while described.endswith("[]"):
        described = described[:-2]
        dims += 1
    if described.endswith("..."):
        described = described[:-3]
        dims += 1
    start = described.find("<")
    if start < 0 or not described.endswith(">"):
        return described, [], dims

    inner = described[start + 1 : -1]
    args = []
    depth = 0
    begin = 0
    for i, ch in enumerate(inner):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(inner[begin:i].strip())
            begin = i + 1
    args.append(inner[begin:].strip())
    return described[:start], [a for a in args if a], dims


class ResolutionContext:
    """
    Composed symbol resolution for one analysis run.

    Lookup order for qualified names is fixed by the combined solver:
    platform catalog, project sources, then one archive per dependency.
    """

    def __init__(
        self,
        solver: CombinedTypeSolver,
        sources: SourceTypeSolver | None = None,
    ) -> None:
        self.solver = solver
        self.sources = sources
        self._lock = threading.Lock()
        self._guard = threading.local()
        self._node_declarations: dict[tuple[str, tuple[int, int, str]], TypeDeclaration] = {}
        self._local_types: dict[str, TypeDeclaration] = {}
        self._supertypes: dict[int, tuple[TypeDeclaration, list[TypeResolution]]] = {}

    @classmethod
    def build(
        cls,
        units: Iterable[SourceUnit],
        archives: Iterable[Path] = (),
    ) -> ResolutionContext:
        """
        Compose the platform, source and archive solvers.

        Archives that are missing or unreadable are skipped with a warning.
        """
        sources = SourceTypeSolver.from_units(units)
        combined = CombinedTypeSolver(PlatformTypeSolver(), sources)

        for path in archives:
            if not path.is_file():
                logger.warning("Dependency archive not found, skipping", archive=str(path))
                continue
            try:
                archive = ArchiveTypeSolver(path)
            except ClassFileError as e:
                logger.warning("Dependency archive unreadable, skipping", archive=str(path), error=str(e))
                continue
            combined.add(archive)
            logger.debug("Dependency archive added", archive=str(path), types=len(archive))

        logger.info(
            "Resolution context ready",
            source_types=len(sources),
            solvers=len(combined.solvers),
        )
        return cls(combined, sources)

    def close(self) -> None:
        self.solver.close()

    # ------------------------------------------------------------------
    # Qualified lookups

    def lookup(self, qualified_name: str) -> TypeDeclaration | None:
        decl = self.solver.try_solve_type(qualified_name)
        if decl is None:
            decl = self._local_types.get(qualified_name)
        return decl

    def resolve_qualified(self, name: str) -> TypeResolution:
        """Resolve a dotted name as a fully qualified type name."""
        name = erase(name)
        decl = self.lookup(name)
        if decl is not None:
            return TypeResolution(name, decl)

        parts = name.split(".")
        for i in range(len(parts) - 1, 0, -1):
            outer = self.lookup(".".join(parts[:i]))
            if outer is None:
                continue
            current = TypeResolution(outer.qualified_name, outer)
            for segment in parts[i:]:
                current = self._member_or_nested(current, segment)
            return current

        # package names are lower case by convention
        return TypeResolution(name, None, assumed=not parts[0][:1].islower())

    def _member_or_nested(self, owner: TypeResolution, segment: str) -> TypeResolution:
        if owner.declaration is not None:
            member = self.member_type(owner.declaration, segment)
            if member is not None:
                return member
        nested = f"{owner.qualified_name}.{segment}"
        return TypeResolution(nested, self.lookup(nested), assumed=owner.assumed)

    # ------------------------------------------------------------------
    # Declarations behind syntax nodes

    def declaration_for(self, node: Any, unit: SourceUnit) -> TypeDeclaration | None:
        """Declaration of a named type declaration node, member or local."""
        key = (unit.file_path, syntax.node_key(node))
        cached = self._node_declarations.get(key)
        if cached is not None:
            return cached

        names = [syntax.declared_name(node)]
        is_local = False
        outer_node = None
        for parent in syntax.ancestors(node):
            if parent.type in syntax.TYPE_DECLARATION_NODES:
                names.append(syntax.declared_name(parent))
                if outer_node is None:
                    outer_node = parent
            elif parent.type in _LOCAL_SCOPE_NODES:
                is_local = True
        if any(name is None for name in names):
            return None

        if not is_local:
            qualified = unit.qualify(".".join(reversed(names)))  # type: ignore[arg-type]
            return self.sources.try_solve_type(qualified) if self.sources is not None else None

        outer = self.declaration_for(outer_node, unit) if outer_node is not None else None
        declarations = index_local_types(node, unit, outer)
        if not declarations:
            return None
        with self._lock:
            for decl in declarations:
                self._local_types.setdefault(decl.qualified_name, decl)
            return self._node_declarations.setdefault(key, declarations[0])

    def anonymous_declaration(self, creation: Any, unit: SourceUnit) -> TypeDeclaration | None:
        """Declaration for the body of ``new T(...) { ... }``."""
        key = (unit.file_path, syntax.node_key(creation))
        cached = self._node_declarations.get(key)
        if cached is not None:
            return cached

        type_node = creation.child_by_field_name("type")
        if type_node is None:
            return None
        scope = self.scope_at(creation, unit)
        base = self._resolve_in_scope(syntax.raw_type_name(type_node), scope)
        if base is None:
            return None

        decl = index_anonymous(creation, base.qualified_name, unit, scope.innermost)
        with self._lock:
            self._supertypes.setdefault(id(decl), (decl, [base]))
            return self._node_declarations.setdefault(key, decl)

    def owner_of(self, node: Any, unit: SourceUnit) -> TypeDeclaration | None:
        """Innermost type, named or anonymous, whose body contains ``node``."""
        child = node
        for parent in syntax.ancestors(node):
            if parent.type in syntax.TYPE_DECLARATION_NODES:
                return self.declaration_for(parent, unit)
            if parent.type == "object_creation_expression" and child.type == "class_body":
                return self.anonymous_declaration(parent, unit)
            child = parent
        return None

    def callable_declaration(self, node: Any, unit: SourceUnit) -> MethodDeclaration | None:
        """Declaration of a method or constructor node."""
        owner = self.owner_of(node, unit)
        if owner is None:
            return None
        return callable_from_node(node, owner, unit)

    # ------------------------------------------------------------------
    # Scoping

    def scope_at(self, node: Any, unit: SourceUnit) -> Scope:
        scope = Scope(unit)
        child = node
        for parent in syntax.ancestors(node):
            kind = parent.type
            if kind in syntax.TYPE_DECLARATION_NODES:
                decl = self.declaration_for(parent, unit)
                if decl is not None:
                    scope.chain.append(decl)
                scope.type_variables.update(syntax.type_parameter_names(parent))
            elif kind == "object_creation_expression" and child.type == "class_body":
                decl = self.anonymous_declaration(parent, unit)
                if decl is not None:
                    scope.chain.append(decl)
            elif kind in syntax.CALLABLE_DECLARATION_NODES:
                scope.type_variables.update(syntax.type_parameter_names(parent))
            elif kind in _BLOCK_NODES:
                for statement in parent.named_children:
                    if statement.type not in syntax.TYPE_DECLARATION_NODES:
                        continue
                    name = syntax.declared_name(statement)
                    if name and name not in scope.local_types:
                        decl = self.declaration_for(statement, unit)
                        if decl is not None:
                            scope.local_types[name] = decl
            child = parent
        return scope

    def declaration_scope(
        self,
        decl: TypeDeclaration,
        method: MethodDeclaration | None = None,
    ) -> Scope:
        """Scope of a declaration's own body."""
        scope = Scope(decl.unit, chain=decl.enclosing_chain())
        for enclosing in scope.chain:
            scope.type_variables.update(enclosing.type_parameters)
        if method is not None:
            scope.type_variables.update(method.type_parameters)
        return scope

    def resolve_type_name(self, name: str, node: Any, unit: SourceUnit) -> TypeResolution | None:
        """
        Resolve a type name as written at ``node``.

        Returns None for primitive types and in-scope type variables,
        which are not references to a type declaration.
        """
        return self._resolve_in_scope(name, self.scope_at(node, unit))

    def resolve_type_node(self, type_node: Any, unit: SourceUnit) -> TypeResolution | None:
        element = syntax.element_type(type_node)
        if element is None or not syntax.is_class_type(element):
            return None
        return self.resolve_type_name(syntax.raw_type_name(element), element, unit)

    def _resolve_in_scope(self, name: str, scope: Scope) -> TypeResolution | None:
        name = erase(name)
        if not name or name in PRIMITIVE_NAMES:
            return None
        head, _, rest = name.partition(".")
        if not rest and head in scope.type_variables:
            return None
        if scope.unit is None:
            return self.resolve_qualified(name)

        current = self._resolve_simple(head, scope)
        if not rest:
            return current
        if current.assumed:
            return self.resolve_qualified(name)
        for segment in rest.split("."):
            current = self._member_or_nested(current, segment)
        return current

    def _resolve_simple(self, name: str, scope: Scope) -> TypeResolution:
        local = scope.local_types.get(name)
        if local is not None:
            return TypeResolution(local.qualified_name, local)

        for decl in scope.chain:
            if decl.simple_name == name:
                return TypeResolution(decl.qualified_name, self.lookup(decl.qualified_name) or decl)
            member = self.member_type(decl, name)
            if member is not None:
                return member

        unit = scope.unit
        assert unit is not None
        for imp in unit.imports:
            if not imp.is_static and not imp.on_demand and imp.simple_name == name:
                return self.resolve_qualified(imp.name)

        same_package = self.lookup(unit.qualify(name))
        if same_package is not None:
            return TypeResolution(same_package.qualified_name, same_package)

        for imp in unit.imports:
            if imp.is_static or not imp.on_demand:
                continue
            candidate = self.lookup(f"{imp.name}.{name}")
            if candidate is not None:
                return TypeResolution(candidate.qualified_name, candidate)
            container = self.lookup(imp.name)
            if container is not None:
                member = self.member_type(container, name)
                if member is not None:
                    return member

        implicit = f"java.lang.{name}"
        decl = self.lookup(implicit)
        return TypeResolution(implicit, decl, assumed=decl is None)

    # ------------------------------------------------------------------
    # Hierarchy

    def supertypes_of(self, decl: TypeDeclaration) -> list[TypeResolution]:
        """Declared supertypes, resolved in the scope enclosing ``decl``."""
        cached = self._supertypes.get(id(decl))
        if cached is not None and cached[0] is decl:
            return cached[1]

        active = self._active()
        if id(decl) in active:
            return []
        active.add(id(decl))
        try:
            if decl.unit is None:
                resolved = [self.resolve_qualified(name) for name in decl.supertypes]
            else:
                scope = Scope(decl.unit, chain=decl.outer.enclosing_chain() if decl.outer else [])
                scope.type_variables.update(decl.type_parameters)
                resolved = []
                for name in decl.supertypes:
                    result = self._resolve_in_scope(name, scope)
                    if result is not None:
                        resolved.append(result)
        finally:
            active.discard(id(decl))

        with self._lock:
            self._supertypes[id(decl)] = (decl, resolved)
        return resolved

    def superclass_of(self, decl: TypeDeclaration) -> TypeResolution:
        if decl.superclass is not None:
            supertypes = self.supertypes_of(decl)
            if supertypes:
                return supertypes[0]
        for implicit in decl.implicit_supertypes:
            if implicit != "java.lang.annotation.Annotation":
                return TypeResolution(implicit, self.lookup(implicit))
        return TypeResolution(OBJECT, self.lookup(OBJECT))

    def hierarchy(self, decl: TypeDeclaration) -> Iterator[TypeResolution]:
        """
        ``decl`` and its supertypes, breadth first, ``java.lang.Object`` last.
        """
        queue = deque([TypeResolution(decl.qualified_name, decl)])
        seen: set[object] = set()
        while queue:
            entry = queue.popleft()
            if entry.qualified_name == OBJECT:
                continue
            key: object = id(entry.declaration) if entry.declaration is not None else entry.qualified_name
            if key in seen:
                continue
            seen.add(key)
            yield entry
            if entry.declaration is None:
                continue
            queue.extend(self.supertypes_of(entry.declaration))
            for implicit in entry.declaration.implicit_supertypes:
                queue.append(TypeResolution(implicit, self.lookup(implicit)))
        yield TypeResolution(OBJECT, self.lookup(OBJECT))

    def member_type(self, decl: TypeDeclaration, name: str) -> TypeResolution | None:
        for entry in self.hierarchy(decl):
            owner = entry.declaration
            if owner is not None and name in owner.member_types:
                qualified = owner.member_types[name]
                return TypeResolution(qualified, self.lookup(qualified))
        return None

    def is_subtype(self, decl: TypeDeclaration, simple_name: str) -> bool:
        return any(entry.qualified_name.rsplit(".", 1)[-1] == simple_name for entry in self.hierarchy(decl))

    def _active(self) -> set[int]:
        active = getattr(self._guard, "active", None)
        if active is None:
            active = set()
            self._guard.active = active
        return active

    # ------------------------------------------------------------------
    # Expression typing

    def type_of(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        """Static type of an expression, or None if it cannot be told."""
        kind = expr.type
        if kind == "parenthesized_expression":
            inner = [c for c in expr.named_children if c.type not in _COMMENT_NODES]
            return self.type_of(inner[0], unit) if inner else None
        if kind in ("string_literal", "text_block"):
            return self._named(STRING)
        if kind in _INTEGER_LITERALS:
            return ExpressionType("long" if syntax.text(expr)[-1:] in "lL" else "int")
        if kind in _FLOAT_LITERALS:
            return ExpressionType("float" if syntax.text(expr)[-1:] in "fF" else "double")
        if kind in ("true", "false"):
            return ExpressionType("boolean")
        if kind == "character_literal":
            return ExpressionType("char")
        if kind == "null_literal":
            return ExpressionType("null")
        if kind == "class_literal":
            return self._named("java.lang.Class")
        if kind == "this":
            owner = self.scope_at(expr, unit).innermost
            return ExpressionType(owner.qualified_name, owner) if owner is not None else None
        if kind == "super":
            return self._super_type(expr, unit)
        if kind == "identifier":
            return self._type_of_identifier(syntax.text(expr), expr, unit)
        if kind == "field_access":
            return self._type_of_field_access(expr, unit)
        if kind == "method_invocation":
            return self._type_of_invocation(expr, unit)
        if kind == "object_creation_expression":
            type_node = expr.child_by_field_name("type")
            return self.type_of_type_node(type_node, unit) if type_node is not None else None
        if kind == "array_creation_expression":
            return self._type_of_array_creation(expr, unit)
        if kind == "cast_expression":
            type_node = expr.child_by_field_name("type")
            return self.type_of_type_node(type_node, unit) if type_node is not None else None
        if kind == "array_access":
            array = expr.child_by_field_name("array")
            array_type = self.type_of(array, unit) if array is not None else None
            if array_type is None or not array_type.is_array:
                return None
            return self._from_name(array_type.name[:-2])
        if kind == "binary_expression":
            return self._type_of_binary(expr, unit)
        if kind == "ternary_expression":
            branch = expr.child_by_field_name("consequence")
            return self.type_of(branch, unit) if branch is not None else None
        if kind == "assignment_expression":
            left = expr.child_by_field_name("left")
            return self.type_of(left, unit) if left is not None else None
        if kind in ("unary_expression", "update_expression"):
            operand = [c for c in expr.named_children if c.type not in _COMMENT_NODES]
            return self.type_of(operand[-1], unit) if operand else None
        if kind == "instanceof_expression":
            return ExpressionType("boolean")
        return None

    def type_of_type_node(self, type_node: Any, unit: SourceUnit) -> ExpressionType | None:
        scope = self.scope_at(type_node, unit)
        return self._type_from_described(
            syntax.describe_type(type_node),
            lambda name: self._resolve_in_scope(name, scope),
        )

    def _named(self, qualified_name: str) -> ExpressionType:
        return ExpressionType(qualified_name, self.lookup(qualified_name))

    def _from_name(self, name: str) -> ExpressionType:
        if name in PRIMITIVE_NAMES or name.endswith("[]"):
            return ExpressionType(name)
        return self._named(name)

    def _type_from_described(
        self,
        described: str,
        resolve: Callable[[str], TypeResolution | None],
        substitutions: dict[str, ExpressionType] | None = None,
    ) -> ExpressionType | None:
        described = described.strip()
        if described.startswith("?"):
            parts = described.split(None, 2)
            if len(parts) == 3 and parts[1] == "extends":
                return self._type_from_described(parts[2], resolve, substitutions)
            return self._named(OBJECT)

        base, args, dims = split_described(described)
        if substitutions and base in substitutions and not dims:
            return substitutions[base]
        if base in PRIMITIVE_NAMES:
            return ExpressionType(base + "[]" * dims)

        resolution = resolve(base)
        if resolution is None:
            return None
        if dims:
            return ExpressionType(resolution.qualified_name + "[]" * dims)
        arguments = tuple(self._type_from_described(a, resolve, substitutions) for a in args)
        return ExpressionType(resolution.qualified_name, resolution.declaration, arguments)

    def _resolver_for(
        self,
        decl: TypeDeclaration,
        method: MethodDeclaration | None = None,
    ) -> Callable[[str], TypeResolution | None]:
        if decl.unit is None:
            variables = set(decl.type_parameters)
            if method is not None:
                variables.update(method.type_parameters)

            def resolve(name: str) -> TypeResolution | None:
                erased = erase(name)
                if erased in PRIMITIVE_NAMES:
                    return None
                if erased in variables:
                    return TypeResolution(OBJECT, self.lookup(OBJECT))
                return self.resolve_qualified(name)

            return resolve
        scope = self.declaration_scope(decl, method)
        return lambda name: self._resolve_in_scope(name, scope)

    def _substitutions(
        self,
        receiver: ExpressionType | None,
        declaring: TypeDeclaration,
    ) -> dict[str, ExpressionType] | None:
        if receiver is None or not receiver.arguments or receiver.declaration is None:
            return None
        mapping = {
            name: argument
            for name, argument in zip(receiver.declaration.type_parameters, receiver.arguments)
            if argument is not None
        }
        if receiver.declaration is declaring:
            return mapping
        return self._inherited_substitutions(receiver.declaration, declaring, mapping, set())

    def _inherited_substitutions(
        self,
        decl: TypeDeclaration,
        declaring: TypeDeclaration,
        mapping: dict[str, ExpressionType],
        seen: set[int],
    ) -> dict[str, ExpressionType] | None:
        """Carry type arguments up the written supertypes, e.g. ``List<E>`` to ``Collection<E>``."""
        if id(decl) in seen:
            return None
        seen.add(id(decl))
        resolve = self._resolver_for(decl)
        for written in decl.supertypes:
            base, args, _ = split_described(written)
            resolution = resolve(base)
            if resolution is None or resolution.declaration is None:
                continue
            parent = resolution.declaration
            inherited = {}
            for name, arg in zip(parent.type_parameters, args):
                arg_type = self._type_from_described(arg, resolve, mapping)
                if arg_type is not None:
                    inherited[name] = arg_type
            if parent is declaring:
                return inherited
            found = self._inherited_substitutions(parent, declaring, inherited, seen)
            if found is not None:
                return found
        return None

    def _super_type(self, node: Any, unit: SourceUnit) -> ExpressionType | None:
        owner = self.scope_at(node, unit).innermost
        if owner is None:
            return None
        superclass = self.superclass_of(owner)
        return ExpressionType(superclass.qualified_name, superclass.declaration)

    def _type_of_identifier(self, name: str, node: Any, unit: SourceUnit) -> ExpressionType | None:
        found, variable_type = self._find_variable(name, node, unit)
        if found:
            return variable_type

        resolution = self.resolve_type_name(name, node, unit)
        if resolution is None or resolution.assumed:
            return None
        return ExpressionType(resolution.qualified_name, resolution.declaration, is_type_name=True)

    def _type_of_field_access(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        obj = expr.child_by_field_name("object")
        field_node = expr.child_by_field_name("field")
        if obj is None or field_node is None:
            return None
        name = syntax.text(field_node)

        owner = self._super_type(expr, unit) if obj.type == "super" else self.type_of(obj, unit)
        if owner is None:
            # package-qualified type name
            dotted = syntax.text(expr).replace(" ", "")
            if not name[:1].isupper():
                return None
            resolution = self.resolve_qualified(dotted)
            if resolution.assumed:
                return None
            return ExpressionType(resolution.qualified_name, resolution.declaration, is_type_name=True)

        if field_node.type == "this":
            return ExpressionType(owner.name, owner.declaration)
        if owner.is_array and name == "length":
            return ExpressionType("int")
        if owner.is_type_name and owner.declaration is not None:
            member = self.member_type(owner.declaration, name)
            if member is not None:
                return ExpressionType(member.qualified_name, member.declaration, is_type_name=True)

        field_type = self._field_type(owner, name)
        if field_type is not None:
            return field_type
        if owner.is_type_name and owner.declaration is None and name[:1].isupper():
            return ExpressionType(f"{owner.name}.{name}", is_type_name=True)
        return None

    def _field_type(self, owner: ExpressionType, name: str) -> ExpressionType | None:
        if owner.declaration is None:
            return None
        for entry in self.hierarchy(owner.declaration):
            decl = entry.declaration
            if decl is None or not decl.members_known or name not in decl.fields:
                continue
            return self._type_from_described(
                decl.fields[name],
                self._resolver_for(decl),
                self._substitutions(owner, decl),
            )
        return None

    def _type_of_invocation(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        method = self.resolve_invocation(expr, unit)
        if isinstance(method, Unresolved):
            return None
        obj = expr.child_by_field_name("object")
        receiver = self._safe_type_of(obj, unit) if obj is not None else None
        return self.return_type(method, receiver)

    def return_type(
        self,
        method: MethodDeclaration,
        receiver: ExpressionType | None = None,
    ) -> ExpressionType | None:
        if method.is_constructor:
            return self._named(method.owner)
        if method.return_type is None or method.return_type == "void":
            return None
        declaring = method.declaring_type
        if declaring is None:
            return self._type_from_described(
                method.return_type,
                lambda name: None if erase(name) in PRIMITIVE_NAMES else self.resolve_qualified(name),
            )
        return self._type_from_described(
            method.return_type,
            self._resolver_for(declaring, method),
            self._substitutions(receiver, declaring),
        )

    def _type_of_array_creation(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        type_node = expr.child_by_field_name("type")
        if type_node is None:
            return None
        element = self.type_of_type_node(type_node, unit)
        if element is None:
            return None
        depth = sum(
            syntax.text(c).count("[")
            for c in expr.named_children
            if c.type in ("dimensions_expr", "dimensions")
        )
        return ExpressionType(element.name + "[]" * max(depth, 1))

    def _type_of_binary(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        operator = expr.child_by_field_name("operator")
        op = syntax.text(operator) if operator is not None else ""
        if op in _COMPARISON_OPERATORS:
            return ExpressionType("boolean")
        left_node = expr.child_by_field_name("left")
        right_node = expr.child_by_field_name("right")
        left = self._safe_type_of(left_node, unit) if left_node is not None else None
        right = self._safe_type_of(right_node, unit) if right_node is not None else None
        if op == "+" and any(t is not None and t.name == STRING for t in (left, right)):
            return self._named(STRING)
        if left is not None and right is not None and left.is_primitive and right.is_primitive:
            ranked = max(
                (left.name, right.name, "int"),
                key=lambda name: _NUMERIC_RANK.get(name, 0),
            )
            return ExpressionType(ranked)
        return left

    def _safe_type_of(self, expr: Any, unit: SourceUnit) -> ExpressionType | None:
        try:
            return self.type_of(expr, unit)
        except ResolutionFailure:
            return None

    # ------------------------------------------------------------------
    # Variables

    def _find_variable(self, name: str, node: Any, unit: SourceUnit) -> tuple[bool, ExpressionType | None]:
        """
        Look a variable name up from ``node`` outwards.

        Returns (found, type). A variable can be found with an unknown type,
        an inferred lambda parameter for instance; it still shadows fields.
        """
        child = node
        for parent in syntax.ancestors(node):
            kind = parent.type
            if kind in _BLOCK_NODES:
                match = None
                for statement in parent.named_children:
                    if statement.start_byte >= child.start_byte:
                        break
                    if statement.type == "local_variable_declaration":
                        for declarator in statement.children_by_field_name("declarator"):
                            if _declarator_name(declarator) == name:
                                match = (statement, declarator)
                if match is not None:
                    statement, declarator = match
                    return True, self._declared_type(
                        statement.child_by_field_name("type"),
                        declarator.child_by_field_name("value"),
                        unit,
                    )
            elif kind == "for_statement":
                for init in parent.children_by_field_name("init"):
                    if init.type != "local_variable_declaration":
                        continue
                    for declarator in init.children_by_field_name("declarator"):
                        if _declarator_name(declarator) == name:
                            return True, self._declared_type(
                                init.child_by_field_name("type"),
                                declarator.child_by_field_name("value"),
                                unit,
                            )
            elif kind == "enhanced_for_statement":
                declared = parent.child_by_field_name("name")
                if declared is not None and syntax.text(declared) == name:
                    return True, self._loop_variable_type(parent, unit)
            elif kind == "catch_clause":
                found = self._catch_parameter(parent, name, unit)
                if found is not None:
                    return found
            elif kind == "try_with_resources_statement":
                resources = parent.child_by_field_name("resources")
                for resource in resources.named_children if resources is not None else ():
                    declared = resource.child_by_field_name("name")
                    if declared is not None and syntax.text(declared) == name:
                        return True, self._declared_type(
                            resource.child_by_field_name("type"),
                            resource.child_by_field_name("value"),
                            unit,
                        )
            elif kind == "lambda_expression":
                found = self._lambda_parameter(parent, name, unit)
                if found is None:
                    found = self._pattern_variable(parent, name, node, unit)
                if found is not None:
                    return found
            elif kind in syntax.CALLABLE_DECLARATION_NODES or kind == "compact_constructor_declaration":
                params_owner = parent
                if kind == "compact_constructor_declaration":
                    params_owner = next(
                        (a for a in syntax.ancestors(parent) if a.type == "record_declaration"),
                        parent,
                    )
                for type_node, param_name, is_varargs in syntax.formal_parameters(params_owner):
                    if param_name == name:
                        if type_node is None:
                            return True, None
                        param_type = self.type_of_type_node(type_node, unit)
                        if param_type is not None and is_varargs:
                            param_type = ExpressionType(param_type.name + "[]")
                        return True, param_type
                found = self._pattern_variable(parent, name, node, unit)
                if found is not None:
                    return found
            elif kind in syntax.TYPE_DECLARATION_NODES:
                decl = self.declaration_for(parent, unit)
                found = self._field_of(decl, name)
                if found is not None:
                    return found
            elif kind == "object_creation_expression" and child.type == "class_body":
                decl = self.anonymous_declaration(parent, unit)
                found = self._field_of(decl, name)
                if found is not None:
                    return found
            child = parent

        for imp in unit.imports:
            if imp.is_static and not imp.on_demand and imp.simple_name == name:
                owner = self.resolve_qualified(imp.name.rsplit(".", 1)[0])
                if owner.declaration is not None:
                    return True, self._field_type(ExpressionType(owner.qualified_name, owner.declaration), name)
        return False, None

    def _field_of(self, decl: TypeDeclaration | None, name: str) -> tuple[bool, ExpressionType | None] | None:
        if decl is None:
            return None
        for entry in self.hierarchy(decl):
            owner = entry.declaration
            if owner is not None and owner.members_known and name in owner.fields:
                return True, self._type_from_described(owner.fields[name], self._resolver_for(owner))
        return None

    def _declared_type(self, type_node: Any, value: Any, unit: SourceUnit) -> ExpressionType | None:
        if type_node is None:
            return None
        if syntax.text(type_node) == "var":
            return self._safe_type_of(value, unit) if value is not None else None
        return self.type_of_type_node(type_node, unit)

    def _loop_variable_type(self, loop: Any, unit: SourceUnit) -> ExpressionType | None:
        type_node = loop.child_by_field_name("type")
        if type_node is not None and syntax.text(type_node) != "var":
            return self.type_of_type_node(type_node, unit)
        iterable = loop.child_by_field_name("value")
        iterable_type = self._safe_type_of(iterable, unit) if iterable is not None else None
        if iterable_type is None:
            return None
        if iterable_type.is_array:
            return self._from_name(iterable_type.name[:-2])
        if len(iterable_type.arguments) == 1:
            return iterable_type.arguments[0]
        return None

    def _catch_parameter(self, clause: Any, name: str, unit: SourceUnit) -> tuple[bool, ExpressionType | None] | None:
        param = next((c for c in clause.named_children if c.type == "catch_formal_parameter"), None)
        if param is None:
            return None
        declared = param.child_by_field_name("name")
        if declared is None or syntax.text(declared) != name:
            return None
        catch_type = next((c for c in param.named_children if c.type == "catch_type"), None)
        alternatives = catch_type.named_children if catch_type is not None else []
        if len(alternatives) != 1:
            # multi-catch: the common supertype is not worked out
            return True, self._named("java.lang.Throwable")
        return True, self.type_of_type_node(alternatives[0], unit)

    def _lambda_parameter(self, lambda_node: Any, name: str, unit: SourceUnit) -> tuple[bool, ExpressionType | None] | None:
        params = lambda_node.child_by_field_name("parameters")
        if params is None:
            return None
        if params.type == "identifier":
            return (True, None) if syntax.text(params) == name else None
        if params.type == "inferred_parameters":
            if any(syntax.text(p) == name for p in params.named_children):
                return True, None
            return None
        for type_node, param_name, _ in syntax.formal_parameters(lambda_node):
            if param_name == name:
                if type_node is None or syntax.text(type_node) == "var":
                    return True, None
                return True, self.type_of_type_node(type_node, unit)
        return None

    def _pattern_variable(
        self,
        scope_node: Any,
        name: str,
        use: Any,
        unit: SourceUnit,
    ) -> tuple[bool, ExpressionType | None] | None:
        body = scope_node.child_by_field_name("body")
        if body is None:
            return None
        for candidate in syntax.walk(body):
            if candidate.start_byte >= use.start_byte:
                break
            if candidate.type == "instanceof_expression":
                declared = candidate.child_by_field_name("name")
                type_node = candidate.child_by_field_name("right")
            elif candidate.type == "type_pattern":
                parts = candidate.named_children
                declared = parts[-1] if parts else None
                type_node = parts[0] if len(parts) > 1 else None
            else:
                continue
            if declared is not None and type_node is not None and syntax.text(declared) == name:
                return True, self.type_of_type_node(type_node, unit)
        return None

    # ------------------------------------------------------------------
    # Callables

    def resolve(self, node: Any, unit: SourceUnit) -> MethodDeclaration | Unresolved:
        """Resolve any callable construct to the declaration it targets."""
        kind = node.type
        if kind == "method_invocation":
            return self.resolve_invocation(node, unit)
        if kind == "method_reference":
            return self.resolve_method_reference(node, unit)
        if kind == "object_creation_expression":
            return self.resolve_object_creation(node, unit)
        if kind == "explicit_constructor_invocation":
            return self.resolve_explicit_constructor(node, unit)
        if kind == "lambda_expression":
            body = node.child_by_field_name("body")
            if body is None or body.type != "method_invocation":
                return Unresolved("lambda body is not a single invocation")
            return self.resolve_invocation(body, unit)
        raise ResolutionFailure(f"Not a callable construct: {kind}")

    def resolve_invocation(self, node: Any, unit: SourceUnit) -> MethodDeclaration | Unresolved:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            raise ResolutionFailure("Method invocation without a name")
        name = syntax.text(name_node)
        arg_types = self._argument_types(node, unit)

        obj = node.child_by_field_name("object")
        if obj is None:
            return self._resolve_unqualified(name, arg_types, node, unit)

        receiver = self._super_type(node, unit) if obj.type == "super" else self.type_of(obj, unit)
        if receiver is None:
            return Unresolved(f"cannot type the receiver of {name}")
        return self._resolve_member(receiver, name, arg_types)

    def resolve_method_reference(self, node: Any, unit: SourceUnit) -> MethodDeclaration | Unresolved:
        parts = [c for c in node.named_children if c.type not in _COMMENT_NODES and c.type != "type_arguments"]
        if not parts:
            raise ResolutionFailure("Empty method reference")
        receiver_node = parts[0]
        is_constructor = any(c.type == "new" for c in node.children)

        if receiver_node.type == "super":
            receiver = self._super_type(node, unit)
        elif receiver_node.type in syntax.CLASS_TYPE_NODES or receiver_node.type == "array_type":
            resolution = self.resolve_type_node(receiver_node, unit)
            receiver = (
                ExpressionType(resolution.qualified_name, resolution.declaration, is_type_name=True)
                if resolution is not None and not resolution.assumed
                else None
            )
        else:
            receiver = self.type_of(receiver_node, unit)
        if receiver is None:
            return Unresolved("cannot type the method reference receiver")

        if is_constructor:
            return self._constructor_of(receiver, None)
        if len(parts) < 2 or parts[-1].type != "identifier":
            raise ResolutionFailure("Method reference without a member name")
        return self._resolve_member(receiver, syntax.text(parts[-1]), None)

    def resolve_object_creation(self, node: Any, unit: SourceUnit) -> MethodDeclaration | Unresolved:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            raise ResolutionFailure("Object creation without a type")
        resolution = self.resolve_type_node(type_node, unit)
        if resolution is None:
            return Unresolved("created type is a type variable")
        if resolution.assumed:
            return Unresolved(f"unknown type {resolution.qualified_name}")
        created = ExpressionType(resolution.qualified_name, resolution.declaration, is_type_name=True)
        return self._constructor_of(created, self._argument_types(node, unit))

    def resolve_explicit_constructor(self, node: Any, unit: SourceUnit) -> MethodDeclaration | Unresolved:
        target = node.child_by_field_name("constructor")
        owner = self.owner_of(node, unit)
        if target is None or owner is None:
            raise ResolutionFailure("Explicit constructor invocation outside a type")
        if target.type == "this":
            created = ExpressionType(owner.qualified_name, owner, is_type_name=True)
        else:
            superclass = self.superclass_of(owner)
            created = ExpressionType(superclass.qualified_name, superclass.declaration, is_type_name=True)
        return self._constructor_of(created, self._argument_types(node, unit))

    def _argument_types(self, node: Any, unit: SourceUnit) -> list[ExpressionType | None]:
        args = node.child_by_field_name("arguments")
        if args is None:
            return []
        return [self._safe_type_of(a, unit) for a in args.named_children if a.type not in _COMMENT_NODES]

    def _resolve_member(
        self,
        receiver: ExpressionType,
        name: str,
        arg_types: list[ExpressionType | None] | None,
    ) -> MethodDeclaration | Unresolved:
        if receiver.is_primitive or receiver.name == "null":
            return Unresolved(f"{name} called on {receiver.name}")
        # a method reference on a type name may still bind an instance method
        static_receiver = receiver.is_type_name and arg_types is not None
        decl = receiver.declaration
        if receiver.is_array:
            decl = self.lookup(OBJECT)
        if decl is None:
            return self._synthesize(receiver.name, name, arg_types, is_static=static_receiver)
        return self._find_method(decl, name, arg_types, static_receiver, synthesize=True)

    def _find_method(
        self,
        decl: TypeDeclaration,
        name: str,
        arg_types: list[ExpressionType | None] | None,
        static_receiver: bool,
        synthesize: bool,
    ) -> MethodDeclaration | Unresolved:
        candidates: list[MethodDeclaration] = []
        signatures: set[tuple[str, ...]] = set()
        opaque: TypeResolution | None = None
        for entry in self.hierarchy(decl):
            owner = entry.declaration
            if owner is None or not owner.members_known or owner.partial_members:
                if opaque is None and not entry.assumed:
                    opaque = entry
                if owner is None or not owner.members_known:
                    continue
            for method in owner.methods_named(name):
                if arg_types is not None and not method.accepts(len(arg_types)):
                    continue
                signature = tuple(_simple(p) for p in method.parameter_types)
                if signature in signatures:
                    continue
                signatures.add(signature)
                candidates.append(method)

        if candidates:
            return self._select(candidates, arg_types)
        if synthesize and opaque is not None:
            return self._synthesize(opaque.qualified_name, name, arg_types, is_static=static_receiver)
        return Unresolved(f"no member {name} on {decl.qualified_name}")

    def _resolve_unqualified(
        self,
        name: str,
        arg_types: list[ExpressionType | None],
        node: Any,
        unit: SourceUnit,
    ) -> MethodDeclaration | Unresolved:
        scope = self.scope_at(node, unit)
        for decl in scope.chain:
            found = self._find_method(decl, name, arg_types, False, synthesize=False)
            if isinstance(found, MethodDeclaration):
                return found

        for imp in unit.imports:
            if imp.is_static and not imp.on_demand and imp.simple_name == name:
                owner = self.resolve_qualified(imp.name.rsplit(".", 1)[0])
                if owner.declaration is None:
                    if not owner.assumed:
                        return self._synthesize(owner.qualified_name, name, arg_types, is_static=True)
                    continue
                found = self._find_method(owner.declaration, name, arg_types, True, synthesize=True)
                if isinstance(found, MethodDeclaration):
                    return found

        opaque_imports = []
        for imp in unit.imports:
            if not (imp.is_static and imp.on_demand):
                continue
            owner = self.resolve_qualified(imp.name)
            decl = owner.declaration
            if decl is not None and decl.members_known:
                found = self._find_method(decl, name, arg_types, True, synthesize=False)
                if isinstance(found, MethodDeclaration):
                    return found
                if not decl.partial_members:
                    continue
            if not owner.assumed:
                opaque_imports.append(owner)

        if scope.innermost is not None:
            found = self._find_method(scope.innermost, name, arg_types, False, synthesize=True)
            if isinstance(found, MethodDeclaration):
                return found
        if len(opaque_imports) == 1:
            return self._synthesize(opaque_imports[0].qualified_name, name, arg_types, is_static=True)
        return Unresolved(f"no visible method {name}")

    def _constructor_of(
        self,
        created: ExpressionType,
        arg_types: list[ExpressionType | None] | None,
    ) -> MethodDeclaration | Unresolved:
        decl = created.declaration
        simple = created.name.rsplit(".", 1)[-1]
        if decl is None or not decl.members_known or (decl.partial_members and not decl.constructors):
            return self._synthesize(created.name, simple, arg_types, is_static=False, is_constructor=True)

        if arg_types is None:
            if decl.constructors:
                return decl.constructors[0]
        else:
            applicable = [c for c in decl.constructors if c.accepts(len(arg_types))]
            if applicable:
                return self._select(applicable, arg_types)
            if decl.partial_members:
                return self._synthesize(created.name, simple, arg_types, is_static=False, is_constructor=True)

        if not decl.constructors:
            # interfaces and annotation types behind anonymous classes
            return MethodDeclaration(
                owner=decl.qualified_name,
                name=decl.simple_name,
                is_constructor=True,
                is_implicit=True,
                origin=decl.origin,
                declaring_type=decl,
            )
        return Unresolved(f"no applicable constructor of {decl.qualified_name}")

    def _synthesize(
        self,
        owner: str,
        name: str,
        arg_types: list[ExpressionType | None] | None,
        is_static: bool,
        is_constructor: bool = False,
    ) -> MethodDeclaration:
        """Stand-in declaration for a member of a type whose members are unknown."""
        params = tuple(
            OBJECT if arg is None or arg.name == "null" else arg.name for arg in (arg_types or [])
        )
        return MethodDeclaration(
            owner=owner,
            name=name,
            parameter_types=params,
            is_static=is_static and not is_constructor,
            is_constructor=is_constructor,
            is_implicit=True,
            origin=OriginKind.EXTERNAL,
        )

    def _select(
        self,
        candidates: list[MethodDeclaration],
        arg_types: list[ExpressionType | None] | None,
    ) -> MethodDeclaration:
        """Best match by argument types; ties go to declaration order."""
        if arg_types is None or len(candidates) == 1:
            return candidates[0]
        best = candidates[0]
        best_score = -1
        for candidate in candidates:
            score = sum(
                self._match(self._parameter_at(candidate, i), arg, candidate)
                for i, arg in enumerate(arg_types)
            )
            if score > best_score:
                best, best_score = candidate, score
        return best

    def _parameter_at(self, method: MethodDeclaration, index: int) -> str:
        if method.is_varargs and index >= method.arity - 1:
            return method.parameter_types[-1]
        return method.parameter_types[index]

    def _match(self, parameter: str, argument: ExpressionType | None, method: MethodDeclaration) -> int:
        param = _simple(parameter)
        if argument is None:
            return 1
        arg = argument.simple_name
        if param == arg:
            return 3
        if argument.name == "null":
            return 0 if param in PRIMITIVE_NAMES else 2
        type_variables = set(method.type_parameters)
        if method.declaring_type is not None:
            type_variables.update(method.declaring_type.type_parameters)
        if param == "Object" or param in type_variables:
            return 1
        if _BOXES.get(arg) == param or _BOXES.get(param) == arg:
            return 2
        if arg in _NUMERIC_RANK and param in _NUMERIC_RANK and _NUMERIC_RANK[arg] <= _NUMERIC_RANK[param]:
            return 2
        if argument.declaration is not None and self.is_subtype(argument.declaration, param):
            return 2
        return 0


def _simple(type_text: str) -> str:
    return erase(type_text).rsplit(".", 1)[-1]


def _declarator_name(declarator: Any) -> str | None:
    name = declarator.child_by_field_name("name")
    return syntax.text(name) if name is not None else None
