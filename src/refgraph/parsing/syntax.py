"""
Helpers over tree-sitter-java syntax nodes.

Node type names follow the tree-sitter-java grammar. Lines are reported
1-based, the way source locations are printed everywhere else.
"""

from __future__ import annotations

import re
from typing import Any, Iterator

# Declaration node type -> declared kind
TYPE_DECLARATION_NODES = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}

CALLABLE_DECLARATION_NODES = ("method_declaration", "constructor_declaration")

PRIMITIVE_TYPE_NODES = frozenset(
    {"integral_type", "floating_point_type", "boolean_type", "void_type"}
)

CLASS_TYPE_NODES = frozenset({"type_identifier", "scoped_type_identifier", "generic_type"})

_WHITESPACE = re.compile(r"\s+")


def text(node: Any) -> str:
    """Source text of a node."""
    return node.text.decode("utf-8", errors="replace")


def line(node: Any) -> int:
    """1-based start line of a node."""
    return node.start_point[0] + 1


def end_line(node: Any) -> int:
    """1-based end line of a node."""
    return node.end_point[0] + 1


def node_key(node: Any) -> tuple[int, int, str]:
    """Stable identity of a node within one tree."""
    return (node.start_byte, node.end_byte, node.type)


def walk(root: Any) -> Iterator[Any]:
    """Pre-order traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def ancestors(node: Any) -> Iterator[Any]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def declared_name(node: Any) -> str | None:
    name = node.child_by_field_name("name")
    return text(name) if name is not None else None


def has_modifier(node: Any, modifier: str) -> bool:
    """Check a declaration's modifiers for a keyword such as ``static``."""
    for child in node.children:
        if child.type == "modifiers":
            return any(m.type == modifier for m in child.children)
    return False


def strip_annotations(node: Any) -> Any:
    """Unwrap ``annotated_type`` to the type it annotates."""
    while node is not None and node.type == "annotated_type":
        inner = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
        node = inner[-1] if inner else None
    return node


def element_type(node: Any) -> Any:
    """Strip array dimensions and type annotations."""
    node = strip_annotations(node)
    while node is not None and node.type == "array_type":
        node = strip_annotations(node.child_by_field_name("element"))
    return node


def is_class_type(node: Any) -> bool:
    return node is not None and node.type in CLASS_TYPE_NODES


def raw_type_name(node: Any) -> str:
    """Name of a class type as written, without type arguments."""
    node = strip_annotations(node)
    if node.type == "generic_type":
        return raw_type_name(node.named_children[0])
    if node.type == "scoped_type_identifier":
        parts = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
        return f"{raw_type_name(parts[0])}.{text(parts[-1])}"
    return text(node)


def type_arguments(node: Any) -> list[Any]:
    """Direct type arguments of a class type; wildcards unwrap to their bound."""
    node = strip_annotations(node)
    if node is None or node.type != "generic_type":
        return []
    args_node = next((c for c in node.named_children if c.type == "type_arguments"), None)
    if args_node is None:
        return []
    result = []
    for arg in args_node.named_children:
        if arg.type == "wildcard":
            bound = [c for c in arg.named_children if c.type not in ("annotation", "marker_annotation")]
            if bound:
                result.append(bound[-1])
            continue
        if arg.type in ("annotation", "marker_annotation"):
            continue
        result.append(arg)
    return result


def describe_type(node: Any) -> str:
    """
    Describe a type the way a declaration signature spells it.

    Annotations are dropped and whitespace normalised; qualification is
    kept as written.
    """
    node = strip_annotations(node)
    if node is None:
        return "?"
    kind = node.type
    if kind == "generic_type":
        base = describe_type(node.named_children[0])
        args_node = next((c for c in node.named_children if c.type == "type_arguments"), None)
        if args_node is None:
            return base
        args = [
            describe_type(a)
            for a in args_node.named_children
            if a.type not in ("annotation", "marker_annotation")
        ]
        return f"{base}<{','.join(args)}>"
    if kind == "scoped_type_identifier":
        return raw_type_name(node)
    if kind == "array_type":
        element = describe_type(node.child_by_field_name("element"))
        dims = node.child_by_field_name("dimensions")
        depth = text(dims).count("[") if dims is not None else 1
        return element + "[]" * depth
    if kind == "wildcard":
        bound = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
        if not bound:
            return "?"
        keyword = "super" if any(c.type == "super" for c in node.children) else "extends"
        return f"? {keyword} {describe_type(bound[-1])}"
    return _WHITESPACE.sub("", text(node))


def type_parameter_names(node: Any) -> list[str]:
    """Names declared by a ``type_parameters`` child of a declaration."""
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return []
    names = []
    for param in params.named_children:
        if param.type != "type_parameter":
            continue
        ident = next((c for c in param.named_children if c.type in ("type_identifier", "identifier")), None)
        if ident is not None:
            names.append(text(ident))
    return names


def type_parameter_bounds(node: Any) -> list[Any]:
    """Bound types of every type parameter a declaration introduces."""
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return []
    bounds = []
    for param in params.named_children:
        if param.type != "type_parameter":
            continue
        for child in param.named_children:
            if child.type == "type_bound":
                bounds.extend(child.named_children)
    return bounds


def formal_parameters(node: Any) -> list[tuple[Any, str | None, bool]]:
    """(type node, name, is_varargs) for each declared parameter."""
    params = node.child_by_field_name("parameters")
    if params is None:
        return []
    result = []
    for param in params.named_children:
        if param.type == "formal_parameter":
            name = param.child_by_field_name("name")
            result.append(
                (param.child_by_field_name("type"), text(name) if name is not None else None, False)
            )
        elif param.type == "spread_parameter":
            type_node = next(
                (c for c in param.named_children if c.type not in ("modifiers", "variable_declarator")),
                None,
            )
            declarator = next((c for c in param.named_children if c.type == "variable_declarator"), None)
            name = declarator.child_by_field_name("name") if declarator is not None else None
            result.append((type_node, text(name) if name is not None else None, True))
    return result


def supertype_nodes(node: Any) -> tuple[list[Any], list[Any]]:
    """
    (extended, implemented) type nodes of a type declaration.

    Interfaces list their super-interfaces as extended types.
    """
    extended: list[Any] = []
    implemented: list[Any] = []
    for child in node.children:
        if child.type == "superclass":
            extended.extend(c for c in child.named_children if c.type not in ("annotation", "marker_annotation"))
        elif child.type == "super_interfaces":
            implemented.extend(_type_list(child))
        elif child.type == "extends_interfaces":
            extended.extend(_type_list(child))
    return extended, implemented


def _type_list(node: Any) -> list[Any]:
    for child in node.named_children:
        if child.type == "type_list":
            return list(child.named_children)
    return []


def class_body(node: Any) -> Any | None:
    return node.child_by_field_name("body")


def body_members(node: Any) -> list[Any]:
    """Member declarations of a type body, enum body declarations included."""
    body = class_body(node)
    if body is None:
        return []
    members = []
    for child in body.named_children:
        if child.type == "enum_body_declarations":
            members.extend(child.named_children)
        else:
            members.append(child)
    return members
