"""
Canonical identifiers for callable declarations.

The identifier is the join key between references and graph nodes, so it
must come out byte-for-byte the same for the same declaration no matter
where or when it was resolved:

    com.example.Foo::bar(List<String>,int)
    com.example.Foo::Foo()
"""

from __future__ import annotations

import re

from refgraph.resolution.declarations import MethodDeclaration

_QUALIFIED = re.compile(r"([a-zA-Z0-9_$]+\.)+([a-zA-Z0-9_$]+)")
_WHITESPACE = re.compile(r"\s+")


def strip_qualification(type_text: str) -> str:
    """``java.util.Map<java.lang.String, Foo>`` -> ``Map<String,Foo>``."""
    return _QUALIFIED.sub(r"\2", _WHITESPACE.sub("", type_text))


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split at the last separator into (owner, simple name)."""
    owner, _, simple = qualified_name.rpartition(".")
    return owner, simple


def canonical_identifier(method: MethodDeclaration) -> str:
    owner, name = split_qualified_name(method.qualified_name)
    if method.is_constructor:
        name = owner.rsplit(".", 1)[-1]
    params = ",".join(strip_qualification(p) for p in method.parameter_types)
    return f"{owner}::{name}({params})"
