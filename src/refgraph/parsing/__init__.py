"""
Parsing modules for refgraph.

Wraps tree-sitter-java:
- Per-thread parsers
- Package and import headers
- Type description helpers over syntax nodes
"""

from refgraph.parsing.parser import ImportDeclaration, SourceUnit, parse_file, parse_source

__all__ = [
    "ImportDeclaration",
    "SourceUnit",
    "parse_file",
    "parse_source",
]
