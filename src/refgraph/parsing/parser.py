"""
Java source parsing with tree-sitter.

A ``SourceUnit`` bundles one parsed compilation unit with its package and
import declarations. Units are parsed once and traversed by both passes.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import tree_sitter
import tree_sitter_java

from refgraph.errors import SourceReadError
from refgraph.parsing.syntax import text

logger = structlog.get_logger(__name__)

JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

# tree-sitter parsers are not shareable between threads
_local = threading.local()


def _get_parser() -> tree_sitter.Parser:
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = tree_sitter.Parser(JAVA_LANGUAGE)
        _local.parser = parser
    return parser


@dataclass(frozen=True)
class ImportDeclaration:
    """One ``import`` line."""

    name: str
    is_static: bool = False
    on_demand: bool = False

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass
class SourceUnit:
    """A parsed compilation unit."""

    path: Path
    source: bytes
    tree: Any
    package: str = ""
    imports: list[ImportDeclaration] = field(default_factory=list)

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @property
    def file_path(self) -> str:
        return str(self.path)

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def qualify(self, name: str) -> str:
        return f"{self.package}.{name}" if self.package else name


def parse_source(source: str | bytes, path: Path | str) -> SourceUnit:
    """Parse Java source text into a ``SourceUnit``."""
    data = source.encode("utf-8") if isinstance(source, str) else source
    tree = _get_parser().parse(data)
    unit = SourceUnit(path=Path(path), source=data, tree=tree)
    _read_header(unit)

    if unit.has_errors:
        logger.warning("Source unit has syntax errors", path=unit.file_path)

    return unit


def parse_file(path: Path) -> SourceUnit:
    """
    Read and parse one ``.java`` file.

    Raises:
        SourceReadError: If the file cannot be read.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SourceReadError(str(path), e) from e
    return parse_source(data, path)


def _read_header(unit: SourceUnit) -> None:
    """Collect package and import declarations."""
    for child in unit.root.named_children:
        if child.type == "package_declaration":
            name = next(
                (c for c in child.named_children if c.type in ("identifier", "scoped_identifier")),
                None,
            )
            if name is not None:
                unit.package = text(name)
        elif child.type == "import_declaration":
            name = next(
                (c for c in child.named_children if c.type in ("identifier", "scoped_identifier")),
                None,
            )
            if name is None:
                continue
            unit.imports.append(
                ImportDeclaration(
                    name=text(name),
                    is_static=any(c.type == "static" for c in child.children),
                    on_demand=any(c.type == "asterisk" for c in child.children),
                )
            )
