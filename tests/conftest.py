"""
Shared fixtures for the refgraph test suite.

Provides:
- Small Java projects written into a temporary directory
- Parsed units and resolution contexts built from inline sources
- Configuration pointing at an empty local repository
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest
import structlog

from refgraph.config import Config
from refgraph.extraction.engine import ExtractionResult, extract
from refgraph.parsing.parser import SourceUnit, parse_source
from refgraph.project.sources import ProjectSources
from refgraph.resolution.context import ResolutionContext

pytest_plugins = ["pytest_asyncio"]


POM = """\
<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.example</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>
  <dependencies>
{dependencies}
  </dependencies>
</project>
"""


def make_pom(dependencies: str = "") -> str:
    return POM.format(dependencies=dependencies)


def dedent(source: str) -> str:
    return textwrap.dedent(source).lstrip("\n")


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def local_repository(tmp_path: Path) -> Path:
    """An empty local Maven repository."""
    repo = tmp_path / "m2"
    repo.mkdir()
    return repo


@pytest.fixture
def write_project(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory writing a Maven-style project.

    Keys of ``files`` are paths relative to ``src/main/java``.
    """

    def _write(files: dict[str, str], pom: str | None = None, name: str = "project") -> Path:
        root = tmp_path / name
        source_root = root / "src" / "main" / "java"
        source_root.mkdir(parents=True, exist_ok=True)
        (root / "pom.xml").write_text(pom if pom is not None else make_pom(), encoding="utf-8")
        for relative, source in files.items():
            path = source_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(source), encoding="utf-8")
        return root

    return _write


@pytest.fixture
def project_config(local_repository: Path) -> Callable[[Path], Config]:
    def _config(root: Path, **overrides) -> Config:
        return Config(
            project_root=root,
            dependencies={"local_repository": local_repository},
            **overrides,
        )

    return _config


@pytest.fixture
def units() -> Callable[[dict[str, str]], list[SourceUnit]]:
    """Parse inline sources; keys are file paths."""

    def _units(files: dict[str, str]) -> list[SourceUnit]:
        return [parse_source(dedent(source), path) for path, source in files.items()]

    return _units


@pytest.fixture
def context_for(units) -> Callable[[dict[str, str]], tuple[ResolutionContext, list[SourceUnit]]]:
    """Build a resolution context over inline sources."""

    def _context(files: dict[str, str]) -> tuple[ResolutionContext, list[SourceUnit]]:
        parsed = units(files)
        return ResolutionContext.build(parsed), parsed

    return _context


@pytest.fixture
def extract_files(tmp_path: Path) -> Callable[..., ExtractionResult]:
    """Write sources under a temporary root and run both passes over them."""

    def _extract(files: dict[str, str], config: Config | None = None) -> ExtractionResult:
        root = tmp_path / "src"
        for relative, source in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(source), encoding="utf-8")
        sources = ProjectSources.discover([root])
        return extract(sources, config=config)

    return _extract


def find_node(unit: SourceUnit, node_type: str, text: str | None = None):
    """First node of a type (optionally with exact text) in a unit."""
    from refgraph.parsing import syntax

    for node in syntax.walk(unit.root):
        if node.type == node_type and (text is None or syntax.text(node) == text):
            return node
    raise LookupError(f"No {node_type} node{f' {text!r}' if text else ''}")


def build_class_file(
    name: str,
    super_name: str | None = "java/lang/Object",
    interfaces: tuple[str, ...] = (),
    methods: tuple[tuple[int, str, str], ...] = (),
    fields: tuple[tuple[int, str, str], ...] = (),
    access_flags: int = 0x0021,
) -> bytes:
    """
    Assemble a minimal class file.

    Names are internal (``com/acme/Widget``); members are
    (access_flags, name, descriptor).
    """
    import struct

    pool: list[bytes] = []
    index: dict[tuple[str, str], int] = {}

    def utf8(value: str) -> int:
        key = ("utf8", value)
        if key not in index:
            data = value.encode("utf-8")
            pool.append(struct.pack(">BH", 1, len(data)) + data)
            index[key] = len(pool)
        return index[key]

    def class_ref(value: str) -> int:
        key = ("class", value)
        if key not in index:
            name_index = utf8(value)
            pool.append(struct.pack(">BH", 7, name_index))
            index[key] = len(pool)
        return index[key]

    this_index = class_ref(name)
    super_index = class_ref(super_name) if super_name else 0
    interface_indexes = [class_ref(i) for i in interfaces]
    member_entries = [
        [(flags, utf8(member), utf8(descriptor)) for flags, member, descriptor in group]
        for group in (fields, methods)
    ]

    out = struct.pack(">IHH", 0xCAFEBABE, 0, 61)
    out += struct.pack(">H", len(pool) + 1) + b"".join(pool)
    out += struct.pack(">HHH", access_flags, this_index, super_index)
    out += struct.pack(">H", len(interface_indexes))
    out += b"".join(struct.pack(">H", i) for i in interface_indexes)
    for group in member_entries:
        out += struct.pack(">H", len(group))
        for flags, name_index, descriptor_index in group:
            out += struct.pack(">HHHH", flags, name_index, descriptor_index, 0)
    out += struct.pack(">H", 0)
    return out


def build_jar(path: Path, classes: dict[str, bytes]) -> Path:
    """Write a jar holding the given ``internal/Name`` -> class bytes."""
    import zipfile

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as jar:
        jar.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        for name, data in classes.items():
            jar.writestr(f"{name}.class", data)
    return path
