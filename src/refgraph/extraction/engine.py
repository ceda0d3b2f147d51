"""
Two-pass extraction engine.

Pass 1 collects every definition of the project; pass 2 resolves every
construct against the complete table. Pass 1 finishes for all units
before pass 2 starts on any of them, so a reference resolves the same way
whichever file declares its target and in whatever order files are read.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, TypeVar

import structlog

from refgraph.config import Config
from refgraph.errors import SourceReadError
from refgraph.extraction.definitions import (
    CollectedDefinitions,
    DefinitionTable,
    collect_definitions,
)
from refgraph.extraction.references import ReferenceExtractor
from refgraph.model import DeclarationSpan, Reference, ReportSection
from refgraph.parsing.parser import SourceUnit, parse_file
from refgraph.resolution.context import ResolutionContext

if TYPE_CHECKING:
    from refgraph.project.sources import ProjectSources

logger = structlog.get_logger(__name__)

_T = TypeVar("_T")
_R = TypeVar("_R")


@dataclass
class Accumulator:
    """Run-scoped state threaded through both passes."""

    definitions: DefinitionTable = field(default_factory=DefinitionTable)
    references: list[Reference] = field(default_factory=list)
    declarations: list[DeclarationSpan] = field(default_factory=list)

    def add_definitions(self, collected: CollectedDefinitions) -> None:
        self.definitions.merge(collected)
        self.declarations.extend(collected.spans)

    def add_references(self, references: Iterable[Reference]) -> None:
        self.references.extend(references)


@dataclass
class ExtractionResult:
    """Outcome of one extraction run."""

    definitions: DefinitionTable
    references: list[Reference]
    declarations: list[DeclarationSpan] = field(default_factory=list)
    files_analyzed: int = 0
    files_failed: int = 0

    def __iter__(self) -> Iterator:
        # definitions, references = extract(...)
        yield self.definitions
        yield self.references

    @property
    def method_references(self) -> list[Reference]:
        return [r for r in self.references if r.kind.section is ReportSection.METHOD]

    @property
    def type_references(self) -> list[Reference]:
        return [r for r in self.references if r.kind.section is ReportSection.TYPE]


def parse_units(files: Iterable[Path], max_workers: int = 1) -> tuple[list[SourceUnit], int]:
    """
    Read and parse each file once, on up to ``max_workers`` threads.

    Returns the parsed units in sorted path order and the number of files
    that could not be read.
    """
    parsed = _fan_out(_parse_or_skip, sorted(set(files)), max_workers)
    units = [unit for unit in parsed if unit is not None]
    return units, len(parsed) - len(units)


def _parse_or_skip(path: Path) -> SourceUnit | None:
    try:
        return parse_file(path)
    except SourceReadError as e:
        logger.error("Source unit unreadable, skipping", path=e.path, error=str(e.cause))
        return None


def _fan_out(func: Callable[[_T], _R], items: list[_T], max_workers: int) -> list[_R]:
    """Map over items, in order, on a thread pool when more than one worker is allowed."""
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="refgraph") as pool:
        return list(pool.map(func, items))


def extract(
    sources: ProjectSources,
    *,
    context: ResolutionContext | None = None,
    config: Config | None = None,
    archives: Iterable[Path] = (),
) -> ExtractionResult:
    """
    Extract the definition table and all references of a project.

    Args:
        sources: Source roots and the Java files under them.
        context: Resolution context to use. Built from the parsed units
            and ``archives`` when not given.
        config: Run configuration; only ``extraction.max_workers`` is read.
        archives: Dependency archives for a context built here.

    Returns:
        The definitions, references and callable spans of the run.
    """
    config = config or Config()
    max_workers = config.extraction.max_workers

    units, failed = parse_units(sources.files, max_workers)
    owns_context = context is None
    if context is None:
        context = ResolutionContext.build(units, archives)

    accumulator = Accumulator()
    try:
        logger.info("Collecting definitions", files=len(units), workers=max_workers)
        for collected in _fan_out(lambda unit: collect_definitions(unit, context), units, max_workers):
            accumulator.add_definitions(collected)

        extractor = ReferenceExtractor(context, accumulator.definitions)

        logger.info("Extracting references", files=len(units), definitions=len(accumulator.definitions))
        for references in _fan_out(extractor.extract, units, max_workers):
            accumulator.add_references(references)
    finally:
        if owns_context:
            context.close()

    logger.info(
        "Extraction complete",
        files=len(units),
        failed=failed,
        definitions=len(accumulator.definitions),
        references=len(accumulator.references),
    )
    return ExtractionResult(
        definitions=accumulator.definitions,
        references=accumulator.references,
        declarations=accumulator.declarations,
        files_analyzed=len(units),
        files_failed=failed,
    )
