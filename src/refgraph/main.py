"""
refgraph main entry point.

Provides the AnalysisRun orchestration class and the CLI interface.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator

import click
import structlog
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from refgraph import __version__
from refgraph.config import Config, load_config
from refgraph.errors import ConfigurationError, ProjectSetupError, StoreUnavailableError
from refgraph.extraction.engine import ExtractionResult, extract
from refgraph.model import ProjectionStats

if TYPE_CHECKING:
    from refgraph.project.maven import BuildDescriptor
    from refgraph.project.sources import ProjectSources
    from refgraph.storage.graph_store import GraphStore

logger = structlog.get_logger(__name__)

console = Console()
error_console = Console(stderr=True)


@dataclass
class AnalysisSummary:
    """Outcome of a full analysis run."""

    result: ExtractionResult
    method_report: Path | None = None
    type_report: Path | None = None
    projection: ProjectionStats | None = None


class AnalysisRun:
    """
    One analysis run and the resources it owns.

    It manages:
    - The build descriptor and source discovery
    - Dependency archives for the resolution context
    - Both extraction passes
    - Report writing
    - The graph store connection, opened once and closed once
    """

    def __init__(self, config: Config | None = None, store: GraphStore | None = None) -> None:
        """
        Initialize the run.

        Args:
            config: Configuration instance. Uses default if not provided.
            store: Graph store to project into. A SQLite store at the
                configured path is used when graph projection is enabled
                and none is given.
        """
        self.config = config or Config()

        self._descriptor: BuildDescriptor | None = None
        self._sources: ProjectSources | None = None
        self._archives: list[Path] = []
        self._store = store
        self._store_ready = False
        self._initialized = False

        logger.info("Analysis run created", project_root=str(self.config.project_root))

    @property
    def sources(self) -> ProjectSources | None:
        return self._sources

    @property
    def projection_enabled(self) -> bool:
        return self._store_ready

    async def initialize(self) -> None:
        """
        Read the project layout and open the graph store.

        Raises:
            ProjectSetupError: If the project root, build descriptor or
                source root is unusable.
        """
        if self._initialized:
            return

        from refgraph.project.maven import read_build_descriptor
        from refgraph.project.sources import ProjectSources

        root = self.config.project_root
        if not root.is_dir():
            raise ProjectSetupError(f"Project root is not a directory: {root}")

        self._descriptor = read_build_descriptor(root)
        self._sources = ProjectSources.from_config(self.config, self._descriptor)
        self._archives = self._descriptor.archives(
            self.config.dependencies.local_repository,
            include_test_scope=self.config.dependencies.include_test_scope,
        )

        if self.config.graph.enabled or self._store is not None:
            await self._open_store()

        self._initialized = True
        logger.info(
            "Analysis run initialized",
            files=len(self._sources.files),
            archives=len(self._archives),
            graph=self._store_ready,
        )

    async def _open_store(self) -> None:
        if self._store is None:
            from refgraph.storage.graph_store import SQLiteGraphStore

            self._store = SQLiteGraphStore(self.config.graph_db_path, wal_mode=self.config.graph.wal_mode)
        try:
            await self._store.initialize()
            self._store_ready = True
        except StoreUnavailableError as e:
            logger.error("Graph store unavailable, projection disabled", error=str(e))
            self._store_ready = False

    async def shutdown(self) -> None:
        """Release the graph store."""
        if self._store is not None and self._store_ready:
            await self._store.close()
        self._store_ready = False
        self._initialized = False
        logger.info("Analysis run shut down")

    @asynccontextmanager
    async def session(self) -> AsyncIterator["AnalysisRun"]:
        """Context manager for the run lifecycle."""
        try:
            await self.initialize()
            yield self
        finally:
            await self.shutdown()

    async def extract(self) -> ExtractionResult:
        """Run both passes off the event loop."""
        if not self._initialized:
            await self.initialize()
        assert self._sources is not None

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(extract, self._sources, config=self.config, archives=self._archives),
        )

    async def analyze(self, write_reports: bool = True) -> AnalysisSummary:
        """Extract, write both reports and project edges when a store is open."""
        result = await self.extract()
        summary = AnalysisSummary(result=result)

        if write_reports:
            from refgraph.reports.formatter import write_reports as write

            summary.method_report, summary.type_report = write(
                result.definitions,
                result.references,
                self.config.method_report_path,
                self.config.type_report_path,
            )

        if self._store_ready and self._store is not None:
            from refgraph.graph.projector import GraphProjector

            projector = GraphProjector(self._store)
            if self.config.graph.seed_declarations:
                await projector.seed(result.declarations)
            summary.projection = await projector.project(result.references)

        return summary


def configure_logging(level: str) -> None:
    """Route structlog output to stderr at the given level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[bold red]Error:[/bold red] {escape(message)}")


# CLI Implementation
@click.group()
@click.version_option(version=__version__, prog_name="refgraph")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--project",
    "-p",
    type=click.Path(path_type=Path),
    default=None,
    help="Project root directory (default: config file, then current directory)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def cli(ctx: click.Context, config: Path | None, project: Path | None, verbose: bool) -> None:
    """refgraph - cross-reference graph extraction for Java projects."""
    ctx.ensure_object(dict)

    try:
        loaded = load_config(config_path=config, project_root=project)
    except (ConfigurationError, ValidationError) as e:
        print_error(f"Invalid configuration: {e}")
        sys.exit(1)
    configure_logging("DEBUG" if verbose else loaded.log_level)
    ctx.obj["config"] = loaded


@cli.command()
@click.option("--graph/--no-graph", default=None, help="Project callable references into the graph store")
@click.option("--db", type=click.Path(path_type=Path), help="Graph database path")
@click.option("--output-dir", "-o", type=click.Path(path_type=Path), help="Directory for the reports")
@click.option("--workers", "-w", type=click.IntRange(1, 64), help="Worker threads per pass")
@click.pass_context
def analyze(
    ctx: click.Context,
    graph: bool | None,
    db: Path | None,
    output_dir: Path | None,
    workers: int | None,
) -> None:
    """Analyze the project and write both reports."""
    config: Config = ctx.obj["config"]

    graph_update: dict = {}
    if graph is not None:
        graph_update["enabled"] = graph
    if db is not None:
        graph_update["db_path"] = db
    update: dict = {"graph": config.graph.model_copy(update=graph_update)}
    if output_dir is not None:
        update["reports"] = config.reports.model_copy(update={"output_dir": output_dir})
    if workers is not None:
        update["extraction"] = config.extraction.model_copy(update={"max_workers": workers})
    config = config.model_copy(update=update)

    async def run_analyze() -> AnalysisSummary:
        run = AnalysisRun(config)
        async with run.session():
            return await run.analyze()

    try:
        summary = asyncio.run(run_analyze())
    except ProjectSetupError as e:
        print_error(str(e))
        sys.exit(1)

    result = summary.result
    table = Table(title="Analysis Summary", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Files analyzed", str(result.files_analyzed))
    table.add_row("Files failed", str(result.files_failed))
    table.add_row("Definitions", str(len(result.definitions)))
    table.add_row("Method references", str(len(result.method_references)))
    table.add_row("Type references", str(len(result.type_references)))
    if summary.projection is not None:
        table.add_row("Edges projected", str(summary.projection.projected))
        table.add_row("Edges skipped", str(summary.projection.skipped_no_enclosing))
        table.add_row("Edges failed", str(summary.projection.failed))
    console.print(table)

    if summary.method_report is not None:
        console.print(f"[bold green]Reports written:[/bold green] {summary.method_report}, {summary.type_report}")


@cli.command()
@click.pass_context
def definitions(ctx: click.Context) -> None:
    """Print the definition table."""
    config: Config = ctx.obj["config"]
    config = config.model_copy(update={"graph": config.graph.model_copy(update={"enabled": False})})

    async def run_definitions() -> ExtractionResult:
        run = AnalysisRun(config)
        async with run.session():
            return await run.extract()

    try:
        result = asyncio.run(run_definitions())
    except ProjectSetupError as e:
        print_error(str(e))
        sys.exit(1)

    table = Table(title="Definitions", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Kind", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Location", style="green")
    for definition in sorted(result.definitions, key=lambda d: (d.kind.value, d.canonical_name)):
        table.add_row(definition.kind.value, definition.canonical_name, str(definition.location or "External Library"))
    console.print(table)


@cli.command()
@click.option("--db", type=click.Path(path_type=Path), help="Graph database path")
@click.pass_context
def edges(ctx: click.Context, db: Path | None) -> None:
    """List edges stored in the graph database."""
    from refgraph.storage.graph_store import SQLiteGraphStore

    config: Config = ctx.obj["config"]
    db_path = db or config.graph_db_path
    if not db_path.exists():
        print_error(f"Graph database not found: {db_path}")
        sys.exit(1)

    async def run_edges() -> list:
        store = SQLiteGraphStore(db_path, wal_mode=config.graph.wal_mode)
        await store.initialize()
        try:
            return await store.get_edges()
        finally:
            await store.close()

    try:
        stored = asyncio.run(run_edges())
    except StoreUnavailableError as e:
        print_error(str(e))
        sys.exit(1)

    table = Table(title=f"Edges ({len(stored)})", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Source", style="cyan")
    table.add_column("Target", style="green")
    for edge in stored:
        table.add_row(edge.source_id, edge.target_id)
    console.print(table)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
