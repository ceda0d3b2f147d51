"""
Graph projection of callable references.

Each resolved callable reference becomes an edge from the declaration
that encloses the reference to the declaration it names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import structlog

from refgraph.model import DeclarationSpan, ProjectionStats, Reference, absolute_path

if TYPE_CHECKING:
    from refgraph.storage.graph_store import GraphStore

logger = structlog.get_logger(__name__)


class GraphProjector:
    """Upserts enclosing -> referenced edges into a graph store."""

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    async def seed(self, spans: Iterable[DeclarationSpan]) -> int:
        """Register callable line ranges so references can be located."""
        added = await self.store.register_declarations(spans)
        logger.info("Graph store seeded", declarations=added)
        return added

    async def project(self, references: Iterable[Reference]) -> ProjectionStats:
        """Project every callable reference. Never raises for a single edge."""
        stats = ProjectionStats()
        for reference in references:
            if not reference.kind.is_callable:
                continue
            await self._project_one(reference, stats)

        logger.info(
            "Projection complete",
            projected=stats.projected,
            skipped=stats.skipped_no_enclosing,
            failed=stats.failed,
        )
        return stats

    async def _project_one(self, reference: Reference, stats: ProjectionStats) -> None:
        file_path = absolute_path(reference.location.file_path)
        line = reference.location.line
        try:
            source_id = await self.store.locate_enclosing(file_path, line)
            if source_id is None:
                stats.skipped_no_enclosing += 1
                logger.warning(
                    "No enclosing declaration, edge skipped",
                    location=f"{file_path}:{line}",
                    target=reference.target_name,
                )
                return
            await self.store.upsert_edge(source_id, reference.target_name)
            stats.projected += 1
        except Exception as e:
            stats.failed += 1
            logger.warning(
                "Edge projection failed",
                location=f"{file_path}:{line}",
                target=reference.target_name,
                error=str(e),
            )
