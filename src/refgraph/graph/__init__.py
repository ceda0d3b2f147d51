"""Projection of references into the graph store."""

from refgraph.graph.projector import GraphProjector

__all__ = ["GraphProjector"]
