"""Graph store port and adapters."""

from refgraph.storage.graph_store import GraphStore, InMemoryGraphStore, SQLiteGraphStore

__all__ = ["GraphStore", "InMemoryGraphStore", "SQLiteGraphStore"]
