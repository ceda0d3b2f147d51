"""Definition collection and reference extraction."""

from refgraph.extraction.canonical import canonical_identifier, strip_qualification
from refgraph.extraction.definitions import DefinitionTable, collect_definitions
from refgraph.extraction.engine import ExtractionResult, extract
from refgraph.extraction.references import ConstructKind, ReferenceExtractor

__all__ = [
    "ConstructKind",
    "DefinitionTable",
    "ExtractionResult",
    "ReferenceExtractor",
    "canonical_identifier",
    "collect_definitions",
    "extract",
    "strip_qualification",
]
