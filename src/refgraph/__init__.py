"""
refgraph - cross-reference graph extraction for Java source trees.

Ties every use of a named type and every invocation of a callable back to
its declaration, produces flat audit reports and projects callable edges
into a graph store.
"""

__version__ = "0.1.0"
__all__ = [
    "Config",
    "ExtractionResult",
    "ProjectSources",
    "extract",
]

from refgraph.config import Config
from refgraph.extraction.engine import ExtractionResult, extract
from refgraph.project.sources import ProjectSources
