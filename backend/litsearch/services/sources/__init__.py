"""
Data sources for scholarly document retrieval.

Each source is implemented in its own module for maintainability.
All search methods are async for parallel execution.

To add a new source:
1. Create a new file (e.g., new_source.py) with a BaseSource subclass
2. Export it here
3. Add it to default_sources()
"""
from typing import List

from .base import BaseSource, HTTPSource
from .pubmed import PubMedSource
from .openalex import OpenAlexSource
from .europe_pmc import EuropePMCSource
from .crossref import CrossRefSource
from .semantic_scholar import SemanticScholarSource


def default_sources() -> List[BaseSource]:
    """The fixed connector set used by the production orchestrator."""
    return [
        PubMedSource(),
        OpenAlexSource(),
        EuropePMCSource(),
        CrossRefSource(),
        SemanticScholarSource(),
    ]


__all__ = [
    "BaseSource",
    "HTTPSource",
    "PubMedSource",
    "OpenAlexSource",
    "EuropePMCSource",
    "CrossRefSource",
    "SemanticScholarSource",
    "default_sources",
]
