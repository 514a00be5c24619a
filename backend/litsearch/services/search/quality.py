"""
Metadata-derived quality score (0-100).

Shown next to each document for transparency. It is NOT part of the
overall score and is never used for filtering: sparse metadata says more
about the source than about the paper.
"""
import math
from datetime import datetime
from typing import Optional

from litsearch.schemas.documents import CandidateDocument

CITATION_WEIGHT = 0.35
RECENCY_WEIGHT = 0.15
VENUE_WEIGHT = 0.15
ABSTRACT_WEIGHT = 0.20
IDENTIFIER_WEIGHT = 0.15

# log10(citations per year + 1) reaching this counts as full impact
CITATION_VELOCITY_CEILING = 2.0
RECENCY_WINDOW_YEARS = 20
RICH_ABSTRACT_CHARS = 1000


def quality_score(document: CandidateDocument, current_year: Optional[int] = None) -> float:
    current_year = current_year or datetime.now().year

    age = max(current_year - document.year, 1) if document.year else None
    if document.citation_count and age:
        velocity = document.citation_count / age
        citation = min(math.log10(velocity + 1) / CITATION_VELOCITY_CEILING, 1.0)
    else:
        citation = 0.0

    if document.year:
        recency = max(0.0, 1.0 - (current_year - document.year) / RECENCY_WINDOW_YEARS)
    else:
        recency = 0.0

    venue = 1.0 if document.journal else 0.0
    abstract = min(len(document.abstract) / RICH_ABSTRACT_CHARS, 1.0)
    identifiers = (0.7 if document.doi else 0.0) + (0.3 if document.pmid else 0.0)

    score = (
        CITATION_WEIGHT * citation
        + RECENCY_WEIGHT * recency
        + VENUE_WEIGHT * venue
        + ABSTRACT_WEIGHT * abstract
        + IDENTIFIER_WEIGHT * identifiers
    )
    return round(score * 100, 1)
