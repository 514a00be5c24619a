"""
Candidate document schema.

The common shape every source connector normalizes into. Scoring fields
start as None and are filled in by the hybrid scorer.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class CandidateDocument(BaseModel):
    """
    One retrieved record, normalized across sources.

    Using Pydantic validates all document data automatically and provides
    consistent types. All source implementations return documents
    matching this schema.
    """
    title: str = ""
    abstract: str = ""
    source: str  # Connector that produced this instance (e.g., "OpenAlex")
    year: int = 0
    authors: List[str] = Field(default_factory=list)
    doi: str = ""
    pmid: str = ""
    journal: str = ""
    citation_count: int = 0
    url: str = ""
    is_review: bool = False

    # Every connector that returned this document (unioned on merge)
    sources: List[str] = Field(default_factory=list)

    # Dedup key, assigned once by the deduplicator and kept stable
    key: Optional[str] = None

    # Scoring fields (populated by the hybrid scorer)
    lexical_score: Optional[float] = None
    semantic_score: Optional[float] = None
    topical_fit_score: Optional[float] = None
    quality_score: Optional[float] = None
    overall_score: Optional[float] = None
    semantic_fallback: bool = False

    def model_post_init(self, __context) -> None:
        if self.source and self.source not in self.sources:
            self.sources.insert(0, self.source)

    @property
    def text(self) -> str:
        """Title and abstract joined for scoring."""
        if self.abstract:
            return f"{self.title}. {self.abstract}"
        return self.title

    @property
    def is_scored(self) -> bool:
        """True once lexical, semantic, topical-fit and overall scores all exist."""
        return (
            self.lexical_score is not None
            and self.semantic_score is not None
            and self.topical_fit_score is not None
            and self.overall_score is not None
        )
