"""
Semantic Scholar data source.

Semantic Scholar covers 200M+ papers across all disciplines, which helps
queries outside the life sciences.
- Optional API key raises the rate limit
- Offset paging is capped at 1,000 results per query

API Documentation: https://api.semanticscholar.org/api-docs/
"""
from typing import Any, Dict, List, Optional

import httpx

from litsearch.core.config import settings
from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .base import HTTPSource

logger = get_logger(__name__)

S2_SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
PAGE_SIZE = 100  # API maximum
MAX_RESULTS = 1000

S2_FIELDS = "title,abstract,year,authors,externalIds,citationCount,venue,url,publicationTypes"


class SemanticScholarSource(HTTPSource):
    """Semantic Scholar relevance search."""

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key or settings.SEMANTIC_SCHOLAR_API_KEY

    @property
    def name(self) -> str:
        return "SemanticScholar"

    @property
    def headers(self) -> Dict[str, str]:
        headers = super().headers
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        logger.info(f"Searching Semantic Scholar: {query[:50]}... (limit {limit})")

        documents: List[CandidateDocument] = []
        offset = 0
        wanted = min(limit, MAX_RESULTS)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while offset < wanted:
                page_size = min(PAGE_SIZE, wanted - offset)
                params = {
                    "query": query,
                    "offset": offset,
                    "limit": page_size,
                    "fields": S2_FIELDS,
                }
                data = await self._get_json(client, S2_SEARCH_URL, params)
                papers = data.get("data") or []

                for paper in papers:
                    document = _normalize_paper(paper)
                    if document is not None:
                        documents.append(document)

                if len(papers) < page_size or data.get("next") is None:
                    break
                offset = data["next"]

        logger.info(f"Semantic Scholar: Returned {len(documents)} documents")
        return documents[:limit]


def _normalize_paper(paper: Dict[str, Any]) -> Optional[CandidateDocument]:
    title = paper.get("title") or ""
    if not title:
        return None

    external_ids = paper.get("externalIds") or {}
    doi = external_ids.get("DOI") or ""
    pmid = str(external_ids.get("PubMed") or "")
    pub_types = paper.get("publicationTypes") or []

    return CandidateDocument(
        title=title,
        abstract=paper.get("abstract") or "",
        source="SemanticScholar",
        year=paper.get("year") or 0,
        authors=[a["name"] for a in paper.get("authors") or [] if a.get("name")],
        doi=doi,
        pmid=pmid,
        journal=paper.get("venue") or "",
        citation_count=paper.get("citationCount") or 0,
        url=paper.get("url") or "",
        is_review="Review" in pub_types,
    )
