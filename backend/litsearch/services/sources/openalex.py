"""
OpenAlex data source.

OpenAlex provides access to 250M+ scholarly works across all fields.
- 100,000 calls per day
- 10 requests per second
- No API key required

Uses httpx.AsyncClient for non-blocking HTTP requests,
enabling parallel fetching with other data sources.
"""
from typing import Any, Dict, List, Optional

import httpx

from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .base import HTTPSource

logger = get_logger(__name__)

OPENALEX_URL = "https://api.openalex.org/works"
PAGE_SIZE = 200  # API maximum per page
MAX_PAGES = 50  # OpenAlex stops basic paging at 10,000 results


class OpenAlexSource(HTTPSource):
    """OpenAlex works search with page-based pagination."""

    @property
    def name(self) -> str:
        return "OpenAlex"

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        logger.info(f"Searching OpenAlex: {query[:50]}... (limit {limit})")

        documents: List[CandidateDocument] = []
        page = 1

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while len(documents) < limit and page <= MAX_PAGES:
                per_page = min(PAGE_SIZE, limit - len(documents))
                params = {
                    "search": query,
                    "per_page": per_page,
                    "page": page,
                    "filter": "type:article",
                    "select": "id,title,display_name,abstract_inverted_index,publication_year,cited_by_count,primary_location,authorships,ids,type",
                }
                data = await self._get_json(client, OPENALEX_URL, params)
                results = data.get("results") or []

                for work in results:
                    document = _normalize_work(work)
                    if document is not None:
                        documents.append(document)

                if len(results) < per_page:
                    break
                page += 1

        logger.info(f"OpenAlex: Returned {len(documents)} documents")
        return documents[:limit]


def _normalize_work(work: Dict[str, Any]) -> Optional[CandidateDocument]:
    title = work.get("title") or work.get("display_name") or ""
    if not title:
        return None

    primary_location = work.get("primary_location") or {}
    source = primary_location.get("source") or {}

    ids = work.get("ids") or {}
    pmid = (ids.get("pmid") or "").replace("https://pubmed.ncbi.nlm.nih.gov/", "").strip("/")
    doi = (ids.get("doi") or "").replace("https://doi.org/", "")

    authors = []
    for authorship in work.get("authorships") or []:
        author = authorship.get("author") or {}
        if author.get("display_name"):
            authors.append(author["display_name"])

    return CandidateDocument(
        title=title,
        abstract=_reconstruct_abstract(work.get("abstract_inverted_index")),
        source="OpenAlex",
        year=work.get("publication_year") or 0,
        authors=authors,
        doi=doi,
        pmid=pmid,
        journal=source.get("display_name") or "",
        citation_count=work.get("cited_by_count") or 0,
        url=f"https://doi.org/{doi}" if doi else work.get("id", ""),
        is_review=work.get("type") == "review",
    )


def _reconstruct_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """Reconstruct abstract text from OpenAlex inverted index format."""
    if not inverted_index:
        return ""

    words_with_positions = []
    for word, positions in inverted_index.items():
        for pos in positions or []:
            words_with_positions.append((pos, word))

    words_with_positions.sort(key=lambda x: x[0])
    return " ".join(word for _, word in words_with_positions)
