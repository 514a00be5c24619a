"""
Europe PMC data source.

Europe PMC provides access to 43M+ life science articles.
- No API key required
- Includes preprints from bioRxiv/medRxiv
- Focus on biomedical and health research

Uses httpx.AsyncClient with cursor-based paging.
"""
from typing import Any, Dict, List, Optional

import httpx

from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .base import HTTPSource

logger = get_logger(__name__)

EUROPE_PMC_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest/search"
PAGE_SIZE = 1000  # API maximum


class EuropePMCSource(HTTPSource):
    """Europe PMC REST search."""

    @property
    def name(self) -> str:
        return "EuropePMC"

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        logger.info(f"Searching Europe PMC: {query[:50]}... (limit {limit})")

        documents: List[CandidateDocument] = []
        cursor = "*"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while len(documents) < limit:
                page_size = min(PAGE_SIZE, limit - len(documents))
                params = {
                    "query": query,
                    "format": "json",
                    "pageSize": page_size,
                    "resultType": "core",
                    "cursorMark": cursor,
                }
                data = await self._get_json(client, EUROPE_PMC_URL, params)
                results = (data.get("resultList") or {}).get("result") or []

                for result in results:
                    document = _normalize_result(result)
                    if document is not None:
                        documents.append(document)

                next_cursor = data.get("nextCursorMark")
                if len(results) < page_size or not next_cursor or next_cursor == cursor:
                    break
                cursor = next_cursor

        logger.info(f"Europe PMC: Returned {len(documents)} documents")
        return documents[:limit]


def _normalize_result(result: Dict[str, Any]) -> Optional[CandidateDocument]:
    title = result.get("title") or ""
    if not title:
        return None

    pmid = result.get("pmid") or ""
    doi = result.get("doi") or ""

    authors = []
    author_list = (result.get("authorList") or {}).get("author") or []
    for author in author_list:
        if author.get("fullName"):
            authors.append(author["fullName"])
    if not authors and result.get("authorString"):
        authors = [a.strip() for a in result["authorString"].rstrip(".").split(",") if a.strip()]

    pub_types = (result.get("pubTypeList") or {}).get("pubType") or []

    return CandidateDocument(
        title=title,
        abstract=result.get("abstractText") or "",
        source="EuropePMC",
        year=int(result.get("pubYear") or 0),
        authors=authors,
        doi=doi,
        pmid=pmid,
        journal=result.get("journalTitle") or ((result.get("journalInfo") or {}).get("journal") or {}).get("title", ""),
        citation_count=int(result.get("citedByCount") or 0),
        url=f"https://europepmc.org/article/MED/{pmid}" if pmid else (f"https://doi.org/{doi}" if doi else ""),
        is_review=any("review" in str(t).lower() for t in pub_types),
    )
