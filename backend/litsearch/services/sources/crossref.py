"""
CrossRef data source.

CrossRef provides DOI metadata for 140M+ works.
- No API key required (use polite pool with email)
- Great for citation data, weak on abstracts

Uses httpx.AsyncClient for non-blocking HTTP requests.
"""
import re
from typing import Any, Dict, List, Optional

import httpx

from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .base import HTTPSource

logger = get_logger(__name__)

CROSSREF_URL = "https://api.crossref.org/works"
ROWS_PER_PAGE = 1000  # API maximum
MAX_OFFSET = 10000

_TAG_RE = re.compile(r"<[^>]+>")


class CrossRefSource(HTTPSource):
    """CrossRef works search with offset pagination."""

    @property
    def name(self) -> str:
        return "CrossRef"

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        logger.info(f"Searching CrossRef: {query[:50]}... (limit {limit})")

        documents: List[CandidateDocument] = []
        offset = 0

        # CrossRef can be slow, allow extra time
        async with httpx.AsyncClient(timeout=self.timeout * 1.5) as client:
            while len(documents) < limit and offset < MAX_OFFSET:
                rows = min(ROWS_PER_PAGE, limit - len(documents))
                params = {
                    "query": query,
                    "rows": rows,
                    "offset": offset,
                    "filter": "type:journal-article",
                    "select": "DOI,title,abstract,author,container-title,published,is-referenced-by-count,URL,type",
                }
                data = await self._get_json(client, CROSSREF_URL, params)
                items = (data.get("message") or {}).get("items") or []

                for item in items:
                    document = _normalize_item(item)
                    if document is not None:
                        documents.append(document)

                if len(items) < rows:
                    break
                offset += rows

        logger.info(f"CrossRef: Returned {len(documents)} documents")
        return documents[:limit]


def _normalize_item(item: Dict[str, Any]) -> Optional[CandidateDocument]:
    titles = item.get("title") or []
    title = titles[0] if titles else ""
    if not title:
        return None

    # CrossRef abstracts may contain JATS/HTML tags
    abstract = item.get("abstract") or ""
    if abstract:
        abstract = _TAG_RE.sub("", abstract).strip()

    container = item.get("container-title") or []
    published = (item.get("published") or {}).get("date-parts") or [[0]]
    year = published[0][0] if published and published[0] else 0

    authors = []
    for author in item.get("author") or []:
        name = " ".join(part for part in (author.get("given"), author.get("family")) if part)
        if name:
            authors.append(name)

    doi = item.get("DOI") or ""
    return CandidateDocument(
        title=title,
        abstract=abstract,
        source="CrossRef",
        year=year or 0,
        authors=authors,
        doi=doi,
        journal=container[0] if container else "",
        citation_count=item.get("is-referenced-by-count") or 0,
        url=item.get("URL") or (f"https://doi.org/{doi}" if doi else ""),
    )
