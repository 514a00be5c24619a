"""
PubMed data source.

PubMed provides access to 36M+ biomedical literature citations.
- No API key required
- Uses Entrez/NCBI API via Biopython

Note: Biopython's Entrez library is synchronous. We wrap it in an
async method that runs in a ThreadPoolExecutor to avoid blocking
the event loop while still enabling parallel fetching with other sources.
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional
from urllib.error import HTTPError, URLError

from Bio import Entrez

from litsearch.core.config import settings
from litsearch.core.exceptions import SourceHTTPError, SourceParseError, SourceRateLimitError
from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .base import BaseSource

logger = get_logger(__name__)

EFETCH_BATCH_SIZE = 200
MAX_RETMAX = 10000

# Shared executor for running sync Entrez calls
_executor = ThreadPoolExecutor(max_workers=2)


class PubMedSource(BaseSource):
    """PubMed search through Biopython's Entrez client."""

    def __init__(self, email: Optional[str] = None):
        self.email = email or settings.API_CONTACT_EMAIL

    @property
    def name(self) -> str:
        return "PubMed"

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, self._search_sync, query, limit)

    def _search_sync(self, query: str, limit: int) -> List[CandidateDocument]:
        """
        Synchronous PubMed search implementation.

        ESearch for IDs, then EFetch the records in batches.
        """
        logger.info(f"Searching PubMed: {query[:50]}... (limit {limit})")
        Entrez.email = self.email

        try:
            handle = Entrez.esearch(
                db="pubmed",
                term=query,
                retmax=min(limit, MAX_RETMAX),
                sort="relevance"
            )
            record = Entrez.read(handle)
            handle.close()

            ids = record.get("IdList", [])
            if not ids:
                logger.info("PubMed: No results found")
                return []

            documents: List[CandidateDocument] = []
            for start in range(0, len(ids), EFETCH_BATCH_SIZE):
                batch = ids[start:start + EFETCH_BATCH_SIZE]
                handle = Entrez.efetch(db="pubmed", id=",".join(batch), retmode="xml")
                records = Entrez.read(handle)
                handle.close()

                for article in records.get("PubmedArticle", []):
                    document = _normalize_article(article)
                    if document is not None:
                        documents.append(document)
        except HTTPError as e:
            if e.code == 429:
                raise SourceRateLimitError(self.name) from e
            raise SourceHTTPError(self.name, e.code, str(e.reason)) from e
        except URLError as e:
            raise SourceHTTPError(self.name, 0, str(e.reason)) from e
        except RuntimeError as e:
            # Entrez.read raises RuntimeError for NCBI-side error payloads
            raise SourceParseError(self.name, str(e)) from e

        logger.info(f"PubMed: Returned {len(documents)} documents")
        return documents


def _normalize_article(paper: Any) -> Optional[CandidateDocument]:
    try:
        citation = paper["MedlineCitation"]
        article = citation["Article"]
    except (KeyError, TypeError):
        return None

    title = str(article.get("ArticleTitle", ""))
    if not title:
        return None

    abstract_list = article.get("Abstract", {}).get("AbstractText", [])
    abstract = " ".join(str(a) for a in abstract_list)

    pub_type_names = [str(pt) for pt in article.get("PublicationTypeList", [])]
    is_review = any("review" in pt.lower() for pt in pub_type_names)

    doi = ""
    for eid in article.get("ELocationID", []):
        if getattr(eid, "attributes", {}).get("EIdType") == "doi":
            doi = str(eid)
            break

    authors = []
    for author in article.get("AuthorList", []):
        last = author.get("LastName", "")
        fore = author.get("ForeName", "")
        name = " ".join(part for part in (str(fore), str(last)) if part)
        if name:
            authors.append(name)

    journal = article.get("Journal", {})
    year_text = str(journal.get("JournalIssue", {}).get("PubDate", {}).get("Year", "0"))
    pmid = str(citation.get("PMID", ""))

    return CandidateDocument(
        title=title,
        abstract=abstract,
        source="PubMed",
        year=int(year_text) if year_text.isdigit() else 0,
        authors=authors,
        doi=doi,
        pmid=pmid,
        journal=str(journal.get("Title", "")),
        citation_count=0,  # PubMed doesn't provide citation counts
        url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/" if pmid else "",
        is_review=is_review,
    )
