"""
Cross-source deduplication.

The same paper routinely comes back from PubMed, OpenAlex, Europe PMC and
CrossRef. Documents are keyed by DOI, then normalized title, then a
synthetic key, and merged rather than dropped.
"""
import re
import uuid
from typing import Dict, Iterable, List

from litsearch.schemas.documents import CandidateDocument

TITLE_KEY_LENGTH = 100

_DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)
_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")


def normalize_doi(doi: str) -> str:
    return _DOI_PREFIX_RE.sub("", _SPACE_RE.sub("", doi or "").lower())


def normalize_title(title: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace, cap length."""
    text = _PUNCT_RE.sub("", (title or "").lower())
    return _SPACE_RE.sub(" ", text).strip()[:TITLE_KEY_LENGTH]


def document_key(document: CandidateDocument) -> str:
    """
    Stable dedup key for a document.

    Priority: DOI > normalized title > synthetic. A synthetic key is
    generated once and stored on the document, so re-deduplicating the
    same instance yields the same key.
    """
    if document.key:
        return document.key

    doi = normalize_doi(document.doi)
    if doi:
        key = f"doi:{doi}"
    else:
        title = normalize_title(document.title)
        key = f"title:{title}" if title else f"unknown:{uuid.uuid4().hex}"

    document.key = key
    return key


def _union(first: List[str], second: List[str]) -> List[str]:
    merged = list(first)
    for item in second:
        if item not in merged:
            merged.append(item)
    return merged


def _rank(document: CandidateDocument) -> float:
    return document.overall_score if document.overall_score is not None else float("-inf")


def merge_documents(existing: CandidateDocument, incoming: CandidateDocument) -> CandidateDocument:
    """
    Merge two documents sharing a key.

    Keeps the instance with the higher overall score (unscored loses to
    scored, ties keep the existing one) and unions list-valued metadata.
    """
    winner, other = (incoming, existing) if _rank(incoming) > _rank(existing) else (existing, incoming)
    winner.authors = _union(winner.authors, other.authors)
    winner.sources = _union(winner.sources, other.sources)
    if not winner.doi and other.doi:
        winner.doi = other.doi
    if not winner.pmid and other.pmid:
        winner.pmid = other.pmid
    winner.key = existing.key
    return winner


def merge_into(pool: Dict[str, CandidateDocument], documents: Iterable[CandidateDocument]) -> int:
    """
    Merge documents into an accumulating pool keyed by dedup key.

    Returns:
        Number of keys that were not in the pool before
    """
    new_keys = 0
    for document in documents:
        key = document_key(document)
        if key in pool:
            pool[key] = merge_documents(pool[key], document)
        else:
            pool[key] = document
            new_keys += 1
    return new_keys


def dedupe(documents: Iterable[CandidateDocument]) -> List[CandidateDocument]:
    """
    Remove duplicates, keeping first-seen order of keys.

    Idempotent: dedupe(dedupe(x)) == dedupe(x).
    """
    pool: Dict[str, CandidateDocument] = {}
    merge_into(pool, documents)
    return list(pool.values())
