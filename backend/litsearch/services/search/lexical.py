"""
BM25 lexical relevance.

Okapi BM25 over a micro-corpus built from the batch being scored, then
min-max normalized within that batch to [0, 1]. A document scored on its
own is normalized against a reference batch so it lands where it would
have in that batch.

BM25 per query term q:
    idf(q) * f(q, D) * (k1 + 1) / (f(q, D) + k1 * (1 - b + b * |D| / avgdl))
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from litsearch.schemas.documents import CandidateDocument

BM25_K1 = 1.5  # Term frequency saturation
BM25_B = 0.75  # Document length normalization
TITLE_BOOST = 2.0
MIN_TERM_LENGTH = 3

_WORD_RE = re.compile(r"\b\w+\b")

STOPWORDS = frozenset({
    "the", "and", "for", "with", "from", "into", "that", "this", "these", "those",
    "are", "was", "were", "been", "being", "have", "has", "had", "not", "but",
    "about", "between", "among", "over", "under", "what", "which", "who", "how",
    "why", "when", "does", "their", "its", "our", "your", "via", "using", "use",
})


def tokenize(text: str) -> List[str]:
    return [t for t in _WORD_RE.findall((text or "").lower()) if len(t) >= MIN_TERM_LENGTH]


def query_terms(query: str) -> List[str]:
    """Distinct content terms of a query, in order."""
    seen: List[str] = []
    for term in tokenize(query):
        if term not in STOPWORDS and term not in seen:
            seen.append(term)
    return seen


@dataclass
class BM25Corpus:
    """
    Corpus statistics for BM25 scoring.

    Built fresh from each batch of documents being scored.
    """
    total_docs: int = 0
    avg_doc_length: float = 0.0
    doc_freq: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_documents(cls, documents: Iterable[CandidateDocument]) -> "BM25Corpus":
        corpus = cls()
        total_length = 0
        for document in documents:
            terms = tokenize(document.text)
            corpus.total_docs += 1
            total_length += len(terms)
            for term in set(terms):
                corpus.doc_freq[term] = corpus.doc_freq.get(term, 0) + 1
        corpus.avg_doc_length = total_length / max(corpus.total_docs, 1)
        return corpus

    def idf(self, term: str) -> float:
        df = self.doc_freq.get(term, 0)
        return math.log(1.0 + (self.total_docs - df + 0.5) / (df + 0.5))


def bm25_score(document: CandidateDocument, terms: List[str], corpus: BM25Corpus) -> float:
    """Raw BM25 score with a title boost. Higher = more relevant."""
    if not terms or corpus.total_docs == 0:
        return 0.0

    title_terms = set(tokenize(document.title))
    all_terms = tokenize(document.text)
    doc_length = len(all_terms)

    tf_map: Dict[str, int] = {}
    for term in all_terms:
        tf_map[term] = tf_map.get(term, 0) + 1

    avgdl = max(corpus.avg_doc_length, 1.0)
    score = 0.0
    for term in terms:
        tf = tf_map.get(term, 0)
        if not tf:
            continue
        tf_norm = (tf * (BM25_K1 + 1)) / (tf + BM25_K1 * (1 - BM25_B + BM25_B * doc_length / avgdl))
        boost = TITLE_BOOST if term in title_terms else 1.0
        score += corpus.idf(term) * tf_norm * boost
    return score


def lexical_scores(
    documents: List[CandidateDocument],
    query: str,
    reference: Optional[Sequence[CandidateDocument]] = None,
) -> List[float]:
    """
    Normalized BM25 score in [0, 1] for each document.

    Corpus statistics and min-max bounds come from `documents` plus any
    `reference` documents, so a document scored on its own against a
    reference batch gets the same value it would get inside that batch.
    A lone document with no reference scores its share of query terms.
    """
    terms = query_terms(query)
    if not terms or not documents:
        return [0.0 for _ in documents]

    corpus_docs = list(documents)
    seen = {id(d) for d in corpus_docs}
    corpus_docs.extend(d for d in reference or [] if id(d) not in seen)

    if len(corpus_docs) == 1:
        present = set(tokenize(documents[0].text))
        return [sum(1 for t in terms if t in present) / len(terms)]

    corpus = BM25Corpus.from_documents(corpus_docs)
    raw_by_id = {id(d): bm25_score(d, terms, corpus) for d in corpus_docs}
    low, high = min(raw_by_id.values()), max(raw_by_id.values())
    raw = [raw_by_id[id(d)] for d in documents]
    if high <= 0:
        return [0.0 for _ in raw]
    if high == low:
        return [1.0 for _ in raw]
    return [(s - low) / (high - low) for s in raw]
