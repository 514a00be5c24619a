"""
Hybrid relevance scoring.

Every document gets three component scores in [0, 1] and one overall
score on a 0-100 scale:

    overall = 100 * (0.15 * lexical + 0.55 * semantic + 0.30 * topical_fit)

The metadata quality score is computed alongside for display and never
enters the overall score.
"""
import asyncio
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import numpy as np

from litsearch.core.exceptions import EmbeddingUnavailableError, ScoringError
from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

from .lexical import lexical_scores
from .quality import quality_score
from .theme_fit import topical_fit

logger = get_logger(__name__)

LEXICAL_WEIGHT = 0.15
SEMANTIC_WEIGHT = 0.55
TOPICAL_FIT_WEIGHT = 0.30

# Used when embeddings cannot be computed; does not reward or punish
NEUTRAL_SEMANTIC_SCORE = 0.5

EMBEDDING_TEXT_CHARS = 800
EMBEDDING_BATCH_SIZE = 256


class Embedder(Protocol):
    """Anything shaped like a LangChain embeddings client."""

    def embed_query(self, text: str) -> List[float]: ...

    def embed_documents(self, texts: List[str]) -> List[List[float]]: ...


@dataclass(frozen=True)
class DocumentScores:
    lexical: float
    semantic: float
    topical_fit: float
    overall: float
    semantic_fallback: bool = False


def combine(lexical: float, semantic: float, fit: float) -> float:
    """Overall score on a 0-100 scale."""
    return round(
        100 * (LEXICAL_WEIGHT * lexical + SEMANTIC_WEIGHT * semantic + TOPICAL_FIT_WEIGHT * fit),
        2,
    )


def cosine_to_unit(query_vec: np.ndarray, doc_vecs: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row against the query, mapped from [-1, 1] to [0, 1]."""
    norms = np.linalg.norm(doc_vecs, axis=1) * np.linalg.norm(query_vec)
    norms[norms == 0] = 1.0
    cosine = doc_vecs @ query_vec / norms
    return np.clip((cosine + 1.0) / 2.0, 0.0, 1.0)


def _embedding_text(document: CandidateDocument) -> str:
    return f"{document.title}. {document.abstract[:EMBEDDING_TEXT_CHARS]}"


class HybridScorer:
    """
    Scores candidate documents against a query.

    Args:
        embedder: Embeddings client (e.g. langchain_openai.OpenAIEmbeddings).
            None means semantic scoring always uses the neutral fallback.
        executor: Where blocking embedding calls run. None = loop default.
    """

    def __init__(self, embedder: Optional[Embedder] = None, executor: Optional[Executor] = None):
        self.embedder = embedder
        self.executor = executor

    @property
    def has_embeddings(self) -> bool:
        return self.embedder is not None

    def _embed_similarities(self, query: str, documents: Sequence[CandidateDocument]) -> List[float]:
        """Blocking: embed query and documents, return unit-scaled similarities."""
        if self.embedder is None:
            raise EmbeddingUnavailableError("no embeddings client configured")

        try:
            query_vec = np.asarray(self.embedder.embed_query(query), dtype=float)
            vectors: List[List[float]] = []
            texts = [_embedding_text(d) for d in documents]
            for start in range(0, len(texts), EMBEDDING_BATCH_SIZE):
                vectors.extend(self.embedder.embed_documents(texts[start:start + EMBEDDING_BATCH_SIZE]))
        except EmbeddingUnavailableError:
            raise
        except Exception as e:
            raise EmbeddingUnavailableError(str(e)) from e

        if len(vectors) != len(documents):
            raise EmbeddingUnavailableError(
                f"expected {len(documents)} embeddings, got {len(vectors)}"
            )
        return cosine_to_unit(query_vec, np.asarray(vectors, dtype=float)).tolist()

    async def _semantic_scores(self, query: str, documents: Sequence[CandidateDocument]) -> Optional[List[float]]:
        """Similarities, or None when the neutral fallback applies."""
        if not self.has_embeddings:
            return None
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self.executor, self._embed_similarities, query, documents)
        except EmbeddingUnavailableError as e:
            logger.warning(f"Semantic scoring unavailable, using neutral {NEUTRAL_SEMANTIC_SCORE}: {e}")
            return None

    def _apply(
        self,
        documents: Sequence[CandidateDocument],
        query: str,
        semantic: Optional[List[float]],
        reference: Optional[Sequence[CandidateDocument]] = None,
    ) -> List[CandidateDocument]:
        lexical = lexical_scores(list(documents), query, reference)
        for i, document in enumerate(documents):
            fit = topical_fit(document, query)
            sem = semantic[i] if semantic is not None else NEUTRAL_SEMANTIC_SCORE
            document.lexical_score = round(lexical[i], 4)
            document.semantic_score = round(sem, 4)
            document.topical_fit_score = round(fit, 4)
            document.semantic_fallback = semantic is None
            document.quality_score = quality_score(document)
            document.overall_score = combine(lexical[i], sem, fit)
        return list(documents)

    async def score_batch(
        self,
        documents: Sequence[CandidateDocument],
        query: str,
        use_semantic: bool = True,
    ) -> List[CandidateDocument]:
        """
        Score documents in place and return them.

        Lexical statistics are computed over this batch. Semantic scoring
        runs off the event loop; if it fails every document in the batch
        gets the neutral semantic score and `semantic_fallback=True`.

        Raises:
            ScoringError: If the batch cannot be scored at all
        """
        if not documents:
            return []

        semantic = await self._semantic_scores(query, documents) if use_semantic else None
        try:
            return self._apply(documents, query, semantic)
        except Exception as e:
            raise ScoringError(f"failed to score batch of {len(documents)}: {e}") from e

    def score_batch_offline(
        self,
        documents: Sequence[CandidateDocument],
        query: str,
    ) -> List[CandidateDocument]:
        """
        Score documents in place without embeddings.

        Same lexical and topical-fit values as score_batch on the same
        batch; semantic is the neutral fallback.

        Raises:
            ScoringError: If the batch cannot be scored at all
        """
        if not documents:
            return []
        try:
            return self._apply(documents, query, None)
        except Exception as e:
            raise ScoringError(f"failed to score batch of {len(documents)} offline: {e}") from e

    def score_offline(
        self,
        document: CandidateDocument,
        query: str,
        reference: Optional[Sequence[CandidateDocument]] = None,
    ) -> DocumentScores:
        """
        Score one document without embeddings.

        Lexical is normalized against `reference` (typically the batch the
        document belongs to); without one it is the share of query terms
        the document contains.
        """
        self._apply([document], query, None, reference)
        return self._scores_of(document)

    async def score(
        self,
        document: CandidateDocument,
        query: str,
        reference: Optional[Sequence[CandidateDocument]] = None,
    ) -> DocumentScores:
        """Score a single document against the query, normalized like score_offline."""
        semantic = await self._semantic_scores(query, [document])
        try:
            self._apply([document], query, semantic, reference)
        except Exception as e:
            raise ScoringError(f"failed to score '{document.title[:50]}': {e}") from e
        return self._scores_of(document)

    @staticmethod
    def _scores_of(document: CandidateDocument) -> DocumentScores:
        return DocumentScores(
            lexical=document.lexical_score,
            semantic=document.semantic_score,
            topical_fit=document.topical_fit_score,
            overall=document.overall_score,
            semantic_fallback=document.semantic_fallback,
        )
