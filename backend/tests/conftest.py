"""
Pytest fixtures and configuration for backend tests.

Provides reusable fixtures and fakes for the search pipeline: in-memory
sources, a deterministic embedder, a scorer with fixed scores, and an
API client wired to them.
"""
import asyncio
import os
import sys
from typing import Dict, Iterable, List, Optional
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from litsearch.core.exceptions import ScoringError  # noqa: E402
from litsearch.schemas.documents import CandidateDocument  # noqa: E402
from litsearch.services.search.scoring import HybridScorer  # noqa: E402
from litsearch.services.sources.base import BaseSource  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def set_test_environment():
    """Set environment variables for testing."""
    os.environ["OPENAI_API_KEY"] = "test-key-not-real"
    os.environ["REDIS_HOST"] = "localhost"
    os.environ["REDIS_PORT"] = "6379"
    yield


# === Fakes ===

def make_document(index: int, prefix: str = "doc", source: str = "FakeSource", **overrides) -> CandidateDocument:
    data = {
        "title": f"{prefix} study number {index}",
        "abstract": f"Abstract for {prefix} {index}.",
        "source": source,
        "year": 2020,
        "doi": f"10.1000/{prefix}.{index}",
    }
    data.update(overrides)
    return CandidateDocument(**data)


def make_documents(count: int, prefix: str = "doc", source: str = "FakeSource") -> List[CandidateDocument]:
    return [make_document(i, prefix=prefix, source=source) for i in range(count)]


class FakeSource(BaseSource):
    """In-memory source returning copies of its first `limit` documents."""

    def __init__(
        self,
        name: str,
        documents: Optional[Iterable[CandidateDocument]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self._name = name
        self.documents = list(documents or [])
        self.error = error
        self.delay = delay
        self.calls: List[int] = []

    @property
    def name(self) -> str:
        return self._name

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        self.calls.append(limit)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [d.model_copy(deep=True) for d in self.documents[:limit]]


class GatedSource(FakeSource):
    """Answers the first call, then hangs until cancelled."""

    def __init__(self, name: str, documents: Iterable[CandidateDocument]):
        super().__init__(name, documents)
        self.second_call_started = asyncio.Event()

    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        self.calls.append(limit)
        if len(self.calls) == 1:
            return [d.model_copy(deep=True) for d in self.documents[:limit]]
        self.second_call_started.set()
        await asyncio.sleep(30)
        return []


class FixedScorer(HybridScorer):
    """Assigns preset overall scores by title; unknown titles score 0."""

    def __init__(self, scores: Dict[str, float], fail_batch: bool = False):
        super().__init__(embedder=None)
        self.scores = scores
        self.fail_batch = fail_batch
        self.batches: List[int] = []
        self.offline_batches: List[int] = []

    def _assign(self, document: CandidateDocument) -> None:
        document.lexical_score = 0.5
        document.semantic_score = 0.5
        document.topical_fit_score = 0.5
        document.quality_score = 50.0
        document.overall_score = self.scores.get(document.title, 0.0)

    async def score_batch(self, documents, query, use_semantic=True):
        self.batches.append(len(documents))
        if self.fail_batch:
            raise ScoringError("embedding backend exploded")
        for document in documents:
            self._assign(document)
        return list(documents)

    def score_batch_offline(self, documents, query):
        self.offline_batches.append(len(documents))
        if self.fail_batch:
            raise ScoringError("offline batch exploded")
        for document in documents:
            self._assign(document)
        return list(documents)

    def score_offline(self, document, query, reference=None):
        self._assign(document)
        return self._scores_of(document)


class KeywordEmbedder:
    """Deterministic 2-d embeddings: on-topic text points along x, the rest along y."""

    def __init__(self, keyword: str):
        self.keyword = keyword.lower()
        self.calls = 0

    def _vector(self, text: str) -> List[float]:
        return [1.0, 0.0] if self.keyword in text.lower() else [0.0, 1.0]

    def embed_query(self, text: str) -> List[float]:
        self.calls += 1
        return [1.0, 0.0]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.calls += 1
        return [self._vector(t) for t in texts]


class BrokenEmbedder:
    def embed_query(self, text: str) -> List[float]:
        raise ConnectionError("embedding service unreachable")

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        raise ConnectionError("embedding service unreachable")


# === Fixtures ===

@pytest.fixture
def mock_embeddings():
    """Mock OpenAI embeddings."""
    with patch("litsearch.core.dependencies.OpenAIEmbeddings") as mock_embed:
        mock_instance = MagicMock()
        mock_instance.embed_documents.return_value = [[0.1] * 1536]
        mock_instance.embed_query.return_value = [0.1] * 1536
        mock_embed.return_value = mock_instance
        yield mock_embed


@pytest.fixture
def sample_document():
    """Sample candidate document for testing."""
    return CandidateDocument(
        title="Rapamycin extends lifespan in mice",
        abstract="This study demonstrates that rapamycin significantly extends lifespan in middle-aged mice through mTOR inhibition.",
        source="PubMed",
        journal="Nature",
        year=2023,
        pmid="12345678",
        doi="10.1234/nature.2023",
        citation_count=150,
        authors=["A. Author", "B. Author"],
        url="https://pubmed.ncbi.nlm.nih.gov/12345678",
    )


@pytest.fixture
def sample_documents():
    """Documents with graded relevance to 'rapamycin lifespan'."""
    return [
        CandidateDocument(
            title="Rapamycin and lifespan extension in mammals",
            abstract="Rapamycin treatment extends lifespan. However, the debate over dosing continues.",
            source="OpenAlex",
            doi="10.1/a",
        ),
        CandidateDocument(
            title="mTOR signalling in yeast",
            abstract="We show that rapamycin inhibits TOR in yeast cells.",
            source="CrossRef",
            doi="10.1/b",
        ),
        CandidateDocument(
            title="Urban traffic flow modelling",
            abstract="A queueing model of intersections.",
            source="CrossRef",
            doi="10.1/c",
        ),
    ]


@pytest.fixture
def fake_orchestrator():
    """Orchestrator over two in-memory sources with fixed scores."""
    from litsearch.schemas.search import IterationConfig
    from litsearch.services.search import IterationOrchestrator

    documents = make_documents(40, prefix="api")
    scores = {d.title: (70.0 if i < 10 else 20.0) for i, d in enumerate(documents)}
    return IterationOrchestrator(
        sources=[FakeSource("Alpha", documents[:20]), FakeSource("Beta", documents[20:])],
        scorer=FixedScorer(scores),
        config=IterationConfig(base_fetch_limit=20, max_fetch_limit=40),
    )


@pytest.fixture
def test_client(fake_orchestrator):
    """Create a test client with the orchestrator swapped for in-memory fakes."""
    # Import here so the environment fixture runs first
    from litsearch.main import app
    from litsearch.core.dependencies import get_orchestrator, get_registry
    from litsearch.core.rate_limit import limiter
    from litsearch.services.search import SearchRegistry

    registry = SearchRegistry()
    app.dependency_overrides[get_orchestrator] = lambda: fake_orchestrator
    app.dependency_overrides[get_registry] = lambda: registry
    limiter.enabled = False

    with TestClient(app) as client:
        client.registry = registry
        yield client

    limiter.enabled = True
    app.dependency_overrides.clear()
