"""
FastAPI Dependencies

FastAPI dependency injection for services and configuration.
Using Depends() keeps the routes free of construction logic and lets
tests swap collaborators through app.dependency_overrides.
"""
from functools import lru_cache
from typing import Optional

from langchain_openai import OpenAIEmbeddings

from litsearch.core.config import Settings
from litsearch.core.logging import get_logger
from litsearch.schemas.search import IterationConfig
from litsearch.services.search import (
    AdaptiveThresholdService,
    FieldClassifier,
    HybridScorer,
    IterationOrchestrator,
    SearchRegistry,
)
from litsearch.services.sources import default_sources

logger = get_logger(__name__)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses lru_cache to ensure settings are only loaded once.
    Can be overridden in tests using app.dependency_overrides.

    Example test override:
        def get_settings_override():
            return Settings(openai_api_key=SecretStr("test-key"))

        app.dependency_overrides[get_settings] = get_settings_override
    """
    return Settings()


def build_iteration_config(settings: Settings) -> IterationConfig:
    return IterationConfig(
        max_iterations=settings.max_iterations,
        iteration_timeout_seconds=settings.iteration_timeout_seconds,
        search_timeout_seconds=settings.search_timeout_seconds,
    )


def build_embedder(settings: Settings) -> Optional[OpenAIEmbeddings]:
    """Embeddings client, or None when no API key is configured."""
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set: semantic scores will use the neutral fallback")
        return None
    return OpenAIEmbeddings(model=settings.EMBEDDING_MODEL, api_key=settings.OPENAI_API_KEY)


@lru_cache()
def get_orchestrator() -> IterationOrchestrator:
    """
    Get the search orchestrator.

    Holds no per-search state, so one instance serves every request.
    Can be overridden in tests with fake sources and a fake embedder.
    """
    settings = get_settings()
    config = build_iteration_config(settings)
    classifier = FieldClassifier()
    return IterationOrchestrator(
        sources=default_sources(),
        classifier=classifier,
        threshold_service=AdaptiveThresholdService(floor=config.min_threshold, classifier=classifier),
        scorer=HybridScorer(embedder=build_embedder(settings)),
        config=config,
    )


@lru_cache()
def get_registry() -> SearchRegistry:
    """Get the registry of in-flight searches (cancellation tokens by ID)."""
    return SearchRegistry()
