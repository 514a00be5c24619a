"""Tests for core/dependencies.py - FastAPI dependency injection."""

import pytest
from pydantic import SecretStr


class TestGetSettings:
    """Test the get_settings dependency."""

    def test_get_settings_returns_settings(self):
        """get_settings should return a Settings instance."""
        from litsearch.core.dependencies import get_settings
        from litsearch.core.config import Settings

        settings = get_settings()
        assert isinstance(settings, Settings)

    def test_get_settings_is_cached(self):
        """get_settings should return the same instance (cached)."""
        from litsearch.core.dependencies import get_settings

        assert get_settings() is get_settings()


class TestBuildIterationConfig:
    """Test mapping settings onto loop tunables."""

    def test_copies_iteration_limits(self):
        """Iteration count and timeouts come from settings."""
        from litsearch.core.config import Settings
        from litsearch.core.dependencies import build_iteration_config

        settings = Settings(max_iterations=6, iteration_timeout_seconds=12.5, search_timeout_seconds=90)
        config = build_iteration_config(settings)

        assert config.max_iterations == 6
        assert config.iteration_timeout_seconds == 12.5
        assert config.search_timeout_seconds == 90

    def test_other_tunables_keep_defaults(self):
        """Fetch growth and floor are not deployment settings."""
        from litsearch.core.config import Settings
        from litsearch.core.dependencies import build_iteration_config

        config = build_iteration_config(Settings())
        assert config.base_fetch_limit == 600
        assert config.min_threshold == 30.0


class TestBuildEmbedder:
    """Test the embeddings client factory."""

    def test_builds_client_with_configured_model(self, mock_embeddings):
        """With a key, an OpenAIEmbeddings client is created."""
        from litsearch.core.config import Settings
        from litsearch.core.dependencies import build_embedder

        settings = Settings(openai_api_key=SecretStr("sk-test"), embedding_model="text-embedding-3-large")
        embedder = build_embedder(settings)

        assert embedder is mock_embeddings.return_value
        mock_embeddings.assert_called_once_with(model="text-embedding-3-large", api_key="sk-test")

    def test_no_key_means_no_embedder(self, mock_embeddings):
        """Without a key, semantic scoring falls back."""
        from litsearch.core.config import Settings
        from litsearch.core.dependencies import build_embedder

        settings = Settings(openai_api_key=None)
        assert build_embedder(settings) is None
        mock_embeddings.assert_not_called()


class TestGetOrchestrator:
    """Test the get_orchestrator dependency."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        from litsearch.core.dependencies import get_orchestrator

        get_orchestrator.cache_clear()
        yield
        get_orchestrator.cache_clear()

    def test_returns_orchestrator(self, mock_embeddings):
        """get_orchestrator should wire an IterationOrchestrator."""
        from litsearch.core.dependencies import get_orchestrator
        from litsearch.services.search import IterationOrchestrator

        orchestrator = get_orchestrator()
        assert isinstance(orchestrator, IterationOrchestrator)

    def test_is_cached(self, mock_embeddings):
        """One orchestrator serves every request."""
        from litsearch.core.dependencies import get_orchestrator

        assert get_orchestrator() is get_orchestrator()

    def test_uses_all_default_sources(self, mock_embeddings):
        """Every scholarly source is queried by default."""
        from litsearch.core.dependencies import get_orchestrator

        names = {source.name for source in get_orchestrator().sources}
        assert names == {"PubMed", "OpenAlex", "EuropePMC", "CrossRef", "SemanticScholar"}

    def test_semantic_scoring_enabled_with_key(self, mock_embeddings):
        """The test environment provides a key, so embeddings are wired."""
        from litsearch.core.dependencies import get_orchestrator

        assert get_orchestrator().scorer.has_embeddings


class TestGetRegistry:
    """Test the get_registry dependency."""

    def test_registry_is_shared(self):
        """Cancel requests must see the same registry as running searches."""
        from litsearch.core.dependencies import get_registry
        from litsearch.services.search import SearchRegistry

        registry = get_registry()
        assert isinstance(registry, SearchRegistry)
        assert registry is get_registry()
