"""Tests for core/logging.py - Logging configuration."""
import logging

import pytest


class TestLogging:
    """Test the logging module."""

    def test_get_logger_returns_logger(self):
        """get_logger should return a Logger instance."""
        from litsearch.core.logging import get_logger

        logger = get_logger("test_module")
        assert isinstance(logger, logging.Logger)

    def test_get_logger_uses_module_name(self):
        """Logger should use the provided module name."""
        from litsearch.core.logging import get_logger

        logger = get_logger("litsearch.services.search.orchestrator")
        assert logger.name == "litsearch.services.search.orchestrator"

    def test_setup_logging_sets_level(self):
        """setup_logging should configure the root level."""
        from litsearch.core.logging import setup_logging

        setup_logging(level="WARNING")
        assert logging.getLogger().level == logging.WARNING
        setup_logging(level="INFO")

    def test_unknown_level_falls_back_to_info(self):
        """An unrecognised level name should not break setup."""
        from litsearch.core.logging import setup_logging

        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_third_party_loggers_are_quieted(self):
        """HTTP client chatter is raised to WARNING."""
        from litsearch.core.logging import setup_logging

        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING
        setup_logging(level="INFO")


class TestSearchLogger:
    """Test the per-search logger adapter."""

    def test_messages_are_prefixed_with_search_id(self, caplog):
        """Every message carries the search ID."""
        from litsearch.core.logging import get_search_logger

        logger = get_search_logger("litsearch.test", "abc123")
        with caplog.at_level(logging.INFO, logger="litsearch.test"):
            logger.info("iteration 1 started")

        assert "[abc123] iteration 1 started" in caplog.text

    def test_adapter_wraps_module_logger(self):
        """The adapter delegates to the named module logger."""
        from litsearch.core.logging import get_search_logger

        adapter = get_search_logger("litsearch.wrapped", "xyz")
        assert adapter.logger is logging.getLogger("litsearch.wrapped")
