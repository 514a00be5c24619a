"""
Logging Configuration

Centralized logging setup for the search service.
Provides consistent formatting and log levels across all modules.
"""
import logging
import sys

from litsearch.core.config import settings


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("slowapi").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ of the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class SearchLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the search ID it belongs to."""

    def process(self, msg, kwargs):
        return f"[{self.extra['search_id']}] {msg}", kwargs


def get_search_logger(name: str, search_id: str) -> SearchLoggerAdapter:
    """Logger for code that handles exactly one search."""
    return SearchLoggerAdapter(logging.getLogger(name), {"search_id": search_id})


# Initialize logging when module is imported
setup_logging(settings.LOG_LEVEL)
