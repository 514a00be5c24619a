"""
Custom Exceptions

Application-specific exception classes for better error handling
and more informative error messages.
"""
from typing import Optional


class LiteratureSearchError(Exception):
    """Base exception for all application errors."""
    pass


# === Data Source Errors ===

class SourceError(LiteratureSearchError):
    """Base exception for data source errors."""
    def __init__(self, source_name: str, message: str):
        self.source_name = source_name
        self.message = message
        super().__init__(f"{source_name}: {message}")


class SourceTimeoutError(SourceError):
    """Data source timed out during request."""
    def __init__(self, source_name: str, timeout_seconds: float):
        super().__init__(source_name, f"Request timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class SourceRateLimitError(SourceError):
    """Data source rate limit exceeded."""
    def __init__(self, source_name: str, retry_after: Optional[int] = None):
        msg = "Rate limit exceeded"
        if retry_after:
            msg += f", retry after {retry_after}s"
        super().__init__(source_name, msg)
        self.retry_after = retry_after


class SourceHTTPError(SourceError):
    """Data source returned an HTTP error status."""
    def __init__(self, source_name: str, status_code: int, detail: Optional[str] = None):
        msg = f"HTTP {status_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(source_name, msg)
        self.status_code = status_code


class SourceParseError(SourceError):
    """Failed to parse response from data source."""
    def __init__(self, source_name: str, detail: Optional[str] = None):
        msg = "Failed to parse response"
        if detail:
            msg += f": {detail}"
        super().__init__(source_name, msg)


# === Scoring Errors ===

class ScoringError(LiteratureSearchError):
    """Base exception for scoring failures."""
    pass


class EmbeddingUnavailableError(ScoringError):
    """Embedding model could not produce vectors."""
    def __init__(self, detail: Optional[str] = None):
        msg = "Embedding model unavailable"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.detail = detail


# === Search Errors ===

class SearchError(LiteratureSearchError):
    """Base exception for search lifecycle errors."""
    pass


class SearchNotFoundError(SearchError):
    """No active search with the given ID."""
    def __init__(self, search_id: str):
        self.search_id = search_id
        super().__init__(f"Search not found: {search_id}")


class InvalidSearchRequestError(SearchError):
    """Search request was rejected before starting."""
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid search request: {detail}")


# === Protocol Errors ===

class ProgressEventError(LiteratureSearchError):
    """A progress event failed shape or ordering validation."""
    def __init__(self, event_type: Optional[str], detail: str):
        self.event_type = event_type
        self.detail = detail
        super().__init__(f"Invalid {event_type or 'unknown'} event: {detail}")
