"""
Base types and interfaces for data sources.

This module defines the abstract base class all source connectors
implement, plus a small helper base for JSON-over-HTTP sources.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from litsearch.core.config import settings
from litsearch.core.exceptions import (
    SourceHTTPError,
    SourceParseError,
    SourceRateLimitError,
    SourceTimeoutError,
)
from litsearch.core.logging import get_logger
from litsearch.schemas.documents import CandidateDocument

logger = get_logger(__name__)


class BaseSource(ABC):
    """
    Abstract base class for all data sources.

    Implementing this interface ensures all sources have a consistent API.
    All search methods are async so the orchestrator can fan out in parallel.
    A source signals failure by raising a SourceError; it never swallows
    errors into an empty list, so the caller can tell "no results" apart
    from "source broken".

    To add a new source:
    1. Create a class that inherits from BaseSource
    2. Implement the name property and search method
    3. Register it in the sources __init__.py and default_sources()

    Example:
        class NewSource(BaseSource):
            @property
            def name(self) -> str:
                return "NewSource"

            async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
                ...
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the data source."""
        pass

    @abstractmethod
    async def search(self, query: str, limit: int = 50) -> List[CandidateDocument]:
        """
        Search this source for documents matching the query.

        Args:
            query: Search query string
            limit: Maximum number of documents to return

        Returns:
            List of CandidateDocument objects matching the query

        Raises:
            SourceError: on network, rate-limit or parsing failures
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class HTTPSource(BaseSource):
    """
    Base for sources that speak JSON over HTTP.

    Uses httpx.AsyncClient for non-blocking requests. A 429 is retried
    once after a short wait before giving up with SourceRateLimitError.
    """

    RATE_LIMIT_WAIT_SECONDS = 1.0

    def __init__(self, timeout: Optional[float] = None, contact_email: Optional[str] = None):
        self.timeout = timeout or settings.SOURCE_TIMEOUT_SECONDS
        self.contact_email = contact_email or settings.API_CONTACT_EMAIL

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": f"AdaptiveLiteratureSearch/1.0 (mailto:{self.contact_email})"
        }

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        """GET a JSON document, translating transport problems into SourceErrors."""
        try:
            response = await client.get(url, params=params, headers=self.headers)

            if response.status_code == 429:
                logger.warning(f"{self.name} rate limited, waiting {self.RATE_LIMIT_WAIT_SECONDS}s...")
                await asyncio.sleep(self.RATE_LIMIT_WAIT_SECONDS)
                response = await client.get(url, params=params, headers=self.headers)
                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise SourceRateLimitError(
                        self.name, int(retry_after) if retry_after and retry_after.isdigit() else None
                    )
        except httpx.TimeoutException as e:
            raise SourceTimeoutError(self.name, self.timeout) from e
        except httpx.HTTPError as e:
            raise SourceHTTPError(self.name, 0, str(e)) from e

        if response.status_code != 200:
            raise SourceHTTPError(self.name, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise SourceParseError(self.name, str(e)) from e
