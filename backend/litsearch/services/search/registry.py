"""
Registry of in-flight searches.

Maps search IDs to cancellation tokens so a cancel request arriving on a
separate HTTP call can reach the running loop. Entries are removed when
the search finishes; nothing else about a search is kept here.
"""
from typing import Dict, List

from litsearch.core.exceptions import SearchNotFoundError
from litsearch.core.logging import get_logger

from .channel import CancellationToken

logger = get_logger(__name__)


class SearchRegistry:
    def __init__(self):
        self._tokens: Dict[str, CancellationToken] = {}

    def register(self, search_id: str, token: CancellationToken) -> None:
        self._tokens[search_id] = token
        logger.debug(f"Registered search {search_id} ({len(self._tokens)} active)")

    def unregister(self, search_id: str) -> None:
        self._tokens.pop(search_id, None)

    def cancel(self, search_id: str) -> None:
        """
        Signal cancellation for a running search.

        Raises:
            SearchNotFoundError: If no search with this ID is running
        """
        token = self._tokens.get(search_id)
        if token is None:
            raise SearchNotFoundError(search_id)
        token.cancel()
        logger.info(f"Cancellation signalled for search {search_id}")

    def active(self) -> List[str]:
        return list(self._tokens)

    def __contains__(self, search_id: str) -> bool:
        return search_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)
