"""Async client for the Google Books catalog."""
import httpx
from typing import List, Optional
import logging

from bookshelf.errors import ConnectivityError, ServiceUnavailable
from bookshelf.models import RawBook
from bookshelf.parse import parse_books_response, deduplicate_books

logger = logging.getLogger(__name__)


class GoogleBooksClient:
    """Searches Google Books and returns candidates for the library."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        max_results: int = 10,
        language: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the catalog client.

        Args:
            api_key: Optional API key (increases rate limits)
            timeout: Request timeout in seconds
            max_results: Maximum candidates per search (1-40)
            language: Optional ISO 639-1 code to restrict results
            client: Preconfigured HTTP client, mostly for tests
        """
        self.api_key = api_key
        self.timeout = timeout
        self.max_results = max_results
        self.language = language
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def build_query(query: str, author_only: bool = False) -> str:
        """Catalog query string; author searches use the inauthor: operator."""
        query = query.strip()
        return f'inauthor:"{query}"' if author_only else query

    async def search(self, query: str, author_only: bool = False) -> List[RawBook]:
        """
        Search the catalog.

        Args:
            query: Free text or author name
            author_only: Match the query against authors only

        Returns:
            Candidates with an id and a title, deduplicated by id

        Raises:
            ServiceUnavailable: The catalog answered with a non-success status
                or with a payload that cannot be read
            ConnectivityError: The request could not be completed
        """
        if not query.strip():
            return []

        params = {
            "q": self.build_query(query, author_only),
            "maxResults": min(self.max_results, 40)  # API limit
        }
        if self.language:
            params["langRestrict"] = self.language
        if self.api_key:
            params["key"] = self.api_key

        try:
            logger.info(f"Catalog request: {params['q']}")
            response = await self.client.get(self.BASE_URL, params=params)
        except httpx.TransportError as e:
            logger.error(f"Catalog request failed: {e}")
            raise ConnectivityError() from e
        except httpx.HTTPError as e:
            logger.error(f"Unreadable catalog response: {e}")
            raise ServiceUnavailable() from e

        if not response.is_success:
            logger.warning(f"Status {response.status_code} for query: {params['q']}")
            raise ServiceUnavailable(status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Catalog returned invalid JSON: {e}")
            raise ServiceUnavailable(status_code=response.status_code) from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected catalog payload: {type(data).__name__}")
            raise ServiceUnavailable(status_code=response.status_code)

        try:
            books = deduplicate_books(parse_books_response(data))
        except ValueError as e:
            logger.error(f"Unexpected catalog payload: {e}")
            raise ServiceUnavailable(status_code=response.status_code) from e

        logger.info(f"Found {len(books)} books")
        return books

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
