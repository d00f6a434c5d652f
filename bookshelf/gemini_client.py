"""Reading recommendations from the Gemini generative API."""
import httpx
from typing import List, Optional, Dict, Any, Sequence
import logging

from bookshelf.errors import RecommendationFailed
from bookshelf.models import RecommendedBook
from bookshelf.parse import parse_recommendations

logger = logging.getLogger(__name__)

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "author": {"type": "STRING"},
            "reason": {"type": "STRING"},
        },
        "required": ["title", "author", "reason"],
    },
}


def build_prompt(books: Sequence, count: int = 5) -> str:
    """
    Natural-language request listing the books the reader liked.

    Args:
        books: Objects with title and author attributes
        count: Number of recommendations to ask for

    Returns:
        Prompt text
    """
    book_list = ", ".join(f"{book.title} ({book.author})" for book in books)
    return (
        f"Based on these books I have read: {book_list}. "
        f"Recommend {count} new books I might enjoy. "
        "For each book give the title, the author and a short explanation "
        "(one sentence) of why it suits me. "
        "Answer with a JSON array of objects, each with the keys "
        '"title", "author" and "reason".'
    )


class GeminiRecommendationClient:
    """Asks a Gemini model for books similar to the reader's library."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        count: int = 5,
        timeout: int = 30,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the recommendation client.

        Args:
            api_key: Gemini API key
            model: Model name
            count: Number of recommendations per request
            timeout: Request timeout in seconds
            client: Preconfigured HTTP client, mostly for tests
        """
        self.api_key = api_key
        self.model = model
        self.count = count
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def build_payload(self, books: Sequence) -> Dict[str, Any]:
        """Request body for generateContent with a schema-constrained answer."""
        return {
            "contents": [
                {"parts": [{"text": build_prompt(books, self.count)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def recommend(self, books: Sequence) -> List[RecommendedBook]:
        """
        Get recommendations for a list of books.

        Args:
            books: Objects with title and author attributes

        Returns:
            Suggestions in the order the model gave them

        Raises:
            RecommendationFailed: On any transport, status or parse failure
        """
        if not self.api_key:
            logger.error("Gemini API key not configured")
            raise RecommendationFailed()

        url = f"{self.BASE_URL}/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key}

        try:
            logger.info(f"Requesting {self.count} recommendations for {len(books)} books")
            response = await self.client.post(
                url, json=self.build_payload(books), headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Recommendation request failed: {e}")
            raise RecommendationFailed() from e

        if not response.is_success:
            logger.error(f"Recommendation request failed: {response.status_code} - {response.text}")
            raise RecommendationFailed()

        try:
            text = self._extract_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected generateContent response: {e}")
            raise RecommendationFailed() from e

        suggestions = parse_recommendations(text)
        logger.info(f"Received {len(suggestions)} recommendations")
        return suggestions

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        parts = data["candidates"][0]["content"]["parts"]
        if not isinstance(parts, list):
            raise ValueError(f"Expected a list of parts, got {type(parts).__name__}")
        texts = []
        for part in parts:
            if not isinstance(part, dict) or not isinstance(part.get("text", ""), str):
                raise ValueError(f"Unexpected content part: {part!r}")
            texts.append(part.get("text", ""))
        return "".join(texts)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
