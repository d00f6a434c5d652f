"""Parse and normalize catalog and recommendation responses."""
import json
import logging
from typing import Dict, Any, List, Optional

from bookshelf.errors import RecommendationFailed
from bookshelf.models import (
    RawBook,
    RecommendedBook,
    UNKNOWN_AUTHOR,
    NO_DESCRIPTION,
    UNKNOWN_PUBLISHER,
)

logger = logging.getLogger(__name__)

RECOMMENDATION_KEYS = {"title", "author", "reason"}


def parse_book(item: Dict[str, Any]) -> Optional[RawBook]:
    """
    Parse a single book item from Google Books API.

    Args:
        item: Single item from Google Books API response

    Returns:
        RawBook or None if the item has no id or no title
    """
    if not isinstance(item, dict):
        return None

    book_id = item.get("id")
    volume_info = item.get("volumeInfo")
    if not isinstance(volume_info, dict):
        return None
    title = volume_info.get("title")
    if not isinstance(book_id, str) or not isinstance(title, str):
        return None
    if not book_id or not title.strip():
        return None

    authors = volume_info.get("authors")
    if not isinstance(authors, list):
        authors = []
    authors = [author for author in authors if isinstance(author, str) and author.strip()]

    return RawBook(
        id=book_id,
        title=title,
        author=", ".join(authors) or UNKNOWN_AUTHOR,
        description=_text(volume_info.get("description"), NO_DESCRIPTION),
        publisher=_text(volume_info.get("publisher"), UNKNOWN_PUBLISHER),
        # Google Books has no reliable series field
        series=""
    )


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def parse_books_response(response_json: Dict[str, Any]) -> List[RawBook]:
    """
    Parse full Google Books API response.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of RawBook candidates (empty if no items found)

    Raises:
        ValueError: If items is present but not a list
    """
    items = response_json.get("items") or []
    if not isinstance(items, list):
        raise ValueError(f"Expected a list of items, got {type(items).__name__}")
    books = []

    for item in items:
        book = parse_book(item)
        if book:
            books.append(book)
        else:
            logger.debug("Skipping catalog item without id or title")

    return books


def deduplicate_books(books: List[RawBook]) -> List[RawBook]:
    """
    Remove duplicate books by ID.

    Args:
        books: List of candidates

    Returns:
        Deduplicated list of books, first occurrence wins
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)

    return unique_books


def parse_recommendations(text: Optional[str]) -> List[RecommendedBook]:
    """
    Parse the JSON array produced by the recommendation model.

    Every element must be an object with exactly the keys title, author
    and reason, all strings.

    Args:
        text: Raw model output

    Returns:
        List of suggestions in model order

    Raises:
        RecommendationFailed: On empty output, invalid JSON or a shape mismatch
    """
    if not text or not text.strip():
        raise RecommendationFailed()

    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as e:
        logger.error(f"Recommendation output is not valid JSON: {e}")
        raise RecommendationFailed() from e

    if not isinstance(data, list):
        logger.error(f"Expected a JSON array, got {type(data).__name__}")
        raise RecommendationFailed()

    suggestions = []
    for entry in data:
        if not isinstance(entry, dict) or set(entry) != RECOMMENDATION_KEYS:
            logger.error(f"Unexpected recommendation entry: {entry!r}")
            raise RecommendationFailed()
        if not all(isinstance(entry[key], str) for key in RECOMMENDATION_KEYS):
            logger.error(f"Non-string field in recommendation entry: {entry!r}")
            raise RecommendationFailed()
        if not entry["title"].strip() or not entry["author"].strip():
            logger.error(f"Recommendation without title or author: {entry!r}")
            raise RecommendationFailed()
        suggestions.append(
            RecommendedBook(
                title=entry["title"],
                author=entry["author"],
                reason=entry["reason"]
            )
        )

    return suggestions
