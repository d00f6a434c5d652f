"""Data models for books and recommendations."""
import re
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any

UNKNOWN_AUTHOR = "Unknown author"
NO_DESCRIPTION = "No description available."
UNKNOWN_PUBLISHER = "Unknown publisher"
UNSPECIFIED_PUBLISHER = "Not specified"

MANUAL_ID_PREFIX = "manual-"
RECOMMENDATION_ID_PREFIX = "ai-"


class BookCategory(str, Enum):
    """Reading progress of a book in the library."""
    READING = "reading"
    READ = "read"
    WANT_TO_READ = "want_to_read"


class PhysicalStatus(str, Enum):
    """Ownership of a physical copy."""
    OWNED = "owned"
    WANT_TO_BUY = "want_to_buy"


@dataclass(frozen=True)
class RawBook:
    """A catalog candidate that is not in the library yet."""
    id: str
    title: str
    author: str
    description: str = ""
    publisher: str = ""
    series: str = ""

    def to_book(
        self,
        category: BookCategory,
        physical_status: Optional[PhysicalStatus] = None
    ) -> "Book":
        """Commit the candidate with the chosen category and status."""
        return Book(
            id=self.id,
            title=self.title,
            author=self.author,
            description=self.description,
            publisher=self.publisher,
            series=self.series,
            category=BookCategory(category),
            physical_status=PhysicalStatus(physical_status) if physical_status else None
        )


@dataclass(frozen=True)
class Book:
    """A book record stored in the library."""
    id: str
    title: str
    author: str
    description: str
    publisher: str
    series: str
    category: BookCategory
    physical_status: Optional[PhysicalStatus] = None

    def __post_init__(self):
        for name in ("id", "title", "author", "description", "publisher", "series"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise ValueError(f"Book field {name} must be a string, got {type(value).__name__}")
        if not self.id:
            raise ValueError("Book id must not be empty")
        if not self.title or not self.title.strip():
            raise ValueError(f"Book {self.id!r} has an empty title")
        if not self.author or not self.author.strip():
            raise ValueError(f"Book {self.id!r} has an empty author")
        if not isinstance(self.category, BookCategory):
            raise ValueError(f"Invalid category for book {self.id!r}: {self.category!r}")
        if self.physical_status is not None and not isinstance(self.physical_status, PhysicalStatus):
            raise ValueError(
                f"Invalid physical status for book {self.id!r}: {self.physical_status!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used by the seed file."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "publisher": self.publisher,
            "series": self.series,
            "category": self.category.value,
            "physicalStatus": self.physical_status.value if self.physical_status else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        """
        Build a book from its JSON shape.

        Args:
            data: Mapping with the keys produced by to_dict()

        Returns:
            Book instance

        Raises:
            ValueError: On a missing field or an unknown enum value
        """
        if not isinstance(data, dict):
            raise ValueError(f"Book record must be an object, got {type(data).__name__}")
        try:
            status = data.get("physicalStatus")
            return cls(
                id=str(data["id"]),
                title=data["title"],
                author=data["author"],
                description=data.get("description") or "",
                publisher=data.get("publisher") or "",
                series=data.get("series") or "",
                category=BookCategory(data["category"]),
                physical_status=PhysicalStatus(status) if status else None
            )
        except KeyError as e:
            raise ValueError(f"Book record is missing field {e}") from e


@dataclass(frozen=True)
class RecommendedBook:
    """A suggestion returned by the recommendation service."""
    title: str
    author: str
    reason: str


@dataclass
class Recommendation:
    """A suggestion as shown to the user, with its add-to-library flag."""
    title: str
    author: str
    reason: str
    is_added_to_want_to_read: bool = False

    @classmethod
    def from_suggestion(cls, suggestion: RecommendedBook) -> "Recommendation":
        return cls(**asdict(suggestion))


def recommendation_book_id(title: str) -> str:
    """Stable library id for a recommended title."""
    return RECOMMENDATION_ID_PREFIX + re.sub(r"\s", "", title)


def recommendation_to_book(recommendation) -> Book:
    """Build the want-to-read record for an accepted recommendation."""
    return Book(
        id=recommendation_book_id(recommendation.title),
        title=recommendation.title,
        author=recommendation.author,
        description=recommendation.reason,
        publisher=UNSPECIFIED_PUBLISHER,
        series="",
        category=BookCategory.WANT_TO_READ
    )


def manual_candidate(
    title: str,
    author: str,
    description: str = "",
    publisher: str = "",
    series: str = "",
    now: Optional[float] = None
) -> RawBook:
    """
    Build a candidate from manually entered fields.

    Args:
        title: Book title (required)
        author: Author name (required)
        description: Optional description
        publisher: Optional publisher
        series: Optional series name
        now: Timestamp in seconds used for the id (defaults to the current time)

    Returns:
        RawBook with a timestamp-based id

    Raises:
        ValueError: If title or author is blank
    """
    title = title.strip()
    author = author.strip()
    if not title or not author:
        raise ValueError("Title and author are required.")

    millis = int((time.time() if now is None else now) * 1000)
    return RawBook(
        id=f"{MANUAL_ID_PREFIX}{millis}",
        title=title,
        author=author,
        description=description.strip() or NO_DESCRIPTION,
        publisher=publisher.strip() or UNKNOWN_PUBLISHER,
        series=series.strip()
    )
