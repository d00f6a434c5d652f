"""Tests for parsing functions."""
import json

import pytest

from bookshelf.errors import RecommendationFailed
from bookshelf.models import RawBook, RecommendedBook, UNKNOWN_AUTHOR, NO_DESCRIPTION, UNKNOWN_PUBLISHER
from bookshelf.parse import (
    parse_book,
    parse_books_response,
    deduplicate_books,
    parse_recommendations,
)


def test_parse_book_complete():
    """Test parsing a book with all fields present."""
    item = {
        "id": "abc123",
        "volumeInfo": {
            "title": "Roadside Picnic",
            "authors": ["Arkady Strugatsky", "Boris Strugatsky"],
            "publisher": "Chicago Review Press",
            "description": "Stalkers and the Zone",
        }
    }

    book = parse_book(item)

    assert book is not None
    assert book.id == "abc123"
    assert book.title == "Roadside Picnic"
    assert book.author == "Arkady Strugatsky, Boris Strugatsky"
    assert book.publisher == "Chicago Review Press"
    assert book.description == "Stalkers and the Zone"
    assert book.series == ""


def test_parse_book_missing_fields():
    """Test parsing a book with missing optional fields."""
    item = {
        "id": "xyz789",
        "volumeInfo": {
            "title": "Mystery Book"
        }
    }

    book = parse_book(item)

    assert book == RawBook(
        id="xyz789",
        title="Mystery Book",
        author=UNKNOWN_AUTHOR,
        description=NO_DESCRIPTION,
        publisher=UNKNOWN_PUBLISHER,
        series=""
    )


def test_parse_book_no_id():
    """Test that book without ID returns None."""
    item = {
        "volumeInfo": {
            "title": "No ID Book"
        }
    }

    assert parse_book(item) is None


def test_parse_book_no_title():
    """Test that book without a title returns None."""
    assert parse_book({"id": "1", "volumeInfo": {"authors": ["Someone"]}}) is None
    assert parse_book({"id": "2"}) is None


def test_parse_books_response():
    """Test parsing complete API response."""
    response = {
        "items": [
            {"id": "1", "volumeInfo": {"title": "Book 1"}},
            {"volumeInfo": {"title": "Dropped"}},
            {"id": "2", "volumeInfo": {"title": "Book 2"}},
        ]
    }

    books = parse_books_response(response)

    assert [book.title for book in books] == ["Book 1", "Book 2"]


def test_parse_books_response_without_items():
    """The catalog omits items when nothing matches."""
    assert parse_books_response({"kind": "books#volumes", "totalItems": 0}) == []


def test_parse_books_response_rejects_non_list_items():
    """Items that are not an array cannot be parsed."""
    with pytest.raises(ValueError):
        parse_books_response({"items": 5})


@pytest.mark.parametrize("item", [
    {"id": "1", "volumeInfo": {"title": 1984}},
    {"id": 7, "volumeInfo": {"title": "Numbered"}},
    {"id": "2", "volumeInfo": "Dune"},
    {"id": "3", "volumeInfo": {"title": "   "}},
    "not an object",
])
def test_parse_book_rejects_wrongly_typed_fields(item):
    """Ids and titles must be non-blank strings inside an object."""
    assert parse_book(item) is None


def test_parse_book_ignores_wrongly_typed_optional_fields():
    """Odd authors, descriptions and publishers fall back to placeholders."""
    item = {
        "id": "x1",
        "volumeInfo": {
            "title": "Dune",
            "authors": ["Frank Herbert", 42, None, " "],
            "description": {"text": "Desert"},
            "publisher": 3,
        }
    }

    book = parse_book(item)

    assert book.author == "Frank Herbert"
    assert book.description == NO_DESCRIPTION
    assert book.publisher == UNKNOWN_PUBLISHER

    item["volumeInfo"]["authors"] = "Frank Herbert"
    assert parse_book(item).author == UNKNOWN_AUTHOR


def test_deduplicate_books():
    """Test deduplication by book ID."""
    books = [
        RawBook("1", "Book A", "Author"),
        RawBook("2", "Book B", "Author"),
        RawBook("1", "Book A Duplicate", "Author"),
    ]

    unique = deduplicate_books(books)

    assert [book.id for book in unique] == ["1", "2"]
    assert unique[0].title == "Book A"


def test_parse_recommendations():
    """Test parsing a well-formed model answer."""
    text = json.dumps([
        {"title": "Solaris", "author": "Stanislaw Lem", "reason": "Philosophical science fiction."},
        {"title": "Hard to Be a God", "author": "Strugatsky", "reason": "Same authors."},
    ])

    suggestions = parse_recommendations("  " + text + "\n")

    assert suggestions == [
        RecommendedBook("Solaris", "Stanislaw Lem", "Philosophical science fiction."),
        RecommendedBook("Hard to Be a God", "Strugatsky", "Same authors."),
    ]


@pytest.mark.parametrize("text", [
    None,
    "",
    "   ",
    "not json",
    '{"title": "X", "author": "Y", "reason": "Z"}',
    '[{"title": "X", "author": "Y"}]',
    '[{"title": "X", "author": "Y", "reason": "Z", "year": "1961"}]',
    '[{"title": "X", "author": "Y", "reason": 3}]',
    '[{"title": " ", "author": "Y", "reason": "Z"}]',
    '["X"]',
])
def test_parse_recommendations_rejects_bad_output(text):
    """Anything but an array of title/author/reason objects fails."""
    with pytest.raises(RecommendationFailed):
        parse_recommendations(text)
