"""Exceptions raised by the store, the controller and the remote clients."""


class BookshelfError(Exception):
    """Base error carrying a message that can be shown to the user."""

    default_message = "Something went wrong."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BookStoreError(BookshelfError):
    """Storage operation failed."""
    default_message = "The library storage is unavailable."


class StoreOpenError(BookStoreError):
    """The store could not be opened or created."""
    default_message = "Could not open the library."


class DuplicateKeyError(BookStoreError):
    """A book with the same id is already stored."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book {book_id!r} is already in the library.")


class PreconditionNotMet(BookshelfError):
    """The operation needs library content that is not there."""
    default_message = (
        "Add at least one book to 'Reading' or 'Read' to get recommendations."
    )


class SearchFailed(BookshelfError):
    """Catalog search did not complete."""
    default_message = "Search failed. Try again later."


class ServiceUnavailable(SearchFailed):
    """The catalog answered with a non-success status."""
    default_message = "The search service is temporarily unavailable. Try again later."

    def __init__(self, message: str = None, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class ConnectivityError(SearchFailed):
    """The catalog could not be reached."""
    default_message = "Search failed. Check your internet connection."


class RecommendationFailed(BookshelfError):
    """Recommendations could not be produced."""
    default_message = "Could not get recommendations. Try again later."
