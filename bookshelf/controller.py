"""Application state for the library, search and recommendation screens."""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from bookshelf.errors import (
    BookshelfError,
    BookStoreError,
    DuplicateKeyError,
    PreconditionNotMet,
    RecommendationFailed,
    SearchFailed,
)
from bookshelf.models import (
    Book,
    BookCategory,
    PhysicalStatus,
    RawBook,
    Recommendation,
    recommendation_book_id,
    recommendation_to_book,
)

logger = logging.getLogger(__name__)

ANALYZED_CATEGORIES = (BookCategory.READ, BookCategory.READING)


class LoadStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class View(Enum):
    LIBRARY = "library"
    SEARCH = "search"
    RECOMMENDATIONS = "recommendations"
    WISHLIST = "wishlist"
    COLLECTION = "collection"


@dataclass
class SearchState:
    query: str = ""
    author_only: bool = False
    results: List[RawBook] = field(default_factory=list)
    status: LoadStatus = LoadStatus.IDLE
    error: Optional[SearchFailed] = None


@dataclass
class RecommendationState:
    items: List[Recommendation] = field(default_factory=list)
    status: LoadStatus = LoadStatus.IDLE
    error: Optional[BookshelfError] = None


@dataclass
class LibraryState:
    """Everything the presentation layer renders."""
    books: List[Book] = field(default_factory=list)
    load_status: LoadStatus = LoadStatus.IDLE
    load_error: Optional[BookStoreError] = None
    view: View = View.LIBRARY
    active_tab: BookCategory = BookCategory.READING
    search: SearchState = field(default_factory=SearchState)
    recommendations: RecommendationState = field(default_factory=RecommendationState)
    # Candidate waiting for a category in the add dialog
    pending_candidate: Optional[RawBook] = None
    # Book open in the details dialog
    details_book: Optional[Book] = None


class LibraryController:
    """
    Mediates between the book store, the remote clients and the UI state.

    Library mutations go to the store first and are mirrored in memory
    only when the store accepted them. Search and recommendation requests
    are numbered; a response that arrives after a newer request of the
    same kind was issued is discarded.
    """

    def __init__(self, store, catalog, recommender, state: Optional[LibraryState] = None):
        """
        Args:
            store: BookStore implementation
            catalog: Object with an async search(query, author_only) method
            recommender: Object with an async recommend(books) method
            state: Initial state (a fresh one by default)
        """
        self.store = store
        self.catalog = catalog
        self.recommender = recommender
        self.state = state or LibraryState()
        self._search_generation = 0
        self._recommendation_generation = 0

    # Library

    def load_library(self) -> List[Book]:
        """Open the store, seed it if empty and load all books."""
        self.state.load_status = LoadStatus.LOADING
        self.state.load_error = None
        try:
            self.store.initialize()
            books = self.store.get_all()
        except BookStoreError as e:
            logger.error(f"Failed to load library: {e}")
            self.state.books = []
            self.state.load_error = e
            self.state.load_status = LoadStatus.ERROR
            return []

        self.state.books = list(books)
        self.state.load_status = LoadStatus.SUCCESS
        logger.info(f"Loaded {len(books)} books")
        return self.state.books

    def find_book(self, book_id: str) -> Optional[Book]:
        for book in self.state.books:
            if book.id == book_id:
                return book
        return None

    def add_to_library(self, book: Book) -> bool:
        """
        Persist a new book and show it in the library.

        Returns:
            False if a book with the same id is already there
        """
        self.state.pending_candidate = None
        if self.find_book(book.id) is not None:
            logger.info(f"Book {book.id} is already in the library")
            return False

        try:
            self.store.add(book)
        except DuplicateKeyError:
            logger.warning(f"Book {book.id} already stored but missing from memory")
            return False

        self.state.books.append(book)
        return True

    def commit_candidate(
        self,
        candidate: RawBook,
        category: BookCategory,
        physical_status: Optional[PhysicalStatus] = None
    ) -> bool:
        """Add a search result or manual entry with the chosen classification."""
        return self.add_to_library(candidate.to_book(category, physical_status))

    def update_in_library(self, book: Book):
        """Persist a changed book and replace it in memory."""
        self.store.update(book)

        for index, existing in enumerate(self.state.books):
            if existing.id == book.id:
                self.state.books[index] = book
                break
        else:
            self.state.books.append(book)

        if self.state.details_book is not None and self.state.details_book.id == book.id:
            self.state.details_book = book

    def set_category(self, book_id: str, category: BookCategory) -> Optional[Book]:
        book = self.find_book(book_id)
        if book is None:
            return None
        updated = replace(book, category=BookCategory(category))
        self.update_in_library(updated)
        return updated

    def set_physical_status(
        self,
        book_id: str,
        physical_status: Optional[PhysicalStatus]
    ) -> Optional[Book]:
        book = self.find_book(book_id)
        if book is None:
            return None
        status = PhysicalStatus(physical_status) if physical_status else None
        updated = replace(book, physical_status=status)
        self.update_in_library(updated)
        return updated

    def remove_from_library(self, book_id: str):
        """Delete a book. Unknown ids are ignored."""
        self.store.delete(book_id)
        self.state.books = [book for book in self.state.books if book.id != book_id]
        if self.state.details_book is not None and self.state.details_book.id == book_id:
            self.state.details_book = None

    # Derived views

    def by_category(self, category: BookCategory) -> List[Book]:
        return [book for book in self.state.books if book.category == category]

    def by_physical_status(self, status: PhysicalStatus) -> List[Book]:
        return [book for book in self.state.books if book.physical_status == status]

    def visible_books(self) -> List[Book]:
        """Books listed on the current screen."""
        if self.state.view == View.WISHLIST:
            return self.by_physical_status(PhysicalStatus.WANT_TO_BUY)
        if self.state.view == View.COLLECTION:
            return self.by_physical_status(PhysicalStatus.OWNED)
        return self.by_category(self.state.active_tab)

    # Navigation and dialogs

    def set_view(self, view: View):
        self.state.view = view

    def set_active_tab(self, category: BookCategory):
        self.state.active_tab = BookCategory(category)

    def open_candidate(self, candidate: RawBook):
        self.state.pending_candidate = candidate

    def close_candidate(self):
        self.state.pending_candidate = None

    def show_details(self, book: Book):
        self.state.details_book = book

    def close_details(self):
        self.state.details_book = None

    # Search

    async def search_catalog(self, query: str, author_only: bool = False) -> List[RawBook]:
        """
        Search the catalog and store the results.

        A blank query returns no results and leaves the search state alone.
        Failures are recorded in the search state, never raised.
        """
        if not query.strip():
            return []

        self._search_generation += 1
        generation = self._search_generation
        search = self.state.search
        search.query = query
        search.author_only = author_only
        search.results = []
        search.error = None
        search.status = LoadStatus.LOADING

        try:
            results = await self.catalog.search(query, author_only)
        except SearchFailed as e:
            if generation != self._search_generation:
                logger.debug(f"Dropping failure of superseded search {query!r}")
                return []
            logger.error(f"Search failed: {e}")
            search.results = []
            search.error = e
            search.status = LoadStatus.ERROR
            return []

        if generation != self._search_generation:
            logger.debug(f"Dropping results of superseded search {query!r}")
            return []

        search.results = list(results)
        search.status = LoadStatus.SUCCESS
        return search.results

    def reset_search(self):
        self._search_generation += 1
        self.state.search = SearchState()

    # Recommendations

    async def request_recommendations(self) -> List[Recommendation]:
        """
        Ask for recommendations based on READ and READING books.

        Without such books a PreconditionNotMet is recorded and no request
        is made. Failures are recorded in the recommendation state.
        """
        self._recommendation_generation += 1
        generation = self._recommendation_generation
        recommendations = self.state.recommendations
        recommendations.items = []
        recommendations.error = None

        books = [book for book in self.state.books if book.category in ANALYZED_CATEGORIES]
        if not books:
            recommendations.error = PreconditionNotMet()
            recommendations.status = LoadStatus.IDLE
            return []

        recommendations.status = LoadStatus.LOADING
        try:
            suggestions = await self.recommender.recommend(books)
        except RecommendationFailed as e:
            if generation != self._recommendation_generation:
                logger.debug("Dropping failure of superseded recommendation request")
                return []
            logger.error(f"Recommendations failed: {e}")
            recommendations.items = []
            recommendations.error = e
            recommendations.status = LoadStatus.ERROR
            return []

        if generation != self._recommendation_generation:
            logger.debug("Dropping results of superseded recommendation request")
            return []

        recommendations.items = [Recommendation.from_suggestion(s) for s in suggestions]
        recommendations.status = LoadStatus.SUCCESS
        return recommendations.items

    def accept_recommendation(self, recommendation) -> str:
        """
        Add a recommendation to WANT_TO_READ and flag it as added.

        Accepting the same title again does not touch the library.

        Returns:
            Id of the library book for this title
        """
        book_id = recommendation_book_id(recommendation.title)
        if self.find_book(book_id) is None:
            self.add_to_library(recommendation_to_book(recommendation))

        for item in self.state.recommendations.items:
            if item.title == recommendation.title:
                item.is_added_to_want_to_read = True
        return book_id
