#!/usr/bin/env python3
"""Bookshelf CLI - personal reading library."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from bookshelf.catalog_client import GoogleBooksClient
from bookshelf.config import Config
from bookshelf.controller import LibraryController, LoadStatus
from bookshelf.database import open_store
from bookshelf.errors import BookshelfError
from bookshelf.gemini_client import GeminiRecommendationClient
from bookshelf.models import BookCategory, PhysicalStatus, manual_candidate
import logging

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

CATEGORY_CHOICES = [c.value for c in BookCategory]
STATUS_CHOICES = [s.value for s in PhysicalStatus]


def build_controller(config: Config) -> LibraryController:
    """Wire the store and remote clients from configuration."""
    catalog = GoogleBooksClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_results=config.SEARCH_MAX_RESULTS,
        language=config.SEARCH_LANGUAGE
    )
    recommender = GeminiRecommendationClient(
        api_key=config.GEMINI_API_KEY,
        model=config.GEMINI_MODEL,
        count=config.RECOMMENDATION_COUNT,
        timeout=max(config.DEFAULT_TIMEOUT, 30)
    )
    return LibraryController(open_store(config), catalog, recommender)


async def close_controller(controller: LibraryController):
    await controller.catalog.close()
    await controller.recommender.close()
    controller.store.close()


def load(controller: LibraryController):
    """Load the library or exit with the load error."""
    controller.load_library()
    if controller.state.load_status == LoadStatus.ERROR:
        raise SystemExit(f"Error: {controller.state.load_error.message}")


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "Category", "Copy"]
        rows = [
            [
                book.id,
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author[:30] + "..." if len(book.author) > 30 else book.author,
                book.category.value,
                book.physical_status.value if book.physical_status else ""
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2, ensure_ascii=False))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.author}")


def list_books(args, controller: LibraryController):
    """Show the library, optionally filtered."""
    load(controller)
    books = controller.state.books
    if args.category:
        books = controller.by_category(BookCategory(args.category))
    if args.status:
        status = PhysicalStatus(args.status)
        books = [b for b in books if b.physical_status == status]
    display_books(books, args.format)


async def search_books(args, controller: LibraryController):
    """Search the catalog and optionally add one of the results."""
    load(controller)
    results = await controller.search_catalog(args.query, args.author)
    search = controller.state.search

    if search.error:
        raise SystemExit(f"Error: {search.error.message}")

    if not results:
        print("No books found.")
        return

    rows = [
        [i, book.title, book.author, book.publisher]
        for i, book in enumerate(results, 1)
    ]
    print("\n" + tabulate(rows, headers=["#", "Title", "Author", "Publisher"], tablefmt="grid"))

    if args.add:
        if not 1 <= args.add <= len(results):
            raise SystemExit(f"Error: choose a result between 1 and {len(results)}")
        candidate = results[args.add - 1]
        if controller.commit_candidate(candidate, BookCategory(args.category), args.status):
            print(f"Added '{candidate.title}' to {args.category}")
        else:
            print(f"'{candidate.title}' is already in the library")


def add_book(args, controller: LibraryController):
    """Add a book typed in by hand."""
    load(controller)
    try:
        candidate = manual_candidate(
            args.title,
            args.author,
            description=args.description,
            publisher=args.publisher,
            series=args.series
        )
    except ValueError as e:
        raise SystemExit(f"Error: {e}")

    controller.commit_candidate(candidate, BookCategory(args.category), args.status)
    print(f"Added '{candidate.title}' ({candidate.id})")


def set_book(args, controller: LibraryController):
    """Change category or physical status of a book."""
    load(controller)
    if controller.find_book(args.id) is None:
        raise SystemExit(f"Error: no book with id {args.id}")

    if args.category:
        controller.set_category(args.id, BookCategory(args.category))
    if args.status:
        status = None if args.status == "none" else PhysicalStatus(args.status)
        controller.set_physical_status(args.id, status)

    display_books([controller.find_book(args.id)], "table")


def remove_book(args, controller: LibraryController):
    """Delete a book from the library."""
    load(controller)
    controller.remove_from_library(args.id)
    print(f"Removed {args.id}")


async def recommend_books(args, controller: LibraryController):
    """Show recommendations and optionally accept some of them."""
    load(controller)
    items = await controller.request_recommendations()
    error = controller.state.recommendations.error

    if error:
        raise SystemExit(error.message)

    for number in args.accept or []:
        if not 1 <= number <= len(items):
            raise SystemExit(f"Error: choose a recommendation between 1 and {len(items)}")
        controller.accept_recommendation(items[number - 1])

    rows = [
        [i, rec.title, rec.author, rec.reason, "yes" if rec.is_added_to_want_to_read else ""]
        for i, rec in enumerate(items, 1)
    ]
    print("\n" + tabulate(
        rows,
        headers=["#", "Title", "Author", "Why", "Added"],
        tablefmt="grid",
        maxcolwidths=[None, 30, 25, 50, None]
    ))


async def run_command(args, config: Config):
    try:
        controller = build_controller(config)
    except ValueError as e:
        raise SystemExit(f"Error: {e}")
    try:
        if args.command == "list":
            list_books(args, controller)
        elif args.command == "search":
            await search_books(args, controller)
        elif args.command == "add":
            add_book(args, controller)
        elif args.command == "set":
            set_book(args, controller)
        elif args.command == "remove":
            remove_book(args, controller)
        elif args.command == "recommend":
            await recommend_books(args, controller)
    finally:
        await close_controller(controller)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bookshelf - track what you read and what you own",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show books you are reading
  %(prog)s list --category reading

  # Find a book by author and add the first result to your wishlist
  %(prog)s search "Strugatsky" --author --add 1 --category want_to_read --status want_to_buy

  # Get recommendations and keep the second one
  %(prog)s recommend --accept 2
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # List command
    list_parser = subparsers.add_parser("list", help="Show the library")
    list_parser.add_argument("--category", choices=CATEGORY_CHOICES, help="Only this category")
    list_parser.add_argument("--status", choices=STATUS_CHOICES, help="Only this physical status")
    list_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search the catalog")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--author", action="store_true", help="Search by author only")
    search_parser.add_argument("--add", type=int, metavar="N", help="Add result number N to the library")
    search_parser.add_argument("--category", choices=CATEGORY_CHOICES, default="want_to_read", help="Category for --add")
    search_parser.add_argument("--status", choices=STATUS_CHOICES, help="Physical status for --add")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a book by hand")
    add_parser.add_argument("--title", required=True, help="Title")
    add_parser.add_argument("--author", required=True, help="Author")
    add_parser.add_argument("--description", default="", help="Description")
    add_parser.add_argument("--publisher", default="", help="Publisher")
    add_parser.add_argument("--series", default="", help="Series")
    add_parser.add_argument("--category", choices=CATEGORY_CHOICES, default="want_to_read", help="Category")
    add_parser.add_argument("--status", choices=STATUS_CHOICES, help="Physical status")

    # Set command
    set_parser = subparsers.add_parser("set", help="Change category or physical status")
    set_parser.add_argument("id", help="Book id")
    set_parser.add_argument("--category", choices=CATEGORY_CHOICES, help="New category")
    set_parser.add_argument("--status", choices=STATUS_CHOICES + ["none"], help="New physical status")

    # Remove command
    remove_parser = subparsers.add_parser("remove", help="Delete a book")
    remove_parser.add_argument("id", help="Book id")

    # Recommend command
    recommend_parser = subparsers.add_parser("recommend", help="Get reading recommendations")
    recommend_parser.add_argument("--accept", type=int, nargs="+", metavar="N", help="Add recommendations to want to read")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    config = Config()

    try:
        asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except BookshelfError as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
