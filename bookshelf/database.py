"""Database layer for the local book library."""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional, List, Dict, Any

import psycopg2
from psycopg2 import pool

from bookshelf.errors import BookStoreError, DuplicateKeyError, StoreOpenError
from bookshelf.models import Book, BookCategory, PhysicalStatus

logger = logging.getLogger(__name__)

DEFAULT_SEED_FILE = Path(__file__).parent / "data" / "initial_books.json"

COLUMNS = (
    "id", "title", "author", "description",
    "publisher", "series", "category", "physical_status"
)


def load_seed_books(seed_file: Optional[Path] = None) -> List[Book]:
    """
    Read the initial library from a JSON array of book records.

    Args:
        seed_file: Path to the JSON file (defaults to the bundled dataset)

    Returns:
        Books in file order

    Raises:
        OSError, ValueError: If the file cannot be read or parsed
    """
    path = Path(seed_file or DEFAULT_SEED_FILE)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Seed file {path} must contain a JSON array")

    return [Book.from_dict(entry) for entry in data]


def book_to_row(book: Book) -> Dict[str, Any]:
    """Flatten a book into column values."""
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "publisher": book.publisher,
        "series": book.series,
        "category": book.category.value,
        "physical_status": book.physical_status.value if book.physical_status else None,
    }


def row_to_book(row) -> Book:
    """Rebuild a book from a row ordered like COLUMNS."""
    book_id, title, author, description, publisher, series, category, status = row
    return Book(
        id=book_id,
        title=title,
        author=author,
        description=description or "",
        publisher=publisher or "",
        series=series or "",
        category=BookCategory(category),
        physical_status=PhysicalStatus(status) if status else None
    )


class BookStore:
    """
    Durable mapping of book id to book record.

    The underlying storage is opened lazily on first use. Subclasses
    implement the storage primitives; seeding is shared.
    """

    def __init__(self, seed_file: Optional[Path] = None):
        self.seed_file = seed_file

    def initialize(self):
        """
        Open the storage and seed it when it holds no books.

        Raises:
            StoreOpenError: If the storage cannot be opened or created
        """
        if self.count() > 0:
            return

        logger.info("Library is empty, loading initial books")
        try:
            books = load_seed_books(self.seed_file)
        except (OSError, ValueError) as e:
            logger.error(f"Could not load initial books: {e}")
            return

        try:
            inserted = self._insert_many(books)
        except BookStoreError as e:
            logger.error(f"Could not store initial books: {e}")
            return

        logger.info(f"Seeded library with {inserted} books")

    def count(self) -> int:
        raise NotImplementedError

    def get_all(self) -> List[Book]:
        """Return every stored book in insertion order."""
        raise NotImplementedError

    def add(self, book: Book):
        """
        Insert a new book.

        Raises:
            DuplicateKeyError: If a book with the same id exists
        """
        raise NotImplementedError

    def update(self, book: Book):
        """
        Store the book under its id, inserting it if absent.

        Updates have put semantics, so an unknown id is never an error.
        """
        raise NotImplementedError

    def delete(self, book_id: str):
        """Remove a book. Unknown ids are ignored."""
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    def _insert_many(self, books: List[Book]) -> int:
        """Insert books in one transaction, skipping ids already stored."""
        raise NotImplementedError

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class SQLiteBookStore(BookStore):
    """Single-table SQLite file store."""

    def __init__(self, db_path, seed_file: Optional[Path] = None):
        super().__init__(seed_file)
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def _open(self) -> sqlite3.Connection:
        conn = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        id TEXT PRIMARY KEY,
                        title TEXT NOT NULL,
                        author TEXT NOT NULL,
                        description TEXT,
                        publisher TEXT,
                        series TEXT,
                        category TEXT NOT NULL,
                        physical_status TEXT
                    )
                """)
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            logger.error(f"Failed to open library at {self.db_path}: {e}")
            raise StoreOpenError() from e

        logger.info(f"Opened library at {self.db_path}")
        return conn

    def count(self) -> int:
        try:
            return self.connection.execute("SELECT COUNT(*) FROM books").fetchone()[0]
        except sqlite3.Error as e:
            raise BookStoreError() from e

    def get_all(self) -> List[Book]:
        try:
            rows = self.connection.execute(
                f"SELECT {', '.join(COLUMNS)} FROM books ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            raise BookStoreError() from e
        return [row_to_book(row) for row in rows]

    def add(self, book: Book):
        placeholders = ", ".join(f":{col}" for col in COLUMNS)
        try:
            with self.connection as conn:
                conn.execute(
                    f"INSERT INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                    book_to_row(book)
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(book.id) from e
        except sqlite3.Error as e:
            raise BookStoreError() from e

    def update(self, book: Book):
        placeholders = ", ".join(f":{col}" for col in COLUMNS)
        assignments = ", ".join(f"{col} = excluded.{col}" for col in COLUMNS[1:])
        try:
            with self.connection as conn:
                # Upsert keeps the rowid, so the book keeps its position
                conn.execute(
                    f"""
                    INSERT INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})
                    ON CONFLICT(id) DO UPDATE SET {assignments}
                    """,
                    book_to_row(book)
                )
        except sqlite3.Error as e:
            raise BookStoreError() from e

    def delete(self, book_id: str):
        try:
            with self.connection as conn:
                conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        except sqlite3.Error as e:
            raise BookStoreError() from e

    def _insert_many(self, books: List[Book]) -> int:
        placeholders = ", ".join(f":{col}" for col in COLUMNS)
        try:
            with self.connection as conn:
                cur = conn.executemany(
                    f"INSERT OR IGNORE INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                    [book_to_row(book) for book in books]
                )
                return cur.rowcount
        except sqlite3.Error as e:
            raise BookStoreError() from e

    def close(self):
        """Close the connection if it was opened."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Library connection closed")


class PostgresBookStore(BookStore):
    """PostgreSQL store with connection pooling."""

    def __init__(
        self,
        connection_string: str,
        seed_file: Optional[Path] = None,
        min_conn: int = 1,
        max_conn: int = 5
    ):
        """
        Args:
            connection_string: PostgreSQL connection string
            seed_file: Optional override of the bundled seed dataset
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        super().__init__(seed_file)
        self.connection_string = connection_string
        self.min_conn = min_conn
        self.max_conn = max_conn
        self.connection_pool = None

    def _get_pool(self):
        if self.connection_pool is None:
            connection_pool = None
            try:
                connection_pool = psycopg2.pool.SimpleConnectionPool(
                    self.min_conn,
                    self.max_conn,
                    self.connection_string
                )
                self._init_schema(connection_pool)
            except psycopg2.Error as e:
                if connection_pool is not None:
                    connection_pool.closeall()
                logger.error(f"Failed to open PostgreSQL library: {e}")
                raise StoreOpenError() from e
            self.connection_pool = connection_pool
            logger.info("Database connection pool created successfully")
        return self.connection_pool

    def _init_schema(self, connection_pool):
        """Create the books table if it doesn't exist."""
        conn = connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        id VARCHAR(255) PRIMARY KEY,
                        seq BIGSERIAL,
                        title TEXT NOT NULL,
                        author TEXT NOT NULL,
                        description TEXT,
                        publisher TEXT,
                        series TEXT,
                        category VARCHAR(20) NOT NULL,
                        physical_status VARCHAR(20)
                    )
                """)
                conn.commit()
        finally:
            connection_pool.putconn(conn)

    def _execute(self, sql: str, params=None, fetch: bool = False, many: bool = False):
        connection_pool = self._get_pool()
        conn = connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                if many:
                    cur.executemany(sql, params)
                else:
                    cur.execute(sql, params)
                result = cur.fetchall() if fetch else cur.rowcount
            conn.commit()
            return result
        except psycopg2.Error:
            conn.rollback()
            raise
        finally:
            connection_pool.putconn(conn)

    def count(self) -> int:
        try:
            return self._execute("SELECT COUNT(*) FROM books", fetch=True)[0][0]
        except psycopg2.Error as e:
            raise BookStoreError() from e

    def get_all(self) -> List[Book]:
        try:
            rows = self._execute(
                f"SELECT {', '.join(COLUMNS)} FROM books ORDER BY seq",
                fetch=True
            )
        except psycopg2.Error as e:
            raise BookStoreError() from e
        return [row_to_book(row) for row in rows]

    def add(self, book: Book):
        placeholders = ", ".join(f"%({col})s" for col in COLUMNS)
        try:
            self._execute(
                f"INSERT INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                book_to_row(book)
            )
        except psycopg2.IntegrityError as e:
            raise DuplicateKeyError(book.id) from e
        except psycopg2.Error as e:
            raise BookStoreError() from e

    def update(self, book: Book):
        placeholders = ", ".join(f"%({col})s" for col in COLUMNS)
        assignments = ", ".join(f"{col} = EXCLUDED.{col}" for col in COLUMNS[1:])
        try:
            self._execute(
                f"""
                INSERT INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})
                ON CONFLICT (id) DO UPDATE SET {assignments}
                """,
                book_to_row(book)
            )
        except psycopg2.Error as e:
            raise BookStoreError() from e

    def delete(self, book_id: str):
        try:
            self._execute("DELETE FROM books WHERE id = %s", (book_id,))
        except psycopg2.Error as e:
            raise BookStoreError() from e

    def _insert_many(self, books: List[Book]) -> int:
        placeholders = ", ".join(f"%({col})s" for col in COLUMNS)
        try:
            return self._execute(
                f"""
                INSERT INTO books ({', '.join(COLUMNS)}) VALUES ({placeholders})
                ON CONFLICT (id) DO NOTHING
                """,
                [book_to_row(book) for book in books],
                many=True
            )
        except psycopg2.Error as e:
            raise BookStoreError() from e

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            self.connection_pool = None
            logger.info("Database connection pool closed")


def open_store(config) -> BookStore:
    """Create the store selected by the configuration. Nothing is opened yet."""
    seed_file = Path(config.SEED_FILE) if config.SEED_FILE else None
    if config.STORE_BACKEND == "postgres":
        return PostgresBookStore(config.DATABASE_URL, seed_file=seed_file)
    if config.STORE_BACKEND == "sqlite":
        return SQLiteBookStore(Path(config.DB_PATH).expanduser(), seed_file=seed_file)
    raise ValueError(f"Unknown store backend: {config.STORE_BACKEND!r}")
