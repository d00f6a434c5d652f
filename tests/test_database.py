"""Tests for the SQLite book store."""
import json

import pytest

from bookshelf.database import SQLiteBookStore, load_seed_books, open_store
from bookshelf.errors import DuplicateKeyError, StoreOpenError
from bookshelf.models import Book, BookCategory, PhysicalStatus


def make_book(book_id="b1", **overrides):
    fields = dict(
        id=book_id,
        title=f"Title {book_id}",
        author="Author",
        description="",
        publisher="Publisher",
        series="",
        category=BookCategory.READ,
        physical_status=None,
    )
    fields.update(overrides)
    return Book(**fields)


def write_seed(path, books):
    path.write_text(json.dumps([book.to_dict() for book in books]), encoding="utf-8")
    return path


@pytest.fixture
def seed_books():
    return [
        make_book("s1", category=BookCategory.READING, physical_status=PhysicalStatus.OWNED),
        make_book("s2", category=BookCategory.WANT_TO_READ),
    ]


@pytest.fixture
def store(tmp_path, seed_books):
    seed_file = write_seed(tmp_path / "seed.json", seed_books)
    store = SQLiteBookStore(tmp_path / "library.db", seed_file=seed_file)
    yield store
    store.close()


def test_initialize_seeds_empty_store(store, seed_books):
    """First initialization loads exactly the seed records."""
    store.initialize()

    assert store.get_all() == seed_books


def test_initialize_does_not_reseed(store, seed_books):
    """A store that holds books is left alone."""
    store.initialize()
    store.delete("s1")
    store.add(make_book("mine"))

    store.initialize()

    assert [book.id for book in store.get_all()] == ["s2", "mine"]


def test_initialize_survives_bad_seed(tmp_path):
    """Seed failures leave an empty store instead of failing."""
    bad_seed = tmp_path / "seed.json"
    bad_seed.write_text("{not json", encoding="utf-8")
    store = SQLiteBookStore(tmp_path / "library.db", seed_file=bad_seed)

    store.initialize()

    assert store.get_all() == []
    store.close()


def test_initialize_survives_wrongly_typed_seed(tmp_path):
    """A seed record with a numeric title is rejected as a whole."""
    seed_file = tmp_path / "seed.json"
    seed_file.write_text(
        json.dumps([{"id": "1", "title": 1984, "author": "Orwell", "category": "read"}]),
        encoding="utf-8"
    )
    store = SQLiteBookStore(tmp_path / "library.db", seed_file=seed_file)

    store.initialize()

    assert store.get_all() == []
    store.close()


def test_initialize_survives_missing_seed(tmp_path):
    store = SQLiteBookStore(tmp_path / "library.db", seed_file=tmp_path / "missing.json")

    store.initialize()

    assert store.count() == 0
    store.close()


def test_initialize_fails_when_store_cannot_open(tmp_path):
    """A file that is not a database is an open failure."""
    db_path = tmp_path / "library.db"
    db_path.write_bytes(b"this is not a sqlite database" * 100)
    store = SQLiteBookStore(db_path)

    with pytest.raises(StoreOpenError):
        store.initialize()


def test_add_then_get_all_round_trip(store):
    """Stored books come back field for field."""
    book = make_book(
        "r1",
        description="Long description",
        series="Series",
        category=BookCategory.WANT_TO_READ,
        physical_status=PhysicalStatus.WANT_TO_BUY,
    )

    store.add(book)

    assert store.get_all() == [book]


def test_add_duplicate_raises(store):
    """The first record with an id wins."""
    first = make_book("dup", title="First")
    store.add(first)

    with pytest.raises(DuplicateKeyError) as exc_info:
        store.add(make_book("dup", title="Second"))

    assert exc_info.value.book_id == "dup"
    assert store.get_all() == [first]


def test_update_replaces_and_keeps_position(store):
    store.add(make_book("a"))
    store.add(make_book("b"))

    changed = make_book("a", category=BookCategory.READING, physical_status=PhysicalStatus.OWNED)
    store.update(changed)

    assert store.get_all() == [changed, make_book("b")]


def test_update_inserts_unknown_id(store):
    """Updates have put semantics."""
    book = make_book("new")

    store.update(book)

    assert store.get_all() == [book]


def test_delete_is_idempotent(store):
    store.add(make_book("gone"))

    store.delete("gone")
    store.delete("gone")

    assert store.get_all() == []


def test_data_survives_reopen(tmp_path):
    """Books persist across store instances on the same file."""
    db_path = tmp_path / "library.db"
    with SQLiteBookStore(db_path) as store:
        store.add(make_book("keep"))

    with SQLiteBookStore(db_path) as reopened:
        assert [book.id for book in reopened.get_all()] == ["keep"]


def test_store_opens_lazily(tmp_path):
    """Nothing touches the disk before the first operation."""
    db_path = tmp_path / "nested" / "library.db"
    store = SQLiteBookStore(db_path)

    assert not db_path.exists()
    assert store.count() == 0
    assert db_path.exists()
    store.close()


def test_bundled_seed_file_is_valid():
    """The shipped initial library parses into unique books."""
    books = load_seed_books()

    assert books
    assert len({book.id for book in books}) == len(books)


def test_open_store_selects_backend(tmp_path):
    class FakeConfig:
        STORE_BACKEND = "sqlite"
        DB_PATH = str(tmp_path / "library.db")
        SEED_FILE = None

    store = open_store(FakeConfig())

    assert isinstance(store, SQLiteBookStore)

    FakeConfig.STORE_BACKEND = "mongo"
    with pytest.raises(ValueError):
        open_store(FakeConfig())
