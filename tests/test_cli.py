"""Tests for the shelf command line."""
import json

import pytest

import shelf
from bookshelf.config import Config
from bookshelf.models import RawBook, RecommendedBook


class FakeCatalog:
    def __init__(self, **kwargs):
        pass

    async def search(self, query, author_only=False):
        return [RawBook("g1", "Dune", "Frank Herbert", "Desert", "Ace", "")]

    async def close(self):
        pass


class FakeRecommender:
    def __init__(self, **kwargs):
        pass

    async def recommend(self, books):
        return [RecommendedBook("Solaris", "Stanislaw Lem", "Ocean planet.")]

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    seed_file = tmp_path / "seed.json"
    seed_file.write_text("[]", encoding="utf-8")
    monkeypatch.setattr(Config, "STORE_BACKEND", "sqlite")
    monkeypatch.setattr(Config, "DB_PATH", str(tmp_path / "library.db"))
    monkeypatch.setattr(Config, "SEED_FILE", str(seed_file))
    monkeypatch.setattr(shelf, "GoogleBooksClient", FakeCatalog)
    monkeypatch.setattr(shelf, "GeminiRecommendationClient", FakeRecommender)


def list_json(capsys):
    capsys.readouterr()
    shelf.main(["list", "--format", "json"])
    return json.loads(capsys.readouterr().out)


def test_add_set_remove(capsys):
    shelf.main(["add", "--title", "Solaris", "--author", "Stanislaw Lem", "--category", "read"])
    books = list_json(capsys)

    assert len(books) == 1
    book_id = books[0]["id"]
    assert books[0]["category"] == "read"
    assert books[0]["physicalStatus"] is None

    shelf.main(["set", book_id, "--status", "owned", "--category", "reading"])
    books = list_json(capsys)
    assert books[0]["category"] == "reading"
    assert books[0]["physicalStatus"] == "owned"

    shelf.main(["remove", book_id])
    assert list_json(capsys) == []


def test_search_and_add(capsys):
    shelf.main(["search", "dune", "--add", "1", "--category", "want_to_read", "--status", "want_to_buy"])

    books = list_json(capsys)
    assert [(b["id"], b["physicalStatus"]) for b in books] == [("g1", "want_to_buy")]


def test_recommend_requires_read_books():
    with pytest.raises(SystemExit) as exc_info:
        shelf.main(["recommend"])

    assert "Reading" in str(exc_info.value.code)


def test_recommend_and_accept(capsys):
    shelf.main(["add", "--title", "Dune", "--author", "Frank Herbert", "--category", "read"])

    shelf.main(["recommend", "--accept", "1"])

    books = list_json(capsys)
    assert [b["id"] for b in books][-1] == "ai-Solaris"


def test_missing_command_exits():
    with pytest.raises(SystemExit):
        shelf.main([])


def test_unknown_store_backend_exits_with_error(monkeypatch):
    monkeypatch.setattr(Config, "STORE_BACKEND", "mongo")

    with pytest.raises(SystemExit) as exc_info:
        shelf.main(["list"])

    assert str(exc_info.value.code).startswith("Error:")
    assert "mongo" in str(exc_info.value.code)
