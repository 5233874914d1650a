import json

import pytest

from bookmarks import BookmarkManager
from conftest import make_book
from session_store import STORAGE_KEY, JsonFileStore, MemoryStore, book_from_snapshot, book_to_snapshot


def test_snapshot_restores_equal_book() -> None:
    book, _ = BookmarkManager(clock=lambda: 5.0).add_bookmark(make_book(), 1, 12.5)
    book.last_played_chapter = 1
    book.last_played_time = 12.5

    snapshot = json.loads(json.dumps(book_to_snapshot(book)))

    assert snapshot["last_played_time"] == 12.5
    assert book_from_snapshot(snapshot) == book


def test_snapshot_defaults_missing_position() -> None:
    snapshot = book_to_snapshot(make_book())
    del snapshot["last_played_chapter"]
    snapshot["last_played_time"] = None
    book = book_from_snapshot(snapshot)
    assert book.last_played_chapter == 0
    assert book.last_played_time == 0.0


def test_snapshot_rejects_malformed_chapters() -> None:
    snapshot = book_to_snapshot(make_book())
    snapshot["chapters"] = [{"title": "no id or content"}]
    with pytest.raises(TypeError):
        book_from_snapshot(snapshot)


def test_json_file_store_round_trip(tmp_path) -> None:
    path = tmp_path / "nested" / "session.json"
    store = JsonFileStore(path)
    assert store.get(STORAGE_KEY) is None

    store.set(STORAGE_KEY, {"title": "Jeeves"})
    store.set("other", 1)

    assert JsonFileStore(path).get(STORAGE_KEY) == {"title": "Jeeves"}
    assert not path.with_suffix(".tmp").exists()

    store.remove(STORAGE_KEY)
    assert store.get(STORAGE_KEY) is None
    assert store.get("other") == 1


def test_json_file_store_survives_corrupt_file(tmp_path, capsys) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)

    assert store.get(STORAGE_KEY) is None
    assert "Warning" in capsys.readouterr().out

    store.set(STORAGE_KEY, {"ok": True})
    assert json.loads(path.read_text(encoding="utf-8")) == {STORAGE_KEY: {"ok": True}}


def test_memory_store_remove_missing_key() -> None:
    store = MemoryStore()
    store.remove(STORAGE_KEY)
    store.set(STORAGE_KEY, 1)
    store.remove(STORAGE_KEY)
    assert store.get(STORAGE_KEY) is None
