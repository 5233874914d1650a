"""session_store.py — Key-value persistence of the current book and listening position."""

import json
from dataclasses import asdict
from pathlib import Path

from models import Book, Bookmark, Chapter

STORAGE_KEY = "listenbook_current_book"


def book_to_snapshot(book: Book) -> dict:
    return asdict(book)


def book_from_snapshot(data: dict) -> Book:
    """Rebuild a Book from a stored snapshot. Raises KeyError/TypeError/ValueError on bad data."""
    return Book(
        id=str(data["id"]),
        title=data["title"],
        author=data["author"],
        chapters=[Chapter(**ch) for ch in data["chapters"]],
        bookmarks=[Bookmark(**bm) for bm in data.get("bookmarks", [])],
        last_played_chapter=int(data.get("last_played_chapter") or 0),
        last_played_time=float(data.get("last_played_time") or 0.0),
    )


class JsonFileStore:
    """All keys live in one JSON object on disk; each write replaces the file atomically."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"Warning: Failed to read {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str):
        return self._load().get(key)

    def set(self, key: str, value) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class MemoryStore:
    def __init__(self):
        self.data = {}

    def get(self, key: str):
        return self.data.get(key)

    def set(self, key: str, value) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
