"""bookmarks.py — Manual and auto (pause) bookmarks, newest first."""

import time
import uuid
from dataclasses import replace

from models import Book, Bookmark

AUTO_PREFIX = "auto-"
SNIPPET_CHARS = 100
AUTO_SNIPPET = "Resume from your last position..."


def format_time(seconds: float) -> str:
    """Format seconds as M:SS."""
    total = int(max(0.0, seconds))
    m, s = divmod(total, 60)
    return f"{m}:{s:02d}"


def is_auto(bookmark: Bookmark) -> bool:
    return bookmark.id.startswith(AUTO_PREFIX)


class BookmarkManager:
    def __init__(self, clock=time.time):
        self.clock = clock

    def _new_id(self, prefix: str = "") -> str:
        return f"{prefix}{uuid.uuid4().hex}"

    def add_bookmark(self, book: Book, chapter_index: int, position: float) -> tuple[Book, Bookmark]:
        """Prepend a manual bookmark. Returns the updated book and the bookmark."""
        chapter = book.chapter(chapter_index)
        bookmark = Bookmark(
            id=self._new_id(),
            title=f"{chapter.title} @ {format_time(position)}",
            chapter_index=chapter_index,
            timestamp=position,
            text_snippet=chapter.content[:SNIPPET_CHARS],
            created_at=self.clock(),
        )
        return replace(book, bookmarks=[bookmark, *book.bookmarks]), bookmark

    def add_auto_bookmark(self, book: Book, chapter_index: int, position: float) -> tuple[Book, Bookmark]:
        """Replace the auto-bookmark (if any) with a fresh one at the front."""
        chapter = book.chapter(chapter_index)
        bookmark = Bookmark(
            id=self._new_id(AUTO_PREFIX),
            title=f"Last Position: {chapter.title}",
            chapter_index=chapter_index,
            timestamp=position,
            text_snippet=AUTO_SNIPPET,
            created_at=self.clock(),
        )
        manual = [b for b in book.bookmarks if not is_auto(b)]
        return replace(book, bookmarks=[bookmark, *manual]), bookmark

    @staticmethod
    def bookmarks_for_chapter(book: Book, chapter_index: int) -> list[Bookmark]:
        return [b for b in book.bookmarks if b.chapter_index == chapter_index]
