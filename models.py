"""models.py — Shared data types for listenbook."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Chapter:
    id: str          # index into Book.chapters, as a string
    title: str       # Display title, e.g. "Chapter I: Jeeves Exerts the Old Cerebellum"
    content: str     # Plain text sent to TTS


@dataclass(frozen=True)
class Bookmark:
    id: str                # "auto-..." for the pause bookmark
    title: str
    chapter_index: int
    timestamp: float       # seconds into the chapter's narration
    text_snippet: str
    created_at: float      # epoch seconds


@dataclass
class Book:
    id: str
    title: str
    author: str
    chapters: list[Chapter] = field(default_factory=list)
    bookmarks: list[Bookmark] = field(default_factory=list)   # most recent first
    last_played_chapter: int = 0
    last_played_time: float = 0.0

    def chapter(self, index: int) -> Chapter:
        return self.chapters[index]

    def has_chapter(self, index: int) -> bool:
        return 0 <= index < len(self.chapters)
