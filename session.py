"""session.py — The listening session: book, chapter, position, bookmarks, playback.

Everything here runs on one asyncio event loop. The only awaits are the
structuring and narration requests; all state they produce is applied in one
step after they resolve.
"""

import asyncio
import time
import uuid
from dataclasses import replace
from typing import Callable

from audio_output import PygameOutput
from bookmarks import BookmarkManager, format_time
from errors import NarrationError, PlaybackStartError, StructuringError
from models import Book, Bookmark, Chapter
from narration import NarrationLoader
from playback import TICK_INTERVAL, PlaybackEngine, PlaybackState, ProgressTicker, clamp
from session_store import STORAGE_KEY, MemoryStore, book_from_snapshot, book_to_snapshot
from status import StatusChannel

CLEAR_PROMPT = "Permanently remove this book from your library?"


class ListeningSession:
    def __init__(
        self,
        synthesize: Callable[[str], bytes],
        structure: Callable[[bytes], object] | None = None,
        store=None,
        status: StatusChannel | None = None,
        output_factory: Callable[[], object] = PygameOutput,
        clock: Callable[[], float] = time.monotonic,
        auto_bookmark: bool = True,
        tick_interval: float = TICK_INTERVAL,
        bookmarks: BookmarkManager | None = None,
    ):
        self.structure = structure
        self.store = store if store is not None else MemoryStore()
        self.status = status if status is not None else StatusChannel()
        self.output_factory = output_factory
        self.clock = clock
        self.auto_bookmark = auto_bookmark
        self.tick_interval = tick_interval
        self.bookmarks = bookmarks or BookmarkManager()

        self.book: Book | None = None
        self.current_chapter_index = 0
        self.position = 0.0          # displayed position, seconds
        self.is_processing = False
        self.last_error: Exception | None = None

        self.state = PlaybackState()
        self.engine: PlaybackEngine | None = None
        self.ticker: ProgressTicker | None = None
        self.loader = NarrationLoader(
            synthesize,
            self.state,
            chapter_text=lambda index: self.book.chapter(index).content,
            current_chapter=lambda: self.current_chapter_index,
            on_loaded=self.status.clear,
        )
        self._persisted = None

    # -- read-only views -------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def is_loading(self) -> bool:
        return self.loader.is_loading

    @property
    def paused_offset(self) -> float:
        return self.state.paused_offset

    @property
    def duration(self) -> float:
        return self.state.duration

    @property
    def current_chapter(self) -> Chapter | None:
        if self.book is None or not self.book.has_chapter(self.current_chapter_index):
            return None
        return self.book.chapter(self.current_chapter_index)

    def current_position(self) -> float:
        if self.engine is not None and self.state.is_playing:
            return self.engine.position()
        return self.state.paused_offset

    # -- persistence -----------------------------------------------------

    def _persist(self, throttled: bool = False) -> None:
        if self.book is None:
            return
        last = self._persisted
        if last is not None and last[0] is self.book and last[1] == self.current_chapter_index:
            # progress ticks are written once per whole second
            if throttled and int(last[2]) == int(self.position):
                return
            if round(last[2], 1) == round(self.position, 1):
                return
        self._persisted = (self.book, self.current_chapter_index, self.position)
        snapshot = replace(
            self.book,
            last_played_chapter=self.current_chapter_index,
            last_played_time=self.position,
        )
        self.store.set(STORAGE_KEY, book_to_snapshot(snapshot))

    def _set_position(self, seconds: float) -> None:
        self.position = seconds
        self._persist()

    def _tick_position(self, seconds: float) -> None:
        self.position = seconds
        self._persist(throttled=True)

    def _set_book(self, book: Book | None) -> None:
        self.book = book
        self._persist()

    def restore(self) -> bool:
        """Seed the session from the stored snapshot. Narration stays unloaded until play."""
        data = self.store.get(STORAGE_KEY)
        if data is None:
            return False
        try:
            book = book_from_snapshot(data)
        except (KeyError, TypeError, ValueError) as e:
            print(f"Warning: Failed to restore saved session: {e}")
            return False

        self.book = book
        self.current_chapter_index = book.last_played_chapter if book.has_chapter(book.last_played_chapter) else 0
        self.state.paused_offset = max(0.0, book.last_played_time)
        self.position = self.state.paused_offset
        self._persisted = (book, self.current_chapter_index, self.position)
        self.status.show("Welcome back! Continuing your reading session.")
        return True

    # -- playback --------------------------------------------------------

    def _ensure_engine(self) -> PlaybackEngine:
        if self.engine is None:
            self.engine = PlaybackEngine(self.output_factory(), self.state, clock=self.clock)
            self.ticker = ProgressTicker(
                self.engine, self._tick_position, on_finished=self._persist, interval=self.tick_interval
            )
        return self.engine

    def _stop(self) -> None:
        if self.ticker is not None:
            self.ticker.cancel()
        if self.engine is None or not self.state.is_playing:
            return
        self.engine.stop()
        self._set_position(self.state.paused_offset)

    def _play(self, buffer, offset: float) -> bool:
        engine = self._ensure_engine()
        try:
            used = engine.play(buffer, offset)
        except PlaybackStartError as e:
            self.last_error = e
            self.ticker.cancel()
            self.status.show(f"Playback could not start: {e}")
            return False
        self.ticker.start()
        self._set_position(used)
        return True

    async def _load(self, chapter_index: int, seek: float):
        try:
            return await self.loader.load(chapter_index, seek)
        except NarrationError as e:
            self.last_error = e
            self.status.show("Narration generation failed. Please try again.")
            return None

    def _pause_bookmark(self) -> None:
        if not self.auto_bookmark or self.current_chapter is None:
            return
        book, _ = self.bookmarks.add_auto_bookmark(
            self.book, self.current_chapter_index, self.state.paused_offset
        )
        self._set_book(book)

    async def toggle_play(self) -> None:
        if self.book is None:
            self.status.show("Upload a PDF first.")
            return
        if self.state.is_playing:
            self._stop()
            self._pause_bookmark()
            return
        if self.loader.is_loading:
            return

        index = self.current_chapter_index
        if self.state.has_buffer_for(index):
            self._play(self.state.buffer, self.state.paused_offset)
            return
        buffer = await self._load(index, self.state.paused_offset)
        if buffer is not None:
            self._play(buffer, self.state.paused_offset)

    async def navigate_to_chapter(self, index: int) -> None:
        if self.book is None:
            self.status.show("Upload a PDF first.")
            return
        if not self.book.has_chapter(index):
            self.status.show(f"No chapter {index + 1} in this book.")
            return
        if index == self.current_chapter_index and self.state.has_buffer_for(index):
            await self.toggle_play()
            return

        self._stop()
        self.current_chapter_index = index
        self.state.paused_offset = 0.0
        self._set_position(0.0)
        buffer = await self._load(index, 0.0)
        if buffer is not None:
            self._play(buffer, 0.0)

    async def next_chapter(self) -> None:
        await self.navigate_to_chapter(self.current_chapter_index + 1)

    async def previous_chapter(self) -> None:
        await self.navigate_to_chapter(self.current_chapter_index - 1)

    async def navigate_to_bookmark(self, bookmark: Bookmark) -> None:
        if self.book is None or not self.book.has_chapter(bookmark.chapter_index):
            self.status.show("That bookmark no longer points to a chapter.")
            return

        self._stop()
        self.current_chapter_index = bookmark.chapter_index
        if self.state.has_buffer_for(bookmark.chapter_index):
            buffer = self.state.buffer
            self.state.paused_offset = clamp(bookmark.timestamp, 0.0, self.state.duration)
            self._set_position(self.state.paused_offset)
        else:
            # the held buffer (if any) belongs to another chapter; only a successful load may seek
            self.state.paused_offset = 0.0
            self._set_position(0.0)
            buffer = await self._load(bookmark.chapter_index, bookmark.timestamp)
        if buffer is not None and self._play(buffer, bookmark.timestamp):
            self.status.show(f"Resumed at {format_time(bookmark.timestamp)}")

    # -- bookmarks -------------------------------------------------------

    def add_bookmark(self) -> Bookmark | None:
        if self.current_chapter is None:
            self.status.show("Upload a PDF first.")
            return None
        book, bookmark = self.bookmarks.add_bookmark(
            self.book, self.current_chapter_index, self.current_position()
        )
        self._set_book(book)
        self.status.show("Bookmark saved!")
        return bookmark

    # -- book lifecycle --------------------------------------------------

    async def upload(self, raw: bytes) -> Book | None:
        """Structure an uploaded PDF into a new active book."""
        if self.structure is None:
            self.status.show("Uploads are disabled: no document structurer is configured.")
            return None
        self.is_processing = True
        self.status.show("Processing your PDF. This may take a moment...")
        try:
            document = await asyncio.to_thread(self.structure, raw)
        except StructuringError as e:
            self.last_error = e
            self.status.show("Could not process PDF. Please check your connection or try a different file.")
            return None
        finally:
            self.is_processing = False

        self._stop()
        self.loader.supersede()
        self.state.evict()
        self.state.paused_offset = 0.0
        self.current_chapter_index = 0
        self.position = 0.0
        self._set_book(Book(
            id=uuid.uuid4().hex,
            title=document.title,
            author=document.author,
            chapters=[
                Chapter(id=str(i), title=title, content=content)
                for i, (title, content) in enumerate(document.chapters)
            ],
        ))
        self.status.show("Book processed successfully!")
        return self.book

    def clear_book(self, confirm: Callable[[str], bool]) -> bool:
        """Drop the book and its saved state, after the user confirms."""
        if self.book is None or not confirm(CLEAR_PROMPT):
            return False
        self.shutdown()
        self.loader.supersede()
        self.state.evict()
        self.state.paused_offset = 0.0
        self.book = None
        self.current_chapter_index = 0
        self.position = 0.0
        self._persisted = None
        self.store.remove(STORAGE_KEY)
        self.status.show("Library cleared.")
        return True

    def shutdown(self) -> None:
        """Stop sound, cancel the ticker, and release the audio output."""
        self._stop()
        if self.engine is not None:
            self.engine.shutdown()
        self.engine = None
        self.ticker = None
