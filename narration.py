"""narration.py — On-demand narration of one chapter into the single-slot cache."""

import asyncio
from typing import Callable

from audio_output import AudioBuffer, decode_audio
from errors import NarrationError
from playback import PlaybackState, clamp


class NarrationLoader:
    """
    Fetches and decodes narration for one chapter at a time.

    Only the most recent request may write the cache: a request that has been
    superseded by a newer one, or whose chapter is no longer current when it
    resolves, is discarded and load() returns None. That holds for failures
    too: a discarded request never raises.
    """

    def __init__(
        self,
        synthesize: Callable[[str], bytes],
        state: PlaybackState,
        chapter_text: Callable[[int], str],
        current_chapter: Callable[[], int],
        decode: Callable[[bytes], AudioBuffer] = decode_audio,
        on_loaded: Callable[[], None] | None = None,
    ):
        self.synthesize = synthesize
        self.decode = decode
        self.state = state
        self.chapter_text = chapter_text
        self.current_chapter = current_chapter
        self.on_loaded = on_loaded
        self.is_loading = False
        self.loading_index: int | None = None
        self._latest_request = 0

    def supersede(self) -> None:
        """Discard whatever is in flight (e.g. the book was replaced)."""
        self._latest_request += 1
        self.is_loading = False
        self.loading_index = None

    def _is_stale(self, request: int, chapter_index: int) -> bool:
        return request != self._latest_request or chapter_index != self.current_chapter()

    async def load(self, chapter_index: int, seek_seconds: float = 0.0) -> AudioBuffer | None:
        text = self.chapter_text(chapter_index)
        self._latest_request += 1
        request = self._latest_request
        self.is_loading = True
        self.loading_index = chapter_index

        try:
            raw = await asyncio.to_thread(self.synthesize, text)
            buffer = self.decode(raw)
        except Exception as e:
            if self._is_stale(request, chapter_index):
                return None
            if isinstance(e, NarrationError):
                raise
            raise NarrationError(f"Narration failed for chapter {chapter_index + 1}: {e}") from e
        finally:
            if request == self._latest_request:
                self.is_loading = False
                self.loading_index = None

        if self._is_stale(request, chapter_index):
            return None

        state = self.state
        state.buffer = buffer
        state.loaded_chapter_index = chapter_index
        state.duration = buffer.duration
        state.paused_offset = clamp(seek_seconds, 0.0, buffer.duration)
        if self.on_loaded is not None:
            self.on_loaded()
        return buffer
