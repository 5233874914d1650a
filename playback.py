"""playback.py — Clock-anchored playback engine and progress ticker.

The output primitive can start a source at an offset and stop it, but never
pause it in place. Position is therefore tracked from an anchor instant:
while playing, position = clock() - anchor; on stop the position is frozen
into paused_offset and the next play() starts a new source from there.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from audio_output import AudioBuffer
from errors import PlaybackStartError

END_MARGIN = 0.1        # never start a source closer than this to the end
TICK_INTERVAL = 0.1

Clock = Callable[[], float]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


@dataclass
class PlaybackState:
    loaded_chapter_index: int | None = None
    buffer: AudioBuffer | None = None     # the single-slot chapter cache
    is_playing: bool = False
    paused_offset: float = 0.0
    anchor: float = 0.0
    duration: float = 0.0

    def has_buffer_for(self, chapter_index: int) -> bool:
        return self.buffer is not None and self.loaded_chapter_index == chapter_index

    def evict(self) -> None:
        self.buffer = None
        self.loaded_chapter_index = None
        self.duration = 0.0


class PlaybackEngine:
    """Owns the one live source and the anchor/offset bookkeeping."""

    def __init__(self, output, state: PlaybackState | None = None, clock: Clock = time.monotonic):
        self.output = output
        self.state = state if state is not None else PlaybackState()
        self.clock = clock
        self._source = None

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    def position(self) -> float:
        state = self.state
        if state.is_playing:
            return clamp(self.clock() - state.anchor, 0.0, state.duration)
        return state.paused_offset

    def play(self, buffer: AudioBuffer, offset: float) -> float:
        """Start `buffer` at `offset` (clamped). Returns the offset actually used."""
        self.stop()
        offset = max(0.0, min(offset, buffer.duration - END_MARGIN))
        try:
            source = self.output.start(buffer, offset)
        except PlaybackStartError:
            raise
        except Exception as e:
            raise PlaybackStartError(str(e)) from e

        state = self.state
        state.duration = buffer.duration
        state.paused_offset = offset
        state.anchor = self.clock() - offset
        state.is_playing = True
        self._source = source
        return offset

    def stop(self) -> None:
        state = self.state
        if not state.is_playing:
            return
        try:
            self._source.stop()
        finally:
            state.paused_offset = clamp(self.clock() - state.anchor, 0.0, state.duration)
            state.is_playing = False
            self._source = None

    def finish(self) -> None:
        """End of track: stop and pin the position to the exact duration."""
        self.stop()
        self.state.paused_offset = self.state.duration

    def shutdown(self) -> None:
        self.stop()
        close = getattr(self.output, "close", None)
        if close is not None:
            close()


class ProgressTicker:
    """
    Publishes the playback position every `interval` seconds while playing.
    At most one ticker task runs; start() cancels the previous one.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        on_position: Callable[[float], None],
        on_finished: Callable[[], None] | None = None,
        interval: float = TICK_INTERVAL,
    ):
        self.engine = engine
        self.on_position = on_position
        self.on_finished = on_finished
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def tick(self) -> bool:
        """One step. Returns False once playback is over."""
        engine = self.engine
        state = engine.state
        if not state.is_playing:
            return False
        elapsed = engine.clock() - state.anchor
        if state.duration > 0 and elapsed >= state.duration:
            engine.finish()
            self.on_position(state.duration)
            if self.on_finished is not None:
                self.on_finished()
            return False
        self.on_position(clamp(elapsed, 0.0, state.duration))
        return True

    async def _run(self) -> None:
        while self.engine.state.is_playing:
            await asyncio.sleep(self.interval)
            if not self.tick():
                break
