import asyncio

import pytest

from audio_output import AudioBuffer
from conftest import FakeClock, FakeOutput, pcm_seconds
from errors import PlaybackStartError
from playback import END_MARGIN, PlaybackEngine, PlaybackState, ProgressTicker


def _engine(seconds: float = 30.0):
    clock = FakeClock()
    output = FakeOutput()
    engine = PlaybackEngine(output, PlaybackState(), clock=clock)
    return engine, output, clock, AudioBuffer(pcm_seconds(seconds))


def test_play_sets_anchor_and_duration() -> None:
    engine, output, clock, buffer = _engine()
    used = engine.play(buffer, 12.0)
    assert used == 12.0
    assert engine.is_playing
    assert engine.state.anchor == clock.now - 12.0
    assert engine.state.duration == pytest.approx(30.0)
    assert output.starts == [(buffer, 12.0)]


def test_play_clamps_offset_to_buffer() -> None:
    engine, output, _, buffer = _engine(10.0)
    assert engine.play(buffer, -4.0) == 0.0
    used = engine.play(buffer, 25.0)
    assert used == pytest.approx(10.0 - END_MARGIN)
    assert output.starts[-1][1] == pytest.approx(10.0 - END_MARGIN)


def test_play_stops_previous_source_first() -> None:
    engine, output, _, buffer = _engine()
    engine.play(buffer, 0.0)
    engine.play(buffer, 5.0)
    assert len(output.handles) == 2
    assert len(output.live_handles) == 1
    assert output.handles[0].stopped


def test_stop_records_elapsed_offset() -> None:
    engine, output, clock, buffer = _engine()
    engine.play(buffer, 2.0)
    clock.advance(3.5)
    engine.stop()
    assert not engine.is_playing
    assert engine.state.paused_offset == pytest.approx(5.5)
    assert output.live_handles == []


def test_stop_clamps_offset_to_duration() -> None:
    engine, _, clock, buffer = _engine(10.0)
    engine.play(buffer, 0.0)
    clock.advance(50.0)
    engine.stop()
    assert engine.state.paused_offset == pytest.approx(10.0)


def test_stop_when_stopped_is_noop() -> None:
    engine, _, _, _ = _engine()
    engine.state.paused_offset = 7.0
    engine.stop()
    assert engine.state.paused_offset == 7.0


def test_failed_start_leaves_engine_stopped() -> None:
    engine, output, _, buffer = _engine()
    engine.play(buffer, 0.0)
    output.fail = True
    with pytest.raises(PlaybackStartError):
        engine.play(buffer, 3.0)
    assert not engine.is_playing
    assert output.live_handles == []


def test_unexpected_output_error_becomes_playback_start_error() -> None:
    class BrokenOutput:
        def start(self, buffer, offset):
            raise OSError("no audio device")

    engine = PlaybackEngine(BrokenOutput(), clock=FakeClock())
    with pytest.raises(PlaybackStartError, match="no audio device"):
        engine.play(AudioBuffer(pcm_seconds(1.0)), 0.0)
    assert not engine.is_playing


def test_position_never_exceeds_duration() -> None:
    engine, _, clock, buffer = _engine(10.0)
    engine.play(buffer, 0.0)
    clock.advance(4.0)
    assert engine.position() == pytest.approx(4.0)
    clock.advance(40.0)
    assert engine.position() == pytest.approx(10.0)


def test_shutdown_closes_output() -> None:
    engine, output, _, buffer = _engine()
    engine.play(buffer, 0.0)
    engine.shutdown()
    assert not engine.is_playing
    assert output.closed


def test_tick_publishes_clamped_position() -> None:
    engine, _, clock, buffer = _engine(10.0)
    published = []
    ticker = ProgressTicker(engine, published.append)
    engine.play(buffer, 1.0)
    clock.advance(2.0)
    assert ticker.tick() is True
    assert published == [pytest.approx(3.0)]


def test_tick_at_end_forces_stop_at_exact_duration() -> None:
    engine, output, clock, buffer = _engine(10.0)
    published = []
    finished = []
    ticker = ProgressTicker(engine, published.append, on_finished=lambda: finished.append(True))
    engine.play(buffer, 0.0)
    clock.advance(10.3)
    assert ticker.tick() is False
    assert not engine.is_playing
    assert published == [engine.state.duration]
    assert engine.state.paused_offset == engine.state.duration
    assert finished == [True]
    assert output.live_handles == []


def test_ticker_task_ends_when_playback_ends() -> None:
    async def scenario():
        engine, _, clock, buffer = _engine(10.0)
        published = []
        ticker = ProgressTicker(engine, published.append, interval=0.01)
        engine.play(buffer, 0.0)
        ticker.start()
        await asyncio.sleep(0.03)
        assert ticker.running
        clock.advance(11.0)
        await asyncio.sleep(0.05)
        assert not ticker.running
        assert published[-1] == engine.state.duration
        assert max(published) <= engine.state.duration

    asyncio.run(scenario())


def test_ticker_start_replaces_previous_task() -> None:
    async def scenario():
        engine, _, _, buffer = _engine()
        ticker = ProgressTicker(engine, lambda _: None, interval=0.01)
        engine.play(buffer, 0.0)
        ticker.start()
        first = ticker._task
        ticker.start()
        await asyncio.sleep(0)
        assert first.cancelled() or first.done()
        assert ticker._task is not first
        engine.stop()
        ticker.cancel()
        assert not ticker.running

    asyncio.run(scenario())
