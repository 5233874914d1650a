import pytest

from audio_output import PCM_SAMPLE_RATE
from errors import PlaybackStartError
from models import Book, Chapter
from session import ListeningSession
from session_store import MemoryStore
from status import StatusChannel


def pcm_seconds(seconds: float) -> bytes:
    """Silent 16-bit mono PCM of the given length."""
    return b"\x00\x00" * int(seconds * PCM_SAMPLE_RATE)


def make_book(chapter_count: int = 3) -> Book:
    return Book(
        id="book-1",
        title="The Inimitable Jeeves",
        author="P. G. Wodehouse",
        chapters=[
            Chapter(id=str(i), title=f"Chapter {i + 1}", content=f"Text of chapter {i + 1}. " * 20)
            for i in range(chapter_count)
        ],
    )


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    def __init__(self):
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeOutput:
    def __init__(self):
        self.starts = []      # (buffer, offset)
        self.handles = []
        self.fail = False
        self.closed = False

    def start(self, buffer, offset):
        if self.fail:
            raise PlaybackStartError("blocked until user gesture")
        self.starts.append((buffer, offset))
        handle = FakeHandle()
        self.handles.append(handle)
        return handle

    def close(self) -> None:
        self.closed = True

    @property
    def live_handles(self):
        return [h for h in self.handles if not h.stopped]


class FakeNarrator:
    def __init__(self, seconds: float = 60.0):
        self.seconds = seconds
        self.calls = []
        self.fail = False

    def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("TTS service unavailable")
        return pcm_seconds(self.seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def narrator():
    return FakeNarrator()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_session(clock, output, narrator, store):
    def _make(book: Book | None = None, **kwargs) -> ListeningSession:
        kwargs.setdefault("synthesize", narrator.synthesize)
        kwargs.setdefault("store", store)
        kwargs.setdefault("status", StatusChannel())
        kwargs.setdefault("output_factory", lambda: output)
        kwargs.setdefault("clock", clock)
        session = ListeningSession(**kwargs)
        if book is not None:
            session.book = book
        return session

    return _make
