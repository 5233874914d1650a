"""errors.py — Exception types raised at the listenbook boundaries."""


class ListenbookError(Exception):
    """Base class for recoverable listenbook failures."""


class StructuringError(ListenbookError):
    """Turning a document into chapters failed (remote call or parse)."""


class NarrationError(ListenbookError):
    """Synthesizing or decoding one chapter's narration failed."""


class PlaybackStartError(ListenbookError):
    """The audio output refused to start a source."""
