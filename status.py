"""status.py — Single-message status channel that clears itself."""

import asyncio
from typing import Callable

DEFAULT_CLEAR_AFTER = 5.0


class StatusChannel:
    """
    Holds at most one user-facing message. show() replaces the current
    message at once and restarts the clear timer; listeners receive every
    change, including the clear ("").
    """

    def __init__(self, clear_after: float = DEFAULT_CLEAR_AFTER):
        self.clear_after = clear_after
        self.message = ""
        self._timer: asyncio.TimerHandle | None = None
        self._listeners: list[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def show(self, message: str) -> None:
        self._cancel_timer()
        self._set(message)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop: message stays until replaced or cleared
        self._timer = loop.call_later(self.clear_after, self.clear)

    def clear(self) -> None:
        self._cancel_timer()
        if self.message:
            self._set("")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set(self, message: str) -> None:
        self.message = message
        for listener in self._listeners:
            listener(message)
