from typing import Callable, Optional


def format_time(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class CountdownTimer:
    """Local countdown seeded from the backend's remaining time.

    A fresh instance is created every time a session (re)enters the active
    state; the backend keeps the authoritative value between pause and resume.
    """

    def __init__(self, on_expired: Optional[Callable[[], None]] = None):
        self._remaining = 0
        self._running = False
        self._expired_fired = False
        self._on_expired = on_expired

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def expired(self) -> bool:
        return self._expired_fired

    def start(self, initial_seconds: int) -> "CountdownTimer":
        self._remaining = max(0, int(initial_seconds))
        self._running = True
        return self

    def reseed(self, seconds: int):
        """Overwrite the remaining value (used with the backend's stored time)"""
        self._remaining = max(0, int(seconds))

    def stop(self) -> int:
        """Stop ticking and return the remaining seconds for persistence"""
        self._running = False
        return self._remaining

    def tick(self) -> int:
        """Advance one second. Inert when stopped or already at zero."""
        if not self._running or self._expired_fired:
            return self._remaining
        if self._remaining > 0:
            self._remaining -= 1
        if self._remaining == 0:
            self._expired_fired = True
            self._running = False
            if self._on_expired:
                self._on_expired()
        return self._remaining
