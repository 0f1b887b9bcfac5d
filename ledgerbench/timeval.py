"""Second/microsecond time values with subtraction, ordering and formatting."""

from __future__ import annotations

import time
from dataclasses import dataclass
from functools import total_ordering

__all__ = ["Timeval", "from_secs", "format_abs", "format_diff"]


@total_ordering
@dataclass(frozen=True)
class Timeval:
    """A point or span of time as whole seconds plus microseconds."""

    sec: int
    usec: int = 0

    def __sub__(self, other: "Timeval") -> "Timeval":
        if not isinstance(other, Timeval):
            return NotImplemented
        if self.usec < other.usec:
            return Timeval(self.sec - other.sec - 1,
                           self.usec + 1_000_000 - other.usec)
        return Timeval(self.sec - other.sec, self.usec - other.usec)

    def __lt__(self, other: "Timeval") -> bool:
        if not isinstance(other, Timeval):
            return NotImplemented
        return self.sec < other.sec or (
            self.sec == other.sec and self.usec < other.usec)


def from_secs(secs: float) -> Timeval:
    """Whole seconds of ``secs``; the fractional part is dropped."""
    return Timeval(int(secs), 0)


def format_abs(tv: Timeval) -> str:
    """Local wall-clock time as ``HH:MM:SS:uuuuuu``."""
    return time.strftime("%H:%M:%S", time.localtime(tv.sec)) + f":{tv.usec:06d}"


def format_diff(tv: Timeval) -> str:
    """A span as ``seconds.microseconds``."""
    return f"{tv.sec}.{tv.usec:06d}"