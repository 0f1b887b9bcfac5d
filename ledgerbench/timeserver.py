"""A replicated service handing out strictly increasing timestamps."""

from __future__ import annotations

import threading

__all__ = ["TimeStampServer"]


class TimeStampServer:
    """Application replica that answers every request with the next timestamp."""

    def __init__(self) -> None:
        self.ts = 0
        self._lock = threading.Lock()

    def new_timestamp(self) -> str:
        """Advance the counter and return it as a decimal string."""
        with self._lock:
            self.ts += 1
            return str(self.ts)

    def leader_upcall(self, opnum: int, request: str) -> str:
        """Reply to a request executed at the leader."""
        return self.new_timestamp()

    def replica_upcall(self, opnum: int, request: str) -> str:
        """Reply to a request executed at a backup replica."""
        return self.new_timestamp()