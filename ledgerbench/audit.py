"""Periodic ledger auditing with per-audit latency records."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import IO, Callable, Mapping, Optional, Protocol

from ledgerbench.timeval import Timeval, format_diff

__all__ = ["AuditClient", "AuditResult", "audit_loop"]


class AuditClient(Protocol):
    def audit(self, progress: Mapping[int, int]) -> bool: ...


@dataclass(frozen=True)
class AuditResult:
    """One audit: its sequence number, start and end times and outcome."""

    count: int
    start: Timeval
    end: Timeval
    latency: int
    ok: bool

    @property
    def record(self) -> str:
        """The statistics line written for this audit."""
        return (f"{self.count} {format_diff(self.start)} "
                f"{format_diff(self.end)} {self.latency} "
                f"{1 if self.ok else 0} 3")


def _micros(seconds: float) -> int:
    return int(round(seconds * 1_000_000))


def _timeval(micros: int) -> Timeval:
    return Timeval(micros // 1_000_000, micros % 1_000_000)


def audit_loop(client: AuditClient, progress: Mapping[int, int],
               duration: int, timeout: int = 0, skip: int = 100,
               clock: Callable[[], float] = time.time,
               sleep: Callable[[float], None] = time.sleep,
               out: Optional[IO[str]] = None) -> list[AuditResult]:
    """Audit repeatedly for ``duration`` seconds.

    The first ``skip`` audits run back to back; after that each waits
    ``timeout`` milliseconds. Every audit writes a record line to ``out``
    (stderr by default).
    """
    out = out if out is not None else sys.stderr
    results: list[AuditResult] = []
    began = _micros(clock())
    remaining = skip
    while True:
        if remaining > 0:
            remaining -= 1
        else:
            sleep(timeout / 1000)

        start = _micros(clock())
        ok = bool(client.audit(progress))
        end = _micros(clock())
        result = AuditResult(len(results) + 1, _timeval(start), _timeval(end),
                             end - start, ok)
        results.append(result)
        out.write(result.record + "\n")

        if _micros(clock()) - began > duration * 1_000_000:
            print("Auditing terminated")
            return results