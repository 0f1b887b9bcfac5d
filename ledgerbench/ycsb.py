"""YCSB-style workload: Zipf key choice, task generation, transactions and verification."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator, Mapping, Optional, Protocol

from ledgerbench.timeval import Timeval, format_diff
from ledgerbench.tpcc_workload import RAND_MAX

__all__ = [
    "DEFAULT_VALUES",
    "ROW_NUM",
    "YcsbClient",
    "YcsbOp",
    "YcsbTask",
    "zeta",
    "ZipfGenerator",
    "generate_task",
    "VerifyMap",
    "run_transaction",
    "format_record",
    "verify_once",
]

ROW_NUM = 100000

DEFAULT_VALUES = tuple(letter * 20 for letter in "abcdefghij")

# replica id -> block number -> keys
Unverified = dict[int, dict[int, list[str]]]


class YcsbOp(IntEnum):
    GET = 0
    PUT = 1
    GET_N_VERSIONS = 2


@dataclass
class YcsbTask:
    """One transaction: parallel lists of operations, keys, values and version counts."""

    ops: list[YcsbOp] = field(default_factory=list)
    keys: list[str] = field(default_factory=list)
    vals: list[str] = field(default_factory=list)
    n: list[int] = field(default_factory=list)

    def append(self, op: YcsbOp, key: str, val: str, n: int = 0) -> None:
        self.ops.append(op)
        self.keys.append(key)
        self.vals.append(val)
        self.n.append(n)

    def __iter__(self) -> Iterator[tuple[YcsbOp, str, str, int]]:
        return iter(zip(self.ops, self.keys, self.vals, self.n))

    def __len__(self) -> int:
        return len(self.ops)


class YcsbClient(Protocol):
    """The client operations the workload needs."""

    def begin(self) -> None: ...

    def put(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> object: ...

    def get_n_versions(self, key: str, n: int) -> object: ...

    def commit(self) -> tuple[bool, Mapping[int, Mapping[int, Iterable[str]]]]: ...

    def verify(self, unverified: Unverified) -> bool: ...


def _rand(rng: random.Random) -> int:
    return rng.randrange(RAND_MAX + 1)


def zeta(n: int, theta: float) -> float:
    """Generalised harmonic number: the sum of ``(1/i) ** theta`` for i in 1..n."""
    return sum((1.0 / i) ** theta for i in range(1, n + 1))


class ZipfGenerator:
    """Draws ranks in ``[1, n]`` with Zipf skew ``theta`` (0 is uniform)."""

    def __init__(self, n: int = ROW_NUM, theta: float = 0.0) -> None:
        if theta == 1:
            raise ValueError("Zipf coefficient must not be 1")
        if n < 2:
            raise ValueError("Zipf generator needs at least two rows")
        self.n = n
        self.theta = theta
        self.zetan = zeta(n, theta)
        self.zeta_2_theta = zeta(2, theta)

    def next(self, rng: random.Random) -> int:
        theta = self.theta
        alpha = 1 / (1 - theta)
        eta = ((1 - (2.0 / self.n) ** (1 - theta))
               / (1 - self.zeta_2_theta / self.zetan))
        u = (_rand(rng) % 10000000) / 10000000
        uz = u * self.zetan
        if uz < 1:
            return 1
        if uz < 1 + 0.5 ** theta:
            return 2
        return 1 + int(self.n * (eta * u - eta + 1) ** alpha)


def generate_task(rng: random.Random, zipf: ZipfGenerator, tlen: int,
                  w_per: int, r_per: int) -> YcsbTask:
    """Build a task of ``tlen`` operations: ``w_per``% puts, ``r_per``% gets,
    the rest multi-version reads of up to nine versions."""
    task = YcsbTask()
    for j in range(tlen):
        key = str(zipf.next(rng))
        val = DEFAULT_VALUES[j % 10]
        roll = _rand(rng) % 100
        if roll < w_per:
            task.append(YcsbOp.PUT, key, val)
        elif roll < w_per + r_per:
            task.append(YcsbOp.GET, key, val)
        else:
            task.append(YcsbOp.GET_N_VERSIONS, key, val, _rand(rng) % 10)
    return task


class VerifyMap:
    """Thread-safe record of keys still awaiting verification, per replica and block."""

    def __init__(self) -> None:
        self._pending: dict[int, dict[int, set[str]]] = {}
        self._lock = threading.Lock()

    def add(self, unverified: Mapping[int, Mapping[int, Iterable[str]]]) -> None:
        """Merge keys reported by a committed transaction."""
        with self._lock:
            for replica, blocks in unverified.items():
                known = self._pending.setdefault(replica, {})
                for block, keys in blocks.items():
                    known.setdefault(block, set()).update(keys)

    def snapshot(self) -> Unverified:
        """Copy of the pending keys, replicas, blocks and keys in sorted order."""
        with self._lock:
            return {
                replica: {block: sorted(keys)
                          for block, keys in sorted(blocks.items())}
                for replica, blocks in sorted(self._pending.items())
            }

    def remove(self, verified: Mapping[int, Mapping[int, Iterable[str]]]) -> None:
        """Drop whole blocks that were verified; forget replicas left empty."""
        with self._lock:
            for replica, blocks in verified.items():
                known = self._pending.get(replica, {})
                for block in blocks:
                    known.pop(block, None)
                if not known:
                    self._pending.pop(replica, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


def run_transaction(client: YcsbClient, task: YcsbTask) -> tuple[bool, Unverified]:
    """Run ``task`` in one transaction; return the commit outcome and keys to verify."""
    client.begin()
    for op, key, val, n in task:
        if op is YcsbOp.PUT:
            client.put(key, val)
        elif op is YcsbOp.GET:
            client.get(key)
        else:
            client.get_n_versions(key, n)
    ok, unverified = client.commit()
    return bool(ok), {
        replica: {block: list(keys) for block, keys in blocks.items()}
        for replica, blocks in unverified.items()
    }


def format_record(count: int, start: Timeval, end: Timeval, ok: bool,
                  op: int) -> str:
    """Statistics line: count, start, end, latency in microseconds, outcome, op."""
    latency = (end.sec - start.sec) * 1_000_000 + (end.usec - start.usec)
    return (f"{count} {format_diff(start)} {format_diff(end)} {latency} "
            f"{1 if ok else 0} {int(op)}")


def verify_once(client: YcsbClient,
                verify_map: VerifyMap) -> Optional[tuple[bool, Unverified]]:
    """Verify everything pending and clear it; ``None`` if nothing was pending."""
    pending = verify_map.snapshot()
    if not pending:
        return None
    ok = bool(client.verify(pending))
    verify_map.remove(pending)
    return ok, pending