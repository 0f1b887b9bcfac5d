"""Initial data loading for a storage shard: YCSB, SmallBank and TPC-C keys."""

from __future__ import annotations

from os import PathLike
from typing import Callable, Iterable, Iterator, Optional, Union

__all__ = [
    "djb2_hash",
    "owns_key",
    "ycsb_batches",
    "smallbank_batches",
    "tpcc_batches",
    "load_workload",
]

_MASK64 = (1 << 64) - 1

Batch = tuple[list[str], list[str], int]
LoadFn = Callable[[list[str], list[str], int], None]


def djb2_hash(key: str) -> int:
    """64-bit djb2 hash of ``key``'s UTF-8 bytes, taken as signed chars."""
    value = 5381
    for byte in key.encode("utf-8"):
        signed = byte - 256 if byte >= 128 else byte
        value = ((value << 5) + value + signed) & _MASK64
    return value


def owns_key(key: str, my_shard: int, max_shard: int) -> bool:
    """Whether ``key`` belongs to shard ``my_shard`` out of ``max_shard``."""
    return djb2_hash(key) % max_shard == my_shard


def ycsb_batches(n_keys: int, versions: int, my_shard: int = 0,
                 max_shard: int = 1) -> Iterator[Batch]:
    """Keys ``0..n_keys`` once per version, in batches of at most ten.

    A key's value in version ``v`` is the key followed by ``v``; the batch
    timestamp is the version number.
    """
    for version in range(versions):
        keys: list[str] = []
        vals: list[str] = []
        for i in range(n_keys + 1):
            key = str(i)
            if owns_key(key, my_shard, max_shard):
                keys.append(key)
                vals.append(f"{key}{version}")
            if len(keys) == 10 or (i == n_keys and keys):
                yield keys, vals, version
                keys, vals = [], []


def smallbank_batches(my_shard: int = 0, max_shard: int = 1,
                      accounts: int = 100000) -> Iterator[Batch]:
    """Saving (1000) and checking (50) balances of accounts ``1..accounts``."""
    keys: list[str] = []
    vals: list[str] = []
    for i in range(1, accounts + 1):
        for key, balance in ((f"savingStore_{i}", "1000"),
                             (f"checkingStore_{i}", "50")):
            if owns_key(key, my_shard, max_shard):
                keys.append(key)
                vals.append(balance)
        if len(keys) == 10 or (i == accounts and keys):
            yield keys, vals, 0
            keys, vals = [], []


def tpcc_batches(lines: Iterable[str], my_shard: int = 0, max_shard: int = 1,
                 batch_size: int = 200) -> Iterator[Batch]:
    """Tab separated ``key\\tvalue`` lines, batched by ``batch_size``.

    A line without a tab is used whole as both key and value.
    """
    keys: list[str] = []
    vals: list[str] = []
    for raw in lines:
        line = raw[:-1] if raw.endswith("\n") else raw
        tab = line.find("\t")
        if tab < 0:
            key = val = line
        else:
            key, val = line[:tab], line[tab + 1:]
        if owns_key(key, my_shard, max_shard):
            keys.append(key)
            vals.append(val)
        if len(keys) >= batch_size:
            yield keys, vals, 0
            keys, vals = [], []
    if keys:
        yield keys, vals, 0


def _feed(load: LoadFn, batches: Iterable[Batch]) -> int:
    total = 0
    for keys, vals, timestamp in batches:
        load(keys, vals, timestamp)
        total += len(keys)
    return total


def load_workload(load: LoadFn, workload: str, n_keys: int = 1,
                  versions: int = 1, my_shard: int = 0, max_shard: int = 1,
                  key_path: Optional[Union[str, PathLike]] = None) -> int:
    """Feed the initial data of ``workload`` to ``load``; return the key count."""
    if workload == "ycsb":
        return _feed(load, ycsb_batches(n_keys, versions, my_shard, max_shard))
    if workload == "smallbank":
        return _feed(load, smallbank_batches(my_shard, max_shard))
    if workload == "tpcc":
        if key_path is None:
            return 0
        with open(key_path, encoding="utf-8", newline="") as stream:
            count = _feed(load, tpcc_batches(stream, my_shard, max_shard))
        print(f"Loaded {count} keys")
        return count
    print("No proper workload selected!!!")
    return 0