"""TPC-C style task generation: operation mix and per-operation parameters."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Sequence

__all__ = [
    "RAND_MAX",
    "TpccOp",
    "TpccTask",
    "nurand",
    "parse_fields",
    "fields_to_string",
    "TpccGenerator",
]

RAND_MAX = 2**31 - 1


class TpccOp(IntEnum):
    NEW_ORDER = 0
    PAYMENT = 1
    ORDER_STATUS = 2
    DELIVERY = 3
    STOCK_LEVEL = 4


@dataclass
class TpccTask:
    """One transaction to run: its kind and its string parameters."""

    op: TpccOp
    keys: list[str] = field(default_factory=list)


def _rand(rng: random.Random) -> int:
    return rng.randrange(RAND_MAX + 1)


def _scaled(rng: random.Random, n: int) -> int:
    """A draw of ``rand() / ((RAND_MAX + 1) / n)`` in integer arithmetic."""
    return _rand(rng) // ((RAND_MAX + 1) // n)


def nurand(rng: random.Random, a: int, x: int, y: int, constrand: int) -> int:
    """Non-uniform random number in ``[x, y]``."""
    randa = _rand(rng) // a
    randb = x + _rand(rng) // (y - x)
    return ((randa | randb) + constrand) % (y - x + 1) + x


def parse_fields(row: str) -> list[str]:
    """Split a comma separated row into its fields."""
    return row.split(",")


def fields_to_string(fields: Sequence[str]) -> str:
    """Join fields back into a comma separated row."""
    return ",".join(fields)


class TpccGenerator:
    """Draws TPC-C transactions with the standard 44/44/4/4/4 mix."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.const_cid = _rand(self._rng) // 1023
        self.const_iid = _rand(self._rng) // 8191

    def _warehouse(self) -> str:
        return str(1 + _scaled(self._rng, 5))

    def _district(self) -> str:
        return str(1 + _scaled(self._rng, 10))

    def _customer(self) -> str:
        return str(nurand(self._rng, 1023, 1, 3000, self.const_cid))

    def new_order(self) -> list[str]:
        """Warehouse, district, customer, then (item, supply warehouse, quantity) triples."""
        keys = [self._warehouse(), self._district(), self._customer()]
        num_items = 1 + _scaled(self._rng, 5)
        for _ in range(num_items):
            keys.append(str(nurand(self._rng, 8191, 1, 100000, self.const_iid)))
            keys.append(self._warehouse())
            keys.append(str(5 + _scaled(self._rng, 10)))
        return keys

    def payment(self) -> list[str]:
        """Warehouse, district, customer and payment amount."""
        keys = [self._warehouse(), self._district(), self._customer()]
        cents = 100 + _scaled(self._rng, 500000)
        keys.append(f"{cents / 100:.6f}")
        return keys

    def order_status(self) -> list[str]:
        return [self._warehouse(), self._district(), self._customer()]

    def delivery(self) -> list[str]:
        """Warehouse and carrier id."""
        return [self._warehouse(), str(1 + _scaled(self._rng, 10))]

    def stock_level(self) -> list[str]:
        """Warehouse, district and stock threshold."""
        return [self._warehouse(), self._district(),
                str(10 + _scaled(self._rng, 10))]

    def next_task(self) -> TpccTask:
        ratio = _scaled(self._rng, 100)
        if ratio < 44:
            return TpccTask(TpccOp.NEW_ORDER, self.new_order())
        if ratio < 88:
            return TpccTask(TpccOp.PAYMENT, self.payment())
        if ratio < 92:
            return TpccTask(TpccOp.ORDER_STATUS, self.order_status())
        if ratio < 96:
            return TpccTask(TpccOp.DELIVERY, self.delivery())
        return TpccTask(TpccOp.STOCK_LEVEL, self.stock_level())