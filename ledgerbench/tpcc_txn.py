"""TPC-C transaction bodies run against a transactional key-value client."""

from __future__ import annotations

import re
import time
from typing import Mapping, Optional, Protocol, Sequence

from ledgerbench.tpcc_workload import (
    TpccOp,
    TpccTask,
    fields_to_string,
    parse_fields,
)

__all__ = [
    "TxnClient",
    "exec_new_order",
    "exec_payment",
    "exec_order_status",
    "exec_delivery",
    "exec_stock_level",
    "run_task",
]

_INT = re.compile(r"\s*([+-]?\d+)")
_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class TxnClient(Protocol):
    """The client operations the transactions need."""

    def begin(self) -> None: ...

    def buffer_key(self, key: str) -> None: ...

    def batch_get(self) -> Mapping[str, str]: ...

    def put(self, key: str, value: str) -> None: ...

    def commit(self) -> bool: ...

    def abort(self) -> None: ...


def _stol(text: str) -> int:
    match = _INT.match(text)
    if match is None:
        raise ValueError(f"not an integer: {text!r}")
    return int(match.group(1))


def _stod(text: str) -> float:
    match = _FLOAT.match(text)
    if match is None:
        raise ValueError(f"not a number: {text!r}")
    return float(match.group(1))


def _fmt(value: float) -> str:
    return f"{value:.6f}"


def _now_ms(now_ms: Optional[int]) -> int:
    return int(time.time() * 1000) if now_ms is None else now_ms


class _Reads:
    """Accumulates values fetched by successive batch reads."""

    def __init__(self, client: TxnClient) -> None:
        self._client = client
        self._values: dict[str, str] = {}

    def fetch(self) -> None:
        self._values.update(self._client.batch_get())

    def __getitem__(self, key: str) -> str:
        return self._values.get(key, "")

    def __contains__(self, key: str) -> bool:
        return key in self._values


def exec_new_order(keys: Sequence[str], client: TxnClient,
                   now_ms: Optional[int] = None) -> None:
    """Place an order for the (item, supply warehouse, quantity) triples in ``keys``."""
    w_id, d_id, c_id = keys[0], keys[1], keys[2]
    district_key = f"d_tax_{d_id}_{w_id}"
    customer_key = f"c_discount_{c_id}_{d_id}_{w_id}"
    client.buffer_key(f"w_tax_{w_id}")
    client.buffer_key(district_key)
    client.buffer_key(customer_key)

    lines = [(keys[i], keys[i + 1], _stol(keys[i + 2]))
             for i in range(3, len(keys), 3)]
    for i_id, s_w_id, _ in lines:
        client.buffer_key(f"i_{i_id}")
        client.buffer_key(f"s_{i_id}_{s_w_id}")

    values = _Reads(client)
    values.fetch()

    order_time = _now_ms(now_ms)
    w_tax = _stod(values[f"w_tax_{w_id}"])
    district = parse_fields(values[district_key])
    d_tax = _stod(district[0])
    c_discount = _stod(values[customer_key])
    o_id = _stol(district[1])
    all_local = 1

    for number, (i_id, s_w_id, quantity) in enumerate(lines, start=1):
        item = parse_fields(values[f"i_{i_id}"])
        stock = parse_fields(values[f"s_{i_id}_{s_w_id}"])
        if stock[1] != w_id:
            all_local = 0
        price = _stod(item[3])
        dist_info = stock[2 + int(_stod(d_id))]
        s_quantity = _stol(stock[2])
        if s_quantity > quantity:
            s_quantity -= quantity
        else:
            s_quantity = s_quantity - quantity + 100
        stock[2] = str(s_quantity)
        client.put(f"s_{stock[0]}_{stock[1]}", fields_to_string(stock))

        amount = quantity * price * (1 + w_tax + d_tax) * (1 - c_discount)
        client.put(
            f"ol_{o_id}_{d_id}_{w_id}_{number}",
            f"{o_id},{d_id},{w_id},{number},{i_id},{s_w_id},,"
            f"{quantity},{_fmt(amount)},{dist_info}",
        )

    client.put(
        f"o_{o_id}_{d_id}_{w_id}",
        f"{o_id},{d_id},{w_id},{c_id},{order_time},,{len(lines)},{all_local}",
    )
    client.put(f"c_last_order_{c_id}_{d_id}_{w_id}", str(o_id))
    district[1] = str(o_id + 1)
    client.put(district_key, fields_to_string(district))


def exec_payment(keys: Sequence[str], client: TxnClient,
                 now_ms: Optional[int] = None) -> None:
    """Apply a customer payment to warehouse, district and customer totals."""
    w_id, d_id, c_id = keys[0], keys[1], keys[2]
    payment = _stod(keys[3])
    w_key = f"w_{w_id}"
    d_key = f"d_{d_id}_{w_id}"
    c_key = f"c_{c_id}_{d_id}_{w_id}"
    for key in (w_key, d_key, c_key):
        client.buffer_key(key)
    values = _Reads(client)
    values.fetch()

    warehouse = parse_fields(values[w_key])
    district = parse_fields(values[d_key])
    customer = parse_fields(values[c_key])

    warehouse[7] = _fmt(_stod(warehouse[7]) + payment)
    district[8] = _fmt(_stod(district[8]) + payment)
    customer[15] = _fmt(_stod(customer[15]) - payment)
    customer[16] = _fmt(_stod(customer[16]) + payment)
    customer[17] = _fmt(_stod(customer[17]) + 1)

    client.put(w_key, fields_to_string(warehouse))
    client.put(d_key, fields_to_string(district))
    client.put(c_key, fields_to_string(customer))
    client.put(f"h_{c_id}_{d_id}_{w_id}_{_now_ms(now_ms)}", keys[3])


def exec_order_status(keys: Sequence[str], client: TxnClient) -> None:
    """Read a customer's last order and its order lines."""
    w_id, d_id, c_id = keys[0], keys[1], keys[2]
    last_key = f"c_last_order_{c_id}_{d_id}_{w_id}"
    client.buffer_key(f"w_{w_id}")
    client.buffer_key(f"d_{d_id}_{w_id}")
    client.buffer_key(f"c_{c_id}_{d_id}_{w_id}")
    client.buffer_key(last_key)
    values = _Reads(client)
    values.fetch()

    o_id = values[last_key]
    if not o_id:
        return

    order_key = f"o_{o_id}_{d_id}_{w_id}"
    client.buffer_key(order_key)
    values.fetch()

    order = parse_fields(values[order_key])
    for number in range(1, _stol(order[6]) + 1):
        client.buffer_key(f"ol_{o_id}_{d_id}_{w_id}_{number}")
    values.fetch()


def exec_delivery(keys: Sequence[str], client: TxnClient,
                  now_ms: Optional[int] = None) -> None:
    """Deliver the oldest undelivered order of each of the ten districts."""
    w_id, carrier_id = keys[0], keys[1]
    districts = range(1, 11)
    for d in districts:
        client.buffer_key(f"d_tax_{d}_{w_id}")
        client.buffer_key(f"next_d_id_{d}_{w_id}")
    values = _Reads(client)
    values.fetch()

    delivered_at = _now_ms(now_ms)

    o_ids: dict[int, str] = {}
    for d in districts:
        district = parse_fields(values[f"d_tax_{d}_{w_id}"])
        next_o_id = _stol(district[1])
        next_key = f"next_d_id_{d}_{w_id}"
        d_id = _stol(values[next_key]) if next_key in values and values[next_key] else 1
        if d_id >= next_o_id:
            continue
        o_ids[d] = str(d_id)
        client.put(next_key, str(d_id + 1))
        client.buffer_key(f"o_{d_id}_{d}_{w_id}")
    values.fetch()

    pending: dict[int, tuple[str, int]] = {}
    for d, o_id in o_ids.items():
        order = parse_fields(values[f"o_{o_id}_{d}_{w_id}"])
        ol_cnt = _stol(order[6])
        order[5] = carrier_id
        client.put(f"o_{order[0]}_{order[1]}_{order[2]}",
                   fields_to_string(order))
        for number in range(1, ol_cnt + 1):
            client.buffer_key(f"ol_{o_id}_{d}_{w_id}_{number}")
        c_id = order[3]
        pending[d] = (c_id, ol_cnt)
        client.buffer_key(f"c_{c_id}_{d}_{w_id}")
    values.fetch()

    for d, (c_id, ol_cnt) in pending.items():
        o_id = o_ids[d]
        total = 0.0
        for number in range(1, ol_cnt + 1):
            ol_key = f"ol_{o_id}_{d}_{w_id}_{number}"
            orderline = parse_fields(values[ol_key])
            orderline[6] = str(delivered_at)
            client.put(ol_key, fields_to_string(orderline))
            total += _stod(orderline[8])
        c_key = f"c_{c_id}_{d}_{w_id}"
        customer = parse_fields(values[c_key])
        customer[15] = _fmt(_stod(customer[15]) + total)
        customer[18] = _fmt(_stod(customer[18]) + 1)
        client.put(c_key, fields_to_string(customer))


def exec_stock_level(keys: Sequence[str], client: TxnClient) -> Optional[set[str]]:
    """Return items of the last 20 orders whose local stock is below the threshold.

    Returns ``None`` after aborting when an order or order line is missing.
    """
    w_id, d_id = keys[0], keys[1]
    threshold = _stol(keys[2])

    district_key = f"d_tax_{d_id}_{w_id}"
    client.buffer_key(district_key)
    values = _Reads(client)
    values.fetch()

    o_id = _stol(parse_fields(values[district_key])[1])
    recent = range(o_id - 20, o_id)
    for i in recent:
        client.buffer_key(f"o_{i}_{d_id}_{w_id}")
    values.fetch()

    ol_cnts: list[int] = []
    for i in recent:
        order_row = values[f"o_{i}_{d_id}_{w_id}"]
        if not order_row:
            client.abort()
            return None
        ol_cnt = _stol(parse_fields(order_row)[6])
        ol_cnts.append(ol_cnt)
        for number in range(1, ol_cnt + 1):
            client.buffer_key(f"ol_{i}_{d_id}_{w_id}_{number}")
    values.fetch()

    i_ids: list[str] = []
    for i, ol_cnt in zip(recent, ol_cnts):
        for number in range(1, ol_cnt + 1):
            line_row = values[f"ol_{i}_{d_id}_{w_id}_{number}"]
            if not line_row:
                client.abort()
                return None
            orderline = parse_fields(line_row)
            i_id = orderline[4]
            i_ids.append(i_id)
            if orderline[5] == w_id:
                client.buffer_key(f"s_{i_id}_{w_id}")
    values.fetch()

    low: set[str] = set()
    for i_id in i_ids:
        stock_row = values[f"s_{i_id}_{w_id}"]
        if stock_row:
            stock = parse_fields(stock_row)
            quantity = _stol(stock[2])
            if 0 <= quantity < threshold:
                low.add(stock[0])
    return low


def run_task(task: TpccTask, client: TxnClient,
             now_ms: Optional[int] = None) -> bool:
    """Run one task in its own transaction; return whether it committed.

    Read-only transactions are not committed and report success.
    """
    client.begin()
    if task.op is TpccOp.NEW_ORDER:
        exec_new_order(task.keys, client, now_ms)
        return client.commit()
    if task.op is TpccOp.PAYMENT:
        exec_payment(task.keys, client, now_ms)
        return client.commit()
    if task.op is TpccOp.ORDER_STATUS:
        exec_order_status(task.keys, client)
        return True
    if task.op is TpccOp.DELIVERY:
        exec_delivery(task.keys, client, now_ms)
        return client.commit()
    exec_stock_level(task.keys, client)
    return True