# ledgerbench

Building blocks for benchmarking a sharded, replicated transactional
key-value store whose reads can be verified against a ledger:
configuration files, log messages, shard preloading, and client-side
workload generators and transaction bodies.

It has no dependencies outside the standard library.

## Modules

| Module | What it holds |
| --- | --- |
| `ledgerbench.configuration` | replica group configuration and its text format |
| `ledgerbench.logmsg` | formatted messages, panics, debug filters, hex dumps |
| `ledgerbench.timeval` | seconds/microseconds time values |
| `ledgerbench.timeserver` | a counter handing out increasing timestamps |
| `ledgerbench.loader` | djb2 sharding and preload batches for YCSB, SmallBank, TPC-C |
| `ledgerbench.tpcc_workload` | TPC-C task generation |
| `ledgerbench.tpcc_txn` | TPC-C transaction bodies |
| `ledgerbench.ycsb` | Zipf keys, YCSB tasks, transactions and verification bookkeeping |
| `ledgerbench.audit` | a timed audit loop |

## Configuration

A configuration file lists the replicas of one shard and the number of
failures it tolerates:

```
# shard 0
f 1
replica 10.0.0.1:51729
replica 10.0.0.2:51729
replica 10.0.0.3:51729
```

An optional `multicast host:port` line names a multicast address.
Directives are case-insensitive. Blank lines and lines starting with
`#` are ignored; an unknown directive, a missing argument, a missing
`f` line or no replicas at all raises `ConfigurationError`.

```python
from ledgerbench.configuration import load_configuration

config = load_configuration("shard0.config")
config.n                   # 3 replicas
config.replica(0)          # ReplicaAddress(host='10.0.0.1', port='51729')
config.leader_index(7)     # 7 % n
config.quorum_size()       # f + 1
config.fast_quorum_size()  # f + (f + 1) // 2 + 1
config.has_multicast       # False
```

`parse_configuration(lines)` does the same from any iterable of lines.
`Configuration` and `ReplicaAddress` are frozen, comparable and ordered.

## Messages and panics

`ledgerbench.logmsg.format_message` builds one log line: a timestamp,
the process id, a prefix for the `MessageType` (`PANIC`, `!`, `*` or a
space), an optional function and file position, the text, and optionally
an `os.strerror` suffix and ANSI colour. `emit` writes such a line to a
stream (stderr by default), colouring it when the stream is a terminal;
`warning` and `notice` do so with the caller's position. `panic` and
`not_reachable` report and then raise `PanicError`.

`debug_enabled(fname, spec)` applies a `DEBUG`-style pattern list
(comma or space separated shell globs, `all`, and `^` exclusions) to a
file name; `spec` defaults to the `DEBUG` environment variable.
`hexdump(data)` returns 16-byte hex dump lines, and `fmt_blob(data,
blobmax)` renders at most `blobmax` bytes (default `BLOBMAX` or 32)
between bars, ending in `>` when truncated.

## Time values

`Timeval(sec, usec)` supports subtraction with borrow and ordering.
`from_secs` keeps only whole seconds, `format_abs` prints local time as
`HH:MM:SS:uuuuuu`, and `format_diff` prints `sec.uuuuuu`.

## Timestamp server

`TimeStampServer` answers both `leader_upcall(opnum, request)` and
`replica_upcall(opnum, request)` with the next value of a thread-safe
counter, as a decimal string, starting from `"1"`.

## Loading a shard

Keys are assigned to shards by `djb2_hash(key) % max_shard`.

```python
from ledgerbench.loader import load_workload, owns_key

def load(keys, values, timestamp):
    ...  # hand the batch to the store

load_workload(load, "ycsb", n_keys=1000, versions=1,
              my_shard=0, max_shard=4)
owns_key("42", 0, 4)
```

* `ycsb_batches(n_keys, versions, ...)` yields keys `0..n_keys` once per
  version, value `key + version`, at most ten per batch, timestamped with
  the version.
* `smallbank_batches(...)` yields `savingStore_i` = `1000` and
  `checkingStore_i` = `50` for accounts `1..100000`.
* `tpcc_batches(lines, ...)` reads `key<TAB>value` lines in batches of
  200.

`load_workload` returns the number of keys it loaded; for `tpcc` it
reads `key_path` and prints `Loaded N keys`, and for an unknown workload
it prints a notice and loads nothing.

## Workloads

The transaction bodies run against a client object you supply, so the
same code drives a real store or an in-memory stand-in.

### TPC-C

`TpccGenerator(rng)` draws `TpccTask`s in the 44/44/4/4/4 mix of
New-Order, Payment, Order-Status, Delivery and Stock-Level, using
`nurand` for customer and item ids. `ledgerbench.tpcc_txn.run_task(task,
client, now_ms)` begins a transaction, runs the matching `exec_*`
function and commits the writing transactions, returning whether they
committed; read-only ones return `True`. The client needs `begin`,
`buffer_key`, `batch_get` (returning a mapping of the buffered keys),
`put`, `commit` and `abort`. Rows are comma separated
(`parse_fields`, `fields_to_string`).

### YCSB

`ZipfGenerator(n, theta)` draws ranks in `[1, n]`; `generate_task(rng,
zipf, tlen, w_per, r_per)` builds a `YcsbTask` of puts, gets and
multi-version reads. `run_transaction(client, task)` runs it and
returns the commit outcome with the keys the store reports as awaiting
verification. `VerifyMap` collects those keys per replica and block, and
`verify_once(client, verify_map)` verifies everything pending and clears
it.

### Audit

`audit_loop(client, progress, duration, timeout, skip, ...)` calls
`client.audit(progress)` repeatedly for `duration` seconds, the first
`skip` times back to back and then every `timeout` milliseconds, and
returns an `AuditResult` per round.

### Result lines

Each round is recorded as one line: count, start and end time
(`sec.uuuuuu`), latency in microseconds, success flag `1`/`0` and an
operation code; `ledgerbench.ycsb.format_record` builds it, and
`AuditResult.record` writes it with code `3`.

## What it does not do

The package contains no network transport, replication protocol or
storage engine, and no client for a real store: the transactions call
whatever client object is passed in. It has no SmallBank transaction
bodies, only the SmallBank preload data. It installs no command-line
programs; everything is used from Python.