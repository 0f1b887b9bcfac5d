"""Configuration, logging, shard loading and TPC-C, YCSB and audit workloads for benchmarking a verifiable key-value store."""

__version__ = "0.1.0"