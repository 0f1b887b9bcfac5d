[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "ledgerbench"
version = "0.1.0"
description = "Configuration, logging, data loading and workload generators for benchmarking a verifiable, sharded transactional key-value store"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "benchmark",
    "distributed",
    "transactions",
    "tpcc",
    "ycsb",
    "smallbank",
    "ledger",
    "zipf",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Benchmark",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["ledgerbench*"]

[tool.pytest.ini_options]
addopts = "-ra"
