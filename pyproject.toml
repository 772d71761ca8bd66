[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "lsmkv"
version = "0.1.0"
description = "Key-value storage building blocks (WAL records, write-ahead log, skip list, bloom filter, file helpers) with an in-memory Redis-style command layer"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "skiplist", "bloom-filter", "wal", "write-ahead-log", "redis", "resp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["lsmkv*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
