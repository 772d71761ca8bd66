# lsmkv

Building blocks for a log-structured key-value store, and a Redis-style
command layer that runs over an in-memory multi-version store.

## Modules

- `lsmkv.record`: `OperationType` (CREATE, COMMIT, ROLLBACK, PUT,
  DELETE) and `Record`, a write-ahead log entry. Build records with
  `Record.create`, `Record.commit`, `Record.rollback`, `Record.put` and
  `Record.delete`. `encode()` gives the little-endian binary form.
  `Record.decode(data)` returns every record held in a byte string.
- `lsmkv.files`: two file helpers.
  - `FileObj` (`create_and_write`, `open`) reads slices and unsigned
    8/16/32/64-bit integers at offsets. It also writes, appends, syncs,
    closes and deletes, and works as a context manager.
  - `MmapFile` is a memory-mapped file. Its `write(offset, data)` resizes the
    file to end at the written data.
- `lsmkv.skiplist`: `SkipList`, an ordered skip list that keeps several
  versions of a key, ordered newest transaction id first. It offers:
  - `put`, and `get(key, tranc_id)`, where a non-zero id hides newer versions.
  - `remove`, `flush`, `size`, `clear`, `format`.
  - Iterators from `begin`, `end`, `begin_prefix` and `end_prefix`.
  - `iters_monotony_predicate`, which finds the range of keys that a
    monotone predicate matches.
- `lsmkv.bloom_filter`: `BloomFilter` with `add`, `possibly_contains` (also
  `in`), `clear`, `encode` and `BloomFilter.decode`.
- `lsmkv.wal`: `Wal`, a buffered write-ahead log. Records are written to
  `wal.<seq>` files in a directory, and a new file is started when the active
  one passes the size limit. It offers:
  - `log(records, force_flush)`, `flush()` and `close()`.
  - `clean_wal_files()`, which deletes older files whose transactions have all
    finished. A background thread runs it every `clean_interval` seconds.
  - `Wal.recover(log_dir, max_flushed_tranc_id)`, which groups logged records
    by transaction id.
- `lsmkv.store`: `MemoryStore`, a key-value store on a `SkipList`. Each write
  is a new version, and a removal writes an empty value. It offers `get`,
  `put`, `put_batch`, `remove`, `remove_batch`, `iters_monotony_predicate`,
  `clear`, and `flush`, which keeps only the newest live version of each key.
- `lsmkv.keys`: the flat key layout used for hashes, lists, sorted sets,
  sets and expiry times, plus `split`, `join`, `is_expired`, `expire_time` and
  `prefix_predicate`.
- `lsmkv.commands_basic`: `KeyspaceCommands`, which covers:
  - Strings and counters: `set`, `get`, `incr`, `decr`.
  - Expiry and deletion: `expire`, `ttl`, `delete` (DEL).
  - Hashes: `hset`, `hget`, `hdel`, `hkeys`.
  - Lists: `lpush`, `rpush`, `lpop`, `rpop`, `llen`, `lrange`.
  - Maintenance: `clear`, and `flushall`, which compacts the store.
- `lsmkv.redis_wrapper`: `RedisWrapper` adds the rest of the command set.
  - Sorted sets: `zadd`, `zrem`, `zrange`, `zcard`, `zscore`, `zincrby`,
    `zrank`, and `zscores(key)`, which returns `(member, score)` pairs.
  - Sets: `sadd`, `srem`, `sismember`, `scard`, `smembers`.

## Installation

    pip install .

## Example

```python
from lsmkv.redis_wrapper import RedisWrapper

db = RedisWrapper()
db.set(["SET", "greeting", "hello"])      # '+OK\r\n'
db.get(["GET", "greeting"])               # '$5\r\nhello\r\n'
db.incr(["INCR", "hits"])                 # '1'  (bare number, not RESP)
db.rpush(["RPUSH", "queue", "a"])         # ':1\r\n'
db.sadd(["SADD", "tags", "x", "y"])       # ':2\r\n'
db.zadd(["ZADD", "board", "10", "alice"]) # ':1\r\n'
```

Each command takes the argument list as a client would send it, command name
first. It returns the reply already encoded in RESP, except `incr` and
`decr`, which return the new number as plain text. Too few arguments raise
`ValueError`. The one exception is `zrem`, which returns a RESP error reply.

`RedisWrapper(store=None, clock=None)` accepts an existing `MemoryStore` and a
callable that returns the current time in whole seconds. Passing your own
clock makes expiry deterministic, for example in tests.

Lower-level pieces:

```python
from lsmkv.skiplist import SkipList
from lsmkv.record import Record

sl = SkipList()
sl.put("k", "v", 1)
sl.get("k", 0).value()                    # 'v'

data = Record.put(7, "k", "v").encode()
Record.decode(data)                       # [Record(tranc_id=7, ...)]
```

## What this package does not do

- The command layer keeps its data in memory only. Nothing is written to
  disk, and everything is lost when the process ends.
- The write-ahead log, skip list, bloom filter and file helpers are separate
  components. No sorted table files, block cache, compaction or transaction
  manager ties them into a persistent engine.
- There is no network server and no command-line program. Commands are
  called as Python methods.

## Tests

    pip install .[test]
    pytest