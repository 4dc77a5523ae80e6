# kvops

Redis operations grouped by the kind of data they act on. Each operation
validates its arguments, selects a database, reads and writes the keys it
needs, and returns plain Python values.

## Installation

```
pip install kvops
```

Use `pip install "kvops[test]"` to get the test dependencies as well.

## Connecting

Every store class derives from `kvops.core.Store`, which takes one
argument: a callable that maps a database index to a Redis client.
`connect_factory(host, port, password)` builds such a callable. It keeps
one `redis.Redis` client per database index, created with
`decode_responses=True`.

## Key layout

Most operations take a `keys` list of the form `[db, project, tag]` and an
`args` list naming the record, the field and the value. The record key is
built as `project:tag:record`. Operations on plain keys (`KeyStore`,
`HashStore.hgetall`, `HashStore.hset`, `CollectionStore.sadd`,
`smembers`, `zadd`, `zrange`, `StringStore.set_ttl`) take the key itself in
`keys`.

## Modules

- `kvops.core`: `Store`, `connect_factory`, the `RedisResult` record that
  list-returning operations fill in, the `RedisType` enumeration of key
  kinds (`str()` gives `none`, `string`, `list`, `set`, `zset`, `hash`),
  and `ScriptError`.
- `kvops.args`: `append_args` and `append_arg` flatten lists, tuples,
  mappings and dataclasses whose fields carry `redis` metadata (with
  optional `omitempty`) into flat argument lists.
- `kvops.sequence`: `SequenceStore.inc_base10` and
  `SequenceStore.inc_base62` store and return the next identifier of a
  sequence kept in a hash field. The stored value is reused when its first
  six characters match the given seed; otherwise the seed starts afresh.
  The helpers `increment`, `base10_increment` and `base62_increment`
  compute the next identifier without a server.
- `kvops.values`: `ValueStore` handles integer hash fields:
  `inc_value`, `inc_value_before`, `inc_value_batch`,
  `inc_value_batch_fixed_ttl`, `take_value` (takes a percentage of a
  pool) and `update_value`. Increments stamp a `lastUpdateTime` field.
- `kvops.countdown`: `CountdownStore.inc_countdown` and
  `CountdownStore.update_countdown` handle `count:end_time` values and
  return both numbers.
- `kvops.strings`: `StringStore` offers `new_string` (writes only when
  unset), `update_string`, `update_ttl_string` (ten-second lifetime),
  `set_ttl` (`-1` removes the lifetime) and `ttl_key`.
- `kvops.keys`: `KeyStore` offers `key_type`, `scan_key`,
  `scan_match_key` (one scan step), `scan_match_keys` (full scan for a
  prefix) and `set`.
- `kvops.hashes`: `HashStore` offers `new_hash`, `update_hash`,
  `update_hash_ttl`, `update_hash_batch`, `update_hash_list`
  (`~`-separated field names and values), `hgetall` and `hset`.
- `kvops.collections`: `CollectionStore` handles lists (`new_list`,
  `new_list_batch`, `update_list`; model `L` or `R` picks the end), sets
  (`new_set`, `update_set`, `sadd`, `smembers`) and sorted sets
  (`new_zset`, `update_zset`, `zadd`, `zrange`).
- `kvops.room_queries`: `RoomQueryStore.room_list`, `room_player` and
  `room_id_player` report rooms and their players as JSON text, `[]` when
  there is nothing.

## Example

```python
from kvops.core import connect_factory
from kvops.sequence import SequenceStore, base62_increment

assert base62_increment("0z") == "10"

password = "password"
store = SequenceStore(connect_factory("localhost", 6379, password))
next_id = store.inc_base62(["2", "minigame1", "game"], ["TRA", "TID", "231122-40A-00000000"])
```

## Errors

Rejected arguments raise `ScriptError`, whose `sender` names the operation.
Errors that Redis reports for a command are raised as `ScriptError` too.
Batch operations called with no values raise `ValueError`.

## What it does not do

- There is no operation that seats a player in a room or removes one;
  `kvops.room_queries` only reads room data written by something else.
- Operations run as a sequence of separate commands from the client, not
  as one atomic step on the server, so concurrent callers can interleave.
- There is no command-line tool and no server; the package is a library.