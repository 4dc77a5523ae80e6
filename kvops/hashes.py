"""Hash fields addressed by project, tag and key, written singly or in batches."""

from __future__ import annotations

from contextlib import contextmanager
from itertools import zip_longest
from typing import Any, Iterator, Mapping, Optional, Sequence

import redis

from .args import append_args
from .core import RedisResult, ScriptError, Store

LIST_SEPARATOR = "~"

_BAD_ARGUMENT = "Lua redis() command arguments must be strings or integers"
_HSET_ARITY = "wrong number of arguments for 'hset' command"
_NOT_INTEGER = "value is not an integer or out of range"


@contextmanager
def _commands(sender: str) -> Iterator[None]:
    """Turn a rejected store command into a ScriptError."""
    try:
        yield
    except redis.exceptions.ResponseError as exc:
        raise ScriptError(str(exc), sender) from exc


def _argument_text(value: Any) -> str:
    """Text a value takes when it is handed to a store command."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _split(text: str, separator: str) -> list[str]:
    """The non-empty pieces of ``text`` between separators."""
    return [piece for piece in text.split(separator) if piece]


class HashStore(Store):
    """Hash keys named ``project:tag:k1`` and plain hash keys."""

    def new_hash(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Write ``v1`` to field ``k2`` and return what is stored."""
        sender = "NewHash.lua"
        client, main_key, field, value = self._field_target(keys, args, sender)
        return self._write_field(client, main_key, field, value, sender)

    def update_hash(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Overwrite field ``k2`` with ``v1`` and return what is stored."""
        sender = "UpdateHash.lua"
        client, main_key, field, value = self._field_target(keys, args, sender)
        return self._write_field(client, main_key, field, value, sender)

    def update_hash_ttl(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Write ``v1`` to field ``k2``, give the hash a lifetime of ``v2`` seconds.

        Returns the stored value. A lifetime that is not an integer is rejected
        after the field has been written.
        """
        sender = "UpdateHashTTL.lua"
        client, main_key, field, value = self._field_target(keys, args, sender)
        (raw_ttl,) = self._pick(list(args or ())[3:], 1)
        ttl = self._number(raw_ttl)
        stored = self._write_field(client, main_key, field, value, sender)
        if ttl is None:
            raise ScriptError(_BAD_ARGUMENT, sender)
        if isinstance(ttl, float) and not ttl.is_integer():
            raise ScriptError(_NOT_INTEGER, sender)
        with _commands(sender):
            client.expire(main_key, int(ttl))
        return stored

    def update_hash_batch(self, keys: Sequence[str], *args: Any) -> list[RedisResult]:
        """Write field and value pairs to ``project:tag:k1``; return every field."""
        sender = "UpdateHashBatch.lua"
        db_key, project_key, tag_key, k1 = self._pick(keys, 4)
        values = self._batch_values(args)
        self._present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        self._write_pairs(client, main_key, values, sender)
        return self._entries(client, main_key, sender)

    def update_hash_list(
        self, keys: Sequence[str], args: Sequence[str]
    ) -> list[RedisResult]:
        """Write the ``~``-separated values of ``v1`` to the fields named in ``k2``.

        Returns every field of the hash. A value without a field name is
        rejected, after the fields before it have been written.
        """
        sender = "UpdateHashList.lua"
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, v1 = (
            None if item is None else str(self._text(item)) for item in self._pick(args, 3)
        )
        self._present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            k2=k2,
            v1=v1,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        names = _split(k2, LIST_SEPARATOR)
        values = _split(v1, LIST_SEPARATOR)
        with _commands(sender):
            for name, value in zip_longest(names, values):
                if value is None:
                    break
                if name is None:
                    raise ScriptError(_BAD_ARGUMENT, sender)
                client.hset(main_key, name, value)
        return self._entries(client, main_key, sender)

    def hgetall(self, keys: Sequence[str], args: Sequence[str]) -> list[RedisResult]:
        """Every field and value of the hash ``k1``."""
        sender = "HGetAll.lua"
        db_key, key = self._pick(keys, 2)
        self._present(sender, DBKey=self._number(db_key), k1=key)
        client = self._database(db_key)
        return self._entries(client, key, sender)

    def hset(self, keys: Sequence[str], *args: Any) -> list[RedisResult]:
        """Write field and value pairs to the hash ``k1``; return every field."""
        sender = "HSet.lua"
        db_key, key = self._pick(keys, 2)
        values = self._batch_values(args)
        self._present(sender, DBKey=self._number(db_key), k1=key)
        client = self._database(db_key)
        self._write_pairs(client, key, values, sender)
        return self._entries(client, key, sender)

    def _field_target(
        self, keys: Sequence[str], args: Sequence[str], sender: str
    ) -> tuple[Any, str, str, str]:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, v1 = (
            None if item is None else _argument_text(self._text(item))
            for item in self._pick(args, 3)
        )
        self._present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            k2=k2,
            v1=v1,
        )
        client = self._database(db_key)
        return client, self._main_key(project_key, tag_key, k1), k2, v1

    def _write_field(
        self, client: Any, main_key: str, field: str, value: str, sender: str
    ) -> str:
        with _commands(sender):
            client.hset(main_key, field, value)
            stored = self._text(client.hget(main_key, field))
        return "" if stored is None else str(stored)

    @staticmethod
    def _write_pairs(client: Any, key: str, values: list[str], sender: str) -> None:
        if not values or len(values) % 2:
            raise ScriptError(_HSET_ARITY, sender)
        mapping = dict(zip(values[::2], values[1::2]))
        with _commands(sender):
            client.hset(key, mapping=mapping)

    def _entries(self, client: Any, key: str, sender: str) -> list[RedisResult]:
        with _commands(sender):
            entries: Optional[Mapping[Any, Any]] = client.hgetall(key)
        return [
            RedisResult(key=str(self._text(field)), value=str(self._text(value)))
            for field, value in (entries or {}).items()
        ]

    @staticmethod
    def _batch_values(args: Sequence[Any]) -> list[str]:
        if not args:
            raise ValueError("at least one argument is required")
        return [_argument_text(value) for value in append_args(args)]

    @staticmethod
    def _present(sender: str, **named: Any) -> None:
        """Reject the first argument, in order, that is missing."""
        for name, value in named.items():
            if value is None:
                raise ScriptError(f"invalid argument '{name}'", sender)