"""Numeric counters kept in hash fields."""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Sequence

import redis

from .args import append_args
from .core import RedisResult, ScriptError, Store

LAST_UPDATE_FIELD = "lastUpdateTime"

_INTEGER = re.compile(r"-?\d+")
_SIGNED_INTEGER = re.compile(r"[+-]?\d+")
_NOT_INTEGER = "value is not an integer or out of range"
_BAD_ARGUMENT = "Lua redis() command arguments must be strings or integers"


def _redis_number(value: Any) -> str:
    """Text a number takes when it is handed to a store command."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _lua_tostring(value: Any) -> str:
    """Text a script number takes when turned into a string."""
    return format(float(value), ".14g")


def _argument_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (bool, int, float)):
        return _redis_number(value)
    return str(value)


class ValueStore(Store):
    """Integer counters in hash fields, stamped with the time of the last update."""

    def inc_value(self, keys: Sequence[str], args: Sequence[str]) -> int:
        """Add ``v1`` to field ``k2`` and return the new total."""
        sender = "IncValue.lua"
        client, main_key, field, amount = self._counter_target(keys, args, sender)
        total = self._hincrby(client, main_key, field, amount, sender)
        self._touch(client, main_key)
        return total

    def inc_value_before(
        self, keys: Sequence[str], args: Sequence[str]
    ) -> tuple[int, int]:
        """Add ``v1`` to field ``k2``; return the totals before and after."""
        sender = "IncValueBefore.lua"
        client, main_key, field, amount = self._counter_target(keys, args, sender)
        before = self._text(client.hget(main_key, field))
        after = self._hincrby(client, main_key, field, amount, sender)
        self._touch(client, main_key)
        return self._read_int(before, sender), after

    def inc_value_batch(self, keys: Sequence[str], *args: Any) -> list[RedisResult]:
        """Add each amount to its field; return the field and amount pairs given."""
        sender = "IncValueBatch.lua"
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
        pairs = self._apply_increments(client, main_key, values, sender)
        self._touch(client, main_key)
        return [RedisResult(key=field, value=amount) for field, amount in pairs]

    def inc_value_batch_fixed_ttl(
        self, keys: Sequence[str], *args: Any
    ) -> list[RedisResult]:
        """Add each amount to its field and give the hash a lifetime.

        The lifetime is set when the hash has none yet, or always when the
        overwrite flag is 1. Returns every field of the hash.
        """
        sender = "IncValueBatch.lua"
        db_key, project_key, tag_key, k1, ttl_raw, overwrite_raw = self._pick(keys, 6)
        ttl = self._number(ttl_raw)
        overwrite = self._number(overwrite_raw)
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
        self._apply_increments(client, main_key, values, sender)
        self._touch(client, main_key)

        entries = client.hgetall(main_key) or {}
        remaining = client.ttl(main_key)
        if (remaining == -1 and ttl is not None) or overwrite == 1:
            if ttl is None:
                raise ScriptError(_BAD_ARGUMENT, sender)
            client.expire(main_key, self._integer(ttl, sender))

        return [
            RedisResult(key=self._text(field), value=self._text(value))
            for field, value in entries.items()
        ]

    def take_value(self, keys: Sequence[str], args: Sequence[str]) -> int:
        """Take ``v1`` percent out of the pool in field ``k2`` and return the share."""
        sender = "TakeValue.lua"
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, raw_rate = self._pick(args, 3)
        rate = self._number(raw_rate)
        self._present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            k2=k2,
            v1=rate,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)

        pool_text = self._text(client.hget(main_key, k2))
        if pool_text is not None and pool_text != "":
            pool = self._number(pool_text)
            if pool is None:
                raise ScriptError("attempt to perform arithmetic on a string value", sender)
            taken: Any = pool * rate / 100
        else:
            pool = 0
            taken = 0
            client.hset(main_key, k2, 0)

        client.hset(main_key, k2, _redis_number(pool - taken))
        return self._read_int(_lua_tostring(taken), sender)

    def update_value(self, keys: Sequence[str], args: Sequence[str]) -> int:
        """Write the number ``v1`` to field ``k2`` and return what was stored."""
        sender = "UpdateValue.lua"
        client, main_key, field, number = self._counter_target(keys, args, sender)
        client.hset(main_key, field, _redis_number(number))
        stored = self._text(client.hget(main_key, field))
        return self._read_int(stored, sender)

    def _counter_target(
        self, keys: Sequence[str], args: Sequence[str], sender: str
    ) -> tuple[Any, str, str, Any]:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, raw = self._pick(args, 3)
        number = self._number(raw)
        self._require(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            k2=k2,
            v1=number,
        )
        client = self._database(db_key)
        return client, self._main_key(project_key, tag_key, k1), k2, number

    @staticmethod
    def _present(sender: str, **named: Any) -> None:
        """Reject the first argument, in order, that is missing."""
        for name, value in named.items():
            if value is None:
                raise ScriptError(f"invalid argument '{name}'", sender)

    @staticmethod
    def _batch_values(args: Sequence[Any]) -> list[str]:
        if not args:
            raise ValueError("at least one argument is required")
        return [_argument_text(value) for value in append_args(args)]

    def _apply_increments(
        self, client: Any, main_key: str, values: Iterable[str], sender: str
    ) -> list[tuple[str, str]]:
        pairs: list[tuple[str, str]] = []
        items = iter(values)
        for field in items:
            amount = next(items, None)
            if amount is None:
                raise ScriptError(_BAD_ARGUMENT, sender)
            self._hincrby(client, main_key, field, amount, sender)
            pairs.append((field, amount))
        return pairs

    def _hincrby(
        self, client: Any, main_key: str, field: str, amount: Any, sender: str
    ) -> int:
        step = self._integer(amount, sender)
        try:
            return int(client.hincrby(main_key, field, step))
        except redis.exceptions.ResponseError as exc:
            raise ScriptError(str(exc), sender) from exc

    def _integer(self, value: Any, sender: str) -> int:
        if isinstance(value, bool):
            raise ScriptError(_NOT_INTEGER, sender)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ScriptError(_NOT_INTEGER, sender)
        text = self._text(value)
        if isinstance(text, str) and _INTEGER.fullmatch(text):
            return int(text)
        raise ScriptError(_NOT_INTEGER, sender)

    @staticmethod
    def _read_int(text: Optional[str], sender: str) -> int:
        if text is None:
            return 0
        if not _SIGNED_INTEGER.fullmatch(text):
            raise ScriptError(f"cannot read {text!r} as an integer", sender)
        return int(text)

    @staticmethod
    def _touch(client: Any, main_key: str) -> None:
        seconds = client.time()[0]
        client.hset(main_key, LAST_UPDATE_FIELD, seconds)