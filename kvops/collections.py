"""Lists, sets and sorted sets addressed by project, tag and key."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence

import redis

from .args import append_args
from .core import RedisResult, ScriptError, Store

LEFT = "L"
RIGHT = "R"
NOT_ADDED = "-1"

_INT64_LIMIT = 2**63


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


def _score_text(score: Any) -> str:
    """Text the store gives a sorted-set score."""
    number = float(score)
    if number.is_integer() and abs(number) < 1e17:
        return str(int(number))
    return repr(number)


def _score_int(score: Any) -> int:
    """A score read as a whole number; scores that are not one read as zero."""
    number = float(score)
    if number.is_integer() and abs(number) < _INT64_LIMIT:
        return int(number)
    return 0


def _present(sender: str, **named: Any) -> None:
    """Reject the first argument, in order, that is missing."""
    for name, value in named.items():
        if value is None:
            raise ScriptError(f"invalid argument '{name}'", sender)


class CollectionStore(Store):
    """List, set and sorted-set keys named ``project:tag:k1`` and plain keys."""

    def new_list(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Push ``v1`` on the left (``L``) or right (``R``) end of list ``k1``.

        Returns the pushed value, or an empty string when nothing was stored.
        """
        sender = "NewList.lua"
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, model, v1 = self._strings(args, 3)
        _present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            model=model,
            v1=v1,
        )
        _present(sender, k1=k1)
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        push = self._pusher(client, model, sender)
        with _commands(sender):
            length = push(main_key, v1)
        return v1 if int(length) >= 1 else ""

    def new_list_batch(self, keys: Sequence[str], *args: Any) -> int:
        """Push every value onto list ``k1`` at the end named by ``model``.

        Returns the length of the list afterwards.
        """
        sender = "NewListBatch.lua"
        if not args:
            raise ValueError("at least one argument is required")
        db_key, project_key, tag_key, k1, model = self._pick(keys, 5)
        values = [_argument_text(value) for value in append_args(args)]
        _present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            model=model,
        )
        _present(sender, k1=k1)
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        push = self._pusher(client, str(self._text(model)), sender)
        if not values:
            raise ScriptError("wrong number of arguments for 'push' command", sender)
        with _commands(sender):
            return int(push(main_key, *values))

    def update_list(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Replace the element at index ``v1`` of list ``k1`` with ``v2``.

        Returns the new element. A missing list or an index past the end is
        rejected.
        """
        sender = "UpdateList.lua"
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, raw_index, v2 = self._strings(args, 3)
        index = self._number(raw_index)
        _present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            v1=index,
            v2=v2,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        with _commands(sender):
            exists = int(client.exists(main_key))
            length = int(client.llen(main_key))
            if exists != 1:
                raise ScriptError("no such key", sender)
            if index >= length:
                raise ScriptError("index out of range", sender)
            if isinstance(index, float) and not index.is_integer():
                raise ScriptError("value is not an integer or out of range", sender)
            client.lset(main_key, int(index), v2)
        return v2

    def new_set(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Add ``v1`` to set ``k1`` and return it once it is a member."""
        sender = "NewSet.lua"
        client, main_key, (v1,) = self._keyed(keys, args, 1, sender)
        with _commands(sender):
            added = client.sadd(main_key, v1)
            member = client.sismember(main_key, v1)
        return v1 if member else str(added)

    def update_set(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Replace member ``v1`` of set ``k1`` with ``v2``.

        Returns ``v2`` when it was newly added, ``-1`` when it was already there.
        """
        sender = "UpdateSet.lua"
        client, main_key, (v1, v2) = self._keyed(keys, args, 2, sender)
        with _commands(sender):
            client.srem(main_key, v1)
            added = int(client.sadd(main_key, v2))
        return v2 if added == 1 else NOT_ADDED

    def sadd(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Add ``Value`` to the set ``Key``; return how many were added, as text."""
        sender = "SAdd.lua"
        db_key, key, value = self._pick(keys, 3)
        _present(sender, Key=key, Value=value)
        client = self._database(db_key)
        with _commands(sender):
            return str(client.sadd(key, _argument_text(self._text(value))))

    def smembers(self, keys: Sequence[str], args: Sequence[str]) -> list[RedisResult]:
        """Every member of the set ``Key``, in sorted order."""
        sender = "SMembers.lua"
        db_key, key = self._pick(keys, 2)
        _present(sender, Key=key)
        client = self._database(db_key)
        with _commands(sender):
            members = client.smembers(key) or set()
        return [
            RedisResult(value=member)
            for member in sorted(str(self._text(item)) for item in members)
        ]

    def new_zset(self, keys: Sequence[str], args: Sequence[str]) -> RedisResult:
        """Give member ``v2`` of sorted set ``k1`` the score ``v1``.

        Returns the stored score as ``value`` and the member as ``value2``.
        """
        return self._put_score(keys, args, "NewZset.lua")

    def update_zset(self, keys: Sequence[str], args: Sequence[str]) -> RedisResult:
        """Change the score of member ``v2`` of sorted set ``k1`` to ``v1``."""
        return self._put_score(keys, args, "NewZset.lua")

    def zadd(self, keys: Sequence[str], args: Sequence[str]) -> tuple[str, int]:
        """Add ``Value`` with score ``Score`` to the sorted set ``Key``.

        Returns how many members were added, as text, and a second reading
        that the reply does not carry, which is zero.
        """
        sender = "ZAdd.lua"
        db_key, key = self._pick(keys, 2)
        value, raw_score = self._strings(args, 2)
        score = self._number(raw_score)
        _present(sender, Key=key, Value=value)
        if score is None:
            raise ScriptError("wrong number of arguments for 'zadd' command", sender)
        client = self._database(db_key)
        with _commands(sender):
            added = client.zadd(key, {value: score})
        return str(added), 0

    def zrange(self, keys: Sequence[str], args: Sequence[str]) -> list[RedisResult]:
        """Every member of the sorted set ``Key`` with its whole-number score."""
        sender = "ZRange.lua"
        db_key, key = self._pick(keys, 2)
        _present(sender, Key=key)
        client = self._database(db_key)
        with _commands(sender):
            entries = client.zrange(key, 0, -1, withscores=True) or []
        return [
            RedisResult(value=str(self._text(member)), value_int64=_score_int(score))
            for member, score in entries
        ]

    def _put_score(
        self, keys: Sequence[str], args: Sequence[str], sender: str
    ) -> RedisResult:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, raw_score, member = self._strings(args, 3)
        score = self._number(raw_score)
        _present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            v1=score,
            v2=member,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, k1)
        with _commands(sender):
            client.zadd(main_key, {member: score})
            stored = client.zscore(main_key, member)
        if stored is None or stored == "":
            return RedisResult(value="0", value2="0")
        return RedisResult(value=_score_text(stored), value2=member)

    def _keyed(
        self, keys: Sequence[str], args: Sequence[str], count: int, sender: str
    ) -> tuple[Any, str, list[str]]:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, *values = self._strings(args, count + 1)
        _present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            **{f"v{position}": value for position, value in enumerate(values, 1)},
        )
        client = self._database(db_key)
        return client, self._main_key(project_key, tag_key, k1), values

    def _strings(self, args: Optional[Sequence[Any]], count: int) -> list:
        return [
            None if item is None else _argument_text(self._text(item))
            for item in self._pick(args, count)
        ]

    @staticmethod
    def _pusher(client: Any, model: str, sender: str) -> Callable[..., Any]:
        if model == LEFT:
            return client.lpush
        if model == RIGHT:
            return client.rpush
        raise ScriptError(f"unknown list model {model!r}", sender)