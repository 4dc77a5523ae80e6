"""Key inspection: types, scans over the key space and plain writes."""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

import redis

from .core import RedisResult, ScriptError, Store

_INTEGER = re.compile(r"\d+")


@contextmanager
def _commands(sender: str) -> Iterator[None]:
    """Turn a rejected store command into a ScriptError."""
    try:
        yield
    except redis.exceptions.ResponseError as exc:
        raise ScriptError(str(exc), sender) from exc


class KeyStore(Store):
    """Operations on whole keys."""

    def key_type(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Return the kind of value ``Key`` holds, ``none`` when it is unset."""
        sender = "KeyType.lua"
        db_key, key = self._pick(keys, 2)
        self._need_key(key, "Key", sender)
        client = self._database(db_key)
        with _commands(sender):
            return str(self._text(client.type(key)))

    def scan_key(self, keys: Sequence[str], args: Sequence[str]) -> list[RedisResult]:
        """Every key found scanning from cursor ``Count`` until the scan ends."""
        sender = "ScanKey.lua"
        db_key, start = self._pick(keys, 2)
        cursor = self._cursor(start, "Count", sender)
        client = self._database(db_key)
        return [RedisResult(key=key) for key in self._scan(client, cursor, None, sender)]

    def scan_match_key(
        self, keys: Sequence[str], args: Sequence[str]
    ) -> list[RedisResult]:
        """Keys starting with ``Key`` from one scan step of size ``Count``."""
        sender = "ScanMatchKey.lua"
        db_key, prefix, count = self._pick(keys, 3)
        self._need_key(prefix, "Key", sender)
        size = self._number(count)
        if size is None or size < 1 or (isinstance(size, float) and not size.is_integer()):
            raise ScriptError("invalid argument 'Count'", sender)
        client = self._database(db_key)
        with _commands(sender):
            _, found = client.scan(cursor=0, match=f"{prefix}*", count=int(size))
        return [RedisResult(key=str(self._text(key))) for key in found]

    def scan_match_keys(
        self, keys: Sequence[str], args: Sequence[str]
    ) -> list[RedisResult]:
        """Every key starting with ``Key``, scanning the whole key space."""
        sender = "ScanMatchKeys.lua"
        db_key, prefix = self._pick(keys, 2)
        self._need_key(prefix, "Key", sender)
        client = self._database(db_key)
        return [
            RedisResult(key=key)
            for key in self._scan(client, 0, f"{prefix}*", sender)
        ]

    def set(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Write ``Value`` to ``Key`` and return the store's status reply."""
        sender = "Set.lua"
        db_key, key, value = self._pick(keys, 3)
        self._need_key(key, "Key", sender)
        self._need_key(value, "Value", sender)
        client = self._database(db_key)
        with _commands(sender):
            reply = self._text(client.set(key, value))
        if reply is True:
            return "OK"
        return reply if isinstance(reply, str) else ""

    def _scan(
        self, client: Any, cursor: int, match: Optional[str], sender: str
    ) -> Iterator[str]:
        while True:
            with _commands(sender):
                cursor, found = client.scan(cursor=cursor, match=match)
            for key in found:
                yield str(self._text(key))
            if int(cursor) == 0:
                return

    def _cursor(self, value: Any, name: str, sender: str) -> int:
        text = None if value is None else str(self._text(value))
        if text is None or not _INTEGER.fullmatch(text):
            raise ScriptError(f"invalid argument '{name}'", sender)
        return int(text)

    @staticmethod
    def _need_key(value: Any, name: str, sender: str) -> None:
        if value is None:
            raise ScriptError(f"invalid argument '{name}'", sender)