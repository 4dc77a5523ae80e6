"""Countdown records stored as ``count:end`` text in hash fields."""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from .core import ScriptError, Store

_SIGNED_INTEGER = re.compile(r"[+-]?\d+")


def _lua_tostring(value: Any) -> str:
    return format(float(value), ".14g")


def _lenient_int(text: str) -> int:
    """An integer read from text; text that is not one reads as zero."""
    if _SIGNED_INTEGER.fullmatch(text):
        return int(text)
    return 0


class CountdownStore(Store):
    """Countdown counters paired with an end time."""

    def inc_countdown(self, keys: Sequence[str], args: Sequence[str]) -> tuple[int, int]:
        """Add ``v1`` to the count, set the end time to ``v2``; return both."""
        sender = "IncCountDown.lua"
        client, main_key, field, v1, v2 = self._target(keys, args, sender)

        current = self._text(client.hget(main_key, field))
        if current is not None and current != "":
            head, separator, _ = current.partition(":")
            if not separator:
                raise ScriptError("attempt to perform arithmetic on a nil value", sender)
            base: Any = head
        else:
            base = 0

        left = self._number(base)
        right = self._number(v1)
        if left is None or right is None:
            raise ScriptError("attempt to perform arithmetic on a string value", sender)
        client.hset(main_key, field, f"{_lua_tostring(left + right)}:{v2}")

        stored = self._text(client.hget(main_key, field))
        return self._split(stored, sender)

    def update_countdown(
        self, keys: Sequence[str], args: Sequence[str]
    ) -> tuple[int, int]:
        """Set the count to ``v1`` and the end time to ``v2``; return both."""
        sender = "UpdateCountDown.lua"
        client, main_key, field, v1, v2 = self._target(keys, args, sender)
        client.hset(main_key, field, f"{v1}:{v2}")
        stored = self._text(client.hget(main_key, field))
        if stored is None or stored == "":
            return 0, 0
        return self._split(stored, sender)

    def _target(
        self, keys: Sequence[str], args: Sequence[str], sender: str
    ) -> tuple[Any, str, str, str, str]:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, v1, v2 = (
            None if item is None else str(self._text(item)) for item in self._pick(args, 4)
        )
        self._require(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            k2=k2,
            v1=v1,
            v2=v2,
        )
        client = self._database(db_key)
        return client, self._main_key(project_key, tag_key, k1), k2, v1, v2

    @staticmethod
    def _split(stored: Optional[str], sender: str) -> tuple[int, int]:
        if stored is None:
            raise ScriptError("countdown record is missing", sender)
        head, separator, tail = stored.partition(":")
        if not separator:
            raise ScriptError("attempt to perform arithmetic on a nil value", sender)
        return _lenient_int(head), _lenient_int(tail)