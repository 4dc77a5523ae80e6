"""String values addressed by project, tag and key, with their lifetimes."""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import redis

from .core import ScriptError, Store

UPDATE_TTL_SECONDS = 10
PERSIST = "-1"

_INTEGER = re.compile(r"[+-]?\d+")


@contextmanager
def _commands(sender: str) -> Iterator[None]:
    """Turn a rejected store command into a ScriptError."""
    try:
        yield
    except redis.exceptions.ResponseError as exc:
        raise ScriptError(str(exc), sender) from exc


class StringStore(Store):
    """Plain string keys named ``project:tag:k1``."""

    def new_string(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Write ``v1`` only when the key is unset or empty.

        Returns the stored value, or an empty string when the key already held one.
        """
        sender = "NewString.lua"
        client, main_key, value = self._target(keys, args, sender, strict=True)
        with _commands(sender):
            current = self._text(client.get(main_key))
            if current is None or current == "":
                client.set(main_key, value)
                return self._text(client.get(main_key)) or ""
        return ""

    def update_string(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Replace the value with ``v1`` and return what is stored."""
        sender = "UpdateString.lua"
        client, main_key, value = self._target(keys, args, sender, strict=True)
        with _commands(sender):
            client.getset(main_key, value)
            return self._text(client.get(main_key)) or ""

    def update_ttl_string(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Write ``v1`` with a lifetime of ten seconds and return what is stored."""
        sender = "UpdateTTLString.lua"
        client, main_key, value = self._target(keys, args, sender, strict=False)
        with _commands(sender):
            client.mset({main_key: value})
            client.expire(main_key, UPDATE_TTL_SECONDS)
            stored = client.mget([main_key])
        if not stored:
            return ""
        return self._text(stored[0]) or ""

    def set_ttl(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Give key ``k1`` a lifetime of ``v1`` seconds, or none for ``-1``.

        Returns the remaining lifetime as text, as the store reports it.
        """
        sender = "SetTTL.lua"
        db_key, key, seconds = self._pick(keys, 3)
        if key is None:
            raise ScriptError("invalid argument 'k1'", sender)
        seconds_text = None if seconds is None else str(self._text(seconds))
        client = self._database(db_key)
        with _commands(sender):
            if seconds_text == PERSIST:
                client.persist(key)
            else:
                if seconds_text is None or not _INTEGER.fullmatch(seconds_text):
                    raise ScriptError("invalid argument 'v1'", sender)
                client.expire(key, int(seconds_text))
            return str(client.ttl(key))

    def ttl_key(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Return the remaining lifetime of ``project:tag:k1`` as text."""
        sender = "TTLKey.lua"
        db_key, project_key, tag_key = self._pick(keys, 3)
        (k1,) = self._pick(args, 1)
        self._present(
            sender,
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
        )
        client = self._database(db_key)
        main_key = self._main_key(project_key, tag_key, str(self._text(k1)))
        with _commands(sender):
            return str(client.ttl(main_key))

    def _target(
        self,
        keys: Sequence[str],
        args: Sequence[str],
        sender: str,
        *,
        strict: bool,
    ) -> tuple[Any, str, str]:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, v1 = (
            None if item is None else str(self._text(item)) for item in self._pick(args, 2)
        )
        named = dict(
            DBKey=self._number(db_key),
            ProjectKey=project_key,
            TagKey=tag_key,
            k1=k1,
            v1=v1,
        )
        if strict:
            self._require(sender, **named)
        else:
            self._present(sender, **named)
        client = self._database(db_key)
        return client, self._main_key(project_key, tag_key, k1), v1

    @staticmethod
    def _present(sender: str, **named: Any) -> None:
        """Reject the first argument, in order, that is missing."""
        for name, value in named.items():
            if value is None:
                raise ScriptError(f"invalid argument '{name}'", sender)