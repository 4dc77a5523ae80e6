"""Counters stored as digit strings that step up by one in base 10 or base 62."""

from __future__ import annotations

from typing import Callable, Sequence

from .core import Store

DECIMAL_DIGITS = "0123456789"
BASE62_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

_PREFIX_LENGTH = 6


def increment(text: str, alphabet: str) -> str:
    """Step ``text`` up by one in the digit alphabet ``alphabet``.

    A text led by the highest digit gains a leading zero first, and a last
    symbol outside the alphabet is dropped.
    """
    if len(alphabet) < 2 or len(set(alphabet)) != len(alphabet):
        raise ValueError("alphabet needs at least two distinct symbols")
    top = alphabet[-1]
    if text[:1] == top:
        text = alphabet[0] + text
    if not text:
        return alphabet[1]
    head, last = text[:-1], text[-1]
    if last == top:
        return increment(head, alphabet) + alphabet[0]
    position = alphabet.find(last)
    if position < 0:
        return head
    return head + alphabet[position + 1]


def base10_increment(text: str) -> str:
    """Step a decimal digit string up by one."""
    return increment(text, DECIMAL_DIGITS)


def base62_increment(text: str) -> str:
    """Step a base-62 digit string up by one."""
    return increment(text, BASE62_DIGITS)


class SequenceStore(Store):
    """Sequence counters kept in hash fields."""

    def inc_base10(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Step the counter by one in base 10 and return the new value."""
        return self._step(keys, args, base10_increment, "IncBase10.lua")

    def inc_base62(self, keys: Sequence[str], args: Sequence[str]) -> str:
        """Step the counter by one in base 62 and return the new value."""
        return self._step(keys, args, base62_increment, "IncBase62.lua")

    def _step(
        self,
        keys: Sequence[str],
        args: Sequence[str],
        step: Callable[[str], str],
        sender: str,
    ) -> str:
        db_key, project_key, tag_key = self._pick(keys, 3)
        k1, k2, v1 = self._pick(args, 3)
        self._require(
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

        current = self._text(client.hget(main_key, k2))
        if current and current[:_PREFIX_LENGTH] == v1[:_PREFIX_LENGTH]:
            seed = current
        else:
            seed = v1

        result = step(seed)
        client.hset(main_key, k2, result)
        return result