"""Shared building blocks: result records, key types, errors and the store base."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterable, Optional, Union

import redis

Number = Union[int, float]
Connect = Callable[[int], Any]

_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_HEX = re.compile(r"[+-]?0[xX][0-9a-fA-F]+")


@dataclass
class RedisResult:
    """One record read back from a store operation."""

    value: str = ""
    value2: str = ""
    count_down: int = 0
    end_time: int = 0
    value_int64: int = 0
    value2_int64: int = 0
    key: str = ""
    type: str = ""
    count: int = 0


class RedisType(IntEnum):
    """The kinds of value a key can hold."""

    NONE = 0
    STRING = 1
    LIST = 2
    SET = 3
    ZSET = 4
    HASH = 5

    def __str__(self) -> str:
        return self.name.lower()


class ScriptError(Exception):
    """An operation rejected its arguments or hit an inconsistent state."""

    def __init__(self, message: str, sender: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.sender = sender


class Store:
    """Base for the operation groups; ``connect`` maps a database index to a client."""

    def __init__(self, connect: Connect) -> None:
        if not callable(connect):
            raise TypeError("connect must be a callable taking a database index")
        self._connect = connect

    @staticmethod
    def _number(value: Any) -> Optional[Number]:
        """Read a number the lenient way scripts do; None when it is not one."""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        if not isinstance(value, str):
            return None
        text = value.strip()
        if _HEX.fullmatch(text):
            return int(text, 16)
        if _DECIMAL.fullmatch(text):
            if text.lstrip("+-").isdigit():
                return int(text)
            return float(text)
        return None

    @staticmethod
    def _pick(values: Optional[Iterable[Any]], count: int) -> list:
        """The first ``count`` items, padded with None where missing."""
        items = list(values or ())[:count]
        return items + [None] * (count - len(items))

    @staticmethod
    def _require(sender: str, **named: Any) -> None:
        """Reject the first argument, in order, that is missing or empty."""
        for name, value in named.items():
            if value is None or value == "":
                raise ScriptError(f"invalid argument '{name}'", sender)

    def _database(self, db_key: Any) -> Any:
        number = self._number(db_key)
        if number is None or number < 0:
            raise ScriptError("invalid argument 'DBKey'")
        if isinstance(number, float) and not number.is_integer():
            raise ScriptError("invalid argument 'DBKey'")
        return self._connect(int(number))

    @staticmethod
    def _main_key(*parts: str) -> str:
        return ":".join(parts)

    @staticmethod
    def _text(value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value


def connect_factory(host: str, port: int, password: Optional[str]) -> Connect:
    """Build a ``connect`` callable that keeps one client per database index."""
    clients: dict = {}

    def connect(db: int) -> redis.Redis:
        client = clients.get(db)
        if client is None:
            client = redis.Redis(
                host=host,
                port=port,
                password=password or None,
                db=db,
                decode_responses=True,
            )
            clients[db] = client
        return client

    return connect