"""Flattening of call arguments into the flat value lists the store commands take."""

from __future__ import annotations

import ipaddress
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Sequence

_ATOMIC = (
    str,
    bytes,
    bytearray,
    datetime,
    date,
    time,
    timedelta,
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
)


def append_args(args: Sequence[Any]) -> list:
    """Flatten a single argument; several arguments are kept as they are."""
    if len(args) == 1:
        return append_arg(args[0])
    return list(args)


def append_arg(arg: Any) -> list:
    """Expand one argument: sequences, mappings and tagged dataclasses spread out."""
    if arg is None:
        return []
    if isinstance(arg, _ATOMIC):
        return [arg]
    if isinstance(arg, (list, tuple)):
        return list(arg)
    if isinstance(arg, Mapping):
        return [item for pair in arg.items() for item in pair]
    if is_dataclass(arg) and not isinstance(arg, type):
        return _struct_fields(arg)
    return [arg]


def _struct_fields(obj: Any) -> list:
    """Name and value of each field tagged with ``redis`` metadata."""
    out: list = []
    for item in fields(obj):
        tag = item.metadata.get("redis", "")
        if tag in ("", "-"):
            continue
        name, _, options = tag.partition(",")
        if not name:
            continue
        value = getattr(obj, item.name)
        if "omitempty" in options.split(",") and _is_empty(value):
            continue
        out.extend((name, value))
    return out


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, bytes, bytearray, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False