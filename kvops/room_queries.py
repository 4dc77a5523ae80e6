"""Read-only views over the room bookkeeping: rooms, players and seats."""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import redis

from .core import ScriptError, Store


@contextmanager
def _commands(sender: str) -> Iterator[None]:
    """Turn a rejected store command into a ScriptError."""
    try:
        yield
    except redis.exceptions.ResponseError as exc:
        raise ScriptError(str(exc), sender) from exc


def _encode(value: Any) -> str:
    """Compact JSON with forward slashes escaped."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).replace(
        "/", "\\/"
    )


def _split(text: str, separator: str) -> list[str]:
    return [piece for piece in text.split(separator) if piece]


class RoomQueryStore(Store):
    """Queries that report rooms and their players as JSON text."""

    def room_list(self, keys: Sequence[str]) -> str:
        """Every room of the project as a JSON array, ``[]`` when there is none."""
        sender = "RoomList"
        db_key, project_key, _ = self._pick(keys, 3)
        project = self._part(project_key, "ProjectKey", sender)
        client = self._database(db_key)
        with _commands(sender):
            members = client.smembers(f"{project}/rooms") or set()
        if not members:
            return "[]"
        rooms = []
        for member in sorted(str(self._text(item)) for item in members):
            parts = _split(member, "/")
            if len(parts) < 4:
                raise ScriptError(f"malformed room entry {member!r}", sender)
            platform_id, game_id, country_code, room_id = parts[:4]
            key = "/".join((project, platform_id, game_id, country_code, "room", room_id))
            rooms.append(self._hash(client, key, sender))
        return _encode(rooms)

    def room_player(
        self,
        keys: Sequence[str],
        platform_id: str,
        game_id: str,
        country_code: str,
    ) -> str:
        """Players and their rooms in the scope as a JSON object, or ``[]``."""
        sender = "RoomPlayer"
        client, scope = self._scope(keys, sender, platform_id, game_id, country_code)
        return self._report(client, f"{scope}/playerToRoom", sender)

    def room_id_player(
        self,
        keys: Sequence[str],
        platform_id: str,
        game_id: str,
        country_code: str,
        room_id: str,
    ) -> str:
        """Players and their seats in one room as a JSON object, or ``[]``."""
        sender = "RoomIDPlayer"
        client, scope = self._scope(
            keys, sender, platform_id, game_id, country_code, "room", room_id
        )
        return self._report(client, f"{scope}/playerToSeat", sender)

    def _scope(self, keys: Sequence[str], sender: str, *parts: Any) -> tuple[Any, str]:
        db_key, project_key, _ = self._pick(keys, 3)
        pieces = [self._part(project_key, "ProjectKey", sender)]
        pieces.extend(self._part(part, "argument", sender) for part in parts)
        client = self._database(db_key)
        return client, "/".join(pieces)

    def _report(self, client: Any, key: str, sender: str) -> str:
        entries = self._hash(client, key, sender)
        if not entries:
            return "[]"
        return _encode(entries)

    def _hash(self, client: Any, key: str, sender: str) -> dict:
        with _commands(sender):
            entries = client.hgetall(key) or {}
        return {
            str(self._text(field)): str(self._text(value))
            for field, value in entries.items()
        }

    def _part(self, value: Any, name: str, sender: str) -> str:
        if value is None:
            raise ScriptError(f"invalid {name}: missing value in key", sender)
        return str(self._text(value))