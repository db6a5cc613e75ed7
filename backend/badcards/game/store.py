"""
Room store: the process-wide registry of rooms.

Owns the room map, the global player-name index and the table of per-room
round timers. Lock order is always room lock first, then the store lock; the
store lock is never held while waiting for a room lock.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import RLock
from typing import Iterator

from .errors import RoomNotFound
from .models import Room, name_key
from .timers import RoundTimers

logger = logging.getLogger(__name__)


class RoomStore:
    def __init__(self, timers: RoundTimers) -> None:
        self.timers = timers
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._names: dict[str, set[str]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def add(self, room: Room) -> None:
        with self._lock:
            if room.id in self._rooms:
                raise KeyError(f"room {room.id} already registered")
            self._rooms[room.id] = room
            for p in room.players:
                self._names.setdefault(name_key(p.name), set()).add(p.id)

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def list(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def remove(self, room_id: str) -> Room | None:
        with self._lock:
            room = self._rooms.pop(room_id, None)
            if room is None:
                return None
            for p in room.players:
                self._release_locked(p.name, p.id)
        self.timers.cancel(room_id)
        return room

    @contextmanager
    def locked(self, room_id: str) -> Iterator[Room]:
        """Hold ``room_id``'s lock for the duration of the block.

        Raises RoomNotFound when the room is absent, including when it was
        removed while this caller waited for the lock.
        """
        room = self.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        with room.lock:
            if self.get(room_id) is not room:
                raise RoomNotFound(room_id)
            yield room

    # ---- global name index ----

    def name_in_use(self, name: str) -> bool:
        with self._lock:
            return bool(self._names.get(name_key(name)))

    def claim_name(self, name: str, player_id: str) -> bool:
        """Reserve ``name`` for ``player_id``; False if someone else holds it."""
        key = name_key(name)
        with self._lock:
            holders = self._names.get(key)
            if holders and player_id not in holders:
                return False
            self._names.setdefault(key, set()).add(player_id)
            return True

    def release_name(self, name: str, player_id: str) -> None:
        with self._lock:
            self._release_locked(name, player_id)

    def _release_locked(self, name: str, player_id: str) -> None:
        key = name_key(name)
        holders = self._names.get(key)
        if not holders:
            return
        holders.discard(player_id)
        if not holders:
            del self._names[key]
