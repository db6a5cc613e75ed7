from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Event
from typing import Callable

from .models import Player, Room
from .timers import BackgroundRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupPolicy:
    single_player_timeout_ms: int = 30 * 60 * 1000
    disconnected_player_timeout_ms: int = 10 * 60 * 1000
    finished_game_timeout_ms: int = 60 * 60 * 1000
    inactive_waiting_timeout_ms: int = 2 * 60 * 60 * 1000

    @classmethod
    def from_config(cls, config) -> "CleanupPolicy":
        return cls(
            single_player_timeout_ms=int(config.SINGLE_PLAYER_TIMEOUT_SEC) * 1000,
            disconnected_player_timeout_ms=int(config.DISCONNECTED_PLAYER_TIMEOUT_SEC) * 1000,
            finished_game_timeout_ms=int(config.FINISHED_GAME_TIMEOUT_SEC) * 1000,
            inactive_waiting_timeout_ms=int(config.INACTIVE_WAITING_TIMEOUT_SEC) * 1000,
        )


def room_expiry_reason(room: Room, now: int, policy: CleanupPolicy) -> str | None:
    """Return why ``room`` should be deleted, or None to keep it.

    Conditions are checked in priority order; the first match wins.
    """
    age = now - room.created_at_ms

    if len(room.players) == 1 and age > policy.single_player_timeout_ms:
        return "single player timeout"

    if not any(p.is_connected for p in room.players) and age > policy.disconnected_player_timeout_ms:
        return "all players disconnected"

    if room.status == "finished" and age > policy.finished_game_timeout_ms:
        return "finished game timeout"

    if room.status == "waiting" and age > policy.inactive_waiting_timeout_ms:
        return "inactive waiting room timeout"

    return None


def expired_players(room: Room, now: int, policy: CleanupPolicy) -> list[Player]:
    return [
        p
        for p in room.players
        if not p.is_connected
        and p.disconnected_at_ms is not None
        and now - p.disconnected_at_ms > policy.disconnected_player_timeout_ms
    ]


class CleanupSweeper:
    """Runs ``sweep`` every ``interval_sec`` on a background task until stopped."""

    def __init__(self, sweep: Callable[[], object], runner: BackgroundRunner, interval_sec: float) -> None:
        self._sweep = sweep
        self._runner = runner
        self._interval = interval_sec
        self._stopped = Event()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started and not self._stopped.is_set()

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._runner.start_background_task(self._run)
        logger.info(f"Room cleanup running every {self._interval}s")

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._started:
            logger.info("Room cleanup stopped")

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._runner.sleep(self._interval)
            if self._stopped.is_set():
                break
            try:
                self._sweep()
            except Exception:
                logger.exception("Room cleanup sweep failed")
