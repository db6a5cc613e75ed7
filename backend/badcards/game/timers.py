from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class BackgroundRunner(Protocol):
    """The part of ``flask_socketio.SocketIO`` the game core needs."""

    def start_background_task(self, target: Callable[..., Any], *args: Any, **kwargs: Any) -> Any: ...

    def sleep(self, seconds: float = 0) -> Any: ...


@dataclass(eq=False)
class TimerHandle:
    room_id: str
    round_id: str
    phase: str
    ends_at_ms: int
    cancelled: bool = False

    def remaining(self, now: int) -> int:
        """Whole seconds left until the deadline, rounded up, never negative."""
        left = self.ends_at_ms - now
        if left <= 0:
            return 0
        return -(-left // 1000)


class RoundTimers:
    """One countdown per room, keyed by room id.

    Starting a timer always cancels the room's previous one. Each tick is
    handed to ``on_tick`` which decides, under the room lock, whether the
    handle is still live.
    """

    def __init__(
        self,
        on_tick: Callable[[TimerHandle], None],
        runner: BackgroundRunner | None = None,
        clock: Callable[[], int] = now_ms,
        interval_sec: float = 1.0,
    ) -> None:
        self._on_tick = on_tick
        self._runner = runner
        self._clock = clock
        self._interval = interval_sec
        self._lock = Lock()
        self._handles: dict[str, TimerHandle] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def get(self, room_id: str) -> TimerHandle | None:
        with self._lock:
            return self._handles.get(room_id)

    def start(self, room_id: str, round_id: str, phase: str, duration_sec: int) -> TimerHandle:
        handle = TimerHandle(
            room_id=room_id,
            round_id=round_id,
            phase=phase,
            ends_at_ms=self._clock() + duration_sec * 1000,
        )
        with self._lock:
            self._cancel_locked(room_id)
            self._handles[room_id] = handle

        logger.debug(f"[timer-set] room={room_id} round={round_id} phase={phase} duration={duration_sec}s")

        if self._runner is not None:
            self._runner.start_background_task(self._run, handle)
        return handle

    def cancel(self, room_id: str) -> bool:
        with self._lock:
            return self._cancel_locked(room_id)

    def cancel_all(self) -> int:
        with self._lock:
            room_ids = list(self._handles.keys())
            for room_id in room_ids:
                self._cancel_locked(room_id)
            return len(room_ids)

    def is_live(self, handle: TimerHandle) -> bool:
        with self._lock:
            return not handle.cancelled and self._handles.get(handle.room_id) is handle

    def _cancel_locked(self, room_id: str) -> bool:
        handle = self._handles.pop(room_id, None)
        if handle is None:
            return False
        handle.cancelled = True
        return True

    def _run(self, handle: TimerHandle) -> None:
        while not handle.cancelled:
            self._runner.sleep(self._interval)
            if handle.cancelled:
                break
            try:
                self._on_tick(handle)
            except Exception:
                logger.exception(f"[timer-error] room={handle.room_id} round={handle.round_id}")
                with self._lock:
                    if self._handles.get(handle.room_id) is handle:
                        self._cancel_locked(handle.room_id)
                handle.cancelled = True
