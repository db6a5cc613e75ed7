from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from ..config import Config
from .cards import ANSWER_CARDS, PROMPT_CARDS, Deck
from .cleanup import CleanupPolicy, CleanupSweeper, expired_players, room_expiry_reason
from .errors import (
    AlreadyPlayed,
    AlreadyStarted,
    CardNotInHand,
    GameFinished,
    GameInProgress,
    InvalidName,
    InvalidSelection,
    JudgeCannotPlay,
    NameTaken,
    NoActiveRound,
    NotAcceptingPlays,
    NotEnoughPlayers,
    NotFinished,
    NotHost,
    NotJudge,
    NotJudging,
    NotReady,
    PlayerNotFound,
    RoomFull,
    RoomNotFound,
    WrongCardCount,
)
from .models import AnswerCard, Play, Player, PromptCard, Room, RoomSettings, Round
from .store import RoomStore
from .timers import BackgroundRunner, RoundTimers, TimerHandle, now_ms

logger = logging.getLogger(__name__)


RoomCallback = Callable[[Room, str], None]


def new_id() -> str:
    return uuid.uuid4().hex


def _clamp(value: Any, default: int, lo: int, hi: int) -> int:
    if value is None:
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, n))


def _card_id(card: Any) -> str:
    if isinstance(card, str):
        return card
    if isinstance(card, dict):
        return str(card.get("id", ""))
    return str(getattr(card, "id", ""))


@dataclass(frozen=True)
class RoomStatistics:
    total_rooms: int = 0
    waiting_rooms: int = 0
    active_rooms: int = 0
    finished_rooms: int = 0
    total_players: int = 0
    connected_players: int = 0
    disconnected_players: int = 0

    def to_payload(self) -> dict:
        return {
            "totalRooms": self.total_rooms,
            "waitingRooms": self.waiting_rooms,
            "activeRooms": self.active_rooms,
            "finishedRooms": self.finished_rooms,
            "totalPlayers": self.total_players,
            "connectedPlayers": self.connected_players,
            "disconnectedPlayers": self.disconnected_players,
        }


class GameManager:
    """Owns every room and all game rules.

    Each operation runs under the target room's lock. Operations return the
    mutated room (or raise a ``GameError``); they never send anything to
    clients. Changes driven by the round timer or the cleanup sweep are
    reported through callbacks registered with ``on_room_mutated``.
    """

    def __init__(
        self,
        config: type[Config] | Config = Config,
        runner: BackgroundRunner | None = None,
        clock: Callable[[], int] = now_ms,
        rng: random.Random | None = None,
        prompt_cards: Sequence[PromptCard] = PROMPT_CARDS,
        answer_cards: Sequence[AnswerCard] = ANSWER_CARDS,
    ) -> None:
        self.config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self._prompt_cards = prompt_cards
        self._answer_cards = answer_cards
        self._callbacks: list[RoomCallback] = []

        self.policy = CleanupPolicy.from_config(config)
        self.store = RoomStore(
            RoundTimers(
                self.handle_timer_tick,
                runner=runner,
                clock=clock,
                interval_sec=config.TIMER_TICK_SEC,
            )
        )
        self._sweeper = (
            CleanupSweeper(self.sweep, runner, config.CLEANUP_INTERVAL_SEC) if runner is not None else None
        )

    @property
    def timers(self) -> RoundTimers:
        return self.store.timers

    # ---- lifecycle ----

    def start(self) -> None:
        if self._sweeper is not None:
            self._sweeper.start()

    def shutdown(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()
        for room in self.store.list():
            with room.lock:
                self.timers.cancel(room.id)
        cancelled = self.timers.cancel_all()
        logger.info(f"Game manager stopped ({cancelled} stray timers cancelled)")

    def on_room_mutated(self, callback: RoomCallback) -> RoomCallback:
        self._callbacks.append(callback)
        return callback

    def _notify(self, room: Room, reason: str) -> None:
        for cb in list(self._callbacks):
            try:
                cb(room, reason)
            except Exception:
                logger.exception(f"Room callback failed for room {room.id} ({reason})")

    # ---- registry ----

    def create_room(
        self,
        name: str,
        host_name: str,
        max_players: int | None = None,
        max_score: int | None = None,
        round_timer: int | None = None,
    ) -> tuple[Room, str]:
        host_name = self._clean_name(host_name)
        room_name = (name or "").strip() or f"{host_name}'s room"

        host = Player(id=new_id(), name=host_name, is_host=True)
        room = Room(
            id=new_id(),
            name=room_name,
            host_id=host.id,
            prompts=Deck(self._prompt_cards, self._rng),
            answers=Deck(self._answer_cards, self._rng),
            players=[host],
            max_players=_clamp(max_players, self.config.DEFAULT_MAX_PLAYERS, self.config.MIN_PLAYERS, 12),
            settings=RoomSettings(
                max_score=_clamp(max_score, self.config.DEFAULT_MAX_SCORE, 1, 20),
                round_timer=_clamp(round_timer, self.config.ROUND_DURATION_SEC, 15, 300),
                judge_timer=self.config.JUDGE_DURATION_SEC,
            ),
            created_at_ms=self._clock(),
        )
        if not self.store.claim_name(host_name, host.id):
            raise NameTaken()
        self.store.add(room)

        logger.info(f"Created room \"{room.name}\" ({room.id}) for {host_name}")
        return room, host.id

    def get_room(self, room_id: str) -> Room | None:
        return self.store.get(room_id)

    def list_rooms(self) -> list[Room]:
        return self.store.list()

    def delete_room(self, room_id: str) -> bool:
        room = self.store.get(room_id)
        if room is None:
            return False
        with room.lock:
            return self.store.remove(room_id) is not None

    # ---- membership ----

    def join_room(self, room_id: str, name: str) -> tuple[Room, str]:
        with self.store.locked(room_id) as room:
            clean = self._clean_name(name)

            existing = room.find_player_by_name(clean)
            if existing is not None:
                existing.is_connected = True
                existing.disconnected_at_ms = None
                logger.info(f"Player \"{existing.name}\" rejoined room \"{room.name}\"")
                return room, existing.id

            if len(room.players) >= room.max_players:
                raise RoomFull()
            if room.status != "waiting":
                raise GameInProgress()

            player = Player(id=new_id(), name=clean)
            if not self.store.claim_name(clean, player.id):
                raise NameTaken()
            room.players.append(player)

            logger.info(f"Player \"{player.name}\" joined room \"{room.name}\"")
            return room, player.id

    def leave_room(self, room_id: str, player_id: str) -> Room | None:
        with self.store.locked(room_id) as room:
            player = room.find_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)

            if player.is_host and len(room.players) == 1:
                self.store.remove(room.id)
                logger.info(f"Host left solo room \"{room.name}\" ({room.id}); room deleted")
                return None

            self._remove_player_locked(room, player)
            return room

    def set_player_connection(self, room_id: str, player_id: str, connected: bool) -> Room:
        with self.store.locked(room_id) as room:
            player = room.find_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)

            player.is_connected = connected
            player.disconnected_at_ms = None if connected else self._clock()
            return room

    def _remove_player_locked(self, room: Room, player: Player) -> None:
        room.players = [p for p in room.players if p.id != player.id]
        self.store.release_name(player.name, player.id)

        if not room.players:
            self.store.remove(room.id)
            logger.info(f"Room \"{room.name}\" ({room.id}) is empty; room deleted")
            return

        # First remaining member in join order inherits the host seat.
        if player.is_host:
            self._assign_host(room, room.players[0])

        if room.status == "active" and len(room.players) < self.config.MIN_PLAYERS:
            room.status = "finished"
            self.timers.cancel(room.id)
            logger.info(f"Game in room \"{room.name}\" ended due to insufficient players")
            return

        if room.status == "active" and room.current_round is not None:
            self._drop_play_locked(room, room.current_round, player.id)

    def _drop_play_locked(self, room: Room, rnd: Round, player_id: str) -> None:
        """Forget a departed player's play and re-check the judging threshold.

        A departed judge leaves the round judgeless; the judging timeout
        then picks the winner.
        """
        rnd.plays = [p for p in rnd.plays if p.player_id != player_id]
        if rnd.phase == "playing" and rnd.plays and len(rnd.plays) >= len(room.players) - 1:
            self._begin_judging_locked(room, rnd)

    @staticmethod
    def _assign_host(room: Room, new_host: Player) -> None:
        for p in room.players:
            p.is_host = p.id == new_host.id
        room.host_id = new_host.id

    def _clean_name(self, name: str) -> str:
        n = (name or "").strip()
        if not n or len(n) > self.config.MAX_NAME_LENGTH:
            raise InvalidName(self.config.MAX_NAME_LENGTH)
        return n

    # ---- game flow ----

    def start_game(self, room_id: str, player_id: str) -> Room:
        with self.store.locked(room_id) as room:
            if room.host_id != player_id:
                raise NotHost("Only host can start the game")
            if len(room.players) < self.config.MIN_PLAYERS:
                raise NotEnoughPlayers(self.config.MIN_PLAYERS)
            if room.status != "waiting":
                raise AlreadyStarted()

            for p in room.players:
                p.hand = room.answers.draw(self.config.HAND_SIZE)
                p.score = 0

            room.status = "active"
            self._start_round_locked(room)

            logger.info(f"Game started in room \"{room.name}\" with {len(room.players)} players")
            return room

    def reset_game(self, room_id: str, player_id: str) -> Room:
        with self.store.locked(room_id) as room:
            host = room.find_player(player_id)
            if host is None or not host.is_host:
                raise NotHost("Only the room host can restart the game")
            if room.status != "finished":
                raise NotFinished()

            self.timers.cancel(room.id)
            room.status = "waiting"
            room.current_round = None
            room.rounds = []
            for p in room.players:
                p.hand = []
                p.score = 0
            room.prompts.reshuffle()
            room.answers.reshuffle()

            logger.info(f"Game reset in room \"{room.name}\" by {host.name}")
            return room

    def play_cards(self, room_id: str, player_id: str, cards: Iterable[Any]) -> Room:
        with self.store.locked(room_id) as room:
            rnd = room.current_round
            if rnd is None:
                raise NoActiveRound()
            if room.status != "active" or rnd.phase != "playing":
                raise NotAcceptingPlays()

            player = room.find_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)
            if rnd.judge_id == player_id:
                raise JudgeCannotPlay()
            if rnd.play_by(player_id) is not None:
                raise AlreadyPlayed()

            card_ids = [_card_id(c) for c in cards]
            if len(card_ids) != rnd.prompt.blanks:
                raise WrongCardCount(rnd.prompt.blanks)

            remaining = list(player.hand)
            played: list[AnswerCard] = []
            for cid in card_ids:
                idx = next((i for i, c in enumerate(remaining) if c.id == cid), None)
                if idx is None:
                    raise CardNotInHand()
                played.append(remaining.pop(idx))

            player.hand = remaining + room.answers.draw(len(played))
            rnd.plays.append(Play(player_id=player_id, cards=tuple(played)))

            if len(rnd.plays) >= len(room.players) - 1:
                self._begin_judging_locked(room, rnd)
            return room

    def judge_play(self, room_id: str, judge_id: str, target: str) -> tuple[Room, Player]:
        with self.store.locked(room_id) as room:
            rnd = room.current_round
            if rnd is None:
                raise NoActiveRound()
            if rnd.judge_id != judge_id:
                raise NotJudge()
            if room.status != "active" or rnd.phase != "judging":
                raise NotJudging()

            play = next(
                (p for p in rnd.plays if p.player_id == target or any(c.id == target for c in p.cards)),
                None,
            )
            if play is None:
                raise InvalidSelection()
            winner = room.find_player(play.player_id)
            if winner is None:
                raise InvalidSelection("That player has left the room")

            self.timers.cancel(room.id)
            self._award_locked(rnd, winner)
            rnd.phase = "results"

            if winner.score >= room.settings.max_score:
                room.status = "finished"
                rnd.phase = "completed"
                logger.info(f"Game complete in room \"{room.name}\": {winner.name} wins")
            return room, winner

    def next_round(self, room_id: str, player_id: str) -> Room:
        with self.store.locked(room_id) as room:
            if room.host_id != player_id:
                raise NotHost("Only host can advance rounds")
            if room.status == "finished":
                raise GameFinished()
            rnd = room.current_round
            if rnd is None or rnd.phase != "results":
                raise NotReady()

            rnd.phase = "completed"
            self._start_round_locked(room)
            return room

    def _start_round_locked(self, room: Room) -> Round:
        number = len(room.rounds) + 1
        # Plain seat rotation; joins and leaves shift it and that is accepted.
        judge = room.players[(number - 1) % len(room.players)]

        rnd = Round(
            id=new_id(),
            round_number=number,
            prompt=room.prompts.draw_one(),
            judge_id=judge.id,
        )
        room.current_round = rnd
        room.rounds.append(rnd)
        self._start_phase_timer(room, rnd, room.settings.round_timer)
        return rnd

    def _begin_judging_locked(self, room: Room, rnd: Round) -> None:
        rnd.phase = "judging"
        self._start_phase_timer(room, rnd, room.settings.judge_timer)

    def _start_phase_timer(self, room: Room, rnd: Round, duration_sec: int) -> None:
        handle = self.timers.start(room.id, rnd.id, rnd.phase, duration_sec)
        rnd.time_remaining = duration_sec
        rnd.phase_ends_at_ms = handle.ends_at_ms

    @staticmethod
    def _award_locked(rnd: Round, winner: Player) -> None:
        rnd.winning_player_id = winner.id
        rnd.time_remaining = 0
        rnd.phase_ends_at_ms = None
        winner.score += 1

    # ---- timer ----

    def handle_timer_tick(self, handle: TimerHandle) -> None:
        """Apply one countdown tick; resolve the phase when time is up.

        A tick whose handle was cancelled or replaced, or whose round/phase no
        longer matches the room, changes nothing.
        """
        try:
            with self.store.locked(handle.room_id) as room:
                if not self.timers.is_live(handle):
                    return

                rnd = room.current_round
                if (
                    room.status != "active"
                    or rnd is None
                    or rnd.id != handle.round_id
                    or rnd.phase != handle.phase
                ):
                    logger.debug(f"[timer-abort] room={room.id} round={handle.round_id} phase moved on")
                    self.timers.cancel(room.id)
                    return

                remaining = handle.remaining(self._clock())
                rnd.time_remaining = remaining
                if remaining > 0:
                    reason = "timer:tick"
                else:
                    self.timers.cancel(room.id)
                    self._resolve_timeout_locked(room, rnd)
                    reason = "timer:timeout"
        except RoomNotFound:
            handle.cancelled = True
            return

        self._notify(room, reason)

    def _resolve_timeout_locked(self, room: Room, rnd: Round) -> None:
        logger.info(f"[timer-fire] room={room.id} round={rnd.round_number} phase={rnd.phase} plays={len(rnd.plays)}")

        if rnd.phase == "playing":
            if rnd.plays:
                self._begin_judging_locked(room, rnd)
                return
            self._complete_forced_locked(room, rnd)
            return

        if rnd.phase == "judging":
            candidates = [room.find_player(p.player_id) for p in rnd.plays]
            candidates = [p for p in candidates if p is not None]
            if candidates:
                winner = self._rng.choice(candidates)
                self._award_locked(rnd, winner)
                logger.info(f"Judge timed out in room \"{room.name}\"; {winner.name} picked at random")
            self._complete_forced_locked(room, rnd)

    def _complete_forced_locked(self, room: Room, rnd: Round) -> None:
        rnd.phase = "completed"
        rnd.time_remaining = 0
        rnd.phase_ends_at_ms = None

        if any(p.score >= room.settings.max_score for p in room.players):
            room.status = "finished"
            room.current_round = None
            self.timers.cancel(room.id)
            logger.info(f"Game complete in room \"{room.name}\" after timeout")
            return

        self._start_round_locked(room)

    # ---- cleanup ----

    def manual_cleanup(self) -> dict:
        logger.info("Manual cleanup triggered")
        return self.sweep()

    def sweep(self) -> dict:
        now = self._clock()
        deleted = 0
        evicted = 0
        touched: list[Room] = []

        for candidate in self.store.list():
            try:
                with self.store.locked(candidate.id) as room:
                    reason = room_expiry_reason(room, now, self.policy)
                    if reason is not None:
                        logger.info(f"Cleaning up room \"{room.name}\" ({room.id}): {reason}")
                        self.store.remove(room.id)
                        deleted += 1
                        continue

                    expired = expired_players(room, now, self.policy)
                    for player in expired:
                        logger.info(f"Removing disconnected player \"{player.name}\" from room \"{room.name}\"")
                        self._remove_player_locked(room, player)
                        evicted += 1
                        if room.id not in self.store:
                            break
                    if expired and room.id in self.store:
                        touched.append(room)
            except RoomNotFound:
                continue

        if deleted:
            logger.info(f"Cleaned up {deleted} rooms. Active rooms: {len(self.store)}")

        for room in touched:
            self._notify(room, "cleanup:evicted")
        return {"deletedRooms": deleted, "evictedPlayers": evicted}

    # ---- introspection ----

    def get_statistics(self) -> RoomStatistics:
        counts = {"waiting": 0, "active": 0, "finished": 0}
        total = connected = 0
        rooms = self.store.list()
        for room in rooms:
            with room.lock:
                counts[room.status] += 1
                total += len(room.players)
                connected += sum(1 for p in room.players if p.is_connected)

        return RoomStatistics(
            total_rooms=len(rooms),
            waiting_rooms=counts["waiting"],
            active_rooms=counts["active"],
            finished_rooms=counts["finished"],
            total_players=total,
            connected_players=connected,
            disconnected_players=total - connected,
        )

    def room_state(self, room_id: str, viewer_id: str | None = None) -> dict:
        with self.store.locked(room_id) as room:
            return room_public_state(room, viewer_id=viewer_id)

    def player_hand(self, room_id: str, player_id: str) -> list[dict]:
        with self.store.locked(room_id) as room:
            player = room.find_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)
            return [card_payload(c) for c in player.hand]


def card_payload(card: AnswerCard | PromptCard) -> dict:
    if isinstance(card, PromptCard):
        return {"id": card.id, "text": card.text, "blanks": card.blanks}
    return {"id": card.id, "text": card.text}


def _round_payload(rnd: Round) -> dict:
    payload = {
        "id": rnd.id,
        "roundNumber": rnd.round_number,
        "prompt": card_payload(rnd.prompt),
        "judgeId": rnd.judge_id,
        "phase": rnd.phase,
        "timeRemaining": rnd.time_remaining,
        "phaseEndsAtMs": rnd.phase_ends_at_ms,
        "submittedPlayerIds": [p.player_id for p in rnd.plays],
        "winningPlayerId": rnd.winning_player_id,
    }

    # Plays stay anonymous while the judge is choosing.
    if rnd.phase == "judging":
        payload["plays"] = [{"cards": [card_payload(c) for c in p.cards]} for p in rnd.plays]
    elif rnd.phase in ("results", "completed"):
        payload["plays"] = [
            {"playerId": p.player_id, "cards": [card_payload(c) for c in p.cards]} for p in rnd.plays
        ]
    else:
        payload["plays"] = []
    return payload


def room_summary(room: Room) -> dict:
    return {
        "id": room.id,
        "name": room.name,
        "playerCount": len(room.players),
        "maxPlayers": room.max_players,
        "status": room.status,
        "createdAtMs": room.created_at_ms,
    }


def room_public_state(room: Room, viewer_id: str | None = None) -> dict:
    players = [
        {
            "id": p.id,
            "name": p.name,
            "isHost": p.is_host,
            "score": p.score,
            "isConnected": p.is_connected,
            "disconnectedAtMs": p.disconnected_at_ms,
            "handCount": len(p.hand),
        }
        for p in room.players
    ]

    payload = {
        **room_summary(room),
        "hostId": room.host_id,
        "players": players,
        "settings": {
            "maxScore": room.settings.max_score,
            "roundTimer": room.settings.round_timer,
            "judgeTimer": room.settings.judge_timer,
        },
        "roundsPlayed": len(room.rounds),
        "currentRound": _round_payload(room.current_round) if room.current_round else None,
    }

    if viewer_id:
        viewer = room.find_player(viewer_id)
        if viewer is not None:
            payload["hand"] = [card_payload(c) for c in viewer.hand]

    return payload
