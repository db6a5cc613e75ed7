from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .cards import Deck


RoomStatus = Literal["waiting", "active", "finished"]
RoundPhase = Literal["playing", "judging", "results", "completed"]


@dataclass(frozen=True)
class PromptCard:
    id: str
    text: str
    blanks: int = 1


@dataclass(frozen=True)
class AnswerCard:
    id: str
    text: str


@dataclass
class Player:
    id: str
    name: str
    is_host: bool = False
    score: int = 0
    hand: list[AnswerCard] = field(default_factory=list)
    is_connected: bool = True
    disconnected_at_ms: int | None = None


@dataclass(frozen=True)
class Play:
    player_id: str
    cards: tuple[AnswerCard, ...]


@dataclass
class Round:
    id: str
    round_number: int
    prompt: PromptCard
    judge_id: str
    plays: list[Play] = field(default_factory=list)
    winning_player_id: str | None = None
    phase: RoundPhase = "playing"
    time_remaining: int = 0
    phase_ends_at_ms: int | None = None

    def play_by(self, player_id: str) -> Play | None:
        for play in self.plays:
            if play.player_id == player_id:
                return play
        return None


@dataclass
class RoomSettings:
    max_score: int = 7
    round_timer: int = 45
    judge_timer: int = 60


@dataclass
class Room:
    id: str
    name: str
    host_id: str
    prompts: Deck[PromptCard] = field(repr=False, compare=False)
    answers: Deck[AnswerCard] = field(repr=False, compare=False)
    players: list[Player] = field(default_factory=list)
    max_players: int = 8
    status: RoomStatus = "waiting"
    rounds: list[Round] = field(default_factory=list)
    current_round: Round | None = None
    settings: RoomSettings = field(default_factory=RoomSettings)
    created_at_ms: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def find_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def find_player_by_name(self, name: str) -> Player | None:
        key = name_key(name)
        for p in self.players:
            if name_key(p.name) == key:
                return p
        return None

    @property
    def host(self) -> Player | None:
        return self.find_player(self.host_id)


def name_key(name: str) -> str:
    return (name or "").strip().casefold()
