"""
Game errors.

Every failure of a state-changing operation is one of five kinds. Each
concrete error carries a stable ``code`` that the transport layer sends back
to the caller.
"""


class GameError(Exception):
    """Base class for all caller-correctable game errors."""

    kind = "game_error"
    code = "game_error"
    message = "Game error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    def to_payload(self) -> dict:
        return {"error": self.code, "kind": self.kind, "message": str(self)}


class NotFound(GameError):
    kind = "not_found"
    code = "not_found"
    message = "Not found"


class Forbidden(GameError):
    kind = "forbidden"
    code = "forbidden"
    message = "Not allowed"


class InvalidState(GameError):
    kind = "invalid_state"
    code = "invalid_state"
    message = "Not allowed right now"


class ValidationError(GameError):
    kind = "validation_error"
    code = "validation_error"
    message = "Invalid data"


class InvalidSelection(GameError):
    kind = "invalid_selection"
    code = "invalid_selection"
    message = "Invalid play selection"


# ============ NotFound ============

class RoomNotFound(NotFound):
    code = "room_not_found"

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class PlayerNotFound(NotFound):
    code = "player_not_found"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


# ============ Forbidden ============

class NotHost(Forbidden):
    code = "only_host"
    message = "Only the host can do that"


class NotJudge(Forbidden):
    code = "only_judge"
    message = "Only the judge can select the winning play"


class JudgeCannotPlay(Forbidden):
    code = "judge_cannot_play"
    message = "Judge cannot play cards"


# ============ InvalidState ============

class RoomFull(InvalidState):
    code = "room_full"
    message = "Room is full"


class GameInProgress(InvalidState):
    code = "game_in_progress"
    message = "Game already in progress"


class NotEnoughPlayers(InvalidState):
    code = "not_enough_players"

    def __init__(self, needed: int):
        super().__init__(f"Need at least {needed} players to start")


class AlreadyStarted(InvalidState):
    code = "already_started"
    message = "Game already started"


class NotFinished(InvalidState):
    code = "not_finished"
    message = "Can only restart finished games"


class NoActiveRound(InvalidState):
    code = "no_active_round"
    message = "No round in progress"


class NotAcceptingPlays(InvalidState):
    code = "not_accepting_plays"
    message = "Not accepting plays right now"


class NotJudging(InvalidState):
    code = "not_judging"
    message = "Not in judging phase"


class NotReady(InvalidState):
    code = "not_ready"
    message = "Round not ready to advance"


class GameFinished(InvalidState):
    code = "game_finished"
    message = "Game is finished"


# ============ ValidationError ============

class InvalidName(ValidationError):
    code = "invalid_name"

    def __init__(self, max_length: int):
        super().__init__(f"Name must be 1-{max_length} characters")


class NameTaken(ValidationError):
    code = "name_taken"
    message = "Player name already taken"


class AlreadyPlayed(ValidationError):
    code = "already_played"
    message = "Already played this round"


class WrongCardCount(ValidationError):
    code = "wrong_card_count"

    def __init__(self, expected: int):
        self.expected = expected
        super().__init__(f"Must play exactly {expected} card(s)")


class CardNotInHand(ValidationError):
    code = "card_not_in_hand"
    message = "Card is not in your hand"
