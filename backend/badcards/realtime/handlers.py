from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError, PlayerNotFound, RoomNotFound
from ..game.models import Player, Room
from ..game.service import GameManager

logger = logging.getLogger(__name__)


def _player_payload(player: Player) -> dict:
    return {"id": player.id, "name": player.name, "score": player.score}


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value)


def register_socketio_handlers(socketio: SocketIO, manager: GameManager) -> None:
    # player id -> sid, sid -> (room id, player id)
    player_sids: dict[str, str] = {}
    sid_players: dict[str, tuple[str, str]] = {}

    def _fail(exc: GameError) -> dict:
        emit("room:error", exc.to_payload())
        return {"ok": False, "error": exc.code}

    def _bind(room_id: str, player_id: str) -> None:
        previous = _unbind(request.sid)
        if previous and previous != (room_id, player_id):
            # This socket switches seats; the seat it held goes offline.
            leave_room(previous[0])
            _mark_disconnected(*previous)

        old_sid = player_sids.get(player_id)
        if old_sid and old_sid != request.sid:
            sid_players.pop(old_sid, None)
            socketio.emit("session:replaced", {"roomId": room_id}, to=old_sid)
            leave_room(room_id, sid=old_sid)

        player_sids[player_id] = request.sid
        sid_players[request.sid] = (room_id, player_id)
        join_room(room_id)

    def _unbind(sid: str) -> tuple[str, str] | None:
        entry = sid_players.pop(sid, None)
        if entry and player_sids.get(entry[1]) == sid:
            del player_sids[entry[1]]
        return entry

    def _mark_disconnected(room_id: str, player_id: str) -> None:
        try:
            manager.set_player_connection(room_id, player_id, False)
        except GameError:
            return
        _safe_broadcast_room_state(room_id)

    def _current_player(room_id: str) -> str:
        entry = sid_players.get(request.sid)
        if not entry or entry[0] != room_id:
            raise PlayerNotFound(request.sid)
        return entry[1]

    def _broadcast_room_state(room_id: str) -> None:
        try:
            state = manager.room_state(room_id)
        except RoomNotFound:
            socketio.emit("room:closed", {"roomId": room_id}, to=room_id)
            return

        socketio.emit("room:state", state, to=room_id)

        room = manager.get_room(room_id)
        if room is None:
            return
        for p in list(room.players):
            sid = player_sids.get(p.id)
            if not sid or not p.is_connected:
                continue
            try:
                hand = manager.player_hand(room_id, p.id)
            except GameError:
                continue
            socketio.emit("player:hand", {"roomId": room_id, "hand": hand}, to=sid)

    def _safe_broadcast_room_state(room_id: str) -> None:
        try:
            _broadcast_room_state(room_id)
        except Exception:
            logger.exception(f"Broadcast failed for room {room_id}")

    @manager.on_room_mutated
    def _on_room_mutated(room: Room, reason: str) -> None:
        if reason == "timer:tick":
            rnd = room.current_round
            socketio.emit(
                "game:tick",
                {
                    "roomId": room.id,
                    "phase": rnd.phase if rnd else None,
                    "timeRemaining": rnd.time_remaining if rnd else 0,
                },
                to=room.id,
            )
            return
        _safe_broadcast_room_state(room.id)

    @socketio.on("room:create")
    def room_create(data):
        payload = data or {}
        try:
            room, player_id = manager.create_room(
                _text(payload, "roomName"),
                _text(payload, "playerName"),
                max_players=payload.get("maxPlayers"),
                max_score=payload.get("maxScore"),
                round_timer=payload.get("roundTimer"),
            )
        except GameError as exc:
            return _fail(exc)

        _bind(room.id, player_id)
        emit("room:created", {"roomId": room.id, "playerId": player_id})
        _safe_broadcast_room_state(room.id)
        return {"ok": True, "roomId": room.id, "playerId": player_id}

    @socketio.on("room:join")
    def room_join(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()
        name = _text(payload, "playerName")

        try:
            room, player_id = manager.join_room(room_id, name)
        except GameError as exc:
            return _fail(exc)

        _bind(room.id, player_id)
        emit("room:joined", {"roomId": room.id, "playerId": player_id})
        _safe_broadcast_room_state(room.id)
        return {"ok": True, "roomId": room.id, "playerId": player_id}

    @socketio.on("room:reconnect")
    def room_reconnect(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()
        player_id = _text(payload, "playerId").strip()

        try:
            manager.set_player_connection(room_id, player_id, True)
        except GameError as exc:
            return _fail(exc)

        _bind(room_id, player_id)
        emit("room:reconnected", {"roomId": room_id, "playerId": player_id})
        _safe_broadcast_room_state(room_id)
        return {"ok": True, "roomId": room_id, "playerId": player_id}

    @socketio.on("room:leave")
    def room_leave(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()

        try:
            player_id = _current_player(room_id)
            manager.leave_room(room_id, player_id)
        except GameError as exc:
            return _fail(exc)

        _unbind(request.sid)
        leave_room(room_id)
        emit("room:left", {"roomId": room_id})
        _safe_broadcast_room_state(room_id)
        return {"ok": True}

    @socketio.on("game:start")
    def game_start(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()

        try:
            manager.start_game(room_id, _current_player(room_id))
        except GameError as exc:
            return _fail(exc)

        socketio.emit("game:started", {"roomId": room_id}, to=room_id)
        _safe_broadcast_room_state(room_id)
        return {"ok": True}

    @socketio.on("game:reset")
    def game_reset(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()

        try:
            manager.reset_game(room_id, _current_player(room_id))
        except GameError as exc:
            return _fail(exc)

        socketio.emit("game:reset", {"roomId": room_id}, to=room_id)
        _safe_broadcast_room_state(room_id)
        return {"ok": True}

    @socketio.on("game:play")
    def game_play(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()
        cards = payload.get("cards")
        if not isinstance(cards, list):
            cards = []

        try:
            manager.play_cards(room_id, _current_player(room_id), cards)
        except GameError as exc:
            return _fail(exc)

        _safe_broadcast_room_state(room_id)
        return {"ok": True}

    @socketio.on("game:judge")
    def game_judge(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()
        target = _text(payload, "playId").strip()

        try:
            room, winner = manager.judge_play(room_id, _current_player(room_id), target)
        except GameError as exc:
            return _fail(exc)

        event = "game:complete" if room.status == "finished" else "game:round_complete"
        socketio.emit(event, {"roomId": room_id, "winner": _player_payload(winner)}, to=room_id)
        _safe_broadcast_room_state(room_id)
        return {"ok": True, "winnerId": winner.id}

    @socketio.on("game:next_round")
    def game_next_round(data):
        payload = data or {}
        room_id = _text(payload, "roomId").strip()

        try:
            manager.next_round(room_id, _current_player(room_id))
        except GameError as exc:
            return _fail(exc)

        _safe_broadcast_room_state(room_id)
        return {"ok": True}

    @socketio.on("disconnect")
    def on_disconnect(*args):
        entry = _unbind(request.sid)
        if not entry:
            return

        _mark_disconnected(*entry)
