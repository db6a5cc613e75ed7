from __future__ import annotations

from flask import Blueprint, jsonify

from ..extensions import get_manager
from ..game.errors import RoomNotFound
from ..game.service import room_summary

bp = Blueprint("rooms", __name__)


@bp.get("/rooms")
def list_rooms():
    rooms = get_manager().list_rooms()
    return jsonify({"rooms": [room_summary(r) for r in rooms]})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    try:
        state = get_manager().room_state(room_id)
    except RoomNotFound as exc:
        return jsonify(exc.to_payload()), 404
    return jsonify({"room": state})
