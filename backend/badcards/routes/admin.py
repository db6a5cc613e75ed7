from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_manager
from ..game.service import room_public_state

bp = Blueprint("admin", __name__)


def _authorized() -> bool:
    token = current_app.config.get("ADMIN_TOKEN", "")
    if not token:
        return False
    return request.headers.get("X-Admin-Token", "") == token


@bp.post("/admin/cleanup")
def admin_cleanup():
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    manager = get_manager()
    result = manager.manual_cleanup()
    return jsonify(
        {
            "message": "Cleanup completed",
            "result": result,
            "rooms": manager.get_statistics().to_payload(),
        }
    )


@bp.get("/admin/rooms")
def admin_rooms():
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    rooms = get_manager().list_rooms()
    payload = []
    for room in rooms:
        with room.lock:
            payload.append(room_public_state(room))
    return jsonify({"rooms": payload})
