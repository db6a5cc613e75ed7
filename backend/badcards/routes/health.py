from __future__ import annotations

import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from ..extensions import get_manager

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    stats = get_manager().get_statistics()
    started_at = current_app.config.get("STARTED_AT", time.time())
    return jsonify(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.time() - started_at, 3),
            "rooms": stats.to_payload(),
        }
    )
