from __future__ import annotations

from flask import current_app

from .game.service import GameManager

MANAGER_KEY = "badcards.manager"


def get_manager() -> GameManager:
    return current_app.extensions[MANAGER_KEY]
