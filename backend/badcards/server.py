from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .extensions import MANAGER_KEY
from .game.service import GameManager
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .realtime.handlers import register_socketio_handlers

logger = logging.getLogger(__name__)


def _choose_async_mode(config_class) -> str:
    env_async_mode = (getattr(config_class, "SOCKETIO_ASYNC_MODE", "") or "").strip()
    if env_async_mode:
        return env_async_mode

    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class=Config) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)
    app.config["STARTED_AT"] = time.time()

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_choose_async_mode(config_class),
    )

    # Background timers and the cleanup sweep only run outside of tests.
    runner = None if app.config.get("TESTING") else socketio
    manager = GameManager(config=config_class, runner=runner)
    app.extensions[MANAGER_KEY] = manager

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")

    register_socketio_handlers(socketio, manager)
    manager.start()

    logger.info(f"Game manager initialized with {len(manager.list_rooms())} active rooms")

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
