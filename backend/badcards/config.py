import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Admin endpoints (disabled when empty)
    ADMIN_TOKEN = os.environ.get("ADMIN_TOKEN", "")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Room defaults
    DEFAULT_MAX_PLAYERS = int(os.environ.get("DEFAULT_MAX_PLAYERS", "8"))
    DEFAULT_MAX_SCORE = int(os.environ.get("DEFAULT_MAX_SCORE", "7"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "20"))
    HAND_SIZE = int(os.environ.get("HAND_SIZE", "7"))

    # Round timers
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "45"))
    JUDGE_DURATION_SEC = int(os.environ.get("JUDGE_DURATION_SEC", "60"))
    TIMER_TICK_SEC = float(os.environ.get("TIMER_TICK_SEC", "1"))

    # Cleanup
    CLEANUP_INTERVAL_SEC = int(os.environ.get("CLEANUP_INTERVAL_SEC", "300"))
    SINGLE_PLAYER_TIMEOUT_SEC = int(os.environ.get("SINGLE_PLAYER_TIMEOUT_SEC", "1800"))
    DISCONNECTED_PLAYER_TIMEOUT_SEC = int(os.environ.get("DISCONNECTED_PLAYER_TIMEOUT_SEC", "600"))
    FINISHED_GAME_TIMEOUT_SEC = int(os.environ.get("FINISHED_GAME_TIMEOUT_SEC", "3600"))
    INACTIVE_WAITING_TIMEOUT_SEC = int(os.environ.get("INACTIVE_WAITING_TIMEOUT_SEC", "7200"))
