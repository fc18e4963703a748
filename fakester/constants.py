import os

# -----------------------------
# Room / lobby configuration
# -----------------------------

# Number of digits in a join code (PIN). Codes never start with 0.
PIN_WIDTH = int(os.getenv("FAKESTER_PIN_WIDTH", "6"))

# Seconds a room survives after losing its last live connection.
GRACE_PERIOD_SECONDS = float(os.getenv("FAKESTER_GRACE_PERIOD", "30"))

# Random draws attempted before falling back to a scan of the code space.
MAX_PIN_ATTEMPTS = 100

# -----------------------------
# Auth / persistence
# -----------------------------

DB_URL = os.getenv("FAKESTER_DB_URL", "sqlite://database.db")
AUTH_COOKIE = "auth_token"
SESSION_MAX_AGE = int(os.getenv("FAKESTER_SESSION_MAX_AGE", str(24 * 60 * 60)))

# -----------------------------
# Runtime
# -----------------------------

LOG_LEVEL = os.getenv("FAKESTER_LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("FAKESTER_LOG_DIR", "logs")
FRONTEND_DIR = os.getenv("FAKESTER_FRONTEND_DIR", "dist")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

# -----------------------------
# WebSocket protocol tags
# -----------------------------

# Client -> server
CREATE_GAME = "CREATE_GAME"
JOIN_GAME = "JOIN_GAME"
START_GAME = "START_GAME"
SUBMIT_GUESS = "SUBMIT_GUESS"
LEAVE_GAME = "LEAVE_GAME"
TOGGLE_READY = "TOGGLE_READY"
UPDATE_SETTINGS = "UPDATE_SETTINGS"
KICK_PLAYER = "KICK_PLAYER"
SHOW_RESULTS = "SHOW_RESULTS"
END_GAME = "END_GAME"

# Server -> client
LOBBY_UPDATE = "LOBBY_UPDATE"
ERROR = "ERROR"
GAME_EVENT = "GAME_EVENT"
GUESS_SUBMITTED = "GUESS_SUBMITTED"
KICKED = "KICKED"
SERVER_SHUTDOWN = "SERVER_SHUTDOWN"

# Close codes
CLOSE_AUTH_REQUIRED = 4001
CLOSE_GOING_AWAY = 1001

__all__ = [
    "PIN_WIDTH",
    "GRACE_PERIOD_SECONDS",
    "MAX_PIN_ATTEMPTS",
    "DB_URL",
    "AUTH_COOKIE",
    "SESSION_MAX_AGE",
    "LOG_LEVEL",
    "LOG_DIR",
    "FRONTEND_DIR",
    "HOST",
    "PORT",
    "CREATE_GAME",
    "JOIN_GAME",
    "START_GAME",
    "SUBMIT_GUESS",
    "LEAVE_GAME",
    "TOGGLE_READY",
    "UPDATE_SETTINGS",
    "KICK_PLAYER",
    "SHOW_RESULTS",
    "END_GAME",
    "LOBBY_UPDATE",
    "ERROR",
    "GAME_EVENT",
    "GUESS_SUBMITTED",
    "KICKED",
    "SERVER_SHUTDOWN",
    "CLOSE_AUTH_REQUIRED",
    "CLOSE_GOING_AWAY",
]
