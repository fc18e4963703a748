"""
Fakester Logging
================
Console logging plus optional rotating file logs. Logs are written to the
directory named by ``FAKESTER_LOG_DIR`` (empty disables file output).

Log files produced:
  - fakester.log           General backend log (all levels)
  - game_events.jsonl      Structured room events (created, joined, expired...)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .constants import LOG_DIR, LOG_LEVEL

# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

_VERBOSE_FMT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_CONSOLE_FMT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)

# ---------------------------------------------------------------------------
# Handler factory
# ---------------------------------------------------------------------------

def _rotating_handler(
    log_dir: Path,
    filename: str,
    max_bytes: int = 5 * 1024 * 1024,   # 5 MB per file
    backup_count: int = 5,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_VERBOSE_FMT)
    return handler

# ---------------------------------------------------------------------------
# Logger setup – call once at startup
# ---------------------------------------------------------------------------

_CONFIGURED = False


def setup_logging(*, console_level: str = LOG_LEVEL, log_dir: Optional[str] = LOG_DIR) -> None:
    """Initialise all loggers.  Safe to call more than once."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(console_level.upper())
    console.setFormatter(_CONSOLE_FMT)
    root.addHandler(console)

    game_logger = get_game_event_logger()
    game_logger.setLevel(logging.DEBUG)
    game_logger.propagate = False  # raw JSON lines stay out of the console

    if not log_dir:
        return

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    root.addHandler(_rotating_handler(directory, "fakester.log"))

    game_handler = _rotating_handler(
        directory,
        "game_events.jsonl",
        max_bytes=10 * 1024 * 1024,
        backup_count=10,
    )
    # JSONL lines should be raw – no formatter prefix
    game_handler.setFormatter(logging.Formatter("%(message)s"))
    game_logger.addHandler(game_handler)

    get_logger("fakester").info("Logging initialised – log directory: %s", directory.resolve())


# ---------------------------------------------------------------------------
# Convenience accessors
# ---------------------------------------------------------------------------

def get_logger(name: str = "fakester") -> logging.Logger:
    return logging.getLogger(name)


def get_game_event_logger() -> logging.Logger:
    return logging.getLogger("fakester.events")


def log_game_event(
    event_type: str,
    *,
    room_code: str | None = None,
    player_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """Write a structured JSON line to game_events.jsonl.

    Each line is self-contained and easy to query with jq.
    """
    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
    }
    if room_code:
        record["room"] = room_code
    if player_id:
        record["player_id"] = player_id
    if data:
        record.update(data)
    get_game_event_logger().info(json.dumps(record, default=str))


__all__ = [
    "setup_logging",
    "get_logger",
    "get_game_event_logger",
    "log_game_event",
]
