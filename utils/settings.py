"""Environment-driven configuration for the chat server."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from models.room_catalog import DEFAULT_ROOMS, RoomCatalog

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _split_list(raw: Optional[str]) -> Tuple[str, ...]:
    if raw is None:
        return ()
    return tuple(part.strip() for part in raw.split(","))


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{name}={raw!r} is not a boolean value")


@dataclass
class ChatSettings:
    """Startup configuration.

    Attributes:
        database_dir: Directory holding the SQLite file (DATABASE_DIR).
        rooms: Validated room catalog (CHAT_ROOMS, comma-separated).
        cors_origins: Browser origins allowed to call the API (CORS_ORIGINS).
        deliver_after_write: Deliver messages only after the store acknowledges
            the write (CHAT_DELIVER_AFTER_WRITE).
        log_level: Root logging level name (LOG_LEVEL).
    """

    database_dir: Optional[str]
    rooms: RoomCatalog = field(default_factory=lambda: RoomCatalog(DEFAULT_ROOMS))
    cors_origins: Tuple[str, ...] = ("http://localhost:5173",)
    deliver_after_write: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ChatSettings":
        """Build settings from environment variables.

        Raises:
            RuntimeError: for an invalid room catalog or boolean flag.
        """
        env = os.environ if environ is None else environ
        rooms_raw = env.get("CHAT_ROOMS")
        rooms = RoomCatalog(_split_list(rooms_raw) if rooms_raw is not None else DEFAULT_ROOMS)
        origins = tuple(o for o in _split_list(env.get("CORS_ORIGINS")) if o) or ("http://localhost:5173",)
        return cls(
            database_dir=env.get("DATABASE_DIR"),
            rooms=rooms,
            cors_origins=origins,
            deliver_after_write=_parse_bool(
                "CHAT_DELIVER_AFTER_WRITE", env.get("CHAT_DELIVER_AFTER_WRITE"), True
            ),
            log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        )
