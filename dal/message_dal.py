"""Async Data Access Layer for GROUP_MESSAGE and PRIVATE_MESSAGE tables.

Implements the message store used by the event router. Every write either
returns the stored record or raises `PersistenceError`.
"""

from __future__ import annotations

from typing import Sequence

import aiosqlite

from models.errors import PersistenceError
from models.message_record import GroupMessage, PrivateMessage
from utils.database_init import AsyncDatabaseInitializer


class MessageDAL:
    """Data access layer for chat messages.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _GROUP_COLUMNS = ("id", "room", "from_user", "message", "date_sent")
    _PRIVATE_COLUMNS = ("id", "from_user", "to_user", "message", "date_sent")

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def save_group_message(self, room: str, from_user: str, text: str) -> GroupMessage:
        """Store a new room message and return it with its id and timestamp."""
        return await self.insert_group_message(GroupMessage(room=room, from_user=from_user, message=text))

    async def save_private_message(self, from_user: str, to_user: str, text: str) -> PrivateMessage:
        """Store a new private message and return it with its id and timestamp."""
        return await self.insert_private_message(PrivateMessage(from_user=from_user, to_user=to_user, message=text))

    async def insert_group_message(self, record: GroupMessage) -> GroupMessage:
        """Insert a fully built GroupMessage.

        Raises:
            PersistenceError: if the database rejects the write.
        """
        await self._insert(
            "GROUP_MESSAGE",
            self._GROUP_COLUMNS,
            (record.id, record.room, record.from_user, record.message, record.date_sent.isoformat()),
        )
        return record

    async def insert_private_message(self, record: PrivateMessage) -> PrivateMessage:
        """Insert a fully built PrivateMessage.

        Raises:
            PersistenceError: if the database rejects the write.
        """
        await self._insert(
            "PRIVATE_MESSAGE",
            self._PRIVATE_COLUMNS,
            (record.id, record.from_user, record.to_user, record.message, record.date_sent.isoformat()),
        )
        return record

    async def _insert(self, table: str, columns: Sequence[str], values: Sequence[object]) -> None:
        placeholders = ", ".join("?" for _ in columns)
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    tuple(values),
                )
                await conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to store message in {table}: {exc}") from exc
