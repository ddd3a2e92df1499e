"""Async Data Access Layer for the USERS table (the credential store)."""

from __future__ import annotations

import time
from typing import Optional, Sequence

import aiosqlite

from models.errors import DuplicateUsernameError, PersistenceError
from models.message_record import UserRecord
from utils.database_init import AsyncDatabaseInitializer
from utils.passwords import hash_password, verify_password


class UserDAL:
    """Create accounts and verify credentials."""

    _COLUMNS = ("username", "firstname", "lastname", "password_hash", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_account(self, username: str, firstname: str, lastname: str, password: str) -> UserRecord:
        """Insert a new USERS row.

        Raises:
            DuplicateUsernameError: if the username is taken.
            PersistenceError: for any other database failure.
        """
        record = UserRecord(
            username=username,
            firstname=firstname,
            lastname=lastname,
            password_hash=hash_password(password),
            created_at=int(time.time()),
        )
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT INTO USERS ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?)",
                    (record.username, record.firstname, record.lastname, record.password_hash, record.created_at),
                )
                await conn.commit()
        except aiosqlite.IntegrityError as exc:
            raise DuplicateUsernameError(username) from exc
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to create account {username!r}: {exc}") from exc
        return record

    async def get_user(self, username: str) -> Optional[UserRecord]:
        """Return the UserRecord for `username`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM USERS WHERE username = ?",
                (username,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def verify_credentials(self, username: str, password: str) -> Optional[UserRecord]:
        """Return the account when the password matches, otherwise None."""
        try:
            user = await self.get_user(username)
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Failed to look up account {username!r}: {exc}") from exc
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> UserRecord:
        return UserRecord(
            username=row[0],
            firstname=row[1],
            lastname=row[2],
            password_hash=row[3],
            created_at=row[4],
        )
