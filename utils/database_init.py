import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database that backs accounts and chat messages.

    - The database file is located at: <db_dir>/chat.db
    - `db_dir` defaults to the DATABASE_DIR environment variable. A
      RuntimeError is raised if neither is given or the path is invalid
      (not a directory and cannot be created).
    - The first call to `ensure_database()` creates the USERS,
      GROUP_MESSAGE and PRIVATE_MESSAGE tables if they are missing.
      Existing rows are kept across restarts.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    FILENAME = "chat.db"

    def __init__(self, db_dir: Optional[Path | str] = None) -> None:
        raw_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if raw_dir is None or not raw_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        path = Path(raw_dir).expanduser()

        if path.exists() and not path.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={raw_dir!r} points to a file, not a directory "
                f"({path}). Please set DATABASE_DIR to a directory path."
            )

        try:
            path.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {path}"
            ) from exc

        self.db_dir = path
        self.db_path = self.db_dir / self.FILENAME
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS USERS (
                            username TEXT PRIMARY KEY,
                            firstname TEXT NOT NULL,
                            lastname TEXT NOT NULL,
                            password_hash TEXT NOT NULL,
                            created_at INTEGER NOT NULL
                        )
                        """
                    )
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS GROUP_MESSAGE (
                            id TEXT PRIMARY KEY,
                            room TEXT NOT NULL,
                            from_user TEXT NOT NULL,
                            message TEXT NOT NULL,
                            date_sent TEXT NOT NULL
                        )
                        """
                    )
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS PRIVATE_MESSAGE (
                            id TEXT PRIMARY KEY,
                            from_user TEXT NOT NULL,
                            to_user TEXT NOT NULL,
                            message TEXT NOT NULL,
                            date_sent TEXT NOT NULL
                        )
                        """
                    )
                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_group_message_room ON GROUP_MESSAGE(room, date_sent)"
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
