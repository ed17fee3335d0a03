"""Persistence layer for chat sessions and their ordered messages."""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import aiosqlite

from ragchat.core.errors import SessionNotFoundError, StorageError
from ragchat.core.logging import get_logger
from ragchat.models.chat import ChatMessage, NewMessage, Role

logger = get_logger(__name__)


def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
    return ChatMessage(
        id=row[0],
        role=Role(row[1]),
        content=row[2],
        created_at=datetime.fromisoformat(row[3]),
    )


class SessionStore:
    """Source of truth for sessions and messages.

    Messages are ordered by (created_at, id) ascending. Ids are assigned by
    SQLite and increase monotonically.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._initialized = False

    async def initialize(self) -> None:
        """Ensure the underlying SQLite database and tables exist."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA foreign_keys = ON")
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS chat_messages (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        session_id TEXT NOT NULL,
                        role TEXT NOT NULL CHECK (role IN ('USER', 'BOT')),
                        content TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
                    )
                    """
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_chat_messages_session "
                    "ON chat_messages(session_id, created_at)"
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to initialize session store: {e}", operation="initialize") from e

        self._initialized = True
        logger.info("Session store initialized at %s", self.db_path)

    async def create_session(self) -> str:
        """Create a session record and return its identifier."""
        await self.initialize()

        session_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    "INSERT INTO sessions (id, created_at, updated_at) VALUES (?, ?, ?)",
                    (session_id, now, now),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to create session: {e}", operation="create_session") from e

        return session_id

    async def _session_exists(self, db: aiosqlite.Connection, session_id: str) -> bool:
        async with db.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,)) as cursor:
            return await cursor.fetchone() is not None

    async def append_messages(self, session_id: str, messages: Sequence[NewMessage]) -> int:
        """Insert messages for a session in a single transaction.

        Messages in one batch get strictly increasing timestamps in input
        order.

        Returns:
            Number of rows inserted.

        Raises:
            SessionNotFoundError: If the session does not exist.
            StorageError: On database failure.
        """
        if not messages:
            return 0

        await self.initialize()

        now = datetime.now(timezone.utc)
        rows = [
            (
                session_id,
                message.role.value,
                message.content,
                (now + timedelta(microseconds=index)).isoformat(timespec="microseconds"),
            )
            for index, message in enumerate(messages)
        ]

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA foreign_keys = ON")
                if not await self._session_exists(db, session_id):
                    raise SessionNotFoundError(session_id)
                await db.executemany(
                    "INSERT INTO chat_messages (session_id, role, content, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    rows,
                )
                await db.execute(
                    "UPDATE sessions SET updated_at = ? WHERE id = ?",
                    (rows[-1][3], session_id),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to append messages: {e}",
                operation="append_messages",
                session_id=session_id,
            ) from e

        return len(rows)

    async def list_messages(self, session_id: str) -> Optional[List[ChatMessage]]:
        """Return all messages of a session, oldest first.

        Returns:
            None if the session record does not exist, otherwise a (possibly
            empty) list.
        """
        await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                if not await self._session_exists(db, session_id):
                    return None
                async with db.execute(
                    """
                    SELECT id, role, content, created_at
                    FROM chat_messages
                    WHERE session_id = ?
                    ORDER BY created_at ASC, id ASC
                    """,
                    (session_id,),
                ) as cursor:
                    return [_row_to_message(row) async for row in cursor]
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to list messages: {e}",
                operation="list_messages",
                session_id=session_id,
            ) from e

    async def list_recent_messages(self, session_id: str, limit: int) -> List[ChatMessage]:
        """Return the newest ``limit`` messages of a session, oldest first."""
        await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    """
                    SELECT id, role, content, created_at
                    FROM chat_messages
                    WHERE session_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                    """,
                    (session_id, limit),
                ) as cursor:
                    newest_first = [_row_to_message(row) async for row in cursor]
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to read recent messages: {e}",
                operation="list_recent_messages",
                session_id=session_id,
            ) from e

        newest_first.reverse()
        return newest_first
