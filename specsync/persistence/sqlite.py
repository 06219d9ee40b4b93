"""SQLite implementation of the session repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import SessionNotFound
from ..sessions.models import Command, Interaction, Result, Session, SessionStatus
from .repository import SessionRepository


class SQLiteSessionRepository(SessionRepository):
    """Persist sessions and their interactions using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                status TEXT NOT NULL,
                state TEXT NOT NULL,
                component_id TEXT,
                parent_session_id TEXT,
                child_session_ids TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS interactions (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                session_id TEXT NOT NULL,
                step TEXT NOT NULL,
                command TEXT NOT NULL,
                result TEXT,
                started_at TEXT NOT NULL,
                completed_at TEXT
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()
        return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def _load(self, session_id: str) -> Session | None:
        row = self._fetchone(
            "SELECT id, type, status, state, component_id, parent_session_id, child_session_ids, created_at "
            "FROM sessions WHERE id = ?",
            session_id,
        )
        if not row:
            return None
        interaction_rows = self._fetchall(
            "SELECT id, step, command, result, started_at, completed_at FROM interactions "
            "WHERE session_id = ? ORDER BY seq",
            session_id,
        )
        return self._to_session(row, [self._to_interaction(r) for r in interaction_rows])

    def _require(self, session_id: str) -> Session:
        session = self._load(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    @staticmethod
    def _to_interaction(row: sqlite3.Row) -> Interaction:
        return Interaction(
            id=row["id"],
            step=row["step"],
            command=Command.model_validate_json(row["command"]),
            result=Result.model_validate_json(row["result"]) if row["result"] else None,
            started_at=datetime.fromisoformat(row["started_at"]),
            completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
        )

    @staticmethod
    def _to_session(row: sqlite3.Row, interactions: list[Interaction]) -> Session:
        return Session(
            id=row["id"],
            type=row["type"],
            status=SessionStatus(row["status"]),
            state=json.loads(row["state"]),
            component_id=row["component_id"],
            parent_session_id=row["parent_session_id"],
            child_session_ids=json.loads(row["child_session_ids"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            interactions=interactions,
        )

    def _insert_session(self, session: Session) -> Session:
        if self._fetchone("SELECT 1 FROM sessions WHERE id = ?", session.id):
            raise ValueError(f"Session {session.id} already exists")
        self._execute(
            "INSERT INTO sessions (id, type, status, state, component_id, parent_session_id, "
            "child_session_ids, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            session.id,
            session.type,
            session.status.value,
            json.dumps(session.state),
            session.component_id,
            session.parent_session_id,
            json.dumps(session.child_session_ids),
            session.created_at.isoformat(),
        )
        for interaction in session.interactions:
            self._insert_interaction(session.id, interaction)
        return self._require(session.id)

    def _insert_interaction(self, session_id: str, interaction: Interaction) -> None:
        self._execute(
            "INSERT INTO interactions (id, session_id, step, command, result, started_at, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            interaction.id,
            session_id,
            interaction.step,
            interaction.command.model_dump_json(),
            interaction.result.model_dump_json() if interaction.result else None,
            interaction.started_at.isoformat(),
            interaction.completed_at.isoformat() if interaction.completed_at else None,
        )

    def _append(self, session_id: str, interaction: Interaction) -> Session:
        self._require(session_id)
        self._insert_interaction(session_id, interaction)
        return self._require(session_id)

    def _complete(self, session_id: str, interaction_id: str, result: Result) -> Session:
        session = self._require(session_id)
        interaction = session.get_interaction(interaction_id)
        if interaction is None:
            raise KeyError(f"Interaction {interaction_id} not found in session {session_id}")
        completed = interaction.complete(result)
        self._execute(
            "UPDATE interactions SET result = ?, completed_at = ? WHERE id = ?",
            completed.result.model_dump_json(),
            completed.completed_at.isoformat(),
            interaction_id,
        )
        return self._require(session_id)

    def _merge_state(self, session_id: str, state: dict[str, Any]) -> Session:
        session = self._require(session_id)
        self._execute(
            "UPDATE sessions SET state = ? WHERE id = ?",
            json.dumps({**session.state, **state}),
            session_id,
        )
        return self._require(session_id)

    def _update_status(self, session_id: str, status: SessionStatus) -> Session:
        self._require(session_id)
        self._execute(
            "UPDATE sessions SET status = ? WHERE id = ?",
            SessionStatus(status).value,
            session_id,
        )
        return self._require(session_id)

    def _add_child(self, parent_id: str, child_id: str) -> Session:
        session = self._require(parent_id)
        if child_id not in session.child_session_ids:
            self._execute(
                "UPDATE sessions SET child_session_ids = ? WHERE id = ?",
                json.dumps(session.child_session_ids + [child_id]),
                parent_id,
            )
        return self._require(parent_id)

    def _list(self) -> list[Session]:
        rows = self._fetchall("SELECT id FROM sessions ORDER BY created_at, rowid")
        return [self._require(row["id"]) for row in rows]

    # ------------------------------------------------------------------
    # Repository API
    async def create_session(self, session: Session) -> Session:
        return await asyncio.to_thread(self._insert_session, session)

    async def get_session(self, session_id: str) -> Session | None:
        return await asyncio.to_thread(self._load, session_id)

    async def list_sessions(self) -> list[Session]:
        return await asyncio.to_thread(self._list)

    async def append_interaction(self, session_id: str, interaction: Interaction) -> Session:
        return await asyncio.to_thread(self._append, session_id, interaction)

    async def complete_interaction(
        self, session_id: str, interaction_id: str, result: Result
    ) -> Session:
        return await asyncio.to_thread(self._complete, session_id, interaction_id, result)

    async def merge_state(self, session_id: str, state: dict[str, Any]) -> Session:
        return await asyncio.to_thread(self._merge_state, session_id, state)

    async def update_status(self, session_id: str, status: SessionStatus) -> Session:
        return await asyncio.to_thread(self._update_status, session_id, status)

    async def add_child_session(self, parent_id: str, child_id: str) -> Session:
        return await asyncio.to_thread(self._add_child, parent_id, child_id)
