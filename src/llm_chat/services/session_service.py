from __future__ import annotations

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from llm_chat.app.errors import SessionExistsError, SessionNotFoundError
from llm_chat.infrastructure.data_models import (
    ROLES,
    MessageRecord,
    SessionRecord,
    SessionSnapshot,
    SessionSummary,
    StoredMessage,
)
from llm_chat.infrastructure.database_manager import DatabaseManager

logger = logging.getLogger("llm-chat")


class SessionStore:
    """
    Named conversations and their message history.

    Every public method runs in its own transaction and returns frozen views,
    never ORM rows. Database failures surface as PersistenceError.

    Args:
        database (DatabaseManager): The database the sessions live in.
    """

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database

    # -----------------------------
    # Lookup helpers
    # -----------------------------
    @staticmethod
    def _find(db: Session, name: str) -> SessionRecord | None:
        return db.scalars(select(SessionRecord).where(SessionRecord.name == name)).first()

    def _require(self, db: Session, name: str) -> SessionRecord:
        record = self._find(db, name)
        if record is None:
            raise SessionNotFoundError(name)
        return record

    # -----------------------------
    # Session reads
    # -----------------------------
    def get_session(self, name: str) -> SessionSnapshot:
        """
        Load a session with its full history, oldest message first.

        Raises:
            SessionNotFoundError: If no session has this name.
        """
        with self._database.transaction() as db:
            return self._require(db, name).to_snapshot()

    def get_active_session(self, default_name: str) -> SessionSnapshot:
        """
        Load the active session.

        If no session is active, the session called `default_name` is
        activated, and created with an empty hint if it does not exist.
        """
        with self._database.transaction() as db:
            record = db.scalars(select(SessionRecord).where(SessionRecord.active.is_(True))).first()
            if record is not None:
                return record.to_snapshot()

            record = self._find(db, default_name)
            if record is None:
                logger.info(f"Creating default session: {default_name}")
                record = SessionRecord(name=default_name, hint="")
                db.add(record)
            record.active = True
            db.flush()
            return record.to_snapshot()

    def list_sessions(self) -> list[SessionSummary]:
        """Summaries of every session, ordered by name."""
        counts = (
            select(MessageRecord.session_id, func.count(MessageRecord.id).label("n"))
            .group_by(MessageRecord.session_id)
            .subquery()
        )
        stmt = (
            select(SessionRecord, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.session_id == SessionRecord.id)
            .order_by(SessionRecord.name)
        )
        with self._database.transaction() as db:
            return [
                SessionSummary(
                    name=record.name,
                    hint=record.hint,
                    message_count=int(count),
                    active=record.active,
                )
                for record, count in db.execute(stmt).all()
            ]

    def history(self, name: str, limit: int | None = None) -> list[StoredMessage]:
        """
        The last `limit` messages of a session (all when None), oldest first.
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")

        with self._database.transaction() as db:
            record = self._require(db, name)
            stmt = (
                select(MessageRecord)
                .where(MessageRecord.session_id == record.id)
                .order_by(MessageRecord.created_at.desc(), MessageRecord.id.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            newest_first = [m.to_stored() for m in db.scalars(stmt)]
        return list(reversed(newest_first))

    # -----------------------------
    # Session writes
    # -----------------------------
    def create_session(self, name: str, hint: str = "") -> SessionSnapshot:
        """
        Raises:
            SessionExistsError: If the name is already taken.
            ValueError: If the name is blank.
        """
        name = name.strip()
        if not name:
            raise ValueError("Session name must not be empty")

        with self._database.transaction() as db:
            if self._find(db, name) is not None:
                raise SessionExistsError(name)
            record = SessionRecord(name=name, hint=hint)
            db.add(record)
            db.flush()
            logger.info(f"Created session {name}")
            return record.to_snapshot()

    def use_session(self, name: str) -> None:
        """Make `name` the only active session."""
        with self._database.transaction() as db:
            record = self._require(db, name)
            db.execute(update(SessionRecord).values(active=False))
            record.active = True

    def set_hint(self, name: str, hint: str) -> None:
        with self._database.transaction() as db:
            self._require(db, name).hint = hint

    def delete_session(self, name: str) -> None:
        """Remove a session together with its messages."""
        with self._database.transaction() as db:
            record = self._require(db, name)
            db.delete(record)
            logger.info(f"Deleted session {name}")

    def clear_history(self, name: str) -> int:
        """Delete every message of a session, keeping the session. Returns the count removed."""
        with self._database.transaction() as db:
            record = self._require(db, name)
            result = db.execute(delete(MessageRecord).where(MessageRecord.session_id == record.id))
            return int(result.rowcount or 0)

    def add_message(self, session_id: int, role: str, content: str) -> StoredMessage:
        """
        Append one message row to a session.

        Raises:
            ValueError: If the role is not one of user/system/assistant.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role}")

        with self._database.transaction() as db:
            if db.get(SessionRecord, session_id) is None:
                raise SessionNotFoundError(str(session_id))
            record = MessageRecord(session_id=session_id, role=role, content=content)
            db.add(record)
            db.flush()
            logger.debug(f"Stored {role} message {record.id} in session {session_id}")
            return record.to_stored()
