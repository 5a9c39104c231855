"""
auth/sessions.py -- Session Token Manager: refresh-token records, one per user.

Every operation is keyed by user id, never by token, because a user owns at
most one session record. UNIQUE(user_id) makes that a database guarantee:
when two logins for the same user race past find_by_user() returning None,
one create() wins and the other raises IntegrityError. The loser re-reads the
winner's record instead of producing a duplicate (see AuthService.login).

Lifecycle:
  Absent --create--> Valid --mark_invalid--> Invalid
  Valid  --delete_by_user--> Absent   (logout with the "delete" policy)
  Invalid --delete_by_user--> Absent  (administrative clear only)

Shares the users database -- SessionStore is built on UserStore.engine so a
single connection pool serves both tables.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.engine import Engine

from auth.models import Session
from auth.store import metadata, now_iso

logger = logging.getLogger("authkeeper.auth.sessions")

_sessions = Table(
    "sessions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("refresh_token", String(128), nullable=False),
    Column("ip", String(64)),
    Column("user_agent", Text),
    Column("is_valid", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)


class SessionStore:
    """Repository for Session records.

    Usage:
        sessions = SessionStore(user_store.engine)
        session = sessions.find_by_user(user.id)
        if session is None:
            session = sessions.create(user.id, generate_refresh_secret(), ip, user_agent)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _sessions.create(self.engine, checkfirst=True)

    def find_by_user(self, user_id: int) -> Session | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.user_id == user_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def create(self, user_id: int, refresh_token: str, ip: str | None, user_agent: str | None) -> Session:
        """Insert a valid session for user_id and return it.

        Raises sqlalchemy.exc.IntegrityError if the user already has a session
        record -- including one created by a concurrent request a moment ago.
        """
        created_at = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.insert().values(
                    user_id=user_id,
                    refresh_token=refresh_token,
                    ip=ip,
                    user_agent=user_agent,
                    is_valid=1,
                    created_at=created_at,
                )
            )
            conn.commit()
            session_id = result.inserted_primary_key[0]
        logger.info("Session %d created for user_id=%d", session_id, user_id)
        return Session(
            id=session_id,
            user_id=user_id,
            refresh_token=refresh_token,
            ip=ip,
            user_agent=user_agent,
            is_valid=True,
            created_at=created_at,
        )

    def delete_by_user(self, user_id: int) -> bool:
        """Remove the user's session record. Returns True if one existed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
            conn.commit()
        return result.rowcount > 0

    def mark_invalid(self, user_id: int) -> bool:
        """Revoke the user's session in place. Returns True if one existed.

        The record is kept so the next login finds it and is refused.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.update().where(_sessions.c.user_id == user_id).values(is_valid=0))
            conn.commit()
        return result.rowcount > 0

    def list_sessions(self) -> list[Session]:
        """Return every session record, oldest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_sessions.select().order_by(_sessions.c.id)).fetchall()
        return [_row_to_session(r) for r in rows]


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        refresh_token=row.refresh_token,
        ip=row.ip,
        user_agent=row.user_agent,
        is_valid=bool(row.is_valid),
        created_at=row.created_at,
    )
