"""
auth/sessions.py -- Session registry: one refresh-token record per principal.

The "at most one session per principal" rule is enforced by the schema
(principal_id is the primary key) and by a single INSERT ... ON CONFLICT DO
UPDATE statement in upsert(). Two concurrent logins for the same principal
cannot produce duplicate rows; the later write wins.

No business logic lives here. Whether a token is expired or valid is decided
by TokenService and AuthService.

Supported backends: SQLite (3.24+) and PostgreSQL -- the two dialects with
ON CONFLICT support in SQLAlchemy.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine

from auth.models import Session
from auth.store import make_engine, now_iso

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("principal_id", Integer, primary_key=True, autoincrement=False),
    Column("refresh_token", Text, nullable=False, index=True),
    Column("updated_at", String(32), nullable=False),
)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SessionRegistry:
    """Repository for Session records.

    Usage:
        sessions = SessionRegistry("sqlite:///catalog_auth.db")
        sessions.upsert(principal_id, refresh_token)
        session = sessions.find_by_token(refresh_token)
        sessions.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        dialect = self.engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise ValueError(f"SessionRegistry requires sqlite or postgresql, got {dialect!r}")
        self._insert = _UPSERT_DIALECTS[dialect]
        _metadata.create_all(self.engine)

    def upsert(self, principal_id: int, refresh_token: str) -> None:
        """Create the principal's session, or overwrite its refresh token in place."""
        stmt = self._insert(_sessions).values(
            principal_id=principal_id,
            refresh_token=refresh_token,
            updated_at=now_iso(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[_sessions.c.principal_id],
            set_={
                "refresh_token": stmt.excluded.refresh_token,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.engine.connect() as conn:
            conn.execute(stmt)
            conn.commit()

    def find_by_principal(self, principal_id: int) -> Session | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.principal_id == principal_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def find_by_token(self, refresh_token: str) -> Session | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.refresh_token == refresh_token)).fetchone()
        return _row_to_session(row) if row is not None else None

    def delete_by_principal(self, principal_id: int) -> bool:
        """Delete the principal's session. Returns True if a row was deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.principal_id == principal_id))
            conn.commit()
        return result.rowcount > 0

    def delete_by_token(self, refresh_token: str) -> bool:
        """Delete the session holding refresh_token. Returns True if a row was deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.refresh_token == refresh_token))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_session(row) -> Session:
    return Session(
        principal_id=row.principal_id,
        refresh_token=row.refresh_token,
        updated_at=row.updated_at,
    )
