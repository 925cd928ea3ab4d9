"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper. PrincipalStore is the repository;
_row_to_principal is the mapper. Service and dependency code never touches
SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  UNIQUE(email) is enforced by the schema. create_principal() lets the
  IntegrityError propagate; AuthService.register() rewords it as
  DuplicateCredential so store-internal text never reaches a client.

Emails are normalized (trimmed, lowercased) on write and on lookup, so
"A@X.com " and "a@x.com" are the same account.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import SingletonThreadPool

from auth.models import DEFAULT_IMAGE, Principal, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_principals = Table(
    "principals",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.user.value),
    Column("image", Text, nullable=False, server_default=DEFAULT_IMAGE),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers (shared with auth/sessions.py)
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_memory_sqlite(url: URL) -> bool:
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def make_engine(db_url: str) -> Engine:
    """Build an engine; SQLite gets cross-thread connections and WAL.

    In-memory SQLite URLs (":memory:" or "mode=memory") get SingletonThreadPool
    set explicitly: one connection per thread, which keeps a named shared-cache
    database alive while any thread holds it.
    """
    url = make_url(db_url)
    kwargs: dict = {}
    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = SingletonThreadPool
    engine = create_engine(url, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for Principal entities.

    Usage:
        store = PrincipalStore("sqlite:///catalog_auth.db")
        pid = store.create_principal(Principal(name="Ann", email="a@x.com", hashed_password=hash_password("pw")))
        principal = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create_principal(self, principal: Principal) -> int:
        """Insert a new principal and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _principals.insert().values(
                    name=principal.name,
                    email=normalize_email(principal.email),
                    hashed_password=principal.hashed_password,
                    role=principal.role,
                    image=principal.image or DEFAULT_IMAGE,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> Principal | None:
        """Look up a principal by email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _principals.select().where(_principals.c.email == normalize_email(email))
            ).fetchone()
        return _row_to_principal(row) if row is not None else None

    def get_by_id(self, principal_id: int) -> Principal | None:
        """Look up a principal by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_principals.select().where(_principals.c.id == principal_id)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def update_principal(self, principal_id: int, **fields) -> bool:
        """Update mutable fields on an existing principal.

        Accepted fields: name, image, role, hashed_password. The id and email
        are immutable once created.

        Returns True if a row was updated, False if principal_id was not found.
        """
        unknown = set(fields) - {"name", "image", "role", "hashed_password"}
        if unknown:
            raise ValueError(f"Immutable or unknown principal fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_principals.update().where(_principals.c.id == principal_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        image=row.image,
        created_at=row.created_at,
    )
