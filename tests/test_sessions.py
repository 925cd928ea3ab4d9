"""Unit tests for auth/sessions.py -- SessionRegistry storage operations.

Covers:
- upsert() creates a row, then overwrites it in place (one row per principal)
- find_by_principal() / find_by_token() lookups, including superseded tokens
- delete_by_principal() / delete_by_token() return whether a row was removed
- concurrent upserts for one principal leave exactly one row
- make_engine() pool choice for in-memory SQLite URLs
"""

import threading
import warnings
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import text
from sqlalchemy.exc import SADeprecationWarning
from sqlalchemy.pool import SingletonThreadPool

from auth.sessions import SessionRegistry
from auth.store import make_engine


def _row_count(registry: SessionRegistry) -> int:
    with registry.engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM sessions")).scalar()


class TestUpsert:
    def test_creates_session(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        session = session_registry.find_by_principal(1)
        assert session is not None
        assert session.principal_id == 1
        assert session.refresh_token == "token-a"
        assert session.updated_at

    def test_overwrites_existing_session(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        session_registry.upsert(1, "token-b")
        assert session_registry.find_by_principal(1).refresh_token == "token-b"
        assert _row_count(session_registry) == 1

    def test_superseded_token_no_longer_found(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        session_registry.upsert(1, "token-b")
        assert session_registry.find_by_token("token-a") is None
        assert session_registry.find_by_token("token-b").principal_id == 1

    def test_principals_are_independent(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        session_registry.upsert(2, "token-b")
        assert _row_count(session_registry) == 2
        assert session_registry.find_by_token("token-a").principal_id == 1
        assert session_registry.find_by_token("token-b").principal_id == 2


class TestLookupsAndDeletes:
    def test_find_missing_returns_none(self, session_registry: SessionRegistry) -> None:
        assert session_registry.find_by_principal(99) is None
        assert session_registry.find_by_token("nope") is None

    def test_delete_by_principal(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        assert session_registry.delete_by_principal(1) is True
        assert session_registry.find_by_principal(1) is None
        assert session_registry.delete_by_principal(1) is False

    def test_delete_by_token(self, session_registry: SessionRegistry) -> None:
        session_registry.upsert(1, "token-a")
        session_registry.upsert(2, "token-b")
        assert session_registry.delete_by_token("token-a") is True
        assert session_registry.find_by_token("token-a") is None
        assert session_registry.find_by_principal(2) is not None

    def test_delete_by_unknown_token(self, session_registry: SessionRegistry) -> None:
        assert session_registry.delete_by_token("missing") is False


class TestConcurrentUpsert:
    def test_parallel_logins_leave_one_row(self, tmp_path) -> None:
        # File-backed: shared-cache memory DBs fail fast on write contention instead of waiting.
        registry = SessionRegistry(f"sqlite:///{tmp_path / 'sessions.db'}")
        tokens = [f"tok-{i}" for i in range(8)]
        barrier = threading.Barrier(len(tokens))

        def write(token: str) -> None:
            barrier.wait()
            registry.upsert(1, token)

        try:
            with ThreadPoolExecutor(max_workers=len(tokens)) as pool:
                list(pool.map(write, tokens))
            assert _row_count(registry) == 1
            stored = registry.find_by_principal(1)
            assert stored.refresh_token in tokens
            assert registry.find_by_token(stored.refresh_token).principal_id == 1
        finally:
            registry.close()


class TestEngine:
    def test_memory_urls_use_singleton_thread_pool(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error", SADeprecationWarning)
            plain = make_engine("sqlite:///:memory:")
            shared = make_engine("sqlite:///file:engine_test?mode=memory&cache=shared&uri=true")
        assert isinstance(plain.pool, SingletonThreadPool)
        assert isinstance(shared.pool, SingletonThreadPool)

    def test_file_url_keeps_default_pool(self, tmp_path) -> None:
        engine = make_engine(f"sqlite:///{tmp_path / 'x.db'}")
        assert not isinstance(engine.pool, SingletonThreadPool)
