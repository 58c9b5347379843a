"""
SafeLink – shared test fixtures
───────────────────────────────
Run: pytest -v   (from the repository root)

Tests run against a throwaway SQLite file; the environment must be set
before anything under ``safelink`` is imported.
"""

import os
import tempfile
from pathlib import Path

_tmp_dir = Path(tempfile.mkdtemp(prefix="safelink-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_dir / 'test.db'}"
os.environ["INTEL_CACHE_TTL"] = "0"
os.environ["RATE_LIMIT_GLOBAL"] = "100000"
os.environ["RATE_LIMIT_SCAN"] = "100000"

import pytest
from fastapi.testclient import TestClient

from safelink.database import Base, SessionLocal, engine
from safelink.intel import clear_cache
from safelink.main import app
from safelink.security import create_access_token


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.create_all(bind=engine)
    clear_cache()
    yield
    clear_cache()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def _make(user_id="user-1", **claims):
        token = create_access_token({"sub": user_id, **claims})
        return {"Authorization": f"Bearer {token}"}
    return _make
