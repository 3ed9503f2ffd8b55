import pytest
from fastapi.testclient import TestClient

from token_auth.token_auth.auth_service.config import Settings
from token_auth.token_auth.auth_service.db import init_db, make_engine, make_session_factory
from token_auth.token_auth.auth_service.main import create_app

SIGNING_KEY = "test-signing-key-0123456789-abcdefghij"
OTHER_SIGNING_KEY = "another-signing-key-9876543210-zyxwvut"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        JWT_SIGNING_KEY=SIGNING_KEY,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        _env_file=None,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session(tmp_path):
    """Session on a fresh database, independent of any app."""
    engine = make_engine(f"sqlite:///{tmp_path / 'store.db'}")
    init_db(engine)
    session = make_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()
