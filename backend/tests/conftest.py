"""
Pytest fixtures and configuration for CoopLyst tests
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cooplyst.core.database import Base, get_db, import_models, install_sqlite_pragmas, seed_default_settings
from cooplyst.models.game import Game
from cooplyst.models.setting import Setting
from cooplyst.models.user import User
from cooplyst.services.providers import IgdbAdapter
from main import app

import_models()


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_pragmas(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_default_settings(session)
    yield session
    session.close()


@pytest.fixture
def client(session_factory, db):
    """TestClient bound to the test database (startup hooks are not run)"""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_token_cache():
    IgdbAdapter.clear_token_cache()
    yield
    IgdbAdapter.clear_token_cache()


def _add_user(db, username, role="user"):
    user = User(username=username, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _add_user(db, "alice", role="admin")


@pytest.fixture
def users(db, admin):
    """Three regular members"""
    return [_add_user(db, name) for name in ("bob", "carol", "dave")]


@pytest.fixture
def make_game(db, admin):
    """Factory for games inserted directly, bypassing the metadata refresh"""
    def _make_game(title="It Takes Two", status="proposed", **fields):
        game = Game(title=title, status=status, proposed_by=admin.id, **fields)
        db.add(game)
        db.commit()
        db.refresh(game)
        return game
    return _make_game


@pytest.fixture
def set_setting(db):
    def _set_setting(key, value):
        row = db.query(Setting).filter(Setting.key == key).first()
        if row:
            row.value = value
        else:
            db.add(Setting(key=key, value=value))
        db.commit()
    return _set_setting

