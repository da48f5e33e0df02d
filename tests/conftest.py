import os

os.environ.setdefault("API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEFAULTS", "false")

import uuid  # noqa: E402
from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from routine_api import schemas  # noqa: E402
from routine_api.db import Base, get_db  # noqa: E402
from routine_api.main import app  # noqa: E402

API_KEY = os.environ["API_KEY"]


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app, headers={"X-API-Key": API_KEY})
    app.dependency_overrides.clear()


@pytest.fixture
def make_routine():
    def _make(frequency=None, **kw):
        data = dict(
            id=str(uuid.uuid4()),
            name="Routine",
            category="Fitness",
            frequency=frequency or {"type": "daily", "times_per_day": 1},
            created_at=datetime(2024, 1, 1, 8, 0),
        )
        data.update(kw)
        return schemas.Routine.model_validate(data)
    return _make
