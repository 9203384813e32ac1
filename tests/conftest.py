import os

# must be set before the app modules build their engine
os.environ.setdefault("LEASING_DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shared.core.database import Base
from leasing_service.app import models  # noqa: F401
from tests.factories import DEFAULT_ORG


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'leasing.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def org_id():
    return DEFAULT_ORG


@pytest.fixture
def save_lease(db):
    """Persist an unsaved lease from tests.factories and return it."""

    def _save(lease):
        db.add(lease)
        db.commit()
        db.refresh(lease)
        return lease

    return _save


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)
