"""Pytest bootstrap and shared fixtures."""

from datetime import timedelta
from pathlib import Path
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root is on sys.path so `import tutorlink` works
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from tutorlink.database import Base  # noqa: E402
from tutorlink.models.user import User  # noqa: E402
from tutorlink.utils.clock import utcnow  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    """Factory for committed users; approved and verified unless told otherwise."""
    counter = {"n": 0}

    def _make(role="student", name=None, email=None, approved=True, verified=True, active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@test.edu",
            password_hash="hash",
            role=role,
            is_active=active,
            is_approved=approved,
            documents_verified=verified,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def tomorrow():
    return utcnow().replace(microsecond=0) + timedelta(days=1)
