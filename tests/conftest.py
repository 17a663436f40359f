from datetime import date
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import planner.models  # noqa: F401
from planner.database import Base
from planner.crud import create_exam, create_user
from planner.schemas import ExamCreate, UserCreate


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Separate connections per session, for tests that interleave transactions"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'planner.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def make_user():
    def _make(db, name="Student", rest_days=None):
        return create_user(db, UserCreate(name=name, rest_days=rest_days or []))
    return _make


@pytest.fixture
def make_exam():
    def _make(db, user, **overrides):
        fields = dict(
            title="Linear Algebra",
            subject="Math",
            exam_date=date(2026, 3, 9),
            target_sessions_per_week=3,
            session_length_minutes=60,
            when_to_start_studying="tomorrow",
            study_methods=["Flashcards", "Practice problems", "Summaries"],
            preferences=None,
        )
        fields.update(overrides)
        return create_exam(db, user.id, ExamCreate(**fields))
    return _make
