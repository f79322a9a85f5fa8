import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from mealmatch import database
from mealmatch import models  # noqa: F401
from mealmatch.models import UserProfile
from mealmatch.services.availability import put_availability

# Tuesday; the week starts Monday 2023-07-31.
REFERENCE_DAY = date(2023, 8, 1)
REFERENCE_NOW = datetime(2023, 8, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    engine = database.make_engine(f"sqlite:///{tmp_path / 'mealmatch.db'}")
    database.Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", factory)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def make_profile(session_factory):
    def _make(
        user_id: str,
        *,
        topics=("Jokes and light banter",),
        locations=("Tresidder Union",),
        contact="6505550100",
        completed=True,
        **categorical,
    ) -> str:
        prefs = {"meal_talk_preferences": list(topics)}
        prefs.update(categorical)
        with session_factory() as session:
            session.add(
                UserProfile(
                    user_id=user_id,
                    email=f"{user_id}@stanford.edu",
                    display_name=user_id.title(),
                    survey_completed=completed,
                    preference_fields=prefs,
                    favorite_locations=list(locations),
                    contact_detail=contact,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
        return user_id

    return _make


@pytest.fixture
def make_availability(session_factory):
    def _make(user_id: str, slots_by_day: dict, *, reference=REFERENCE_DAY, recurring: bool = False):
        with session_factory() as session:
            return put_availability(session, user_id, reference, slots_by_day, recurring=recurring)

    return _make
