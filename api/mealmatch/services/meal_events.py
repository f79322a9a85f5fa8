"""
Group meals with a fixed number of seats.

Seats are claimed with a version-guarded update, so two people racing for the
last seat cannot both get it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update

from .. import database
from ..config import EVENT_CAS_ATTEMPTS, EVENT_MAX_CAPACITY
from ..errors import InvalidState, NotFound, TransientStoreFailure
from ..models import MealEvent

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def event_view(event: MealEvent) -> dict[str, Any]:
    participants = list(event.participants or [])
    return {
        "id": event.id,
        "name": event.name,
        "location": event.location,
        "starts_at": event.starts_at,
        "ends_at": event.ends_at,
        "capacity": int(event.capacity),
        "participants": participants,
        "spots_left": max(0, int(event.capacity) - len(participants)),
        "creator_id": event.creator_id,
        "created_at": event.created_at,
    }


def _load_event(db, event_id: str) -> MealEvent:
    event = db.get(MealEvent, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def create_event(
    creator_id: str,
    *,
    name: str,
    starts_at: datetime,
    ends_at: datetime,
    capacity: int,
    location: str | None = None,
) -> dict[str, Any]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValueError("name is required")
    if not 1 <= int(capacity) <= EVENT_MAX_CAPACITY:
        raise ValueError(f"capacity must be between 1 and {EVENT_MAX_CAPACITY}")
    start, end = _as_utc(starts_at), _as_utc(ends_at)
    if end <= start:
        raise ValueError("ends_at must be after starts_at")

    with database.SessionLocal() as db:
        event = MealEvent(
            id=str(uuid.uuid4()),
            name=clean_name,
            location=(location or "").strip() or None,
            starts_at=start,
            ends_at=end,
            capacity=int(capacity),
            participants=[],
            creator_id=creator_id,
            version=0,
            created_at=datetime.now(timezone.utc),
        )
        db.add(event)
        db.commit()
        logger.info("[EVENT] created event_id=%s creator=%s capacity=%d", event.id, creator_id, event.capacity)
        return event_view(event)


def list_events(*, start: datetime | None = None, end: datetime | None = None, limit: int = 100) -> list[dict[str, Any]]:
    """Events ordered by start time; ``start``/``end`` bound the start time inclusively."""
    safe_limit = max(1, min(500, int(limit)))
    stmt = select(MealEvent)
    if start is not None:
        stmt = stmt.where(MealEvent.starts_at >= _as_utc(start))
    if end is not None:
        stmt = stmt.where(MealEvent.starts_at <= _as_utc(end))
    stmt = stmt.order_by(MealEvent.starts_at, MealEvent.id).limit(safe_limit)
    with database.SessionLocal() as db:
        return [event_view(e) for e in db.execute(stmt).scalars().all()]


def get_event(event_id: str) -> dict[str, Any]:
    with database.SessionLocal() as db:
        return event_view(_load_event(db, event_id))


def _swap_participants(db, event: MealEvent, participants: list[str]) -> bool:
    result = db.execute(
        update(MealEvent)
        .where(MealEvent.id == event.id)
        .where(MealEvent.version == event.version)
        .values(participants=participants, version=MealEvent.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def join_event(user_id: str, event_id: str) -> dict[str, Any]:
    """Claim a seat. Joining twice is a no-op; a full event raises InvalidState."""
    for attempt in range(1, EVENT_CAS_ATTEMPTS + 1):
        with database.SessionLocal() as db:
            event = _load_event(db, event_id)
            participants = list(event.participants or [])
            if user_id in participants:
                return event_view(event)
            if len(participants) >= int(event.capacity):
                raise InvalidState("This event is full")

            participants.append(user_id)
            if not _swap_participants(db, event, participants):
                db.rollback()
                logger.info("[EVENT] event_id=%s changed concurrently; retrying join (attempt %d)", event_id, attempt)
                continue
            db.commit()
            logger.info("[EVENT] joined event_id=%s user_id=%s", event_id, user_id)
            return event_view(_load_event(db, event_id))

    raise TransientStoreFailure("Event is being updated concurrently; try again")


def leave_event(user_id: str, event_id: str) -> dict[str, Any]:
    for attempt in range(1, EVENT_CAS_ATTEMPTS + 1):
        with database.SessionLocal() as db:
            event = _load_event(db, event_id)
            participants = list(event.participants or [])
            if user_id not in participants:
                return event_view(event)

            participants.remove(user_id)
            if not _swap_participants(db, event, participants):
                db.rollback()
                logger.info("[EVENT] event_id=%s changed concurrently; retrying leave (attempt %d)", event_id, attempt)
                continue
            db.commit()
            logger.info("[EVENT] left event_id=%s user_id=%s", event_id, user_id)
            return event_view(_load_event(db, event_id))

    raise TransientStoreFailure("Event is being updated concurrently; try again")
