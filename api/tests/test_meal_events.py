from datetime import datetime, timedelta, timezone

import pytest

from mealmatch.errors import InvalidState, NotFound, TransientStoreFailure
from mealmatch.services import meal_events
from mealmatch.services.meal_events import (
    create_event,
    get_event,
    join_event,
    leave_event,
    list_events,
)

NOON = datetime(2023, 8, 1, 19, 0, tzinfo=timezone.utc)


def _event(creator: str = "alice", *, capacity: int = 2, starts_at: datetime = NOON, name: str = "Taco Tuesday") -> dict:
    return create_event(
        creator,
        name=name,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=1),
        capacity=capacity,
        location="Coho Cafe",
    )


def test_create_starts_empty(session_factory):
    event = _event(capacity=4)
    assert event["participants"] == []
    assert event["spots_left"] == 4
    assert event["creator_id"] == "alice"
    assert get_event(event["id"])["name"] == "Taco Tuesday"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "  "},
        {"capacity": 0},
        {"ends_at": NOON},
        {"ends_at": NOON - timedelta(minutes=30)},
    ],
)
def test_create_rejects_bad_input(session_factory, kwargs):
    args = {"name": "Lunch", "starts_at": NOON, "ends_at": NOON + timedelta(hours=1), "capacity": 2}
    args.update(kwargs)
    with pytest.raises(ValueError):
        create_event("alice", **args)


def test_get_missing_is_not_found(session_factory):
    with pytest.raises(NotFound):
        get_event("missing")
    with pytest.raises(NotFound):
        join_event("alice", "missing")
    with pytest.raises(NotFound):
        leave_event("alice", "missing")


def test_list_is_ordered_and_range_bounded(session_factory):
    late = _event(name="Dinner", starts_at=NOON + timedelta(days=2))
    early = _event(name="Brunch", starts_at=NOON - timedelta(days=1))
    mid = _event(name="Lunch", starts_at=NOON)

    assert [e["id"] for e in list_events()] == [early["id"], mid["id"], late["id"]]
    in_range = list_events(start=NOON - timedelta(hours=1), end=NOON + timedelta(days=1))
    assert [e["id"] for e in in_range] == [mid["id"]]
    assert [e["id"] for e in list_events(start=NOON)] == [mid["id"], late["id"]]
    assert [e["id"] for e in list_events(end=NOON)] == [early["id"], mid["id"]]


def test_join_fills_seats_then_rejects(session_factory):
    event = _event(capacity=2)
    assert join_event("bob", event["id"])["spots_left"] == 1
    full = join_event("carol", event["id"])
    assert full["participants"] == ["bob", "carol"]
    assert full["spots_left"] == 0

    with pytest.raises(InvalidState) as exc:
        join_event("dave", event["id"])
    assert exc.value.detail == "This event is full"
    assert get_event(event["id"])["participants"] == ["bob", "carol"]


def test_join_twice_is_a_no_op(session_factory):
    event = _event(capacity=1)
    join_event("bob", event["id"])
    assert join_event("bob", event["id"])["participants"] == ["bob"]


def test_leave_frees_a_seat(session_factory):
    event = _event(capacity=1)
    join_event("bob", event["id"])
    assert leave_event("bob", event["id"])["participants"] == []
    assert leave_event("bob", event["id"])["spots_left"] == 1
    assert join_event("carol", event["id"])["participants"] == ["carol"]


def test_racing_for_last_seat_admits_only_one(session_factory, monkeypatch):
    event = _event(capacity=1)
    original_load = meal_events._load_event
    state = {"interleaved": False}

    def load_then_let_bob_in(db, event_id):
        loaded = original_load(db, event_id)
        if not state["interleaved"]:
            state["interleaved"] = True
            join_event("bob", event_id)
        return loaded

    monkeypatch.setattr(meal_events, "_load_event", load_then_let_bob_in)
    with pytest.raises(InvalidState):
        join_event("carol", event["id"])
    assert get_event(event["id"])["participants"] == ["bob"]


def test_join_gives_up_after_repeated_conflicts(session_factory, monkeypatch):
    event = _event(capacity=3)
    monkeypatch.setattr(meal_events, "_swap_participants", lambda *args, **kwargs: False)
    with pytest.raises(TransientStoreFailure):
        join_event("bob", event["id"])
