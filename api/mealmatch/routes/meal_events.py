from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..schemas import MealEventCreateRequest, MealEventView
from ..services.meal_events import create_event, get_event, join_event, leave_event, list_events

router = APIRouter()


@router.post("/events", response_model=MealEventView)
def add_event(payload: MealEventCreateRequest, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return create_event(
        str(current_user["id"]),
        name=payload.name,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        capacity=payload.capacity,
        location=payload.location,
    )


@router.get("/events", response_model=list[MealEventView])
def get_events(
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> list[dict[str, Any]]:
    return list_events(start=start, end=end, limit=limit)


@router.get("/events/{event_id}", response_model=MealEventView)
def get_event_detail(event_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return get_event(event_id)


@router.post("/events/{event_id}/join", response_model=MealEventView)
def join(event_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return join_event(str(current_user["id"]), event_id)


@router.post("/events/{event_id}/leave", response_model=MealEventView)
def leave(event_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return leave_event(str(current_user["id"]), event_id)
