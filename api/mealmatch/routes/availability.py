from datetime import date
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends

from .. import database
from ..auth.deps import get_current_user
from ..schemas import AvailabilityPutRequest, AvailabilityResponse
from ..services.availability import get_availability, local_today, put_availability
from ..services.lifecycle import refresh_matches_quietly

router = APIRouter()


@router.get("/availability")
def read_availability(week: date | None = None, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    user_id = str(current_user["id"])
    with database.SessionLocal() as db:
        profile = get_availability(db, user_id, week or local_today())
    return {"availability": profile.as_dict() if profile else None}


@router.put("/availability", response_model=AvailabilityResponse)
def save_availability(
    payload: AvailabilityPutRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    user_id = str(current_user["id"])
    with database.SessionLocal() as db:
        saved = put_availability(
            db,
            user_id,
            payload.week or local_today(),
            payload.slots_by_day,
            recurring=payload.recurring,
        )
    background_tasks.add_task(refresh_matches_quietly, user_id)
    return saved.as_dict()
