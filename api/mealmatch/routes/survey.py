from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends

from .. import repo
from ..auth.deps import get_current_user
from ..errors import NotFound
from ..schemas import ProfileResponse, SurveyRequest
from ..services.lifecycle import refresh_matches_quietly

router = APIRouter()


@router.get("/users/me/profile", response_model=ProfileResponse)
def read_my_profile(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    profile = repo.get_user_profile(str(current_user["id"]))
    if not profile:
        raise NotFound("Profile not found")
    return profile


@router.put("/users/me/survey", response_model=ProfileResponse)
def save_survey(
    payload: SurveyRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    user_id = str(current_user["id"])
    profile = repo.upsert_survey_profile(
        user_id,
        email=current_user.get("email"),
        display_name=payload.display_name,
        meal_talk_preferences=payload.meal_talk_preferences,
        favorite_locations=payload.favorite_locations,
        contact_detail=payload.contact_detail,
        categorical=payload.model_dump(
            include={
                "conversation_style",
                "disagreement_tolerance",
                "conversation_pace",
                "food_personality",
                "companion_pet_peeve",
            }
        ),
    )
    background_tasks.add_task(refresh_matches_quietly, user_id)
    return profile
