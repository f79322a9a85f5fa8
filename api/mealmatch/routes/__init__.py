from fastapi import APIRouter, FastAPI

from .availability import router as availability_router
from .friends import router as friends_router
from .match import router as match_router
from .meal_events import router as meal_events_router
from .notifications import router as notifications_router
from .survey import router as survey_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(survey_router, tags=["users"])
    app.include_router(friends_router, tags=["friends"])
    app.include_router(availability_router, tags=["availability"])
    app.include_router(match_router, tags=["matches"])
    app.include_router(meal_events_router, tags=["events"])
    app.include_router(notifications_router, tags=["notifications"])


__all__ = ["include_modular_routers", "APIRouter"]
