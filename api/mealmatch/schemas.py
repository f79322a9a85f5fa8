from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .config import EVENT_MAX_CAPACITY
from .services.availability import normalize_slots


class AvailabilityPutRequest(BaseModel):
    week: date | None = None
    slots_by_day: dict[str, list[str]] = Field(default_factory=dict)
    recurring: bool = False

    @field_validator("slots_by_day")
    @classmethod
    def _validate_slots(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return normalize_slots(value)


class AvailabilityResponse(BaseModel):
    user_id: str
    week_start_date: str
    is_recurring: bool
    slots_by_day: dict[str, list[str]]


class SurveyRequest(BaseModel):
    display_name: str | None = None
    meal_talk_preferences: list[str] = Field(min_length=1)
    conversation_style: str | None = None
    disagreement_tolerance: str | None = None
    conversation_pace: str | None = None
    food_personality: str | None = None
    companion_pet_peeve: str | None = None
    favorite_locations: list[str] = Field(min_length=1)
    contact_detail: str = Field(min_length=1)

    @field_validator("contact_detail")
    @classmethod
    def _digits_only(cls, value: str) -> str:
        v = value.strip()
        if not v.isdigit():
            raise ValueError("contact_detail must contain digits only")
        return v


class PublicProfile(BaseModel):
    uid: str
    display_name: str | None = None
    favorite_locations: list[str] = Field(default_factory=list)
    meal_talk_preferences: list[str] = Field(default_factory=list)


class ProposalView(BaseModel):
    id: str
    initiator_id: str
    candidate_id: str
    status: str
    proposed_day: str
    proposed_slot: str
    proposed_time: str
    proposed_location: str
    compatibility_snapshot: float
    created_at: datetime | None = None
    match_user: PublicProfile


class AcceptResponse(BaseModel):
    status: str
    revealed_contact: str | None = None


class ScoreResponse(BaseModel):
    user_id: str
    other_user_id: str
    score: float


class NotificationView(BaseModel):
    id: str
    type: str
    content: str
    related_user_id: str | None = None
    related_proposal_id: str | None = None
    read: bool
    created_at: datetime | None = None


class ProfileResponse(BaseModel):
    uid: str
    email: str | None = None
    display_name: str | None = None
    survey_completed: bool
    preference_fields: dict[str, Any] = Field(default_factory=dict)
    favorite_locations: list[str] = Field(default_factory=list)
    contact_detail: str | None = None
    friends: list[str] = Field(default_factory=list)


class FriendsResponse(BaseModel):
    friends: list[str]


class MealEventCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    location: str | None = None
    starts_at: datetime
    ends_at: datetime
    capacity: int = Field(ge=1, le=EVENT_MAX_CAPACITY)

    @model_validator(mode="after")
    def _ends_after_start(self) -> "MealEventCreateRequest":
        start = self.starts_at if self.starts_at.tzinfo else self.starts_at.replace(tzinfo=timezone.utc)
        end = self.ends_at if self.ends_at.tzinfo else self.ends_at.replace(tzinfo=timezone.utc)
        if end <= start:
            raise ValueError("ends_at must be after starts_at")
        return self


class MealEventView(BaseModel):
    id: str
    name: str
    location: str | None = None
    starts_at: datetime
    ends_at: datetime
    capacity: int
    participants: list[str] = Field(default_factory=list)
    spots_left: int
    creator_id: str
    created_at: datetime | None = None
