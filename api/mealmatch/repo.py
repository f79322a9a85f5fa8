from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select

from . import database
from .config import CATEGORICAL_FIELDS
from .errors import InvalidState, NotFound
from .models import MealLocation, UserProfile


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_list(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    out: list[str] = []
    for value in values:
        v = str(value or "").strip()
        if not v:
            continue
        if v not in out:
            out.append(v)
    return out


def public_profile(profile: UserProfile | None, user_id: str) -> dict[str, Any]:
    if profile is None:
        return {"uid": user_id, "display_name": None, "favorite_locations": [], "meal_talk_preferences": []}
    prefs = profile.preference_fields if isinstance(profile.preference_fields, dict) else {}
    return {
        "uid": profile.user_id,
        "display_name": profile.display_name,
        "favorite_locations": _normalize_list(profile.favorite_locations),
        "meal_talk_preferences": _normalize_list(prefs.get("meal_talk_preferences")),
    }


def profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    return {
        "uid": profile.user_id,
        "email": profile.email,
        "display_name": profile.display_name,
        "survey_completed": bool(profile.survey_completed),
        "preference_fields": profile.preference_fields if isinstance(profile.preference_fields, dict) else {},
        "favorite_locations": _normalize_list(profile.favorite_locations),
        "contact_detail": profile.contact_detail,
        "friends": _normalize_list(profile.friends),
    }


def get_user_profile(user_id: str) -> dict[str, Any] | None:
    with database.SessionLocal() as db:
        row = db.get(UserProfile, user_id)
        return profile_to_dict(row) if row else None


def upsert_survey_profile(
    user_id: str,
    *,
    email: str | None,
    display_name: str | None,
    meal_talk_preferences: list[str],
    favorite_locations: list[str],
    contact_detail: str | None,
    categorical: dict[str, Any] | None = None,
) -> dict[str, Any]:
    prefs: dict[str, Any] = {"meal_talk_preferences": _normalize_list(meal_talk_preferences)}
    for name in CATEGORICAL_FIELDS:
        value = (categorical or {}).get(name)
        if value is not None and str(value).strip():
            prefs[name] = str(value).strip()

    with database.SessionLocal() as db:
        row = db.get(UserProfile, user_id)
        if row is None:
            row = UserProfile(user_id=user_id)
            db.add(row)
        if email:
            row.email = email.strip().lower()
        if display_name is not None:
            row.display_name = display_name.strip() or None
        row.preference_fields = prefs
        row.favorite_locations = _normalize_list(favorite_locations)
        row.contact_detail = (contact_detail or "").strip() or None
        row.survey_completed = True
        row.updated_at = _now_utc()
        db.commit()
        return profile_to_dict(row)


def list_meal_locations(db) -> list[str]:
    return [str(name) for name in db.execute(select(MealLocation.name).order_by(MealLocation.name)).scalars().all()]


def list_other_users(user_id: str, *, limit: int = 200) -> list[dict[str, Any]]:
    safe_limit = max(1, min(500, int(limit)))
    with database.SessionLocal() as db:
        rows = db.execute(
            select(UserProfile).where(UserProfile.user_id != user_id).order_by(UserProfile.user_id).limit(safe_limit)
        ).scalars().all()
        return [public_profile(row, row.user_id) for row in rows]


def list_friends(user_id: str) -> list[str]:
    with database.SessionLocal() as db:
        row = db.get(UserProfile, user_id)
        if row is None:
            raise NotFound("Profile not found")
        return _normalize_list(row.friends)


def add_friend(user_id: str, friend_id: str) -> list[str]:
    """One-directional: only ``user_id``'s list changes."""
    if user_id == friend_id:
        raise InvalidState("Cannot add yourself as a friend")
    with database.SessionLocal() as db:
        row = db.get(UserProfile, user_id)
        if row is None:
            raise NotFound("Profile not found")
        if db.get(UserProfile, friend_id) is None:
            raise NotFound("User not found")
        friends = _normalize_list(row.friends)
        if friend_id not in friends:
            row.friends = friends + [friend_id]
            row.updated_at = _now_utc()
            db.commit()
        return _normalize_list(row.friends)


def remove_friend(user_id: str, friend_id: str) -> list[str]:
    with database.SessionLocal() as db:
        row = db.get(UserProfile, user_id)
        if row is None:
            raise NotFound("Profile not found")
        friends = _normalize_list(row.friends)
        if friend_id in friends:
            row.friends = [f for f in friends if f != friend_id]
            row.updated_at = _now_utc()
            db.commit()
        return _normalize_list(row.friends)
