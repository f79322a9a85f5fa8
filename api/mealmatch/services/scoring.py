from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError

from .. import database
from ..config import (
    BASELINE_CEIL,
    BASELINE_DEFAULT,
    BASELINE_FLOOR,
    BASELINE_WEIGHTS,
    CATEGORICAL_FIELDS,
    SCORE_MAX,
    SCORE_MIN,
)
from ..models import CompatibilityScore, UserProfile

logger = logging.getLogger(__name__)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    return tuple(sorted((str(user_a), str(user_b))))


def pair_key(user_a: str, user_b: str) -> str:
    lo, hi = canonical_pair(user_a, user_b)
    return f"{lo}|{hi}"


def clamp(value: float, lo: float = SCORE_MIN, hi: float = SCORE_MAX) -> float:
    return max(lo, min(hi, float(value)))


def to_str_set(values: Any) -> set[str]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return set()
    out: set[str] = set()
    for item in values:
        v = str(item or "").strip()
        if v:
            out.add(v)
    return out


def _jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def _categorical(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower()
    return v or None


def _profile_parts(profile: Any) -> tuple[dict[str, Any], set[str]]:
    if profile is None:
        return {}, set()
    if isinstance(profile, dict):
        prefs = profile.get("preference_fields") or {}
        locations = profile.get("favorite_locations")
    else:
        prefs = profile.preference_fields or {}
        locations = profile.favorite_locations
    return (prefs if isinstance(prefs, dict) else {}), to_str_set(locations)


def baseline_breakdown(profile_a: Any, profile_b: Any, weights: dict[str, Any] | None = None) -> dict[str, float]:
    """Per-dimension similarity in [0, 1] for the dimensions both profiles answered."""
    weights = weights or BASELINE_WEIGHTS
    prefs_a, locations_a = _profile_parts(profile_a)
    prefs_b, locations_b = _profile_parts(profile_b)
    components: dict[str, float] = {}

    topics_a = to_str_set(prefs_a.get("meal_talk_preferences"))
    topics_b = to_str_set(prefs_b.get("meal_talk_preferences"))
    if topics_a and topics_b and float(weights.get("topics", 0)) > 0:
        components["topics"] = _jaccard(topics_a, topics_b)

    matches: list[float] = []
    for name in CATEGORICAL_FIELDS:
        va = _categorical(prefs_a.get(name))
        vb = _categorical(prefs_b.get(name))
        if va is None or vb is None:
            continue
        matches.append(1.0 if va == vb else 0.0)
    if matches and float(weights.get("categorical", 0)) > 0:
        components["categorical"] = sum(matches) / len(matches)

    if locations_a and locations_b and float(weights.get("locations", 0)) > 0:
        components["locations"] = _jaccard(locations_a, locations_b)

    return components


def compute_baseline(profile_a: Any, profile_b: Any, weights: dict[str, Any] | None = None) -> float:
    weights = weights or BASELINE_WEIGHTS
    components = baseline_breakdown(profile_a, profile_b, weights)
    if not components:
        return BASELINE_DEFAULT

    total_weight = sum(float(weights[name]) for name in components)
    weighted = sum(float(weights[name]) * value for name, value in components.items())
    raw = SCORE_MAX * weighted / total_weight
    return round(clamp(raw, BASELINE_FLOOR, BASELINE_CEIL), 6)


def get_score(db, user_a: str, user_b: str) -> float:
    """Return the pair's score, creating its baseline row on first lookup.

    The baseline insert commits on ``db``. A concurrent first lookup that loses the
    insert race reads the winner's row instead.
    """
    key = pair_key(user_a, user_b)
    row = db.get(CompatibilityScore, key)
    if row is not None:
        return float(row.score)

    lo, hi = canonical_pair(user_a, user_b)
    baseline = compute_baseline(db.get(UserProfile, lo), db.get(UserProfile, hi))
    db.add(
        CompatibilityScore(
            pair_key=key,
            lo_user_id=lo,
            hi_user_id=hi,
            score=baseline,
            last_updated=datetime.now(timezone.utc),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        row = db.get(CompatibilityScore, key)
        if row is None:
            raise
        return float(row.score)

    logger.debug("[SCORE] baseline pair=%s score=%s", key, baseline)
    return baseline


def read_score(user_a: str, user_b: str) -> float:
    with database.SessionLocal() as db:
        return get_score(db, user_a, user_b)


def adjust_score(user_a: str, user_b: str, delta: float) -> None:
    """Apply ``delta`` to the pair's score, clamped to [0, 10].

    Score upkeep is advisory: every failure is logged and swallowed so the match
    transition that triggered it is never affected.
    """
    key = pair_key(user_a, user_b)
    try:
        with database.SessionLocal() as db:
            current = get_score(db, user_a, user_b)
            row = db.get(CompatibilityScore, key)
            row.score = clamp(current + float(delta))
            row.last_updated = datetime.now(timezone.utc)
            db.commit()
            logger.info("[SCORE] adjusted pair=%s delta=%s score=%s", key, delta, row.score)
    except Exception:
        logger.exception("[SCORE] adjustment failed pair=%s delta=%s", key, delta)
