from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from ..config import MATCH_CANDIDATE_CAP
from ..models import UserProfile
from .scoring import get_score, to_str_set

logger = logging.getLogger(__name__)


@dataclass
class RankedCandidate:
    user_id: str
    score: float
    shared_locations: list[str] = field(default_factory=list)
    favorite_locations: list[str] = field(default_factory=list)

    @property
    def location_overlap(self) -> int:
        return len(self.shared_locations)


def fetch_eligible_profiles(db, exclude_user_id: str) -> list[UserProfile]:
    rows = db.execute(
        select(UserProfile)
        .where(UserProfile.survey_completed.is_(True))
        .where(UserProfile.user_id != exclude_user_id)
        .order_by(UserProfile.user_id)
    ).scalars().all()
    return list(rows)


def rank_candidates(db, user_id: str, *, limit: int = MATCH_CANDIDATE_CAP) -> list[RankedCandidate]:
    me = db.get(UserProfile, user_id)
    my_locations = to_str_set(me.favorite_locations) if me is not None else set()

    # Snapshot ids and locations up front; get_score may commit and expire the rows.
    others = [(p.user_id, to_str_set(p.favorite_locations)) for p in fetch_eligible_profiles(db, user_id)]

    ranked: list[RankedCandidate] = []
    for other_id, theirs in others:
        score = get_score(db, user_id, other_id)
        if score == 0:
            # Explicit incompatibility marker.
            continue
        ranked.append(
            RankedCandidate(
                user_id=other_id,
                score=score,
                shared_locations=sorted(my_locations & theirs),
                favorite_locations=sorted(theirs),
            )
        )

    ranked.sort(key=lambda c: (-c.score, -c.location_overlap, c.user_id))
    logger.debug("[MATCH] ranked user_id=%s eligible=%d kept=%d", user_id, len(ranked), min(len(ranked), limit))
    return ranked[: max(0, int(limit))]
