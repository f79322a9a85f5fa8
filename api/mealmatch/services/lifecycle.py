from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from .. import database
from ..config import (
    PROPOSAL_CAS_ATTEMPTS,
    SCORE_DELTA_DECLINE,
    SCORE_DELTA_FIRST_ACCEPT,
    SCORE_DELTA_MATCHED,
)
from ..errors import NotFound, PermissionDenied, TransientStoreFailure
from ..models import MealProposal, UserProfile
from ..repo import list_meal_locations, public_profile
from .availability import get_availability, local_today
from .events import log_proposal_event
from .negotiation import ProposedSlot, choose_location, negotiate
from .notifications import MATCH_COMPLETE, NEW_MATCH, queue_notification
from .ranking import rank_candidates
from .scoring import adjust_score
from .state_machine import ProposalAction, ProposalStatus, transition_status

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def proposal_view(db, proposal: MealProposal, viewer_id: str | None = None) -> dict[str, Any]:
    if viewer_id is None or viewer_id == proposal.initiator_id:
        other_id = proposal.candidate_id
    else:
        other_id = proposal.initiator_id
    slot = ProposedSlot(day=proposal.proposed_day, slot=proposal.proposed_slot)
    return {
        "id": proposal.id,
        "initiator_id": proposal.initiator_id,
        "candidate_id": proposal.candidate_id,
        "status": proposal.status,
        "proposed_day": proposal.proposed_day,
        "proposed_slot": proposal.proposed_slot,
        "proposed_time": slot.starts_at().isoformat(),
        "proposed_location": proposal.proposed_location,
        "compatibility_snapshot": float(proposal.compatibility_snapshot),
        "created_at": proposal.created_at,
        "match_user": public_profile(db.get(UserProfile, other_id), other_id),
    }


def _load_proposal(db, proposal_id: str) -> MealProposal:
    proposal = db.get(MealProposal, proposal_id)
    if proposal is None:
        raise NotFound("Proposal not found")
    return proposal


def _other_party(proposal: MealProposal, user_id: str) -> str:
    if proposal.initiator_id == user_id:
        return proposal.candidate_id
    if proposal.candidate_id == user_id:
        return proposal.initiator_id
    raise PermissionDenied("You are not a party to this proposal")


def _compare_and_swap(db, proposal: MealProposal, new_status: ProposalStatus, acceptances: dict[str, Any]) -> bool:
    result = db.execute(
        update(MealProposal)
        .where(MealProposal.id == proposal.id)
        .where(MealProposal.version == proposal.version)
        .values(status=new_status.value, acceptances=acceptances, version=MealProposal.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def fetch_pending_initiated(db, user_id: str) -> list[MealProposal]:
    rows = db.execute(
        select(MealProposal)
        .where(MealProposal.initiator_id == user_id)
        .where(MealProposal.status == ProposalStatus.PENDING.value)
        .order_by(MealProposal.created_at, MealProposal.id)
    ).scalars().all()
    return list(rows)


def rank_and_propose(
    user_id: str,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Create up to MATCH_CANDIDATE_CAP new pending proposals for ``user_id``.

    When the user already has pending proposals they initiated, those are returned
    and nothing new is created. Candidates with no slot in common are skipped.
    """
    now = now or _now_utc()
    today = local_today(now)

    with database.SessionLocal() as db:
        if db.get(UserProfile, user_id) is None:
            raise NotFound("Profile not found")

        pending = fetch_pending_initiated(db, user_id)
        if pending:
            logger.info("[MATCH] user_id=%s has %d pending proposals; skipping generation", user_id, len(pending))
            return [proposal_view(db, p, user_id) for p in pending]

        mine = get_availability(db, user_id, today)
        if mine is None or not mine.slots_by_day:
            logger.info("[MATCH] user_id=%s has no availability for week of %s", user_id, today)
            return []

        defaults = list_meal_locations(db) or None
        created_ids: list[str] = []
        for candidate in rank_candidates(db, user_id):
            theirs = get_availability(db, candidate.user_id, today)
            if theirs is None:
                logger.info("[MATCH] skip candidate=%s for user_id=%s: no availability", candidate.user_id, user_id)
                continue
            slot, valid = negotiate(mine, theirs, rng=rng)
            if not valid:
                logger.info("[MATCH] skip candidate=%s for user_id=%s: no shared slot", candidate.user_id, user_id)
                continue

            location = choose_location(candidate.shared_locations, candidate.favorite_locations, rng=rng, defaults=defaults)
            proposal = MealProposal(
                id=str(uuid.uuid4()),
                initiator_id=user_id,
                candidate_id=candidate.user_id,
                proposed_day=slot.day,
                proposed_slot=slot.slot,
                proposed_location=location,
                status=ProposalStatus.PENDING.value,
                compatibility_snapshot=candidate.score,
                acceptances={},
                version=0,
                created_at=now,
            )
            db.add(proposal)
            log_proposal_event(
                db,
                proposal.id,
                "created",
                user_id=user_id,
                payload={"candidate_id": candidate.user_id, "score": candidate.score},
            )
            queue_notification(
                db,
                user_id=candidate.user_id,
                notification_type=NEW_MATCH,
                proposal=proposal,
                related_user_id=user_id,
            )
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("[MATCH] pending proposal already exists user_id=%s candidate=%s", user_id, candidate.user_id)
                continue
            created_ids.append(proposal.id)

        return [proposal_view(db, db.get(MealProposal, pid), user_id) for pid in created_ids]


def refresh_matches_quietly(user_id: str) -> None:
    """Background trigger after a profile or availability save; never raises."""
    try:
        rank_and_propose(user_id)
    except Exception:
        logger.exception("[MATCH] background refresh failed user_id=%s", user_id)


def list_proposals(user_id: str, *, limit: int = 50) -> list[dict[str, Any]]:
    safe_limit = max(1, min(200, int(limit)))
    with database.SessionLocal() as db:
        rows = db.execute(
            select(MealProposal)
            .where(or_(MealProposal.initiator_id == user_id, MealProposal.candidate_id == user_id))
            .order_by(MealProposal.created_at.desc(), MealProposal.id)
            .limit(safe_limit)
        ).scalars().all()
        return [proposal_view(db, p, user_id) for p in rows]


def accept_proposal(user_id: str, proposal_id: str, *, now: datetime | None = None) -> dict[str, Any]:
    """Record ``user_id``'s acceptance; the second acceptance completes the match.

    The status/acceptances write, the completion notification and the audit event
    commit together, guarded by the proposal's version. A writer that loses the
    version race re-reads and re-evaluates, so of two concurrent acceptances
    exactly one is first.
    """
    now = now or _now_utc()
    for attempt in range(1, PROPOSAL_CAS_ATTEMPTS + 1):
        with database.SessionLocal() as db:
            proposal = _load_proposal(db, proposal_id)
            other_id = _other_party(proposal, user_id)
            current = ProposalStatus(proposal.status)

            if current is ProposalStatus.MATCHED:
                return {"status": "already_matched", "revealed_contact": None}

            acceptances = dict(proposal.acceptances or {})
            if current is ProposalStatus.ACCEPTED and user_id in acceptances:
                return {"status": current.value, "revealed_contact": None}

            new_status = transition_status(current, ProposalAction.ACCEPT)
            was_first = new_status is ProposalStatus.ACCEPTED
            acceptances[user_id] = {"timestamp": now.isoformat(), "was_first": was_first}

            if not _compare_and_swap(db, proposal, new_status, acceptances):
                db.rollback()
                logger.info("[MATCH] proposal_id=%s changed concurrently; re-evaluating (attempt %d)", proposal_id, attempt)
                continue

            revealed_contact = None
            if new_status is ProposalStatus.MATCHED:
                other = db.get(UserProfile, other_id)
                revealed_contact = other.contact_detail if other is not None else None
                queue_notification(
                    db,
                    user_id=other_id,
                    notification_type=MATCH_COMPLETE,
                    proposal=proposal,
                    related_user_id=user_id,
                )
            log_proposal_event(
                db,
                proposal_id,
                "accept",
                user_id=user_id,
                payload={"from": current.value, "to": new_status.value, "was_first": was_first},
            )
            db.commit()

        adjust_score(user_id, other_id, SCORE_DELTA_FIRST_ACCEPT if was_first else SCORE_DELTA_MATCHED)
        logger.info("[MATCH] accept proposal_id=%s user_id=%s status=%s", proposal_id, user_id, new_status.value)
        return {"status": new_status.value, "revealed_contact": revealed_contact}

    raise TransientStoreFailure("Proposal is being updated concurrently; try again")


def decline_proposal(user_id: str, proposal_id: str, *, now: datetime | None = None) -> None:
    now = now or _now_utc()
    for attempt in range(1, PROPOSAL_CAS_ATTEMPTS + 1):
        with database.SessionLocal() as db:
            proposal = _load_proposal(db, proposal_id)
            other_id = _other_party(proposal, user_id)
            current = ProposalStatus(proposal.status)

            new_status = transition_status(current, ProposalAction.DECLINE)
            if new_status is current:
                return None

            if not _compare_and_swap(db, proposal, new_status, dict(proposal.acceptances or {})):
                db.rollback()
                logger.info("[MATCH] proposal_id=%s changed concurrently; re-evaluating (attempt %d)", proposal_id, attempt)
                continue

            log_proposal_event(
                db,
                proposal_id,
                "decline",
                user_id=user_id,
                payload={"from": current.value, "to": new_status.value, "at": now.isoformat()},
            )
            db.commit()

        adjust_score(user_id, other_id, SCORE_DELTA_DECLINE)
        logger.info("[MATCH] decline proposal_id=%s user_id=%s", proposal_id, user_id)
        return None

    raise TransientStoreFailure("Proposal is being updated concurrently; try again")
