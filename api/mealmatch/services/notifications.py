from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import select

from .. import database
from ..errors import NotFound, PermissionDenied
from ..models import MealProposal, Notification

logger = logging.getLogger(__name__)

MATCH_COMPLETE = "match_complete"
NEW_MATCH = "new_match"


def _when(proposal: MealProposal) -> str:
    day = date.fromisoformat(proposal.proposed_day)
    return f"{day:%A, %B} {day.day} at {proposal.proposed_slot}"


def build_content(notification_type: str, proposal: MealProposal) -> str:
    if notification_type == MATCH_COMPLETE:
        return (
            "Your match also accepted! They will text you soon. "
            f"Meet at {proposal.proposed_location} on {_when(proposal)}."
        )
    if notification_type == NEW_MATCH:
        return f"You have a new meal match! Proposed: {proposal.proposed_location} on {_when(proposal)}."
    raise ValueError(f"unknown notification type: {notification_type}")


def queue_notification(db, *, user_id: str, notification_type: str, proposal: MealProposal, related_user_id: str) -> bool:
    """Stage an inbox row on ``db`` without committing.

    Building the row is best-effort: a failure is logged and the caller's
    transaction carries on without it.
    """
    try:
        content = build_content(notification_type, proposal)
    except Exception:
        logger.exception("[NOTIFY] could not build %s for proposal_id=%s", notification_type, proposal.id)
        return False
    db.add(
        Notification(
            user_id=user_id,
            type=notification_type,
            content=content,
            related_user_id=related_user_id,
            related_proposal_id=proposal.id,
            read=False,
            created_at=datetime.now(timezone.utc),
        )
    )
    return True


def _to_dict(row: Notification) -> dict[str, Any]:
    return {
        "id": row.id,
        "type": row.type,
        "content": row.content,
        "related_user_id": row.related_user_id,
        "related_proposal_id": row.related_proposal_id,
        "read": bool(row.read),
        "created_at": row.created_at,
    }


def list_notifications(user_id: str, *, unread_only: bool = False, limit: int = 50) -> list[dict[str, Any]]:
    safe_limit = max(1, min(200, int(limit)))
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id).limit(safe_limit)
    with database.SessionLocal() as db:
        return [_to_dict(r) for r in db.execute(stmt).scalars().all()]


def mark_notification_read(user_id: str, notification_id: str) -> dict[str, Any]:
    with database.SessionLocal() as db:
        row = db.get(Notification, notification_id)
        if row is None:
            raise NotFound("Notification not found")
        if row.user_id != user_id:
            raise PermissionDenied("You don't have permission to update this notification")
        if not row.read:
            row.read = True
            db.commit()
        return _to_dict(row)
