from datetime import datetime, timezone
from typing import Any

from ..models import ProposalEvent


def log_proposal_event(
    db,
    proposal_id: str,
    event_type: str,
    user_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> None:
    db.add(
        ProposalEvent(
            proposal_id=proposal_id,
            user_id=user_id,
            event_type=event_type,
            payload=payload or {},
            created_at=datetime.now(timezone.utc),
        )
    )
