from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..schemas import AcceptResponse, ProposalView, ScoreResponse
from ..services.lifecycle import accept_proposal, decline_proposal, list_proposals, rank_and_propose
from ..services.scoring import read_score

router = APIRouter()


@router.post("/matches/refresh", response_model=list[ProposalView])
def refresh_matches(current_user: dict[str, Any] = Depends(get_current_user)) -> list[dict[str, Any]]:
    return rank_and_propose(str(current_user["id"]))


@router.get("/matches", response_model=list[ProposalView])
def get_matches(limit: int = 50, current_user: dict[str, Any] = Depends(get_current_user)) -> list[dict[str, Any]]:
    return list_proposals(str(current_user["id"]), limit=limit)


@router.post("/matches/{proposal_id}/accept", response_model=AcceptResponse)
def accept_match(proposal_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return accept_proposal(str(current_user["id"]), proposal_id)


@router.post("/matches/{proposal_id}/decline")
def decline_match(proposal_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    decline_proposal(str(current_user["id"]), proposal_id)
    return {"status": "declined"}


@router.get("/scores/{other_user_id}", response_model=ScoreResponse)
def get_pair_score(other_user_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    user_id = str(current_user["id"])
    return {"user_id": user_id, "other_user_id": other_user_id, "score": read_score(user_id, other_user_id)}
