from typing import Any

from fastapi import APIRouter, Depends

from .. import repo
from ..auth.deps import get_current_user
from ..schemas import FriendsResponse, PublicProfile

router = APIRouter()


@router.get("/users", response_model=list[PublicProfile])
def get_other_users(limit: int = 200, current_user: dict[str, Any] = Depends(get_current_user)) -> list[dict[str, Any]]:
    return repo.list_other_users(str(current_user["id"]), limit=limit)


@router.get("/friends", response_model=FriendsResponse)
def get_friends(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"friends": repo.list_friends(str(current_user["id"]))}


@router.post("/friends/{friend_id}", response_model=FriendsResponse)
def add_friend(friend_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"friends": repo.add_friend(str(current_user["id"]), friend_id)}


@router.delete("/friends/{friend_id}", response_model=FriendsResponse)
def remove_friend(friend_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"friends": repo.remove_friend(str(current_user["id"]), friend_id)}
