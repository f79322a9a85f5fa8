from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..schemas import NotificationView
from ..services.notifications import list_notifications, mark_notification_read

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationView])
def get_notifications(
    unread_only: bool = False,
    limit: int = 50,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> list[dict[str, Any]]:
    return list_notifications(str(current_user["id"]), unread_only=unread_only, limit=limit)


@router.post("/notifications/{notification_id}/read", response_model=NotificationView)
def read_notification(notification_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return mark_notification_read(str(current_user["id"]), notification_id)
