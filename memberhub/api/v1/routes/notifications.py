from fastapi import APIRouter, Depends, Query
from memberhub.schemas import NotificationOut
from memberhub.db.session import get_session
from memberhub.services.notification_service import NotificationService
from memberhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List
from uuid import UUID

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(session: AsyncSession = Depends(get_session)) -> NotificationService:
    return NotificationService(session)


@router.get("/", response_model=List[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(False),
    user=Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """The caller's notifications, newest first."""
    return await service.list_notifications(user.id, unread_only)


@router.post("/read-all", response_model=Dict[str, int])
async def mark_all_read(
    user=Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"updated": await service.mark_all_read(user.id)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: UUID,
    user=Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_read(notification_id, user.id)
