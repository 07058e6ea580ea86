"""Notification inbox endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.database import get_db
from moviebooks.models.tables import User
from moviebooks.schemas import MarkReadIn, NotificationOut
from moviebooks.security import get_current_user
from moviebooks.services import notifications

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Latest notifications for the caller, newest first."""
    return await notifications.list_notifications(db, user)


@router.patch("/notifications/read-all")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await notifications.mark_all_as_read(db, user)
    return {"message": "All notifications marked as read", "count": count}


@router.put("/notifications/mark-read")
async def mark_read(
    body: MarkReadIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await notifications.mark_many_as_read(db, user, body.notification_ids)
    return {"message": "Notifications marked as read", "count": count}


@router.patch("/notifications/{notification_id}/read", response_model=NotificationOut)
async def mark_one_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notifications.mark_as_read(db, notification_id, user)
