"""Notification fan-out and inbox operations.

Notifications are only ever created as a side effect of another write (like,
favorite, comment, follow). Creation is best effort: it runs in a SAVEPOINT
and a failure is logged without failing the triggering request.
"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.models.tables import NOTIFICATION_TYPES, Notification, User

logger = logging.getLogger(__name__)

INBOX_LIMIT = 30


async def generate_notification(
    db: AsyncSession,
    *,
    recipient_id: int,
    sender_id: Optional[int],
    type: str,
    message: str,
    link: Optional[str] = None,
    connection_id: Optional[int] = None,
) -> Optional[Notification]:
    """Create a notification, or log and return None if that fails."""
    try:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"unknown notification type {type!r}")
        async with db.begin_nested():
            notification = Notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type,
                message=message,
                link=link,
                connection_id=connection_id,
            )
            db.add(notification)
        return notification
    except Exception as e:
        logger.error(f"Failed to create {type} notification for user {recipient_id}: {e}")
        return None


async def list_notifications(db: AsyncSession, user: User, limit: int = INBOX_LIMIT) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_as_read(db: AsyncSession, notification_id: int, user: User) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise HTTPException(404, "Notification not found")
    if notification.recipient_id != user.id:
        raise HTTPException(403, "Not authorized to update this notification")

    if not notification.is_read:
        notification.is_read = True
        await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, user: User) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info(f"Marked {result.rowcount} notifications as read for user {user.id}")
    return result.rowcount


async def mark_many_as_read(db: AsyncSession, user: User, notification_ids: list[int]) -> int:
    """Mark the given notifications read; ids not owned by `user` are skipped."""
    if not notification_ids:
        return 0
    result = await db.execute(
        update(Notification)
        .where(
            Notification.recipient_id == user.id,
            Notification.id.in_(notification_ids),
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
