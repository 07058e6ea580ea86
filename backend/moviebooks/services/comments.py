"""Comments on connections."""

import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.models.tables import Comment, Connection, User
from moviebooks.services.notifications import generate_notification

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def clean_comment_text(text) -> str:
    text = (text or "").strip()
    if not text:
        raise HTTPException(400, "Comment text cannot be empty.")
    if len(text) > MAX_COMMENT_LENGTH:
        raise HTTPException(400, f"Comment cannot be more than {MAX_COMMENT_LENGTH} characters.")
    return text


async def _get_comment(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise HTTPException(404, "Comment not found")
    return comment


async def list_comments(db: AsyncSession, connection_id: int) -> list[Comment]:
    if await db.get(Connection, connection_id) is None:
        raise HTTPException(404, "Connection not found")
    result = await db.execute(
        select(Comment)
        .where(Comment.connection_id == connection_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return list(result.scalars().all())


async def create_comment(db: AsyncSession, connection_id: int, user: User, text: str) -> Comment:
    """Add a comment and notify the connection's owner (unless they wrote it)."""
    text = clean_comment_text(text)
    connection = await db.get(Connection, connection_id)
    if connection is None:
        raise HTTPException(404, "Connection not found")

    comment = Comment(text=text, user_id=user.id, connection_id=connection_id)
    db.add(comment)
    await db.flush()

    if connection.user_id != user.id:
        await generate_notification(
            db,
            recipient_id=connection.user_id,
            sender_id=user.id,
            type="comment",
            message=f"{user.username} commented on your connection.",
            link=f"/connections/{connection_id}",
            connection_id=connection_id,
        )
    await db.commit()
    logger.info(f"User {user.id} commented on connection {connection_id}")
    return await _get_comment(db, comment.id)


async def update_comment(db: AsyncSession, comment_id: int, user: User, text: str) -> Comment:
    comment = await _get_comment(db, comment_id)
    if comment.user_id != user.id:
        raise HTTPException(401, "User not authorized to update this comment")
    comment.text = clean_comment_text(text)
    await db.commit()
    return await _get_comment(db, comment_id)


async def delete_comment(db: AsyncSession, comment_id: int, user: User) -> None:
    comment = await _get_comment(db, comment_id)
    if comment.user_id != user.id:
        raise HTTPException(401, "User not authorized to delete this comment")
    await db.delete(comment)
    await db.commit()
    logger.info(f"User {user.id} deleted comment {comment_id}")
