"""Follow graph: directed user-to-user edges."""

import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.models.tables import Follow, User
from moviebooks.services.notifications import generate_notification

logger = logging.getLogger(__name__)


async def _require_user(db: AsyncSession, user_id: int, message: str = "User not found") -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(404, message)
    return user


async def _find_edge(db: AsyncSession, follower_id: int, followee_id: int):
    result = await db.execute(
        select(Follow).where(Follow.follower_id == follower_id, Follow.followee_id == followee_id)
    )
    return result.scalar_one_or_none()


async def follow_user(db: AsyncSession, follower: User, followee_id: int) -> Follow:
    if follower.id == followee_id:
        raise HTTPException(400, "Cannot follow yourself")
    followee = await _require_user(db, followee_id, "User to follow not found")
    if await _find_edge(db, follower.id, followee_id) is not None:
        raise HTTPException(400, "Already following this user")

    try:
        async with db.begin_nested():
            edge = Follow(follower_id=follower.id, followee_id=followee.id)
            db.add(edge)
    except IntegrityError:
        # Lost a race against an identical follow
        raise HTTPException(400, "Already following this user")

    await generate_notification(
        db,
        recipient_id=followee.id,
        sender_id=follower.id,
        type="new_follower",
        message=f"{follower.username} started following you.",
        link=f"/profile/{follower.username}",
    )
    await db.commit()
    logger.info(f"User {follower.id} followed user {followee.id}")

    result = await db.execute(
        select(Follow).where(Follow.id == edge.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def unfollow_user(db: AsyncSession, follower: User, followee_id: int) -> None:
    if follower.id == followee_id:
        raise HTTPException(400, "Cannot unfollow yourself")
    edge = await _find_edge(db, follower.id, followee_id)
    if edge is None:
        raise HTTPException(404, "Not following this user")
    await db.delete(edge)
    await db.commit()
    logger.info(f"User {follower.id} unfollowed user {followee_id}")


async def list_following(db: AsyncSession, user_id: int) -> list[User]:
    await _require_user(db, user_id)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.followee_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(result.scalars().all())


async def list_followers(db: AsyncSession, user_id: int) -> list[User]:
    await _require_user(db, user_id)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.followee_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(result.scalars().all())


async def is_following(db: AsyncSession, follower: User, followee_id: int) -> dict:
    if follower.id == followee_id:
        return {"is_following": False, "is_self": True}
    await _require_user(db, followee_id)
    edge = await _find_edge(db, follower.id, followee_id)
    return {"is_following": edge is not None, "is_self": False}
