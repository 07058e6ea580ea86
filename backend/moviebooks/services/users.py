"""Accounts: registration, login, profiles, and account deletion."""

import logging
import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.clients.base import IImageStore
from moviebooks.models.tables import (
    Comment, Connection, Follow, Notification, User, connection_favorites, connection_likes,
)
from moviebooks.security import create_access_token, hash_password, verify_password
from moviebooks.services.connections import ConnectionService

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_RE = re.compile(r".+@.+\..+")
MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = ("display_name", "bio", "location", "profile_picture_url")


def validate_registration(username: Optional[str], email: Optional[str], password: Optional[str]) -> list[str]:
    """All problems with a registration payload, in a stable order."""
    errors = []
    if not username:
        errors.append("Username is required")
    if not email:
        errors.append("Email is required")
    if not password:
        errors.append("Password is required")
    if username:
        errors.extend(_username_errors(username))
    if password and len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if email and not EMAIL_RE.match(email):
        errors.append("Please provide a valid email address")
    return errors


def _username_errors(username: str) -> list[str]:
    errors = []
    if not 3 <= len(username) <= 20:
        errors.append("Username must be between 3 and 20 characters")
    if not USERNAME_RE.match(username):
        errors.append("Username can only contain letters, numbers, and underscores")
    return errors


async def _username_taken(db: AsyncSession, username: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.scalar(stmt)) is not None


def auth_payload(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "token": create_access_token(user.id),
        "created_at": user.created_at,
    }


async def register(db: AsyncSession, username: Optional[str], email: Optional[str], password: Optional[str]) -> dict:
    username = (username or "").strip()
    email = (email or "").strip()
    errors = validate_registration(username, email, password)
    if errors:
        raise HTTPException(400, ", ".join(errors))

    email = email.lower()
    conflicts = []
    if await db.scalar(select(User.id).where(User.email == email)) is not None:
        conflicts.append("User already exists with that email")
    if await _username_taken(db, username):
        conflicts.append("Username is already taken")
    if conflicts:
        raise HTTPException(400, ", ".join(conflicts))

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    await db.commit()
    logger.info(f"Registered user {user.id} ({username})")
    return auth_payload(user)


async def login(db: AsyncSession, email: Optional[str], password: Optional[str]) -> dict:
    if not email or not password:
        raise HTTPException(400, "Please provide email and password")
    user = await db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not verify_password(password, user.password_hash):
        logger.info(f"Failed login for {email}")
        raise HTTPException(401, "Invalid email or password")
    return auth_payload(user)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(404, "User not found")
    return user


async def favorite_ids(db: AsyncSession, user_id: int) -> list[int]:
    result = await db.execute(
        select(connection_favorites.c.connection_id)
        .where(connection_favorites.c.user_id == user_id)
        .order_by(connection_favorites.c.created_at)
    )
    return list(result.scalars().all())


async def own_profile(db: AsyncSession, user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "display_name": user.display_name,
        "bio": user.bio,
        "location": user.location,
        "profile_picture_url": user.profile_picture_url,
        "favorites": await favorite_ids(db, user.id),
        "created_at": user.created_at,
    }


async def update_profile(db: AsyncSession, user: User, changes: dict) -> dict:
    """Apply the sent profile fields. `username` is re-validated and must stay unique."""
    username = changes.get("username")
    if username is not None and username != user.username:
        username = username.strip()
        errors = _username_errors(username)
        if errors:
            raise HTTPException(400, ", ".join(errors))
        if await _username_taken(db, username, exclude_id=user.id):
            raise HTTPException(400, "Username is already taken")
        user.username = username

    for key in PROFILE_FIELDS:
        if key in changes:
            value = changes[key]
            setattr(user, key, value.strip() if isinstance(value, str) else value)

    await db.commit()
    logger.info(f"User {user.id} updated profile")
    return await own_profile(db, user)


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.username))
    return list(result.scalars().all())


async def public_profile(db: AsyncSession, user_id: int) -> dict:
    user = await get_user(db, user_id)
    followers = await db.scalar(select(func.count(Follow.id)).where(Follow.followee_id == user_id))
    following = await db.scalar(select(func.count(Follow.id)).where(Follow.follower_id == user_id))
    connections = await db.scalar(select(func.count(Connection.id)).where(Connection.user_id == user_id))
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "bio": user.bio,
        "location": user.location,
        "profile_picture_url": user.profile_picture_url,
        "created_at": user.created_at,
        "followers_count": followers or 0,
        "following_count": following or 0,
        "connections_count": connections or 0,
    }


async def delete_account(db: AsyncSession, user: User, images: IImageStore) -> None:
    """Delete a user and everything they own or are referenced by.

    Owned connections go through the normal connection purge so their
    screenshots, comments and notifications are cleaned up too.
    """
    service = ConnectionService(db, images)
    owned = await service.list_where(Connection.user_id == user.id)
    for connection in owned:
        await service.purge(connection)

    uid = user.id
    await db.execute(delete(Comment).where(Comment.user_id == uid))
    await db.execute(delete(Follow).where(or_(Follow.follower_id == uid, Follow.followee_id == uid)))
    await db.execute(delete(Notification).where(
        or_(Notification.recipient_id == uid, Notification.sender_id == uid)
    ))
    await db.execute(delete(connection_likes).where(connection_likes.c.user_id == uid))
    await db.execute(delete(connection_favorites).where(connection_favorites.c.user_id == uid))
    await db.execute(delete(User).where(User.id == uid))
    await db.commit()
    logger.info(f"Deleted account {uid} with {len(owned)} connections")
