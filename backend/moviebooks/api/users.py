"""User profile endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.api.connections import get_connection_service
from moviebooks.clients.base import IImageStore
from moviebooks.database import get_db
from moviebooks.models.tables import Connection, User
from moviebooks.schemas import (
    ConnectionOut, OwnProfileOut, ProfileUpdateIn, PublicProfileOut, UserOut,
)
from moviebooks.security import get_current_user
from moviebooks.services import users
from moviebooks.services.connections import ConnectionService
from moviebooks.services.uploads import get_image_store

router = APIRouter()


@router.get("/users", response_model=list[UserOut])
async def list_users(db: AsyncSession = Depends(get_db)):
    """All users, by username."""
    return await users.list_users(db)


@router.get("/users/me", response_model=OwnProfileOut)
async def get_me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """The caller's own profile, including favorited connection ids."""
    return await users.own_profile(db, user)


@router.put("/users/profile", response_model=OwnProfileOut)
async def update_profile(
    body: ProfileUpdateIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await users.update_profile(db, user, body.model_dump(exclude_unset=True))


@router.delete("/users/me")
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    images: IImageStore = Depends(get_image_store),
):
    """Delete the caller's account and everything attached to it."""
    user_id = user.id
    await users.delete_account(db, user, images)
    return {"message": "Account deleted", "userId": user_id}


@router.get("/users/{user_id}/profile", response_model=PublicProfileOut)
async def get_profile(user_id: int, db: AsyncSession = Depends(get_db)):
    return await users.public_profile(db, user_id)


@router.get("/users/{user_id}/connections", response_model=list[ConnectionOut])
async def user_connections(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    await users.get_user(db, user_id)
    return await service.list_where(Connection.user_id == user_id)


@router.get("/users/{user_id}/favorites", response_model=list[ConnectionOut])
async def user_favorites(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    await users.get_user(db, user_id)
    return await service.favorites_of(user_id)
