"""Follow graph endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.database import get_db
from moviebooks.models.tables import User
from moviebooks.schemas import FollowOut, FollowStatus, UserOut
from moviebooks.security import get_current_user
from moviebooks.services import follows

router = APIRouter()


@router.get("/follows/following/{user_id}", response_model=list[UserOut])
async def get_following(user_id: int, db: AsyncSession = Depends(get_db)):
    """Users that `user_id` follows."""
    return await follows.list_following(db, user_id)


@router.get("/follows/followers/{user_id}", response_model=list[UserOut])
async def get_followers(user_id: int, db: AsyncSession = Depends(get_db)):
    """Users following `user_id`."""
    return await follows.list_followers(db, user_id)


@router.get("/follows/is-following/{user_id}", response_model=FollowStatus)
async def is_following(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await follows.is_following(db, user, user_id)


@router.post("/follows/{user_id}", response_model=FollowOut, status_code=201)
async def follow_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await follows.follow_user(db, user, user_id)


@router.delete("/follows/{user_id}")
async def unfollow_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await follows.unfollow_user(db, user, user_id)
    return {"message": "Successfully unfollowed user"}
