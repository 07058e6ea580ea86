"""Comment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.database import get_db
from moviebooks.models.tables import User
from moviebooks.schemas import CommentIn, CommentOut
from moviebooks.security import get_current_user
from moviebooks.services import comments

router = APIRouter()


@router.get("/connections/{connection_id}/comments", response_model=list[CommentOut])
async def list_comments(connection_id: int, db: AsyncSession = Depends(get_db)):
    """Comments on a connection, newest first."""
    return await comments.list_comments(db, connection_id)


@router.post("/connections/{connection_id}/comments", response_model=CommentOut, status_code=201)
async def create_comment(
    connection_id: int,
    body: CommentIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comments.create_comment(db, connection_id, user, body.text)


@router.put("/comments/{comment_id}", response_model=CommentOut)
async def update_comment(
    comment_id: int,
    body: CommentIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comments.update_comment(db, comment_id, user, body.text)


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await comments.delete_comment(db, comment_id, user)
    return {"message": "Comment deleted successfully"}
