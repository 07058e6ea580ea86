"""Movie and book detail endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.api.connections import get_connection_service
from moviebooks.database import get_db
from moviebooks.models.tables import Book, Connection, Movie
from moviebooks.schemas import BookOut, ConnectionOut, MovieOut
from moviebooks.services.connections import ConnectionService

router = APIRouter()


async def _get_or_404(db: AsyncSession, model, entity_id: int):
    entity = await db.get(model, entity_id)
    if entity is None:
        raise HTTPException(404, f"{model.__name__} not found")
    return entity


@router.get("/movies/{movie_id}", response_model=MovieOut)
async def get_movie(movie_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_or_404(db, Movie, movie_id)


@router.get("/movies/{movie_id}/connections", response_model=list[ConnectionOut])
async def movie_connections(
    movie_id: int,
    db: AsyncSession = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    await _get_or_404(db, Movie, movie_id)
    return await service.list_where(Connection.movie_id == movie_id)


@router.get("/books/{book_id}", response_model=BookOut)
async def get_book(book_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_or_404(db, Book, book_id)


@router.get("/books/{book_id}/connections", response_model=list[ConnectionOut])
async def book_connections(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    await _get_or_404(db, Book, book_id)
    return await service.list_where(Connection.book_id == book_id)
