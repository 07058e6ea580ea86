"""Connection endpoints: feed, create/edit/delete, likes and favorites."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.clients.base import IImageStore
from moviebooks.database import get_db
from moviebooks.models.tables import User
from moviebooks.schemas import BatchIn, ConnectionOut, FeedPage, PopularTag
from moviebooks.security import get_current_user
from moviebooks.services.connections import (
    ConnectionForm, ConnectionService, FeedFilters, split_list,
)
from moviebooks.services.uploads import get_image_store, read_image

router = APIRouter()


def get_connection_service(
    db: AsyncSession = Depends(get_db),
    images: IImageStore = Depends(get_image_store),
) -> ConnectionService:
    return ConnectionService(db=db, images=images)


def connection_form(
    movie_title: Optional[str] = Form(None, alias="movieTitle"),
    book_title: Optional[str] = Form(None, alias="bookTitle"),
    context: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    movie_genres: Optional[str] = Form(None, alias="movieGenres"),
    director: Optional[str] = Form(None),
    actors: Optional[str] = Form(None),
    movie_year: Optional[int] = Form(None, alias="movieYear"),
    movie_synopsis: Optional[str] = Form(None, alias="movieSynopsis"),
    book_genres: Optional[str] = Form(None, alias="bookGenres"),
    author: Optional[str] = Form(None),
    isbn: Optional[str] = Form(None),
    publication_year: Optional[int] = Form(None, alias="publicationYear"),
    book_synopsis: Optional[str] = Form(None, alias="bookSynopsis"),
) -> ConnectionForm:
    """Multipart text fields of the create/edit form."""
    return ConnectionForm(
        movie_title=movie_title,
        book_title=book_title,
        context=context,
        tags=tags,
        movie_genres=movie_genres,
        director=director,
        actors=actors,
        movie_year=movie_year,
        movie_synopsis=movie_synopsis,
        book_genres=book_genres,
        author=author,
        isbn=isbn,
        publication_year=publication_year,
        book_synopsis=book_synopsis,
    )


@router.get("/connections", response_model=FeedPage)
async def get_feed(
    tags: Optional[str] = None,
    movie_genre: Optional[str] = Query(None, alias="movieGenre"),
    director: Optional[str] = None,
    actor: Optional[str] = None,
    book_genre: Optional[str] = Query(None, alias="bookGenre"),
    author: Optional[str] = None,
    page_number: int = Query(1, alias="pageNumber", ge=1),
    service: ConnectionService = Depends(get_connection_service),
):
    """Paginated feed, newest first.

    Filters:
    - tags: comma list, matches any (exact, case-sensitive)
    - movieGenre / director / actor / bookGenre / author: exact, case-insensitive
    """
    filters = FeedFilters(
        tags=split_list(tags),
        movie_genre=movie_genre,
        director=director,
        actor=actor,
        book_genre=book_genre,
        author=author,
    )
    return await service.feed(filters, page=page_number)


@router.post("/connections", response_model=ConnectionOut, status_code=201)
async def create_connection(
    form: ConnectionForm = Depends(connection_form),
    movie_poster: Optional[UploadFile] = File(None, alias="moviePoster"),
    book_cover: Optional[UploadFile] = File(None, alias="bookCover"),
    screenshot: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    uploads = [
        image
        for image in [
            await read_image("moviePoster", movie_poster),
            await read_image("bookCover", book_cover),
            await read_image("screenshot", screenshot),
        ]
        if image is not None
    ]
    return await service.create(user, form, uploads)


@router.get("/connections/popular-tags", response_model=list[PopularTag])
async def popular_tags(service: ConnectionService = Depends(get_connection_service)):
    return await service.popular_tags()


@router.get("/connections/search", response_model=list[ConnectionOut])
async def search_connections(
    q: str = Query("", max_length=200),
    service: ConnectionService = Depends(get_connection_service),
):
    """Substring search over context, titles and tags."""
    return await service.search(q)


@router.post("/connections/batch", response_model=list[ConnectionOut])
async def connections_batch(body: BatchIn, service: ConnectionService = Depends(get_connection_service)):
    return await service.by_ids(body.connection_ids)


@router.get("/connections/{connection_id}", response_model=ConnectionOut)
async def get_connection(connection_id: int, service: ConnectionService = Depends(get_connection_service)):
    return await service.get(connection_id)


@router.put("/connections/{connection_id}", response_model=ConnectionOut)
async def update_connection(
    connection_id: int,
    form: ConnectionForm = Depends(connection_form),
    screenshot: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    """Owner-only edit. Unsent fields stay as they are."""
    image = await read_image("screenshot", screenshot)
    return await service.update(connection_id, user, form, screenshot=image)


@router.delete("/connections/{connection_id}")
async def delete_connection(
    connection_id: int,
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    await service.delete(connection_id, user)
    return {"message": "Connection deleted successfully", "connectionId": connection_id}


@router.post("/connections/{connection_id}/like", response_model=ConnectionOut)
async def like_connection(
    connection_id: int,
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.toggle_like(connection_id, user)


@router.post("/connections/{connection_id}/favorite", response_model=ConnectionOut)
async def favorite_connection(
    connection_id: int,
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.toggle_favorite(connection_id, user)


@router.delete("/connections/{connection_id}/favorite", response_model=ConnectionOut)
async def unfavorite_connection(
    connection_id: int,
    user: User = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.unfavorite(connection_id, user)
