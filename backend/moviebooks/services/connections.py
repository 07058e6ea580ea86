"""Connection lifecycle: create, edit, feed, engagement toggles, delete.

A Connection links a user to an optional Movie and/or Book with free-text
context and tags. Engagement (likes, favorites) lives in association tables
whose composite primary keys make each a set. Side effects around the core
write (notifications, image cleanup, cascade on delete) are best effort:
each runs in its own SAVEPOINT and failures are logged, not raised.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.clients.base import IImageStore, ImageUpload, StoredImage
from moviebooks.models.tables import (
    Book, BookGenre, Comment, Connection, ConnectionTag, Movie, MovieActor,
    MovieGenre, Notification, User, connection_favorites, connection_likes,
)
from moviebooks.services.catalog import find_or_create
from moviebooks.services.notifications import generate_notification

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
POPULAR_TAG_LIMIT = 20
SEARCH_LIMIT = 50


def split_list(raw: Optional[str]) -> list[str]:
    """Split a comma-separated field, trimming and dropping empties and repeats."""
    if not raw:
        return []
    seen = []
    for part in raw.split(","):
        part = part.strip()
        if part and part not in seen:
            seen.append(part)
    return seen


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class ConnectionForm:
    """Multipart form fields for creating or editing a Connection.

    None means "not sent"; on edit, unsent fields are left unchanged.
    """
    movie_title: Optional[str] = None
    book_title: Optional[str] = None
    context: Optional[str] = None
    tags: Optional[str] = None
    movie_genres: Optional[str] = None
    director: Optional[str] = None
    actors: Optional[str] = None
    movie_year: Optional[int] = None
    movie_synopsis: Optional[str] = None
    book_genres: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    book_synopsis: Optional[str] = None

    def movie_fields(self, poster: Optional[StoredImage] = None) -> dict:
        fields = {
            "genres": split_list(self.movie_genres),
            "director": _clean(self.director),
            "actors": split_list(self.actors),
            "year": self.movie_year,
            "synopsis": _clean(self.movie_synopsis),
        }
        if poster:
            fields["poster_path"] = poster.url
            fields["poster_public_id"] = poster.public_id
        return fields

    def book_fields(self, cover: Optional[StoredImage] = None) -> dict:
        fields = {
            "genres": split_list(self.book_genres),
            "author": _clean(self.author),
            "isbn": _clean(self.isbn),
            "publication_year": self.publication_year,
            "synopsis": _clean(self.book_synopsis),
        }
        if cover:
            fields["cover_path"] = cover.url
            fields["cover_public_id"] = cover.public_id
        return fields


@dataclass
class FeedFilters:
    """Optional feed filters. Tags match any-of, exactly; the rest match
    case-insensitively against the joined Movie/Book."""
    tags: list[str] = field(default_factory=list)
    movie_genre: Optional[str] = None
    director: Optional[str] = None
    actor: Optional[str] = None
    book_genre: Optional[str] = None
    author: Optional[str] = None

    def predicates(self) -> list:
        preds = []
        if self.tags:
            preds.append(Connection.id.in_(
                select(ConnectionTag.connection_id).where(ConnectionTag.tag.in_(self.tags))
            ))
        if self.movie_genre:
            preds.append(Connection.movie_id.in_(
                select(MovieGenre.movie_id).where(func.lower(MovieGenre.name) == self.movie_genre.lower())
            ))
        if self.director:
            preds.append(func.lower(Movie.director) == self.director.lower())
        if self.actor:
            preds.append(Connection.movie_id.in_(
                select(MovieActor.movie_id).where(func.lower(MovieActor.name) == self.actor.lower())
            ))
        if self.book_genre:
            preds.append(Connection.book_id.in_(
                select(BookGenre.book_id).where(func.lower(BookGenre.name) == self.book_genre.lower())
            ))
        if self.author:
            preds.append(func.lower(Book.author) == self.author.lower())
        return preds

    def as_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v}


class ConnectionService:
    """Orchestrates Connection writes and their fan-out within one request session."""

    def __init__(self, db: AsyncSession, images: IImageStore):
        self.db = db
        self.images = images

    # ── Reads ────────────────────────────────────────────────────

    async def get(self, connection_id: int) -> Connection:
        """Fully populated Connection (user, movie, book, tags, likes, favorites)."""
        result = await self.db.execute(
            select(Connection)
            .where(Connection.id == connection_id)
            .execution_options(populate_existing=True)
        )
        connection = result.scalar_one_or_none()
        if connection is None:
            raise HTTPException(404, "Connection not found")
        return connection

    async def feed(self, filters: FeedFilters, page: int = 1) -> dict:
        """Filtered, paginated feed, newest first.

        Count and page come from the same filtered base query, so `pages`
        describes the filtered set rather than the whole collection.
        """
        preds = filters.predicates()

        def base(*columns):
            return (
                select(*columns)
                .select_from(Connection)
                .outerjoin(Movie, Connection.movie_id == Movie.id)
                .outerjoin(Book, Connection.book_id == Book.id)
                .join(User, Connection.user_id == User.id)
                .where(*preds)
            )

        total = await self.db.scalar(
            select(func.count()).select_from(base(Connection.id).subquery())
        ) or 0

        result = await self.db.execute(
            base(Connection)
            .order_by(Connection.created_at.desc(), Connection.id.desc())
            .offset((page - 1) * PAGE_SIZE)
            .limit(PAGE_SIZE)
        )
        connections = list(result.scalars().all())

        logger.debug(f"Feed page {page} filters={filters.as_dict()} -> {len(connections)}/{total}")
        return {
            "connections": connections,
            "page": page,
            "pages": math.ceil(total / PAGE_SIZE),
            "total": total,
        }

    async def list_where(self, *criteria, limit: Optional[int] = None) -> list[Connection]:
        stmt = select(Connection).where(*criteria).order_by(
            Connection.created_at.desc(), Connection.id.desc()
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def by_ids(self, connection_ids: list[int]) -> list[Connection]:
        if not connection_ids:
            return []
        return await self.list_where(Connection.id.in_(connection_ids))

    async def favorites_of(self, user_id: int) -> list[Connection]:
        result = await self.db.execute(
            select(Connection)
            .join(connection_favorites, connection_favorites.c.connection_id == Connection.id)
            .where(connection_favorites.c.user_id == user_id)
            .order_by(connection_favorites.c.created_at.desc())
        )
        return list(result.scalars().all())

    async def popular_tags(self, limit: int = POPULAR_TAG_LIMIT) -> list[dict]:
        count = func.count(ConnectionTag.id).label("count")
        result = await self.db.execute(
            select(ConnectionTag.tag, count)
            .group_by(ConnectionTag.tag)
            .order_by(count.desc(), ConnectionTag.tag)
            .limit(limit)
        )
        return [{"tag": tag, "count": n} for tag, n in result.all()]

    async def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Connection]:
        """Case-insensitive substring match over context, titles and tags."""
        needle = query.strip().lower()
        if not needle:
            return []
        tagged = select(ConnectionTag.connection_id).where(
            func.lower(ConnectionTag.tag).contains(needle, autoescape=True)
        )
        result = await self.db.execute(
            select(Connection)
            .outerjoin(Movie, Connection.movie_id == Movie.id)
            .outerjoin(Book, Connection.book_id == Book.id)
            .where(
                func.lower(Connection.context).contains(needle, autoescape=True)
                | func.lower(Movie.title).contains(needle, autoescape=True)
                | func.lower(Book.title).contains(needle, autoescape=True)
                | Connection.id.in_(tagged)
            )
            .order_by(Connection.created_at.desc(), Connection.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ── Create / edit ────────────────────────────────────────────

    async def create(self, user: User, form: ConnectionForm, uploads: list[ImageUpload]) -> Connection:
        movie_title = _clean(form.movie_title)
        book_title = _clean(form.book_title)
        context = (form.context or "").strip()
        if not (movie_title or book_title or context):
            raise HTTPException(400, "A movie title, a book title, or some context is required")

        stored = await self._store_uploads(uploads)
        unused: list[str] = []
        try:
            movie_id = book_id = None
            if movie_title:
                res = await find_or_create(self.db, Movie, movie_title, form.movie_fields(stored.get("moviePoster")))
                movie_id = res.entity.id
                if "moviePoster" in stored and not res.image_used:
                    unused.append(stored["moviePoster"].public_id)
            if book_title:
                res = await find_or_create(self.db, Book, book_title, form.book_fields(stored.get("bookCover")))
                book_id = res.entity.id
                if "bookCover" in stored and not res.image_used:
                    unused.append(stored["bookCover"].public_id)

            screenshot = stored.get("screenshot")
            connection = Connection(
                user_id=user.id,
                movie_id=movie_id,
                book_id=book_id,
                context=context,
                tags=split_list(form.tags),
                screenshot_url=screenshot.url if screenshot else None,
                screenshot_public_id=screenshot.public_id if screenshot else None,
            )
            self.db.add(connection)
            await self.db.commit()
        except Exception:
            await self._discard_images([s.public_id for s in stored.values()])
            raise

        logger.info(f"User {user.id} created connection {connection.id} (movie={movie_id}, book={book_id})")
        # Poster/cover that lost to an existing image
        await self._discard_images(unused)
        return await self.get(connection.id)

    async def update(
        self,
        connection_id: int,
        user: User,
        form: ConnectionForm,
        screenshot: Optional[ImageUpload] = None,
    ) -> Connection:
        connection = await self.get(connection_id)
        if connection.user_id != user.id:
            raise HTTPException(403, "User not authorized to edit this connection")

        # Blank or whitespace-only fields count as not sent, so edits never unlink
        movie_title = _clean(form.movie_title)
        if movie_title:
            connection.movie_id = (await find_or_create(self.db, Movie, movie_title, form.movie_fields())).entity.id
        book_title = _clean(form.book_title)
        if book_title:
            connection.book_id = (await find_or_create(self.db, Book, book_title, form.book_fields())).entity.id
        context = _clean(form.context)
        if context:
            connection.context = context
        if form.tags is not None:
            connection.tags = split_list(form.tags)

        if not (connection.movie_id or connection.book_id or connection.context):
            raise HTTPException(400, "A movie title, a book title, or some context is required")

        replaced = None
        stored = None
        if screenshot is not None:
            stored = (await self._store_uploads([screenshot]))["screenshot"]
            replaced = connection.screenshot_public_id
            connection.screenshot_url = stored.url
            connection.screenshot_public_id = stored.public_id

        try:
            await self.db.commit()
        except Exception:
            if stored:
                await self._discard_images([stored.public_id])
            raise
        if replaced:
            await self._discard_images([replaced])
        logger.info(f"User {user.id} edited connection {connection_id}")
        return await self.get(connection_id)

    # ── Engagement ───────────────────────────────────────────────

    async def toggle_like(self, connection_id: int, user: User) -> Connection:
        connection = await self.get(connection_id)
        added = await self._toggle(connection_likes, connection_id, user.id)
        if added and connection.user_id != user.id:
            await generate_notification(
                self.db,
                recipient_id=connection.user_id,
                sender_id=user.id,
                type="like",
                message=f"{user.username} liked your connection.",
                link=f"/connections/{connection_id}",
                connection_id=connection_id,
            )
        await self.db.commit()
        logger.info(f"User {user.id} {'liked' if added else 'unliked'} connection {connection_id}")
        return await self.get(connection_id)

    async def toggle_favorite(self, connection_id: int, user: User) -> Connection:
        """Favorite/unfavorite. The row is shared by Connection.favorites and
        User.favorites, so the two views cannot drift apart."""
        connection = await self.get(connection_id)
        added = await self._toggle(connection_favorites, connection_id, user.id)
        if added and connection.user_id != user.id:
            await generate_notification(
                self.db,
                recipient_id=connection.user_id,
                sender_id=user.id,
                type="favorite",
                message=f"{user.username} favorited your connection.",
                link=f"/connections/{connection_id}",
                connection_id=connection_id,
            )
        await self.db.commit()
        logger.info(f"User {user.id} {'favorited' if added else 'unfavorited'} connection {connection_id}")
        return await self.get(connection_id)

    async def unfavorite(self, connection_id: int, user: User) -> Connection:
        await self.get(connection_id)
        await self.db.execute(
            delete(connection_favorites).where(
                connection_favorites.c.connection_id == connection_id,
                connection_favorites.c.user_id == user.id,
            )
        )
        await self.db.commit()
        return await self.get(connection_id)

    async def _toggle(self, table, connection_id: int, user_id: int) -> bool:
        """Remove the (connection, user) row if present, else add it. Returns True on add."""
        where = (table.c.connection_id == connection_id, table.c.user_id == user_id)
        present = await self.db.scalar(select(func.count()).select_from(table).where(*where))
        if present:
            await self.db.execute(delete(table).where(*where))
            return False
        try:
            async with self.db.begin_nested():
                await self.db.execute(insert(table).values(connection_id=connection_id, user_id=user_id))
        except IntegrityError:
            # A concurrent toggle added it first; set semantics make this a no-op
            logger.info(f"{table.name}: ({connection_id}, {user_id}) already present")
            return False
        return True

    # ── Delete ───────────────────────────────────────────────────

    async def delete(self, connection_id: int, user: User) -> None:
        connection = await self.get(connection_id)
        if connection.user_id != user.id:
            logger.warning(f"User {user.id} tried to delete connection {connection_id} owned by {connection.user_id}")
            raise HTTPException(403, "User not authorized to delete this connection")
        await self.purge(connection)
        await self.db.commit()
        logger.info(f"User {user.id} deleted connection {connection_id}")

    async def purge(self, connection: Connection) -> None:
        """Remove a Connection and everything hanging off it.

        Order: screenshot asset, favorites rows, comments, notifications,
        then the connection itself. Every step before the last is isolated,
        so one failure does not block the rest.
        """
        cid = connection.id
        if connection.screenshot_public_id:
            await self._discard_images([connection.screenshot_public_id])

        await self._best_effort(cid, "favorites cleanup", delete(connection_favorites).where(
            connection_favorites.c.connection_id == cid))
        await self._best_effort(cid, "comment cleanup", delete(Comment).where(Comment.connection_id == cid))
        await self._best_effort(cid, "notification cleanup", delete(Notification).where(
            Notification.connection_id == cid))

        await self.db.execute(delete(connection_likes).where(connection_likes.c.connection_id == cid))
        await self.db.execute(delete(ConnectionTag).where(ConnectionTag.connection_id == cid))
        await self.db.execute(delete(Connection).where(Connection.id == cid))

    async def _best_effort(self, connection_id: int, label: str, stmt) -> None:
        try:
            async with self.db.begin_nested():
                await self.db.execute(stmt)
        except Exception as e:
            logger.error(f"Connection {connection_id}: {label} failed: {e}")

    # ── Images ───────────────────────────────────────────────────

    async def _store_uploads(self, uploads: list[ImageUpload]) -> dict[str, StoredImage]:
        stored: dict[str, StoredImage] = {}
        try:
            for upload in uploads:
                stored[upload.field] = await self.images.upload(upload)
        except Exception as e:
            logger.error(f"Image upload failed: {e}")
            await self._discard_images([s.public_id for s in stored.values()])
            raise HTTPException(500, "Image upload failed")
        return stored

    async def _discard_images(self, public_ids: list[str]) -> None:
        if not public_ids:
            return
        try:
            await self.images.delete(public_ids)
        except Exception as e:
            logger.error(f"Failed to delete images {public_ids} from {self.images.name}: {e}")
