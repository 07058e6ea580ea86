"""SQLAlchemy ORM models: all database tables."""

from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import (
    Integer, String, Text, Boolean, DateTime, Column, Table,
    ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from moviebooks.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Engagement sets ──────────────────────────────────────────────
# Composite primary keys make likes/favorites sets: a user appears at most once.

connection_likes = Table(
    "connection_likes",
    Base.metadata,
    Column("connection_id", ForeignKey("connections.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), default=utcnow),
)

connection_favorites = Table(
    "connection_favorites",
    Base.metadata,
    Column("connection_id", ForeignKey("connections.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), default=utcnow),
)


# ── Users ────────────────────────────────────────────────────────

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(100))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    profile_picture_url: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ── Catalog ──────────────────────────────────────────────────────

class Movie(Base):
    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    director: Mapped[Optional[str]] = mapped_column(String(200))
    year: Mapped[Optional[int]] = mapped_column(Integer)
    synopsis: Mapped[Optional[str]] = mapped_column(Text)
    poster_path: Mapped[Optional[str]] = mapped_column(String(500))
    poster_public_id: Mapped[Optional[str]] = mapped_column(String(300))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    genre_rows: Mapped[List["MovieGenre"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="MovieGenre.position"
    )
    actor_rows: Mapped[List["MovieActor"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="MovieActor.position"
    )

    @property
    def genres(self) -> list[str]:
        return [g.name for g in self.genre_rows]

    @genres.setter
    def genres(self, names: list[str]):
        self.genre_rows = [MovieGenre(name=n, position=i) for i, n in enumerate(names)]

    @property
    def actors(self) -> list[str]:
        return [a.name for a in self.actor_rows]

    @actors.setter
    def actors(self, names: list[str]):
        self.actor_rows = [MovieActor(name=n, position=i) for i, n in enumerate(names)]


# Titles are unique case-insensitively; find-or-create relies on this.
Index("ux_movies_title_lower", func.lower(Movie.title), unique=True)


class MovieGenre(Base):
    __tablename__ = "movie_genres"
    __table_args__ = (
        Index("idx_movie_genres_name", "name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


class MovieActor(Base):
    __tablename__ = "movie_actors"
    __table_args__ = (
        Index("idx_movie_actors_name", "name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(200))
    isbn: Mapped[Optional[str]] = mapped_column(String(20))
    publication_year: Mapped[Optional[int]] = mapped_column(Integer)
    synopsis: Mapped[Optional[str]] = mapped_column(Text)
    cover_path: Mapped[Optional[str]] = mapped_column(String(500))
    cover_public_id: Mapped[Optional[str]] = mapped_column(String(300))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    genre_rows: Mapped[List["BookGenre"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="BookGenre.position"
    )

    @property
    def genres(self) -> list[str]:
        return [g.name for g in self.genre_rows]

    @genres.setter
    def genres(self, names: list[str]):
        self.genre_rows = [BookGenre(name=n, position=i) for i, n in enumerate(names)]


Index("ux_books_title_lower", func.lower(Book.title), unique=True)


class BookGenre(Base):
    __tablename__ = "book_genres"
    __table_args__ = (
        Index("idx_book_genres_name", "name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


# ── Connections ──────────────────────────────────────────────────

class Connection(Base):
    __tablename__ = "connections"
    __table_args__ = (
        Index("idx_connections_user_created", "user_id", "created_at"),
        Index("idx_connections_created", "created_at"),
        Index("idx_connections_movie", "movie_id"),
        Index("idx_connections_book", "book_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    movie_id: Mapped[Optional[int]] = mapped_column(ForeignKey("movies.id"))
    book_id: Mapped[Optional[int]] = mapped_column(ForeignKey("books.id"))
    context: Mapped[str] = mapped_column(Text, default="")
    screenshot_url: Mapped[Optional[str]] = mapped_column(String(500))
    screenshot_public_id: Mapped[Optional[str]] = mapped_column(String(300))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped["User"] = relationship(lazy="selectin")
    movie: Mapped[Optional["Movie"]] = relationship(lazy="selectin")
    book: Mapped[Optional["Book"]] = relationship(lazy="selectin")
    tag_rows: Mapped[List["ConnectionTag"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="ConnectionTag.position"
    )
    liked_by: Mapped[List["User"]] = relationship(
        secondary=connection_likes, lazy="selectin",
        order_by=lambda: connection_likes.c.created_at,
    )
    favorited_by: Mapped[List["User"]] = relationship(
        secondary=connection_favorites, lazy="selectin",
        order_by=lambda: connection_favorites.c.created_at,
    )

    @property
    def tags(self) -> list[str]:
        return [t.tag for t in self.tag_rows]

    @tags.setter
    def tags(self, values: list[str]):
        # Keep rows for tags that survive; (connection_id, tag) is unique
        existing = {row.tag: row for row in self.tag_rows}
        rows = []
        for i, tag in enumerate(values):
            row = existing.get(tag) or ConnectionTag(tag=tag)
            row.position = i
            rows.append(row)
        self.tag_rows = rows

    @property
    def like_ids(self) -> list[int]:
        return [u.id for u in self.liked_by]

    @property
    def favorite_ids(self) -> list[int]:
        return [u.id for u in self.favorited_by]


class ConnectionTag(Base):
    __tablename__ = "connection_tags"
    __table_args__ = (
        UniqueConstraint("connection_id", "tag"),
        Index("idx_connection_tags_tag", "tag"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    connection_id: Mapped[int] = mapped_column(ForeignKey("connections.id", ondelete="CASCADE"))
    tag: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


# ── Comments ─────────────────────────────────────────────────────

class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_comments_connection_created", "connection_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    text: Mapped[str] = mapped_column(String(1000), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    connection_id: Mapped[int] = mapped_column(ForeignKey("connections.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped["User"] = relationship(lazy="selectin")


# ── Social ───────────────────────────────────────────────────────

class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    follower_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    followee_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    follower: Mapped["User"] = relationship(foreign_keys=[follower_id], lazy="selectin")
    followee: Mapped["User"] = relationship(foreign_keys=[followee_id], lazy="selectin")


# ── Notifications ────────────────────────────────────────────────

NOTIFICATION_TYPES = (
    "like", "comment", "new_follower", "favorite",
    # Legacy uppercase variants still present in older rows
    "LIKE", "FAVORITE", "NEW_CONNECTION",
)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_recipient_read", "recipient_id", "is_read", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    sender_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(500))
    connection_id: Mapped[Optional[int]] = mapped_column(ForeignKey("connections.id"))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    sender: Mapped[Optional["User"]] = relationship(foreign_keys=[sender_id], lazy="selectin")
    connection: Mapped[Optional["Connection"]] = relationship(lazy="selectin")
