"""Pydantic request/response models.

Responses are read straight off ORM objects (`from_attributes`) and written
with camelCase keys and `_id` ids, which is the shape the web client reads.
Request bodies accept camelCase or snake_case keys.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Schema(BaseModel):
    """Base for response models."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


class RequestBody(BaseModel):
    """Base for JSON request bodies."""
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=to_camel),
    )


# ── Users ────────────────────────────────────────────────────────

class UserRef(Schema):
    id: int = Field(serialization_alias="_id")
    username: str
    display_name: Optional[str] = None
    profile_picture_url: Optional[str] = None


class UserOut(UserRef):
    bio: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None


class OwnProfileOut(UserOut):
    email: str
    favorites: list[int] = []


class PublicProfileOut(UserOut):
    followers_count: int = 0
    following_count: int = 0
    connections_count: int = 0


class AuthOut(Schema):
    id: int = Field(serialization_alias="_id")
    username: str
    email: str
    token: str
    created_at: Optional[datetime] = None


class RegisterIn(RequestBody):
    # Optional so missing fields reach the joined validation message
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(RequestBody):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateIn(RequestBody):
    username: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_picture_url: Optional[str] = None


# ── Catalog ──────────────────────────────────────────────────────

class MovieOut(Schema):
    id: int = Field(serialization_alias="_id")
    title: str
    genres: list[str] = []
    director: Optional[str] = None
    actors: list[str] = []
    year: Optional[int] = None
    synopsis: Optional[str] = None
    poster_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookOut(Schema):
    id: int = Field(serialization_alias="_id")
    title: str
    genres: list[str] = []
    author: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    synopsis: Optional[str] = None
    cover_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TitleRef(Schema):
    id: int = Field(serialization_alias="_id")
    title: str


# ── Connections ──────────────────────────────────────────────────

class ConnectionOut(Schema):
    id: int = Field(serialization_alias="_id")
    user_ref: UserRef = Field(validation_alias="user", serialization_alias="userRef")
    movie_ref: Optional[MovieOut] = Field(None, validation_alias="movie", serialization_alias="movieRef")
    book_ref: Optional[BookOut] = Field(None, validation_alias="book", serialization_alias="bookRef")
    context: str = ""
    tags: list[str] = []
    screenshot_url: Optional[str] = None
    likes: list[int] = Field([], validation_alias="like_ids", serialization_alias="likes")
    favorites: list[int] = Field([], validation_alias="favorite_ids", serialization_alias="favorites")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeedPage(Schema):
    connections: list[ConnectionOut]
    page: int
    pages: int
    total: int


class PopularTag(Schema):
    tag: str
    count: int


class BatchIn(RequestBody):
    connection_ids: list[int] = []


# ── Comments ─────────────────────────────────────────────────────

class CommentOut(Schema):
    id: int = Field(serialization_alias="_id")
    text: str
    user: UserRef
    connection: int = Field(validation_alias="connection_id", serialization_alias="connection")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentIn(RequestBody):
    text: Optional[str] = None


# ── Follows ──────────────────────────────────────────────────────

class FollowOut(Schema):
    id: int = Field(serialization_alias="_id")
    follower: UserRef
    followee: UserRef
    created_at: Optional[datetime] = None


class FollowStatus(Schema):
    is_following: bool
    is_self: bool


# ── Notifications ────────────────────────────────────────────────

class NotificationConnection(Schema):
    id: int = Field(serialization_alias="_id")
    movie_ref: Optional[TitleRef] = Field(None, validation_alias="movie", serialization_alias="movieRef")
    book_ref: Optional[TitleRef] = Field(None, validation_alias="book", serialization_alias="bookRef")
    context: str = ""
    screenshot_url: Optional[str] = None


class NotificationOut(Schema):
    id: int = Field(serialization_alias="_id")
    recipient_ref: int = Field(validation_alias="recipient_id", serialization_alias="recipientRef")
    sender_ref: Optional[UserRef] = Field(None, validation_alias="sender", serialization_alias="senderRef")
    type: str
    message: str
    link: Optional[str] = None
    connection_ref: Optional[NotificationConnection] = Field(
        None, validation_alias="connection", serialization_alias="connectionRef"
    )
    read: bool = Field(False, validation_alias="is_read", serialization_alias="read")
    created_at: Optional[datetime] = None


class MarkReadIn(RequestBody):
    notification_ids: list[int] = []
