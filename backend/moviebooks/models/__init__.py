"""Re-export all SQLAlchemy models for Alembic and import convenience."""

from moviebooks.models.tables import (  # noqa: F401
    User,
    Movie, MovieGenre, MovieActor,
    Book, BookGenre,
    Connection, ConnectionTag, connection_likes, connection_favorites,
    Comment,
    Follow,
    Notification, NOTIFICATION_TYPES,
)
