"""Movie / Book catalog: case-insensitive find-or-create by title.

Merge policy when a title already exists:
- textual fields (genres, director, actors, author, ...) that were supplied
  and differ overwrite the stored value
- images are first-write-wins: an existing poster/cover is never replaced

The policy itself is `plan_catalog_update`, a pure function over plain
dicts; `find_or_create` applies it to the ORM entity.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Type, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.models.tables import Book, Movie

logger = logging.getLogger(__name__)

CatalogModel = Union[Movie, Book]

# Image columns per model: (url column, public id column)
IMAGE_FIELDS = {
    Movie: ("poster_path", "poster_public_id"),
    Book: ("cover_path", "cover_public_id"),
}


@dataclass
class CatalogResult:
    """Outcome of a find-or-create."""
    entity: CatalogModel
    created: bool
    changes: dict = field(default_factory=dict)

    @property
    def image_used(self) -> bool:
        return any(k.endswith(("_path", "_public_id")) for k in self.changes)


def _is_blank(value) -> bool:
    return value is None or value == "" or value == []


def plan_catalog_update(
    existing: Optional[dict],
    supplied: dict,
    image_fields: tuple[str, ...] = (),
) -> dict:
    """Return the field changes needed to merge `supplied` into `existing`.

    `existing` is None when no record matched the title; the result is then
    the full set of non-blank supplied fields to create with.
    """
    if existing is None:
        return {k: v for k, v in supplied.items() if not _is_blank(v)}

    changes = {}
    for key, value in supplied.items():
        if _is_blank(value):
            continue
        if key in image_fields:
            # First image wins
            if _is_blank(existing.get(key)):
                changes[key] = value
            continue
        if existing.get(key) != value:
            changes[key] = value

    # Url and public id travel together
    url_field = image_fields[0] if image_fields else None
    if url_field and url_field not in changes:
        for key in image_fields:
            changes.pop(key, None)
    return changes


async def find_by_title(db: AsyncSession, model: Type[CatalogModel], title: str) -> Optional[CatalogModel]:
    result = await db.execute(
        select(model).where(func.lower(model.title) == title.strip().lower())
    )
    return result.scalar_one_or_none()


def _snapshot(entity: CatalogModel, keys) -> dict:
    return {k: getattr(entity, k) for k in keys}


async def find_or_create(
    db: AsyncSession,
    model: Type[CatalogModel],
    title: str,
    fields: Optional[dict] = None,
) -> CatalogResult:
    """Resolve `title` to a Movie/Book, creating it if absent.

    `fields` uses model attribute names (`genres`, `director`, `poster_path`, ...).
    A concurrent insert of the same title is caught by the unique
    lower(title) index and resolved by merging into the winner.
    """
    title = title.strip()
    fields = fields or {}
    image_fields = IMAGE_FIELDS[model]

    entity = await find_by_title(db, model, title)
    if entity is None:
        values = plan_catalog_update(None, fields, image_fields)
        try:
            async with db.begin_nested():
                entity = model(title=title, **values)
                db.add(entity)
            logger.info(f"Created {model.__name__} '{title}' (id={entity.id})")
            return CatalogResult(entity=entity, created=True, changes=values)
        except IntegrityError:
            logger.warning(f"{model.__name__} '{title}' was created concurrently, merging")
            entity = await find_by_title(db, model, title)
            if entity is None:
                raise

    changes = plan_catalog_update(_snapshot(entity, fields.keys()), fields, image_fields)
    for key, value in changes.items():
        setattr(entity, key, value)
    if changes:
        await db.flush()
        logger.info(f"Updated {model.__name__} {entity.id}: {sorted(changes)}")
    return CatalogResult(entity=entity, created=False, changes=changes)
