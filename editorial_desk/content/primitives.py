"""
Common primitives shared by the content modules.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, constr
from slugify import slugify as _transliterated_slug
from ulid import ULID

from .enums import EntityKind


def generate_ulid() -> str:
    """Generate a ULID for object IDs.

    ULIDs are lexicographically sortable and globally unique.
    """
    return str(ULID())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def slugify(text: str) -> str:
    """Create a URL-safe slug from a title.

    Non-Latin scripts are transliterated to ASCII, everything else that is
    not a letter or digit becomes a single hyphen. A title made only of
    punctuation yields an empty slug.

        "Launch Day" -> "launch-day"
        "Café  Crème!" -> "cafe-creme"
        "日本語" -> "ri-ben-yu"
    """
    return _transliterated_slug(text)


class EntityRef(BaseModel):
    """Reference to an owning entity: a kind tag plus an id.

    Locks, publications, relation rows and audit records attach to an
    EntityRef rather than to a concrete table.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: EntityKind = Field(..., description="Type of the owning entity")
    id: constr(min_length=1, max_length=128) = Field(
        ..., description="Identifier of the owning entity"
    )

    @classmethod
    def content_item(cls, item_id: str) -> "EntityRef":
        return cls(kind=EntityKind.CONTENT_ITEM, id=item_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"
