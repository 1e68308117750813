"""
Request schemas for the content mutation pipeline.

Only fields explicitly supplied on an update are applied; ``None`` is a
value (clear the field), an omitted field is left untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from .enums import StoredState

SCALAR_FIELDS = (
    "stored_state_id",
    "external_source_id",
    "external_link",
    "item_type_id",
    "title",
    "body",
    "content",
    "short",
    "comment",
    "meta_title",
    "meta_description",
    "meta_keywords",
)


class ImageSlot(BaseModel):
    """Image reference for one grid cell size."""

    model_config = ConfigDict(extra="forbid")

    image_id: constr(min_length=1, max_length=128) = Field(
        ..., description="Opaque id of the stored image"
    )
    rows_count: int = Field(..., ge=1, description="Grid rows the image spans")
    cols_count: int = Field(..., ge=1, description="Grid columns the image spans")


class PublishRequest(BaseModel):
    """Selection criteria for implicit placement."""

    model_config = ConfigDict(extra="forbid")

    section_id: constr(min_length=1, max_length=128)
    category_id: Optional[constr(min_length=1, max_length=128)] = None
    item_type_id: Optional[constr(min_length=1, max_length=128)] = None
    is_featured: bool = False


class PlacementSpec(BaseModel):
    """One explicit placement of an item into a page block."""

    model_config = ConfigDict(extra="forbid")

    slot_id: constr(min_length=1, max_length=128) = Field(
        ..., description="Page block id"
    )
    is_published: bool = False
    publish_at: Optional[datetime] = None

    @field_validator("publish_at")
    @classmethod
    def _normalize_publish_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class _ContentFields(BaseModel):
    """Scalar fields shared by create and update."""

    model_config = ConfigDict(extra="forbid")

    external_source_id: Optional[constr(max_length=128)] = None
    external_link: Optional[constr(max_length=2000)] = None
    item_type_id: Optional[constr(max_length=128)] = None
    title: Optional[constr(max_length=255)] = None
    body: Optional[str] = None
    content: Optional[str] = None
    short: Optional[str] = None
    comment: Optional[str] = None
    meta_title: Optional[constr(max_length=255)] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None

    # Relation sets, replaced wholesale when supplied
    keywords: Optional[List[constr(min_length=1, max_length=128)]] = None
    tags: Optional[List[constr(min_length=1, max_length=128)]] = None
    images: Optional[List[ImageSlot]] = None

    def scalar_values(self) -> Dict[str, Any]:
        """Supplied scalar fields, ready to set on the model."""
        values = {}
        for name in SCALAR_FIELDS:
            if name in self.model_fields_set:
                value = getattr(self, name)
                if name == "stored_state_id":
                    # Stored state cannot be cleared
                    if value is None:
                        continue
                    value = StoredState(value).value
                values[name] = value
        return values


class ContentItemCreate(_ContentFields):
    """Schema for creating a new content item."""

    stored_state_id: StoredState = StoredState.SUBMITTED

    def scalar_values(self) -> Dict[str, Any]:
        values = super().scalar_values()
        values["stored_state_id"] = self.stored_state_id.value
        return values


class ContentItemUpdate(_ContentFields):
    """Schema for updating a content item.

    Besides scalar fields it carries the optional lock toggle, implicit
    publish criteria and explicit placement list.
    """

    stored_state_id: Optional[StoredState] = None

    lock: Optional[bool] = Field(
        None, description="True to take the edit lock, False to release it"
    )
    publish: Optional[PublishRequest] = None
    publications: Optional[List[PlacementSpec]] = None
