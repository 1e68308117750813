"""
SQLAlchemy models for Editorial Desk.

Locks, publications and relation rows attach to their owner through an
(entity_kind, entity_id) pair instead of a foreign key, so any entity kind
can own them. Page blocks and their catalog tables are read-only to the core.
"""

from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


def _iso(value) -> Any:
    return value.isoformat() if value else None


lock_state_enum = Enum("active", "inactive", name="lock_state")


# =============================================================================
# Slot catalog
# =============================================================================


class SectionModel(Base):
    """Top-level site section (news, sport, culture...)."""

    __tablename__ = "sections"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)


class CategoryModel(Base):
    """Category inside a section."""

    __tablename__ = "categories"

    id = Column(String(128), primary_key=True)
    section_id = Column(
        String(128), ForeignKey("sections.id"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)


class ItemTypeModel(Base):
    """Kind of content item (article, gallery, video...)."""

    __tablename__ = "item_types"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)


class PageModel(Base):
    """A layout page made of blocks."""

    __tablename__ = "pages"

    id = Column(String(128), primary_key=True)
    section_id = Column(String(128), ForeignKey("sections.id"), nullable=True)
    name = Column(String(255), nullable=False)


class PageBlockModel(Base):
    """A layout slot on a page.

    Selection criteria: a block belongs to one section and may narrow itself
    to a category and/or item type. Featured blocks only take featured items.
    """

    __tablename__ = "page_blocks"

    id = Column(String(128), primary_key=True)
    page_id = Column(String(128), ForeignKey("pages.id"), nullable=False, index=True)
    section_id = Column(
        String(128), ForeignKey("sections.id"), nullable=False, index=True
    )
    category_id = Column(String(128), ForeignKey("categories.id"), nullable=True)
    item_type_id = Column(String(128), ForeignKey("item_types.id"), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    name = Column(String(255), nullable=False, default="")

    __table_args__ = (
        Index("ix_page_blocks_selection", "section_id", "category_id", "item_type_id"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "page_id": self.page_id,
            "section_id": self.section_id,
            "category_id": self.category_id,
            "item_type_id": self.item_type_id,
            "is_featured": self.is_featured,
            "name": self.name,
        }


# =============================================================================
# Content
# =============================================================================


class ContentItemModel(Base):
    """SQLAlchemy model for editorial content items."""

    __tablename__ = "content_items"

    id = Column(String(128), primary_key=True)

    # Raw stored state; mapped to a label by the state resolver
    stored_state_id = Column(Integer, nullable=False, default=0, index=True)

    external_source_id = Column(String(128), nullable=True)
    external_link = Column(String(2000), nullable=True)
    item_type_id = Column(String(128), nullable=True)

    title = Column(String(255), nullable=True, index=True)
    slug = Column(String(255), nullable=True, index=True)
    body = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    short = Column(Text, nullable=True)
    comment = Column(Text, nullable=True)
    meta_title = Column(String(255), nullable=True)
    meta_description = Column(Text, nullable=True)
    meta_keywords = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )
    # Soft-delete marker
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (Index("ix_content_items_created_at", "created_at"),)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "stored_state_id": self.stored_state_id,
            "external_source_id": self.external_source_id,
            "external_link": self.external_link,
            "item_type_id": self.item_type_id,
            "title": self.title,
            "slug": self.slug,
            "body": self.body,
            "content": self.content,
            "short": self.short,
            "comment": self.comment,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "meta_keywords": self.meta_keywords,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "deleted_at": _iso(self.deleted_at),
        }


class LockModel(Base):
    """Exclusive edit lock on an owning entity.

    One row per owner; its state toggles between active and inactive and the
    row is kept for history.
    """

    __tablename__ = "locks"

    id = Column(String(128), primary_key=True)
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)
    holder_user_id = Column(String(128), nullable=False, index=True)
    state = Column(lock_state_enum, nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("entity_kind", "entity_id", name="uq_locks_entity"),
    )

    @property
    def is_active(self) -> bool:
        return self.state == "active"

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "holder_user_id": self.holder_user_id,
            "state": self.state,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class PublicationModel(Base):
    """Placement of one owning entity into one page block."""

    __tablename__ = "publications"

    id = Column(String(128), primary_key=True)
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)
    slot_id = Column(String(128), ForeignKey("page_blocks.id"), nullable=False)
    is_published = Column(Boolean, nullable=False, default=False)
    publish_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    slot = relationship("PageBlockModel")

    __table_args__ = (
        UniqueConstraint(
            "entity_kind", "entity_id", "slot_id", name="uq_publications_entity_slot"
        ),
        Index("ix_publications_entity", "entity_kind", "entity_id"),
        Index("ix_publications_schedule", "is_published", "publish_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "slot_id": self.slot_id,
            "is_published": self.is_published,
            "publish_at": _iso(self.publish_at),
            "created_at": _iso(self.created_at),
        }


# =============================================================================
# Relation sets
# =============================================================================


class ItemKeywordModel(Base):
    """Keyword attached to an owning entity."""

    __tablename__ = "item_keywords"

    id = Column(String(128), primary_key=True)
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)
    keyword_id = Column(String(128), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "entity_kind", "entity_id", "keyword_id", name="uq_item_keywords"
        ),
    )


class ItemTagModel(Base):
    """Tag attached to an owning entity."""

    __tablename__ = "item_tags"

    id = Column(String(128), primary_key=True)
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)
    tag_id = Column(String(128), nullable=False)

    __table_args__ = (
        UniqueConstraint("entity_kind", "entity_id", "tag_id", name="uq_item_tags"),
    )


class ItemImageModel(Base):
    """Image reference for one grid cell size of an owning entity.

    The image itself lives in external file storage; only its id is kept.
    """

    __tablename__ = "item_images"

    id = Column(String(128), primary_key=True)
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)
    image_id = Column(String(128), nullable=False)
    rows_count = Column(Integer, nullable=False)
    cols_count = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "entity_kind",
            "entity_id",
            "rows_count",
            "cols_count",
            name="uq_item_images_cell",
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "image_id": self.image_id,
            "rows_count": self.rows_count,
            "cols_count": self.cols_count,
        }
