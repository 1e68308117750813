"""
Content lifecycle model.

- ContentItem: editable unit of content, owner of locks and publications
- Lock: exclusive edit lock, one row per owner toggled active/inactive
- Publication: placement of an owner into a page block (slot)
- Effective state: lifecycle label derived on read, never stored

Services that touch the database (LockManager, PlacementEngine,
RelationSets, ContentService) live in their own modules and are imported
from there.
"""

# Enums
from .enums import AuditAction, EntityKind, LockState, StoredState

# Primitives
from .primitives import EntityRef, generate_ulid, slugify, utc_now

# Request schemas
from .schemas import (
    ContentItemCreate,
    ContentItemUpdate,
    ImageSlot,
    PlacementSpec,
    PublishRequest,
)

# State resolution
from .state import PUBLISHED, STATE_LABELS, StateLabel, is_live, resolve

__all__ = [
    # Enums
    "AuditAction",
    "EntityKind",
    "LockState",
    "StoredState",
    # Primitives
    "EntityRef",
    "generate_ulid",
    "slugify",
    "utc_now",
    # Schemas
    "ContentItemCreate",
    "ContentItemUpdate",
    "ImageSlot",
    "PlacementSpec",
    "PublishRequest",
    # State
    "PUBLISHED",
    "STATE_LABELS",
    "StateLabel",
    "is_live",
    "resolve",
]
