"""
Canonical enums for Editorial Desk.

Stored values are fixed; the database keeps the raw value and the State
Resolver maps it back to a label on every read.
"""

from enum import Enum, IntEnum


class EntityKind(str, Enum):
    """Kinds of entities that can own locks, publications and history."""

    CONTENT_ITEM = "ContentItem"


class StoredState(IntEnum):
    """Lifecycle states that may be persisted on a content item."""

    SUBMITTED = 0
    ARCHIVED = 1
    MOCKUP = 2
    PUBLICATION_PENDING = 3


# Derived-only value; never written to content_items.stored_state_id.
PUBLISHED_STATE_ID = 4


class LockState(str, Enum):
    """Edit lock states."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class AuditAction(str, Enum):
    """Actions recorded in the audit ledger."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
