"""
Audit ledger database models.

One immutable row per mutating call against an owning entity: who did what
and when. Rows are appended, never updated or deleted.
"""

from typing import Any, Dict

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Index,
    String,
    Text,
)
from sqlalchemy.sql import func

from .base import Base


# Audit action enum
audit_action_enum = Enum(
    "create",
    "update",
    "delete",
    name="audit_action",
)


class AuditRecordModel(Base):
    """Audit ledger entry for an owning entity."""

    __tablename__ = "audit_records"

    # Primary key (ULID for sortability and uniqueness)
    id = Column(String(36), primary_key=True)

    # What entity was affected
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)

    # What action was performed
    action = Column(audit_action_enum, nullable=False, index=True)

    # Who performed the action
    user_id = Column(String(128), nullable=False, index=True)

    # Optional human-readable note about the action
    note = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_records_entity", "entity_kind", "entity_id"),
        Index("ix_audit_records_entity_ts", "entity_kind", "entity_id", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "action": self.action,
            "user_id": self.user_id,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
