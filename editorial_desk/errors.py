"""
Error taxonomy for Editorial Desk.

Every error raised by the core carries a stable ``code`` for programmatic
handling and a human-readable ``message``. Errors propagate unchanged through
the mutation pipeline; callers decide how to present them.
"""

from typing import Any, Dict, Iterable, List, Optional


class EditorialError(Exception):
    """Base class for all Editorial Desk errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    code = "editorial_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
        }


class LockHeldError(EditorialError):
    """Another user holds an active edit lock on the entity."""

    code = "lock_held"

    def __init__(
        self, entity_kind: str, entity_id: str, holder_user_id: Optional[str]
    ):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.holder_user_id = holder_user_id
        holder = f"user {holder_user_id}" if holder_user_id else "another user"
        super().__init__(f"{entity_kind} {entity_id} is locked by {holder}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "entity_kind": self.entity_kind,
                "entity_id": self.entity_id,
                "holder_user_id": self.holder_user_id,
            }
        )
        return data


class PermissionDeniedError(EditorialError):
    """A user who does not hold the lock tried to change it."""

    code = "permission_denied"

    def __init__(self, entity_kind: str, entity_id: str, user_id: str):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} does not hold the lock on {entity_kind} {entity_id}"
        )


class UnknownSlotError(EditorialError):
    """An explicit placement referenced slots missing from the catalog."""

    code = "unknown_slot"

    def __init__(self, slot_ids: Iterable[str]):
        self.slot_ids: List[str] = sorted(set(slot_ids))
        super().__init__(f"Unknown page block(s): {', '.join(self.slot_ids)}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["slot_ids"] = self.slot_ids
        return data


class DataIntegrityError(EditorialError):
    """Stored data falls outside the values the system knows about."""

    code = "data_integrity"


class StorageUnavailableError(EditorialError):
    """The persistence layer or slot catalog could not be reached."""

    code = "storage_unavailable"


class ContentNotFoundError(EditorialError):
    """No live content item exists with the requested id."""

    code = "not_found"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Content item {item_id} not found")


class DuplicateContentError(EditorialError):
    """Title or slug already used by another non-deleted item."""

    code = "duplicate_content"

    def __init__(self, field: str, value: str, existing_id: Optional[str] = None):
        self.field = field
        self.value = value
        self.existing_id = existing_id
        super().__init__(f"{field} '{value}' is already in use")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InvalidRequestError(EditorialError):
    """The request is structurally valid but cannot be applied."""

    code = "invalid_request"
