"""
Audit Ledger.

Append-only record of the actions taken against an owning entity. Appends
are flushed into the caller's transaction so a ledger entry is committed, or
rolled back, together with the change it describes.
"""

from typing import List, Optional

import structlog
from sqlalchemy import asc, desc
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..content.enums import AuditAction
from ..content.primitives import EntityRef, generate_ulid, utc_now
from ..errors import StorageUnavailableError
from .audit_models import AuditRecordModel

logger = structlog.get_logger()


class AuditLedger:
    """Service for appending to and reading the audit ledger.

    Usage:
        ledger = AuditLedger(db_session)
        ledger.append(EntityRef.content_item(item.id), AuditAction.UPDATE, "user-1")
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        ref: EntityRef,
        action: AuditAction,
        user_id: str,
        note: Optional[str] = None,
    ) -> AuditRecordModel:
        """Append one record for ``ref``.

        Args:
            ref: Owning entity the action was taken against
            action: What was done
            user_id: Acting user, as supplied by the identity provider
            note: Optional human-readable note

        Returns:
            The flushed AuditRecordModel

        Raises:
            StorageUnavailableError: if the record could not be written
        """
        entry = AuditRecordModel(
            id=generate_ulid(),
            entity_kind=ref.kind.value,
            entity_id=ref.id,
            action=AuditAction(action).value,
            user_id=user_id,
            note=note,
            created_at=utc_now(),
        )

        try:
            self.db.add(entry)
            self.db.flush()
        except OperationalError as exc:
            raise StorageUnavailableError(str(exc.orig)) from exc

        logger.debug(
            "audit_appended",
            entity=str(ref),
            action=entry.action,
            user_id=user_id,
        )
        return entry

    # Query methods

    def _query_for(self, ref: EntityRef, action: Optional[AuditAction] = None):
        query = self.db.query(AuditRecordModel).filter(
            AuditRecordModel.entity_kind == ref.kind.value,
            AuditRecordModel.entity_id == ref.id,
        )
        if action is not None:
            query = query.filter(AuditRecordModel.action == AuditAction(action).value)
        return query

    def history_for(
        self,
        ref: EntityRef,
        action: Optional[AuditAction] = None,
    ) -> List[AuditRecordModel]:
        """Get the history of an entity, oldest first.

        Args:
            ref: Owning entity
            action: Optional filter by action

        Returns:
            List of AuditRecordModel entries ordered by creation time
        """
        return (
            self._query_for(ref, action)
            .order_by(asc(AuditRecordModel.created_at), asc(AuditRecordModel.id))
            .all()
        )

    def first_for(
        self, ref: EntityRef, action: AuditAction
    ) -> Optional[AuditRecordModel]:
        """Get the oldest record of ``action`` (e.g. who created the item)."""
        return (
            self._query_for(ref, action)
            .order_by(asc(AuditRecordModel.created_at), asc(AuditRecordModel.id))
            .first()
        )

    def latest_for(
        self, ref: EntityRef, action: AuditAction
    ) -> Optional[AuditRecordModel]:
        """Get the newest record of ``action`` (e.g. who edited it last)."""
        return (
            self._query_for(ref, action)
            .order_by(desc(AuditRecordModel.created_at), desc(AuditRecordModel.id))
            .first()
        )
