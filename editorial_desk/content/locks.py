"""
Lock Manager.

Grants and revokes an exclusive edit lock on an owning entity. Each entity
has at most one lock row; requests toggle that row between active and
inactive instead of creating new rows.

Transitions are single conditional UPDATE statements keyed on the current
state and holder, so concurrent acquires on the same entity are decided by
the database rather than by in-process mutexes. The first insert is guarded
by the (entity_kind, entity_id) unique constraint.
"""

from typing import Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import LockModel
from ..errors import LockHeldError, PermissionDeniedError
from .enums import LockState
from .primitives import EntityRef, generate_ulid, utc_now

logger = structlog.get_logger()


class LockManager:
    """Service for the edit-lock protocol.

    Nothing here commits; changes join the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def inspect(self, ref: EntityRef) -> Optional[LockModel]:
        """Get the lock row for ``ref`` regardless of its state."""
        return (
            self.db.query(LockModel)
            .filter(
                LockModel.entity_kind == ref.kind.value,
                LockModel.entity_id == ref.id,
            )
            .first()
        )

    def active_lock(self, ref: EntityRef) -> Optional[LockModel]:
        """Get the lock row for ``ref`` only if it is active."""
        lock = self.inspect(ref)
        return lock if lock is not None and lock.is_active else None

    def ensure_not_locked_by_other(self, ref: EntityRef, user_id: str) -> None:
        """Fail if someone other than ``user_id`` holds an active lock.

        Raises:
            LockHeldError: if another user holds an active lock on ``ref``
        """
        lock = self.active_lock(ref)
        if lock is not None and lock.holder_user_id != user_id:
            raise LockHeldError(ref.kind.value, ref.id, lock.holder_user_id)

    def acquire(self, ref: EntityRef, user_id: str) -> LockModel:
        """Grant ``user_id`` the active lock on ``ref``.

        Raises:
            LockHeldError: if another user holds an active lock
        """
        lock = self.inspect(ref)
        if lock is None:
            lock = self._insert(ref, user_id, LockState.ACTIVE)
            logger.info("lock_acquired", entity=str(ref), user_id=user_id)
            return lock

        if lock.is_active and lock.holder_user_id != user_id:
            raise LockHeldError(ref.kind.value, ref.id, lock.holder_user_id)

        result = self.db.execute(
            update(LockModel)
            .where(
                LockModel.id == lock.id,
                or_(
                    LockModel.state == LockState.INACTIVE.value,
                    LockModel.holder_user_id == user_id,
                ),
            )
            .values(
                state=LockState.ACTIVE.value,
                holder_user_id=user_id,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(lock)

        if result.rowcount == 0:
            # Another holder won between our read and the update
            raise LockHeldError(ref.kind.value, ref.id, lock.holder_user_id)

        logger.info("lock_acquired", entity=str(ref), user_id=user_id)
        return lock

    def release(self, ref: EntityRef, user_id: str) -> LockModel:
        """Deactivate the lock on ``ref``.

        An inactive lock is returned unchanged. A release request on an entity
        that has never been locked records an inactive lock held by the caller.

        Raises:
            PermissionDeniedError: if another user holds the active lock
        """
        lock = self.inspect(ref)
        if lock is None:
            return self._insert(ref, user_id, LockState.INACTIVE)

        if not lock.is_active:
            return lock

        if lock.holder_user_id != user_id:
            logger.warning(
                "lock_release_denied",
                entity=str(ref),
                user_id=user_id,
                holder_user_id=lock.holder_user_id,
            )
            raise PermissionDeniedError(ref.kind.value, ref.id, user_id)

        result = self.db.execute(
            update(LockModel)
            .where(
                LockModel.id == lock.id,
                LockModel.holder_user_id == user_id,
                LockModel.state == LockState.ACTIVE.value,
            )
            .values(state=LockState.INACTIVE.value, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(lock)

        if result.rowcount == 0 and lock.is_active:
            raise PermissionDeniedError(ref.kind.value, ref.id, user_id)

        logger.info("lock_released", entity=str(ref), user_id=user_id)
        return lock

    def toggle(self, ref: EntityRef, user_id: str, locked: bool) -> LockModel:
        """Apply a lock request: ``True`` acquires, ``False`` releases."""
        if locked:
            return self.acquire(ref, user_id)
        return self.release(ref, user_id)

    def purge(self, ref: EntityRef) -> None:
        """Remove the lock row of ``ref``; only used when the owner is removed."""
        self.db.query(LockModel).filter(
            LockModel.entity_kind == ref.kind.value,
            LockModel.entity_id == ref.id,
        ).delete(synchronize_session="fetch")
        self.db.flush()

    def _insert(self, ref: EntityRef, user_id: str, state: LockState) -> LockModel:
        now = utc_now()
        lock = LockModel(
            id=generate_ulid(),
            entity_kind=ref.kind.value,
            entity_id=ref.id,
            holder_user_id=user_id,
            state=state.value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(lock)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost the race to create the row; the transaction is unusable now
            raise LockHeldError(ref.kind.value, ref.id, None) from None
        return lock
