"""
Content Mutation Pipeline.

The only entry point that changes content items. Every mutating call runs as
a single unit of work: either all of its steps are committed together with
one audit record, or nothing is.

Update steps, in order:
1. lock guard (an active lock held by someone else stops the update), then
   scalar field changes with slug recomputation and uniqueness checks
2. lock toggle, when requested
3. keyword / tag / image set replacement
4. implicit publish through the placement engine
5. explicit placement replacement
6. audit record
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..db.audit_service import AuditLedger
from ..db.base import unit_of_work
from ..db.models import ContentItemModel, LockModel, PublicationModel
from ..errors import (
    ContentNotFoundError,
    DuplicateContentError,
    InvalidRequestError,
)
from .enums import AuditAction, EntityKind, StoredState
from .locks import LockManager
from .placement import PlacementEngine, SlotCatalog
from .primitives import EntityRef, generate_ulid, slugify, utc_now
from .relations import RelationSets
from .schemas import ContentItemCreate, ContentItemUpdate, _ContentFields
from .state import StateLabel, is_live, resolve

logger = structlog.get_logger()


def item_ref(item_or_id: Any) -> EntityRef:
    """Build the owner reference of a content item (model or id)."""
    item_id = item_or_id if isinstance(item_or_id, str) else item_or_id.id
    return EntityRef.content_item(item_id)


class ContentService:
    """Service for creating, updating, deleting and reading content items."""

    def __init__(
        self,
        db: Session,
        catalog: Optional[SlotCatalog] = None,
        audit: Optional[AuditLedger] = None,
    ):
        self.db = db
        self.audit = audit or AuditLedger(db)
        self.locks = LockManager(db)
        self.placements = PlacementEngine(db, catalog)
        self.relations = RelationSets(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self, item_id: str, include_deleted: bool = False
    ) -> Optional[ContentItemModel]:
        """Get a content item by ID; soft-deleted items only on request."""
        query = self.db.query(ContentItemModel).filter(ContentItemModel.id == item_id)
        if not include_deleted:
            query = query.filter(ContentItemModel.deleted_at.is_(None))
        return query.first()

    def get_or_raise(self, item_id: str) -> ContentItemModel:
        item = self.get(item_id)
        if item is None:
            raise ContentNotFoundError(item_id)
        return item

    def get_by_slug(self, slug: str) -> Optional[ContentItemModel]:
        """Get a live content item by slug."""
        return (
            self.db.query(ContentItemModel)
            .filter(
                ContentItemModel.slug == slug,
                ContentItemModel.deleted_at.is_(None),
            )
            .first()
        )

    def list(
        self,
        stored_state: Optional[StoredState] = None,
        scheduled: bool = False,
        limit: int = 15,
        offset: int = 0,
    ) -> List[ContentItemModel]:
        """List live content items, newest first.

        Args:
            stored_state: Optional filter on the stored state
            scheduled: Only items with an activated publication whose publish
                time is still in the future
            limit: Maximum number of items to return
            offset: Number of items to skip
        """
        query = self.db.query(ContentItemModel).filter(
            ContentItemModel.deleted_at.is_(None)
        )

        if stored_state is not None:
            query = query.filter(
                ContentItemModel.stored_state_id == StoredState(stored_state).value
            )

        if scheduled:
            waiting = (
                self.db.query(PublicationModel.entity_id)
                .filter(
                    PublicationModel.entity_kind == EntityKind.CONTENT_ITEM.value,
                    PublicationModel.is_published.is_(True),
                    PublicationModel.publish_at > utc_now(),
                )
                .subquery()
            )
            query = query.filter(ContentItemModel.id.in_(waiting.select()))

        return (
            query.order_by(
                desc(ContentItemModel.created_at), desc(ContentItemModel.id)
            )
            .offset(offset)
            .limit(limit)
            .all()
        )

    def effective_state(self, item: ContentItemModel) -> StateLabel:
        """Resolve the effective lifecycle state from fresh publication data."""
        return resolve(item, self.placements.placements_for(item_ref(item)))

    def lock_status(self, item_id: str) -> Optional[LockModel]:
        """Get the lock row of an item regardless of its state."""
        return self.locks.inspect(item_ref(item_id))

    def history(self, item_id: str, action: Optional[AuditAction] = None):
        """Get the audit history of an item, oldest first.

        Works for deleted items too; the ledger outlives them.
        """
        return self.audit.history_for(item_ref(item_id), action)

    def describe(self, item: ContentItemModel) -> Dict[str, Any]:
        """Read model of an item with its derived and related data."""
        ref = item_ref(item)
        publications = self.placements.placements_for(ref)
        lock = self.locks.active_lock(ref)
        created = self.audit.first_for(ref, AuditAction.CREATE)
        edited = self.audit.latest_for(ref, AuditAction.UPDATE)

        data = item.to_dict()
        data.update(
            {
                "state": resolve(item, publications).model_dump(),
                "is_live": is_live(publications),
                "lock": lock.to_dict() if lock else None,
                "created": created.to_dict() if created else None,
                "edited": edited.to_dict() if edited else None,
                "publications": [
                    {**p.to_dict(), "slot": p.slot.to_dict()} for p in publications
                ],
                "keywords": self.relations.keywords_for(ref),
                "tags": self.relations.tags_for(ref),
                "images": [i.to_dict() for i in self.relations.images_for(ref)],
            }
        )
        return data

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self, fields: ContentItemCreate, acting_user_id: str
    ) -> ContentItemModel:
        """Create a content item and record who created it.

        Raises:
            DuplicateContentError: if the title or derived slug is taken
            InvalidRequestError: if the title has no sluggable characters
        """
        log = logger.bind(user_id=acting_user_id)

        with unit_of_work(self.db):
            now = utc_now()
            item = ContentItemModel(
                id=generate_ulid(),
                created_at=now,
                updated_at=now,
            )
            self._apply_fields(item, fields.scalar_values())
            self.db.add(item)
            self.db.flush()

            ref = item_ref(item)
            self._replace_relations(ref, fields)
            self.audit.append(ref, AuditAction.CREATE, acting_user_id)

        self.db.refresh(item)
        log.info("content_created", item_id=item.id, slug=item.slug)
        return item

    def update(
        self,
        item_id: str,
        changes: ContentItemUpdate,
        acting_user_id: str,
    ) -> ContentItemModel:
        """Apply an update request as one unit.

        Raises:
            ContentNotFoundError: if the item does not exist or is deleted
            LockHeldError: if another user holds the edit lock
            PermissionDeniedError: if a lock release is not allowed
            DuplicateContentError: if the new title or slug is taken
            InvalidRequestError: if the placement batch is malformed or the
                title has no sluggable characters
            UnknownSlotError: if an explicit placement names a missing slot
            StorageUnavailableError: if the database cannot be reached
        """
        log = logger.bind(item_id=item_id, user_id=acting_user_id)

        with unit_of_work(self.db):
            item = self.get_or_raise(item_id)
            ref = item_ref(item)

            # 1. Guard, then scalar fields
            self.locks.ensure_not_locked_by_other(ref, acting_user_id)
            self._apply_fields(item, changes.scalar_values())
            item.updated_at = utc_now()
            self.db.flush()

            # 2. Lock toggle
            if changes.lock is not None:
                self.locks.toggle(ref, acting_user_id, changes.lock)

            # 3. Relation sets
            self._replace_relations(ref, changes)

            # 4. Implicit placement
            if changes.publish is not None:
                self.placements.publish(ref, changes.publish)

            # 5. Explicit placement
            if changes.publications is not None:
                self.placements.replace_explicit(ref, changes.publications)

            # 6. Ledger
            self.audit.append(ref, AuditAction.UPDATE, acting_user_id)

        self.db.refresh(item)
        log.info("content_updated", fields=sorted(changes.model_fields_set))
        return item

    def delete(self, item_id: str, acting_user_id: str) -> bool:
        """Delete an item.

        Items that were never placed are removed outright together with their
        lock and relation rows. Placed items lose their publications and are
        soft-deleted. A delete record is appended in both cases.

        Returns:
            True for a hard delete, False for a soft delete

        Raises:
            ContentNotFoundError: if the item does not exist or is deleted
            LockHeldError: if another user holds the edit lock
        """
        log = logger.bind(item_id=item_id, user_id=acting_user_id)

        with unit_of_work(self.db):
            item = self.get_or_raise(item_id)
            ref = item_ref(item)
            self.locks.ensure_not_locked_by_other(ref, acting_user_id)

            hard = not self.placements.placements_for(ref)
            if hard:
                self.relations.remove_all(ref)
                self.locks.purge(ref)
                self.db.delete(item)
            else:
                self.placements.remove_all(ref)
                item.deleted_at = utc_now()
            self.db.flush()

            self.audit.append(
                ref,
                AuditAction.DELETE,
                acting_user_id,
                note="hard delete" if hard else "soft delete",
            )

        log.info("content_deleted", hard=hard)
        return hard

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply_fields(self, item: ContentItemModel, values: Dict[str, Any]) -> None:
        if "title" in values:
            title = values["title"]
            values["slug"] = slugify(title) if title else None
            if title and not values["slug"]:
                raise InvalidRequestError(
                    f"Title {title!r} does not produce a usable slug"
                )
            self._ensure_unique(item.id, "title", title)
            self._ensure_unique(item.id, "slug", values["slug"])

        for name, value in values.items():
            setattr(item, name, value)

    def _ensure_unique(self, item_id: str, field: str, value: Optional[str]) -> None:
        if not value:
            return
        column = getattr(ContentItemModel, field)
        existing = (
            self.db.query(ContentItemModel.id)
            .filter(
                column == value,
                ContentItemModel.id != item_id,
                ContentItemModel.deleted_at.is_(None),
            )
            .first()
        )
        if existing is not None:
            raise DuplicateContentError(field, value, existing.id)

    def _replace_relations(self, ref: EntityRef, fields: _ContentFields) -> None:
        if fields.keywords is not None:
            self.relations.replace_keywords(ref, fields.keywords)
        if fields.tags is not None:
            self.relations.replace_tags(ref, fields.tags)
        if fields.images is not None:
            self.relations.replace_images(ref, fields.images)
