"""
Publication Placement Engine.

Assigns a content item to page blocks ("slots"). Two paths exist:

- implicit: selection criteria are resolved to candidate slots through the
  slot catalog and any slot the item is not yet placed in gets a bare
  placement row. Existing placements are never touched, so repeating the
  call is harmless.
- explicit: the caller supplies the full placement list. Every slot is
  checked against the catalog first; only then is the current set deleted
  and the new one inserted.

Nothing here commits; changes join the caller's transaction.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence, Set

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..db.models import PageBlockModel, PublicationModel
from ..errors import InvalidRequestError, StorageUnavailableError, UnknownSlotError
from .primitives import EntityRef, generate_ulid, utc_now
from .schemas import PlacementSpec, PublishRequest

logger = structlog.get_logger()


class SlotCatalog(Protocol):
    """Read-only catalog of page blocks."""

    def resolve_slots(
        self,
        section_id: str,
        category_id: Optional[str],
        item_type_id: Optional[str],
        is_featured: bool,
    ) -> Set[str]:
        """Return ids of the blocks matching the selection criteria."""
        ...

    def slot_exists(self, slot_id: str) -> bool:
        """Return True when ``slot_id`` is a known page block."""
        ...


class SqlSlotCatalog:
    """Slot catalog backed by the ``page_blocks`` table.

    A block matches when it belongs to the requested section, its category
    and item type are either unset or equal to the request, and it is not a
    featured block unless the item is featured.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve_slots(
        self,
        section_id: str,
        category_id: Optional[str] = None,
        item_type_id: Optional[str] = None,
        is_featured: bool = False,
    ) -> Set[str]:
        query = self.db.query(PageBlockModel.id).filter(
            PageBlockModel.section_id == section_id
        )

        if category_id is None:
            query = query.filter(PageBlockModel.category_id.is_(None))
        else:
            query = query.filter(
                or_(
                    PageBlockModel.category_id.is_(None),
                    PageBlockModel.category_id == category_id,
                )
            )

        if item_type_id is None:
            query = query.filter(PageBlockModel.item_type_id.is_(None))
        else:
            query = query.filter(
                or_(
                    PageBlockModel.item_type_id.is_(None),
                    PageBlockModel.item_type_id == item_type_id,
                )
            )

        if not is_featured:
            query = query.filter(PageBlockModel.is_featured.is_(False))

        try:
            return {row.id for row in query.all()}
        except OperationalError as exc:
            raise StorageUnavailableError(str(exc.orig)) from exc

    def slot_exists(self, slot_id: str) -> bool:
        try:
            return (
                self.db.query(PageBlockModel.id)
                .filter(PageBlockModel.id == slot_id)
                .first()
                is not None
            )
        except OperationalError as exc:
            raise StorageUnavailableError(str(exc.orig)) from exc


class PlacementEngine:
    """Service reconciling an item's publications with requested slots."""

    def __init__(self, db: Session, catalog: Optional[SlotCatalog] = None):
        self.db = db
        self.catalog = catalog or SqlSlotCatalog(db)

    def placements_for(self, ref: EntityRef) -> List[PublicationModel]:
        """Get the current publication set of ``ref``."""
        return (
            self.db.query(PublicationModel)
            .filter(
                PublicationModel.entity_kind == ref.kind.value,
                PublicationModel.entity_id == ref.id,
            )
            .order_by(PublicationModel.created_at, PublicationModel.slot_id)
            .all()
        )

    def derive_placements(
        self,
        section_id: str,
        category_id: Optional[str] = None,
        item_type_id: Optional[str] = None,
        is_featured: bool = False,
    ) -> Set[str]:
        """Resolve selection criteria to candidate slot ids.

        Returns an empty set when nothing matches.
        """
        return set(
            self.catalog.resolve_slots(
                section_id, category_id, item_type_id, is_featured
            )
        )

    def publish(
        self, ref: EntityRef, request: PublishRequest
    ) -> List[PublicationModel]:
        """Place ``ref`` in every candidate slot it is not already in.

        New rows are bare placements (not activated, no publish time).

        Returns:
            The publications created by this call
        """
        candidates = self.derive_placements(
            request.section_id,
            request.category_id,
            request.item_type_id,
            request.is_featured,
        )
        existing = {p.slot_id for p in self.placements_for(ref)}

        created = []
        now = utc_now()
        for slot_id in sorted(candidates - existing):
            publication = PublicationModel(
                id=generate_ulid(),
                entity_kind=ref.kind.value,
                entity_id=ref.id,
                slot_id=slot_id,
                is_published=False,
                publish_at=None,
                created_at=now,
            )
            self.db.add(publication)
            created.append(publication)

        self.db.flush()
        logger.info(
            "placements_derived",
            entity=str(ref),
            section_id=request.section_id,
            candidates=sorted(candidates),
            created=[p.slot_id for p in created],
        )
        return created

    def replace_explicit(
        self, ref: EntityRef, placements: Sequence[PlacementSpec]
    ) -> List[PublicationModel]:
        """Replace the whole publication set of ``ref``.

        Raises:
            InvalidRequestError: if a slot appears more than once in the batch
            UnknownSlotError: if any slot is missing from the catalog; nothing
                is changed in that case
        """
        self._validate_batch(placements)
        self.remove_all(ref)

        now = utc_now()
        publications = [
            PublicationModel(
                id=generate_ulid(),
                entity_kind=ref.kind.value,
                entity_id=ref.id,
                slot_id=placement.slot_id,
                is_published=placement.is_published,
                publish_at=placement.publish_at,
                created_at=now,
            )
            for placement in placements
        ]
        self.db.add_all(publications)
        self.db.flush()

        logger.info(
            "placements_replaced",
            entity=str(ref),
            slot_ids=[p.slot_id for p in publications],
        )
        return publications

    def remove_all(self, ref: EntityRef) -> int:
        """Hard-delete every publication of ``ref``; returns the row count."""
        count = (
            self.db.query(PublicationModel)
            .filter(
                PublicationModel.entity_kind == ref.kind.value,
                PublicationModel.entity_id == ref.id,
            )
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count

    def _validate_batch(self, placements: Iterable[PlacementSpec]) -> None:
        seen: Set[str] = set()
        duplicates: Set[str] = set()
        for placement in placements:
            if placement.slot_id in seen:
                duplicates.add(placement.slot_id)
            seen.add(placement.slot_id)

        if duplicates:
            raise InvalidRequestError(
                f"Page block(s) listed more than once: {', '.join(sorted(duplicates))}"
            )

        missing = [
            slot_id for slot_id in sorted(seen) if not self.catalog.slot_exists(slot_id)
        ]
        if missing:
            raise UnknownSlotError(missing)
