"""
State Resolver.

The effective lifecycle state of a content item is derived on every read from
its stored state plus its publications; it is never written back to the item.

Rules:
- any publication that is activated and carries a publish_at (past or future)
  makes the item Published;
- otherwise the stored state id maps directly to its label;
- a stored state id outside the known set is data corruption.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from ..errors import DataIntegrityError
from .enums import PUBLISHED_STATE_ID, StoredState
from .primitives import as_utc, utc_now


class StateLabel(BaseModel):
    """Canonical label for an effective state."""

    model_config = ConfigDict(frozen=True)

    id: int
    slug: str
    name: str


STATE_LABELS: Dict[int, StateLabel] = {
    StoredState.SUBMITTED: StateLabel(
        id=StoredState.SUBMITTED.value, slug="submitted", name="Submitted"
    ),
    StoredState.ARCHIVED: StateLabel(
        id=StoredState.ARCHIVED.value, slug="archived", name="Archived"
    ),
    StoredState.MOCKUP: StateLabel(
        id=StoredState.MOCKUP.value, slug="mockup", name="Mockup"
    ),
    StoredState.PUBLICATION_PENDING: StateLabel(
        id=StoredState.PUBLICATION_PENDING.value,
        slug="publication",
        name="Publication pending",
    ),
}

PUBLISHED = StateLabel(id=PUBLISHED_STATE_ID, slug="published", name="Published")


class _HasStoredState(Protocol):
    id: Any
    stored_state_id: Any


class _PublicationLike(Protocol):
    is_published: Any
    publish_at: Optional[datetime]


def stored_state_label(state_id: int) -> StateLabel:
    """Map a stored state id to its label.

    Raises:
        DataIntegrityError: if the id is not a known stored state
    """
    try:
        return STATE_LABELS[state_id]
    except (KeyError, TypeError):
        raise DataIntegrityError(f"Unknown stored state id {state_id!r}") from None


def has_activated_publication(publications: Iterable[_PublicationLike]) -> bool:
    """True when a publication is activated and has a publish time set."""
    return any(p.is_published and p.publish_at is not None for p in publications)


def resolve(
    item: _HasStoredState, publications: Iterable[_PublicationLike]
) -> StateLabel:
    """Compute the effective state of ``item``.

    Args:
        item: Content item (only ``stored_state_id`` is read)
        publications: The item's already-loaded publications

    Returns:
        The StateLabel for the item

    Raises:
        DataIntegrityError: if the stored state id is unknown and no
            activated publication overrides it
    """
    if has_activated_publication(publications):
        return PUBLISHED

    try:
        return stored_state_label(item.stored_state_id)
    except DataIntegrityError:
        raise DataIntegrityError(
            f"Content item {item.id} has unknown stored state id "
            f"{item.stored_state_id!r}"
        ) from None


def is_live(
    publications: Iterable[_PublicationLike], now: Optional[datetime] = None
) -> bool:
    """True when a publication is activated and its publish time has passed."""
    now = as_utc(now) if now is not None else utc_now()
    return any(
        p.is_published and p.publish_at is not None and as_utc(p.publish_at) <= now
        for p in publications
    )
