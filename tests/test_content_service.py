"""
Tests for the content mutation pipeline.

Verifies:
- create/update/delete each commit as one unit with one audit record
- the lock guard and placement failures roll back every step
- hard vs soft delete
- list filters and the describe read model
- the full "Launch Day" editorial flow
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from editorial_desk.content.enums import AuditAction, StoredState
from editorial_desk.content.primitives import EntityRef, utc_now
from editorial_desk.content.schemas import (
    ContentItemCreate,
    ContentItemUpdate,
    ImageSlot,
    PlacementSpec,
    PublishRequest,
)
from editorial_desk.db.models import ContentItemModel, LockModel
from editorial_desk.errors import (
    ContentNotFoundError,
    DataIntegrityError,
    DuplicateContentError,
    InvalidRequestError,
    LockHeldError,
    PermissionDeniedError,
    StorageUnavailableError,
    UnknownSlotError,
)


def _actions(service, item_id):
    return [r.action for r in service.history(item_id)]


def _slots(service, item_id):
    ref = EntityRef.content_item(item_id)
    return {p.slot_id for p in service.placements.placements_for(ref)}


class TestCreate:
    def test_create_derives_slug_and_records_creator(self, service):
        item = service.create(
            ContentItemCreate(title="Launch Day", short="Big day"), "u1"
        )

        assert item.slug == "launch-day"
        assert item.stored_state_id == StoredState.SUBMITTED
        assert item.deleted_at is None
        assert service.effective_state(item).slug == "submitted"
        assert _actions(service, item.id) == ["create"]
        assert service.history(item.id)[0].user_id == "u1"

    def test_create_with_relation_sets(self, service):
        item = service.create(
            ContentItemCreate(
                title="Gallery",
                stored_state_id=StoredState.MOCKUP,
                keywords=["k2", "k1", "k2"],
                tags=["t1"],
                images=[ImageSlot(image_id="img-1", rows_count=1, cols_count=2)],
            ),
            "u1",
        )

        data = service.describe(item)
        assert data["state"]["slug"] == "mockup"
        assert data["keywords"] == ["k1", "k2"]
        assert data["tags"] == ["t1"]
        assert data["images"] == [
            {"image_id": "img-1", "rows_count": 1, "cols_count": 2}
        ]

    def test_duplicate_title_is_rejected(self, service, item):
        with pytest.raises(DuplicateContentError) as exc_info:
            service.create(ContentItemCreate(title="Launch Day"), "u2")

        assert exc_info.value.field == "title"
        assert exc_info.value.existing_id == item.id
        assert len(service.list()) == 1

    def test_colliding_slug_is_rejected(self, service, item):
        with pytest.raises(DuplicateContentError) as exc_info:
            service.create(ContentItemCreate(title="Launch  day!"), "u2")
        assert exc_info.value.field == "slug"

    def test_non_latin_titles_get_distinct_slugs(self, service):
        japanese = service.create(ContentItemCreate(title="日本語"), "u1")
        chinese = service.create(ContentItemCreate(title="中文"), "u1")

        assert japanese.slug == "ri-ben-yu"
        assert chinese.slug == "zhong-wen"

    @pytest.mark.parametrize("title", ["!!!", "???"])
    def test_title_without_slug_is_rejected(self, service, title):
        with pytest.raises(InvalidRequestError):
            service.create(ContentItemCreate(title=title), "u1")

        assert service.list() == []

    def test_storage_failure_is_translated(self, service, db_session):
        db_session.execute(text("DROP TABLE content_items"))

        with pytest.raises(StorageUnavailableError):
            service.create(ContentItemCreate(title="Anything"), "u1")


class TestUpdate:
    def test_scalar_update_recomputes_slug(self, service, item):
        updated = service.update(
            item.id, ContentItemUpdate(title="Launch Night", comment=None), "u1"
        )

        assert updated.slug == "launch-night"
        assert service.get_by_slug("launch-night").id == item.id
        assert service.get_by_slug("launch-day") is None
        assert _actions(service, item.id) == ["create", "update"]

    def test_omitted_fields_are_untouched(self, service):
        item = service.create(ContentItemCreate(title="Keep", short="Short"), "u1")

        service.update(item.id, ContentItemUpdate(body="Body"), "u1")

        refreshed = service.get(item.id)
        assert refreshed.short == "Short"
        assert refreshed.body == "Body"
        assert refreshed.title == "Keep"

    def test_stored_state_change(self, service, item):
        service.update(
            item.id, ContentItemUpdate(stored_state_id=StoredState.ARCHIVED), "u1"
        )
        assert service.effective_state(service.get(item.id)).slug == "archived"

    def test_update_to_unsluggable_title_is_rejected(self, service, item):
        with pytest.raises(InvalidRequestError):
            service.update(item.id, ContentItemUpdate(title="!!!"), "u1")

        current = service.get(item.id)
        assert current.title == "Launch Day"
        assert current.slug == "launch-day"

    def test_update_of_missing_item(self, service):
        with pytest.raises(ContentNotFoundError):
            service.update("missing", ContentItemUpdate(title="x"), "u1")

    def test_lock_held_by_other_user_blocks_every_step(self, service, item):
        service.update(item.id, ContentItemUpdate(lock=True), "u1")

        with pytest.raises(LockHeldError) as exc_info:
            service.update(
                item.id,
                ContentItemUpdate(
                    title="Hijacked",
                    publish=PublishRequest(section_id="S"),
                ),
                "u2",
            )

        assert exc_info.value.holder_user_id == "u1"
        current = service.get(item.id)
        assert current.title == "Launch Day"
        assert _slots(service, item.id) == set()
        assert _actions(service, item.id) == ["create", "update"]

    def test_release_by_non_holder_leaves_lock_active(self, service, item):
        service.update(item.id, ContentItemUpdate(lock=True), "u1")

        with pytest.raises(LockHeldError):
            service.update(item.id, ContentItemUpdate(lock=False), "u2")

        lock = service.lock_status(item.id)
        assert lock.is_active
        assert lock.holder_user_id == "u1"

    def test_non_holder_release_on_manager_is_permission_error(self, service, item):
        ref = EntityRef.content_item(item.id)
        service.locks.acquire(ref, "u1")

        with pytest.raises(PermissionDeniedError):
            service.locks.release(ref, "u2")

    def test_unknown_slot_rolls_back_whole_update(self, service, item):
        service.update(
            item.id, ContentItemUpdate(publish=PublishRequest(section_id="S")), "u1"
        )

        with pytest.raises(UnknownSlotError):
            service.update(
                item.id,
                ContentItemUpdate(
                    title="Renamed",
                    keywords=["k1"],
                    publications=[
                        PlacementSpec(slot_id="A"),
                        PlacementSpec(slot_id="nope"),
                    ],
                ),
                "u1",
            )

        current = service.get(item.id)
        assert current.title == "Launch Day"
        assert _slots(service, item.id) == {"B"}
        assert service.describe(current)["keywords"] == []
        assert _actions(service, item.id) == ["create", "update"]

    def test_relation_sets_replace_wholesale(self, service, item):
        service.update(item.id, ContentItemUpdate(tags=["t1", "t2"]), "u1")
        service.update(item.id, ContentItemUpdate(tags=["t3"]), "u1")

        assert service.describe(service.get(item.id))["tags"] == ["t3"]

    def test_last_image_per_cell_wins(self, service, item):
        service.update(
            item.id,
            ContentItemUpdate(
                images=[
                    ImageSlot(image_id="old", rows_count=2, cols_count=2),
                    ImageSlot(image_id="new", rows_count=2, cols_count=2),
                    ImageSlot(image_id="wide", rows_count=1, cols_count=3),
                ]
            ),
            "u1",
        )

        images = service.describe(service.get(item.id))["images"]
        assert [(i["image_id"], i["rows_count"]) for i in images] == [
            ("wide", 1),
            ("new", 2),
        ]


class TestDelete:
    def test_unplaced_item_is_removed(self, service, item, db_session):
        item_id = item.id
        service.update(item_id, ContentItemUpdate(lock=True, keywords=["k1"]), "u1")

        assert service.delete(item_id, "u1") is True

        assert service.get(item_id, include_deleted=True) is None
        assert db_session.query(LockModel).count() == 0
        assert _actions(service, item_id) == ["create", "update", "delete"]
        delete_record = service.history(item_id, AuditAction.DELETE)[0]
        assert delete_record.user_id == "u1"
        assert delete_record.note == "hard delete"

    def test_placed_item_is_soft_deleted(self, service, item):
        service.update(
            item.id,
            ContentItemUpdate(publish=PublishRequest(section_id="S", is_featured=True)),
            "u1",
        )

        assert service.delete(item.id, "u2") is False

        assert service.get(item.id) is None
        trashed = service.get(item.id, include_deleted=True)
        assert trashed.deleted_at is not None
        assert _slots(service, item.id) == set()
        assert service.history(item.id, AuditAction.DELETE)[0].note == "soft delete"

    def test_soft_deleted_title_can_be_reused(self, service, item):
        service.update(
            item.id, ContentItemUpdate(publish=PublishRequest(section_id="S")), "u1"
        )
        service.delete(item.id, "u1")

        again = service.create(ContentItemCreate(title="Launch Day"), "u1")
        assert again.id != item.id

    def test_locked_item_cannot_be_deleted_by_other_user(self, service, item):
        service.update(item.id, ContentItemUpdate(lock=True), "u1")

        with pytest.raises(LockHeldError):
            service.delete(item.id, "u2")

        assert service.get(item.id) is not None

    def test_deleted_item_cannot_be_updated(self, service, item):
        item_id = item.id
        service.delete(item_id, "u1")
        with pytest.raises(ContentNotFoundError):
            service.update(item_id, ContentItemUpdate(title="Back"), "u1")


class TestReads:
    def test_list_is_newest_first(self, service):
        first = service.create(ContentItemCreate(title="First"), "u1")
        second = service.create(ContentItemCreate(title="Second"), "u1")

        assert [i.id for i in service.list()] == [second.id, first.id]
        assert [i.id for i in service.list(limit=1, offset=1)] == [first.id]

    def test_list_by_stored_state(self, service):
        service.create(ContentItemCreate(title="Draft"), "u1")
        mockup = service.create(
            ContentItemCreate(title="Mock", stored_state_id=StoredState.MOCKUP), "u1"
        )

        items = service.list(stored_state=StoredState.MOCKUP)
        assert [i.id for i in items] == [mockup.id]

    def test_list_scheduled(self, service):
        live = service.create(ContentItemCreate(title="Live"), "u1")
        waiting = service.create(ContentItemCreate(title="Waiting"), "u1")
        service.create(ContentItemCreate(title="Idle"), "u1")

        now = utc_now()
        service.update(
            live.id,
            ContentItemUpdate(
                publications=[
                    PlacementSpec(
                        slot_id="B", is_published=True, publish_at=now - timedelta(hours=1)
                    )
                ]
            ),
            "u1",
        )
        service.update(
            waiting.id,
            ContentItemUpdate(
                publications=[
                    PlacementSpec(
                        slot_id="B", is_published=True, publish_at=now + timedelta(days=1)
                    )
                ]
            ),
            "u1",
        )

        assert [i.id for i in service.list(scheduled=True)] == [waiting.id]

    def test_corrupt_stored_state_is_reported(self, service, db_session):
        now = utc_now()
        db_session.add(
            ContentItemModel(
                id="corrupt", stored_state_id=9, created_at=now, updated_at=now
            )
        )
        db_session.commit()

        with pytest.raises(DataIntegrityError):
            service.effective_state(service.get("corrupt"))

    def test_history_of_unknown_item_is_empty(self, service):
        assert service.history("never-existed") == []


def test_launch_day_flow(service):
    """An editor creates, locks, places, schedules and releases an item."""
    item = service.create(ContentItemCreate(title="Launch Day"), "u1")
    assert item.slug == "launch-day"
    assert service.effective_state(item).name == "Submitted"

    # u1 takes the lock; u2 is kept out
    service.update(item.id, ContentItemUpdate(lock=True), "u1")
    with pytest.raises(LockHeldError):
        service.update(item.id, ContentItemUpdate(title="Launch Night"), "u2")

    # Implicit placement into every matching block of section S
    request = PublishRequest(section_id="S", is_featured=True)
    service.update(item.id, ContentItemUpdate(publish=request), "u1")
    assert _slots(service, item.id) == {"A", "B"}
    assert service.effective_state(service.get(item.id)).name == "Submitted"

    # Repeating it changes nothing
    service.update(item.id, ContentItemUpdate(publish=request), "u1")
    assert len(service.placements.placements_for(EntityRef.content_item(item.id))) == 2

    # Activate the lead block only
    service.update(
        item.id,
        ContentItemUpdate(
            publications=[
                PlacementSpec(
                    slot_id="A",
                    is_published=True,
                    publish_at=utc_now() - timedelta(minutes=5),
                )
            ]
        ),
        "u1",
    )
    current = service.get(item.id)
    assert service.effective_state(current).name == "Published"
    assert current.stored_state_id == StoredState.SUBMITTED

    service.update(item.id, ContentItemUpdate(lock=False), "u1")

    data = service.describe(current)
    assert data["state"] == {"id": 4, "slug": "published", "name": "Published"}
    assert data["is_live"] is True
    assert data["lock"] is None
    assert data["created"]["user_id"] == "u1"
    assert data["edited"]["user_id"] == "u1"
    assert [p["slot_id"] for p in data["publications"]] == ["A"]
    assert data["publications"][0]["slot"]["name"] == "Lead"
    assert data["publications"][0]["slot"]["page_id"] == "home"
    assert _actions(service, item.id) == [
        "create",
        "update",
        "update",
        "update",
        "update",
        "update",
    ]
