"""
Tests for the AuditRecord model and the AuditLedger service.

Verifies:
- AuditRecordModel structure and to_dict()
- append() flushes into the caller's transaction
- history queries by owner and action, oldest first
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from editorial_desk.content.enums import AuditAction
from editorial_desk.content.primitives import EntityRef
from editorial_desk.db.audit_models import AuditRecordModel
from editorial_desk.db.audit_service import AuditLedger
from editorial_desk.errors import StorageUnavailableError

REF = EntityRef.content_item("item-1")


class TestAuditRecordModel:
    def test_model_has_required_columns(self):
        columns = {c.name for c in AuditRecordModel.__table__.columns}
        assert {
            "id", "entity_kind", "entity_id", "action", "user_id", "note", "created_at"
        }.issubset(columns)

    def test_to_dict_output(self):
        record = AuditRecordModel(
            id="rec-1",
            entity_kind="ContentItem",
            entity_id="item-1",
            action="create",
            user_id="u1",
            note=None,
            created_at=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
        )

        result = record.to_dict()

        assert result["id"] == "rec-1"
        assert result["entity_kind"] == "ContentItem"
        assert result["action"] == "create"
        assert result["user_id"] == "u1"
        assert result["created_at"] == "2026-10-19T12:00:00+00:00"


class TestAppend:
    def test_append_basic(self, db_session):
        ledger = AuditLedger(db_session)

        record = ledger.append(REF, AuditAction.CREATE, "u1", note="first")

        assert record.id is not None
        assert record.action == "create"
        assert record.entity_kind == "ContentItem"
        assert record.entity_id == "item-1"
        assert record.note == "first"

    def test_append_joins_caller_transaction(self, db_session):
        ledger = AuditLedger(db_session)
        ledger.append(REF, AuditAction.UPDATE, "u1")

        db_session.rollback()

        assert ledger.history_for(REF) == []

    def test_missing_table_surfaces_as_storage_error(self, db_session):
        db_session.execute(text("DROP TABLE audit_records"))

        with pytest.raises(StorageUnavailableError):
            AuditLedger(db_session).append(REF, AuditAction.CREATE, "u1")


class TestQueries:
    @pytest.fixture
    def ledger(self, db_session):
        ledger = AuditLedger(db_session)
        ledger.append(REF, AuditAction.CREATE, "u1")
        ledger.append(REF, AuditAction.UPDATE, "u2")
        ledger.append(REF, AuditAction.UPDATE, "u3")
        ledger.append(EntityRef.content_item("item-2"), AuditAction.CREATE, "u9")
        db_session.commit()
        return ledger

    def test_history_is_oldest_first(self, ledger):
        history = ledger.history_for(REF)
        assert [r.user_id for r in history] == ["u1", "u2", "u3"]

    def test_history_filtered_by_action(self, ledger):
        updates = ledger.history_for(REF, AuditAction.UPDATE)
        assert [r.user_id for r in updates] == ["u2", "u3"]

    def test_first_and_latest(self, ledger):
        assert ledger.first_for(REF, AuditAction.CREATE).user_id == "u1"
        assert ledger.latest_for(REF, AuditAction.UPDATE).user_id == "u3"
        assert ledger.latest_for(REF, AuditAction.DELETE) is None
