"""Create editorial tables

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19

Slot catalog (sections, categories, item types, pages, page blocks), content
items, locks, publications, relation sets and the audit ledger.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0a1b2c3d4e5f"
down_revision = None
branch_labels = None
depends_on = None


def _entity_columns():
    return [
        sa.Column("entity_kind", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
    ]


def upgrade() -> None:
    # Slot catalog
    op.create_table(
        "sections",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column(
            "section_id",
            sa.String(length=128),
            sa.ForeignKey("sections.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_categories_section_id", "categories", ["section_id"])
    op.create_table(
        "item_types",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_table(
        "pages",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column(
            "section_id",
            sa.String(length=128),
            sa.ForeignKey("sections.id"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "page_blocks",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column(
            "page_id", sa.String(length=128), sa.ForeignKey("pages.id"), nullable=False
        ),
        sa.Column(
            "section_id",
            sa.String(length=128),
            sa.ForeignKey("sections.id"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            sa.String(length=128),
            sa.ForeignKey("categories.id"),
            nullable=True,
        ),
        sa.Column(
            "item_type_id",
            sa.String(length=128),
            sa.ForeignKey("item_types.id"),
            nullable=True,
        ),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
    )
    op.create_index("ix_page_blocks_page_id", "page_blocks", ["page_id"])
    op.create_index("ix_page_blocks_section_id", "page_blocks", ["section_id"])
    op.create_index(
        "ix_page_blocks_selection",
        "page_blocks",
        ["section_id", "category_id", "item_type_id"],
    )

    # Content items
    op.create_table(
        "content_items",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("stored_state_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("external_source_id", sa.String(length=128), nullable=True),
        sa.Column("external_link", sa.String(length=2000), nullable=True),
        sa.Column("item_type_id", sa.String(length=128), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("short", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(length=255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("meta_keywords", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_content_items_stored_state_id", "content_items", ["stored_state_id"]
    )
    op.create_index("ix_content_items_title", "content_items", ["title"])
    op.create_index("ix_content_items_slug", "content_items", ["slug"])
    op.create_index("ix_content_items_deleted_at", "content_items", ["deleted_at"])
    op.create_index("ix_content_items_created_at", "content_items", ["created_at"])

    # Locks
    op.create_table(
        "locks",
        sa.Column("id", sa.String(length=128), primary_key=True),
        *_entity_columns(),
        sa.Column("holder_user_id", sa.String(length=128), nullable=False),
        sa.Column(
            "state",
            sa.Enum("active", "inactive", name="lock_state", create_constraint=True),
            nullable=False,
            server_default="active",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("entity_kind", "entity_id", name="uq_locks_entity"),
    )
    op.create_index("ix_locks_holder_user_id", "locks", ["holder_user_id"])

    # Publications
    op.create_table(
        "publications",
        sa.Column("id", sa.String(length=128), primary_key=True),
        *_entity_columns(),
        sa.Column(
            "slot_id",
            sa.String(length=128),
            sa.ForeignKey("page_blocks.id"),
            nullable=False,
        ),
        sa.Column(
            "is_published", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("publish_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "entity_kind", "entity_id", "slot_id", name="uq_publications_entity_slot"
        ),
    )
    op.create_index(
        "ix_publications_entity", "publications", ["entity_kind", "entity_id"]
    )
    op.create_index(
        "ix_publications_schedule", "publications", ["is_published", "publish_at"]
    )

    # Relation sets
    op.create_table(
        "item_keywords",
        sa.Column("id", sa.String(length=128), primary_key=True),
        *_entity_columns(),
        sa.Column("keyword_id", sa.String(length=128), nullable=False),
        sa.UniqueConstraint(
            "entity_kind", "entity_id", "keyword_id", name="uq_item_keywords"
        ),
    )
    op.create_table(
        "item_tags",
        sa.Column("id", sa.String(length=128), primary_key=True),
        *_entity_columns(),
        sa.Column("tag_id", sa.String(length=128), nullable=False),
        sa.UniqueConstraint("entity_kind", "entity_id", "tag_id", name="uq_item_tags"),
    )
    op.create_table(
        "item_images",
        sa.Column("id", sa.String(length=128), primary_key=True),
        *_entity_columns(),
        sa.Column("image_id", sa.String(length=128), nullable=False),
        sa.Column("rows_count", sa.Integer(), nullable=False),
        sa.Column("cols_count", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "entity_kind",
            "entity_id",
            "rows_count",
            "cols_count",
            name="uq_item_images_cell",
        ),
    )

    # Audit ledger
    op.create_table(
        "audit_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        *_entity_columns(),
        sa.Column(
            "action",
            sa.Enum(
                "create", "update", "delete",
                name="audit_action",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_audit_records_action", "audit_records", ["action"])
    op.create_index("ix_audit_records_user_id", "audit_records", ["user_id"])
    op.create_index("ix_audit_records_created_at", "audit_records", ["created_at"])
    op.create_index(
        "ix_audit_records_entity", "audit_records", ["entity_kind", "entity_id"]
    )
    op.create_index(
        "ix_audit_records_entity_ts",
        "audit_records",
        ["entity_kind", "entity_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("audit_records")
    op.drop_table("item_images")
    op.drop_table("item_tags")
    op.drop_table("item_keywords")
    op.drop_table("publications")
    op.drop_table("locks")
    op.drop_table("content_items")
    op.drop_table("page_blocks")
    op.drop_table("pages")
    op.drop_table("item_types")
    op.drop_table("categories")
    op.drop_table("sections")

    # Drop PostgreSQL enum types (no-op for SQLite)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS audit_action")
        op.execute("DROP TYPE IF EXISTS lock_state")
