"""create users, live estimate tree, views and version snapshots

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(36)
TS = sa.DateTime(timezone=True)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", ID, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("uq_users_lower_email", "users", [sa.text("lower(email)")], unique=True)

    # ── live tree ────────────────────────────────────────────────────────────
    op.create_table(
        "estimates",
        sa.Column("id", ID, primary_key=True),
        sa.Column("owner_id", ID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("last_synced_at", TS, nullable=True),
    )
    op.create_index("ix_estimates_owner_id", "estimates", ["owner_id"])
    op.create_index("ix_estimates_owner_created", "estimates", ["owner_id", "created_at"])

    op.create_table(
        "estimate_sections",
        sa.Column("id", ID, primary_key=True),
        sa.Column("estimate_id", ID, sa.ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_sections_estimate_sort", "estimate_sections", ["estimate_id", "sort_order"])

    op.create_table(
        "estimate_items",
        sa.Column("id", ID, primary_key=True),
        sa.Column("estimate_id", ID, sa.ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("section_id", ID, sa.ForeignKey("estimate_sections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("number", sa.String(32), nullable=False, server_default=sa.text("''")),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False, server_default=sa.text("''")),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_items_estimate", "estimate_items", ["estimate_id"])
    op.create_index("ix_items_section_sort", "estimate_items", ["section_id", "sort_order"])

    op.create_table(
        "estimate_views",
        sa.Column("id", ID, primary_key=True),
        sa.Column("estimate_id", ID, sa.ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("link_token", sa.String(64), nullable=False, unique=True),
        sa.Column("password", sa.String(255), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_estimate_views_estimate_id", "estimate_views", ["estimate_id"])

    op.create_table(
        "view_section_settings",
        sa.Column("id", ID, primary_key=True),
        sa.Column("view_id", ID, sa.ForeignKey("estimate_views.id", ondelete="CASCADE"), nullable=False),
        sa.Column("section_id", ID, sa.ForeignKey("estimate_sections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("view_id", "section_id", name="uq_view_section_settings_pair"),
    )
    op.create_index("ix_vss_section", "view_section_settings", ["section_id"])

    op.create_table(
        "view_item_settings",
        sa.Column("id", ID, primary_key=True),
        sa.Column("view_id", ID, sa.ForeignKey("estimate_views.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", ID, sa.ForeignKey("estimate_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("view_id", "item_id", name="uq_view_item_settings_pair"),
    )
    op.create_index("ix_vis_item", "view_item_settings", ["item_id"])

    # ── versions ─────────────────────────────────────────────────────────────
    op.create_table(
        "estimate_versions",
        sa.Column("id", ID, primary_key=True),
        sa.Column("estimate_id", ID, sa.ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("estimate_id", "version_number", name="uq_estimate_versions_number"),
    )

    def _version_fk():
        return sa.Column(
            "version_id", ID, sa.ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False
        )

    op.create_table(
        "estimate_version_sections",
        sa.Column("id", ID, primary_key=True),
        _version_fk(),
        sa.Column("original_section_id", ID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_table(
        "estimate_version_items",
        sa.Column("id", ID, primary_key=True),
        _version_fk(),
        sa.Column(
            "version_section_id", ID,
            sa.ForeignKey("estimate_version_sections.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("original_item_id", ID, nullable=False),
        sa.Column("number", sa.String(32), nullable=False, server_default=sa.text("''")),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False, server_default=sa.text("''")),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index(
        "ix_version_items_section_sort", "estimate_version_items", ["version_section_id", "sort_order"]
    )
    op.create_table(
        "estimate_version_views",
        sa.Column("id", ID, primary_key=True),
        _version_fk(),
        sa.Column("original_view_id", ID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_table(
        "version_view_section_settings",
        sa.Column("id", ID, primary_key=True),
        _version_fk(),
        sa.Column(
            "version_view_id", ID,
            sa.ForeignKey("estimate_version_views.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "version_section_id", ID,
            sa.ForeignKey("estimate_version_sections.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "version_view_item_settings",
        sa.Column("id", ID, primary_key=True),
        _version_fk(),
        sa.Column(
            "version_view_id", ID,
            sa.ForeignKey("estimate_version_views.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "version_item_id", ID,
            sa.ForeignKey("estimate_version_items.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("price", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    for table in (
        "estimate_version_sections",
        "estimate_version_items",
        "estimate_version_views",
        "version_view_section_settings",
        "version_view_item_settings",
    ):
        op.create_index(f"ix_{table}_version_id", table, ["version_id"])


def downgrade():
    for table in (
        "version_view_item_settings",
        "version_view_section_settings",
        "estimate_version_views",
        "estimate_version_items",
        "estimate_version_sections",
        "estimate_versions",
        "view_item_settings",
        "view_section_settings",
        "estimate_views",
        "estimate_items",
        "estimate_sections",
        "estimates",
        "users",
    ):
        op.drop_table(table)
