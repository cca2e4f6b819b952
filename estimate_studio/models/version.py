from __future__ import annotations

from sqlalchemy import Index, ForeignKey, UniqueConstraint, text

from estimate_studio.extensions import db
from estimate_studio.utils.helpers import new_id, utcnow, isoformat

"""
Version models: frozen, self-contained copies of an estimate graph.

• estimate_versions
  - uq_estimate_versions_number: UNIQUE (estimate_id, version_number)
    Backstop for number allocation; the estimate row lock is the primary guard.

• estimate_version_* rows
  - original_*_id columns are traceability only (no FK): the live row may be gone.
  - every other FK points at a row of the same version, never at live tables.
  - ON DELETE CASCADE from estimate_versions so dropping an estimate drops its history.
"""


class Version(db.Model):
    __tablename__ = "estimate_versions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    estimate_id = db.Column(
        db.String(36), ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False
    )
    version_number = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("estimate_id", "version_number", name="uq_estimate_versions_number"),
    )

    def __repr__(self) -> str:
        return f"<Version id={self.id} estimate={self.estimate_id} number={self.version_number}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            version_number=self.version_number,
            name=self.name,
            created_at=isoformat(self.created_at),
        )


class VersionSection(db.Model):
    __tablename__ = "estimate_version_sections"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    version_id = db.Column(
        db.String(36), ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_section_id = db.Column(db.String(36), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)


class VersionItem(db.Model):
    __tablename__ = "estimate_version_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    version_id = db.Column(
        db.String(36), ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_section_id = db.Column(
        db.String(36), ForeignKey("estimate_version_sections.id", ondelete="CASCADE"), nullable=False
    )
    original_item_id = db.Column(db.String(36), nullable=False)
    number = db.Column(db.String(32), nullable=False, default="", server_default=text("''"))
    name = db.Column(db.Text, nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="", server_default=text("''"))
    quantity = db.Column(db.Numeric(14, 4), nullable=False, default=0, server_default=text("0"))
    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)

    __table_args__ = (
        Index("ix_version_items_section_sort", version_section_id, sort_order),
    )


class VersionView(db.Model):
    """Name and order only: link tokens and passwords are never frozen."""
    __tablename__ = "estimate_version_views"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    version_id = db.Column(
        db.String(36), ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_view_id = db.Column(db.String(36), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)


class VersionViewSectionSetting(db.Model):
    __tablename__ = "version_view_section_settings"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    version_id = db.Column(
        db.String(36), ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_view_id = db.Column(
        db.String(36), ForeignKey("estimate_version_views.id", ondelete="CASCADE"), nullable=False
    )
    version_section_id = db.Column(
        db.String(36), ForeignKey("estimate_version_sections.id", ondelete="CASCADE"), nullable=False
    )
    visible = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))


class VersionViewItemSetting(db.Model):
    __tablename__ = "version_view_item_settings"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    version_id = db.Column(
        db.String(36), ForeignKey("estimate_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_view_id = db.Column(
        db.String(36), ForeignKey("estimate_version_views.id", ondelete="CASCADE"), nullable=False
    )
    version_item_id = db.Column(
        db.String(36), ForeignKey("estimate_version_items.id", ondelete="CASCADE"), nullable=False
    )
    price = db.Column(db.Numeric(14, 2), nullable=False, default=0, server_default=text("0"))
    total = db.Column(db.Numeric(14, 2), nullable=False, default=0, server_default=text("0"))
    visible = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))
