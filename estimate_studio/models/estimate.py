from __future__ import annotations

from sqlalchemy import Index, ForeignKey, text

from estimate_studio.extensions import db
from estimate_studio.utils.helpers import new_id, utcnow, isoformat, safe_float

"""
Live estimate tree: estimates -> estimate_sections -> estimate_items.

Deletes are explicit in services/estimate_store.py (children and their view
settings first), so no ORM cascades are configured here.
"""


class Estimate(db.Model):
    __tablename__ = "estimates"
    __allow_unmapped__ = True

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Relations
    owner_id = db.Column(db.String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basics
    title = db.Column(db.String(255), nullable=False)

    # Timestamps
    created_at     = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at     = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_estimates_owner_created", owner_id, created_at),
    )

    def __repr__(self) -> str:
        return f"<Estimate id={self.id} title={self.title!r}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            title=self.title,
            created_at=isoformat(self.created_at),
            updated_at=isoformat(self.updated_at),
            last_synced_at=isoformat(self.last_synced_at),
        )


class Section(db.Model):
    __tablename__ = "estimate_sections"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    estimate_id = db.Column(
        db.String(36), ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(255), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_sections_estimate_sort", estimate_id, sort_order),
    )

    def __repr__(self) -> str:
        return f"<Section id={self.id} name={self.name!r} sort={self.sort_order}>"

    def to_dict(self) -> dict:
        return dict(id=self.id, name=self.name, sort_order=self.sort_order)


class Item(db.Model):
    __tablename__ = "estimate_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    # estimate_id is denormalized from the section so whole-estimate reads/deletes stay single-table
    estimate_id = db.Column(
        db.String(36), ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False
    )
    section_id = db.Column(
        db.String(36), ForeignKey("estimate_sections.id", ondelete="CASCADE"), nullable=False
    )

    number   = db.Column(db.String(32), nullable=False, default="", server_default=text("''"))
    name     = db.Column(db.Text, nullable=False)
    unit     = db.Column(db.String(32), nullable=False, default="", server_default=text("''"))
    # Shared by every view; price/total live on view_item_settings
    quantity = db.Column(db.Numeric(14, 4), nullable=False, default=0, server_default=text("0"))

    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_items_estimate", estimate_id),
        Index("ix_items_section_sort", section_id, sort_order),
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            section_id=self.section_id,
            number=self.number or "",
            name=self.name,
            unit=self.unit or "",
            quantity=safe_float(self.quantity),
            sort_order=self.sort_order,
        )
