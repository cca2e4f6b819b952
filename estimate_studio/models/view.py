from __future__ import annotations

from flask import current_app
from sqlalchemy import Index, ForeignKey, UniqueConstraint, text

from estimate_studio.extensions import db
from estimate_studio.utils.helpers import new_id, utcnow, round_currency


class View(db.Model):
    """A named lens over an estimate: own prices, own visibility, own public link."""
    __tablename__ = "estimate_views"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    estimate_id = db.Column(
        db.String(36), ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    link_token = db.Column(db.String(64), nullable=False, unique=True, default=new_id)
    # Plain "code phrase" shown to the owner in the editor; compared trimmed + case-sensitive
    password = db.Column(db.String(255), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, server_default=text("0"), default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<View id={self.id} name={self.name!r} protected={bool(self.password)}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            name=self.name,
            link_token=self.link_token,
            public_url=f"{current_app.config['APP_BASE_URL'].rstrip('/')}/v/{self.link_token}",
            password=self.password or "",
            sort_order=self.sort_order,
        )


class ViewSectionSetting(db.Model):
    __tablename__ = "view_section_settings"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    view_id = db.Column(
        db.String(36), ForeignKey("estimate_views.id", ondelete="CASCADE"), nullable=False
    )
    section_id = db.Column(
        db.String(36), ForeignKey("estimate_sections.id", ondelete="CASCADE"), nullable=False
    )
    visible = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))

    __table_args__ = (
        UniqueConstraint("view_id", "section_id", name="uq_view_section_settings_pair"),
        Index("ix_vss_section", section_id),
    )

    def __repr__(self) -> str:
        return f"<ViewSectionSetting view={self.view_id} section={self.section_id} visible={self.visible}>"


class ViewItemSetting(db.Model):
    __tablename__ = "view_item_settings"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    view_id = db.Column(
        db.String(36), ForeignKey("estimate_views.id", ondelete="CASCADE"), nullable=False
    )
    item_id = db.Column(
        db.String(36), ForeignKey("estimate_items.id", ondelete="CASCADE"), nullable=False
    )
    price = db.Column(db.Numeric(14, 2), nullable=False, default=0, server_default=text("0"))
    # price x item.quantity, persisted for read efficiency
    total = db.Column(db.Numeric(14, 2), nullable=False, default=0, server_default=text("0"))
    visible = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))

    __table_args__ = (
        UniqueConstraint("view_id", "item_id", name="uq_view_item_settings_pair"),
        Index("ix_vis_item", item_id),
    )

    def __repr__(self) -> str:
        return (
            f"<ViewItemSetting view={self.view_id} item={self.item_id} "
            f"price={self.price} total={self.total} visible={self.visible}>"
        )

    def to_dict(self) -> dict:
        return dict(
            price=round_currency(self.price),
            total=round_currency(self.total),
            visible=bool(self.visible),
        )
