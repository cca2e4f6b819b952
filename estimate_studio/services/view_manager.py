from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.orm import Session

from estimate_studio.models import (
    Estimate,
    Section,
    Item,
    View,
    ViewSectionSetting,
    ViewItemSetting,
)
from estimate_studio.services import estimate_store
from estimate_studio.services.errors import NotFound, Conflict
from estimate_studio.utils.helpers import new_id, line_total
from estimate_studio.utils.validators import require_name, price_amount, clean_str

log = logging.getLogger(__name__)


def get_owned_view(session: Session, owner_id: str, view_id: str, *, lock: bool = False) -> View:
    view = (
        session.query(View)
        .join(Estimate, Estimate.id == View.estimate_id)
        .filter(View.id == view_id, Estimate.owner_id == owner_id)
        .one_or_none()
    )
    if view is None:
        raise NotFound("View")
    if lock:
        estimate_store.get_owned_estimate(session, owner_id, view.estimate_id, lock=True)
    return view


def list_views(session: Session, owner_id: str, estimate_id: str) -> List[View]:
    estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id)
    return _views_of(session, estimate.id)


def _views_of(session: Session, estimate_id: str) -> List[View]:
    return (
        session.query(View)
        .filter(View.estimate_id == estimate_id)
        .order_by(View.sort_order.asc(), View.created_at.asc())
        .all()
    )


def _new_view(session: Session, estimate_id: str, name: str) -> View:
    view = View(
        estimate_id=estimate_id,
        name=name,
        link_token=new_id(),
        password=None,
        sort_order=estimate_store.next_sort_order(session, View.sort_order, View.estimate_id == estimate_id),
    )
    session.add(view)
    session.flush()
    return view


def _seed_default_settings(session: Session, view: View) -> None:
    """One visible section row per section, one zero-priced visible item row per item."""
    for section_id, in session.query(Section.id).filter(Section.estimate_id == view.estimate_id):
        session.add(ViewSectionSetting(view_id=view.id, section_id=section_id, visible=True))
    for item_id, in session.query(Item.id).filter(Item.estimate_id == view.estimate_id):
        session.add(ViewItemSetting(view_id=view.id, item_id=item_id, price=0, total=0, visible=True))


def create_default_views(session: Session, estimate: Estimate, names: Optional[Iterable[str]] = None) -> List[View]:
    """Views every fresh estimate starts with; an estimate is never without one."""
    names = list(names or current_app.config.get("DEFAULT_VIEW_NAMES") or ("Customer",))
    views = []
    for name in names:
        view = _new_view(session, estimate.id, require_name(name))
        _seed_default_settings(session, view)
        views.append(view)
    session.flush()
    return views


def create_view(session: Session, owner_id: str, estimate_id: str, name=None) -> View:
    name = clean_str(name) or current_app.config.get("NEW_VIEW_NAME", "New view")
    estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id, lock=True)
    view = _new_view(session, estimate.id, name)
    _seed_default_settings(session, view)
    session.flush()
    log.info("view created id=%s estimate=%s", view.id, estimate.id)
    return view


def duplicate_view(session: Session, owner_id: str, view_id: str) -> View:
    """Priced clone: every section/item setting copied verbatim; fresh token, no password."""
    source = get_owned_view(session, owner_id, view_id, lock=True)
    clone = _new_view(session, source.estimate_id, f"{source.name} (copy)"[:255])

    for s in session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id == source.id):
        session.add(ViewSectionSetting(view_id=clone.id, section_id=s.section_id, visible=s.visible))
    for s in session.query(ViewItemSetting).filter(ViewItemSetting.view_id == source.id):
        session.add(
            ViewItemSetting(
                view_id=clone.id, item_id=s.item_id, price=s.price, total=s.total, visible=s.visible
            )
        )
    session.flush()
    return clone


def update_view(session: Session, owner_id: str, view_id: str, *, name=None, password=None) -> View:
    new_name = require_name(name) if name is not None else None
    view = get_owned_view(session, owner_id, view_id, lock=True)
    if new_name is not None:
        view.name = new_name
    if password is not None:
        # empty (after trim) clears protection
        view.password = str(password).strip()[:255] or None
    session.flush()
    return view


def delete_view(session: Session, owner_id: str, view_id: str) -> None:
    # lock first so two concurrent deletes cannot both see "2 views left"
    view = get_owned_view(session, owner_id, view_id, lock=True)
    remaining = session.query(View).filter(View.estimate_id == view.estimate_id).count()
    if remaining <= 1:
        raise Conflict("An estimate must keep at least one view")

    session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id == view.id).delete(
        synchronize_session="fetch"
    )
    session.query(ViewItemSetting).filter(ViewItemSetting.view_id == view.id).delete(
        synchronize_session="fetch"
    )
    session.delete(view)
    session.flush()


# ──────────────────────────────────────────────────────────────────────────────
# Backfill hooks: keep the views x sections / views x items matrix complete
# ──────────────────────────────────────────────────────────────────────────────
def backfill_section_settings(session: Session, estimate_id: str, section_id: str) -> int:
    """Add a default visible row for `section_id` to every view lacking one. Returns rows created."""
    section = session.get(Section, section_id)
    if section is None or section.estimate_id != estimate_id:
        raise NotFound("Section")
    have = {
        vid for vid, in session.query(ViewSectionSetting.view_id).filter(ViewSectionSetting.section_id == section_id)
    }
    created = 0
    for view in _views_of(session, estimate_id):
        if view.id in have:
            continue
        session.add(ViewSectionSetting(view_id=view.id, section_id=section_id, visible=True))
        created += 1
    session.flush()
    return created


def backfill_item_settings(session: Session, estimate_id: str, item_id: str) -> int:
    """Add a zero-priced visible row for `item_id` to every view lacking one. Returns rows created."""
    item = session.get(Item, item_id)
    if item is None or item.estimate_id != estimate_id:
        raise NotFound("Item")
    have = {vid for vid, in session.query(ViewItemSetting.view_id).filter(ViewItemSetting.item_id == item_id)}
    created = 0
    for view in _views_of(session, estimate_id):
        if view.id in have:
            continue
        session.add(ViewItemSetting(view_id=view.id, item_id=item_id, price=0, total=0, visible=True))
        created += 1
    session.flush()
    return created


# ──────────────────────────────────────────────────────────────────────────────
# Per-view settings
# ──────────────────────────────────────────────────────────────────────────────
def set_section_visibility(
    session: Session, owner_id: str, view_id: str, section_id: str, visible: bool
) -> ViewSectionSetting:
    view = get_owned_view(session, owner_id, view_id, lock=True)
    section = session.get(Section, section_id)
    if section is None or section.estimate_id != view.estimate_id:
        raise NotFound("Section")

    setting = (
        session.query(ViewSectionSetting)
        .filter_by(view_id=view.id, section_id=section.id)
        .one_or_none()
    )
    if setting is None:
        setting = ViewSectionSetting(view_id=view.id, section_id=section.id)
        session.add(setting)
    setting.visible = bool(visible)
    session.flush()
    return setting


def get_item_setting(session: Session, view_id: str, item_id: str) -> ViewItemSetting:
    setting = session.query(ViewItemSetting).filter_by(view_id=view_id, item_id=item_id).one_or_none()
    if setting is None:
        raise NotFound("Item setting")
    return setting


def set_item_setting(
    session: Session,
    owner_id: str,
    view_id: str,
    item_id: str,
    *,
    price=None,
    visible: Optional[bool] = None,
) -> ViewItemSetting:
    """
    Merge price/visibility into the (view, item) row.

    total is recomputed as price x item.quantity on every write, with quantity
    read fresh from the item.
    """
    new_price = price_amount(price) if price is not None else None
    view = get_owned_view(session, owner_id, view_id, lock=True)
    item = session.get(Item, item_id)
    if item is None or item.estimate_id != view.estimate_id:
        raise NotFound("Item")

    setting = session.query(ViewItemSetting).filter_by(view_id=view.id, item_id=item.id).one_or_none()
    if setting is None:
        setting = ViewItemSetting(view_id=view.id, item_id=item.id, price=0, total=0, visible=True)
        session.add(setting)
    if new_price is not None:
        setting.price = new_price
    if visible is not None:
        setting.visible = bool(visible)
    setting.total = line_total(setting.price, item.quantity)
    session.flush()
    return setting
