from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from estimate_studio.models import (
    Estimate,
    Section,
    Item,
    View,
    ViewSectionSetting,
    ViewItemSetting,
    Version,
    VersionSection,
    VersionItem,
    VersionView,
    VersionViewSectionSetting,
    VersionViewItemSetting,
)
from estimate_studio.services.errors import NotFound
from estimate_studio.utils.helpers import utcnow, line_total
from estimate_studio.utils.validators import require_name, quantity_amount, clean_str

log = logging.getLogger(__name__)


def next_sort_order(session: Session, column, *criteria) -> int:
    """Append position in a sibling set: max + 1, or 1 when empty. Deletes never renumber."""
    current = session.query(func.max(column)).filter(*criteria).scalar()
    return (current or 0) + 1


def _touch(estimate: Estimate) -> None:
    estimate.updated_at = utcnow()


# ──────────────────────────────────────────────────────────────────────────────
# Ownership
# ──────────────────────────────────────────────────────────────────────────────
def get_owned_estimate(
    session: Session, owner_id: str, estimate_id: str, *, lock: bool = False
) -> Estimate:
    """
    Load an estimate the caller owns.

    Missing and foreign estimates both raise NotFound. With lock=True the row is
    taken FOR UPDATE: every mutation of one estimate's sections/items/views/
    settings serializes on it (no-op on SQLite, which serializes writers itself).
    """
    q = session.query(Estimate).filter(Estimate.id == estimate_id, Estimate.owner_id == owner_id)
    if lock:
        q = q.with_for_update()
    estimate = q.one_or_none()
    if estimate is None:
        raise NotFound("Estimate")
    return estimate


def get_owned_section(session: Session, owner_id: str, section_id: str, *, lock: bool = False) -> Section:
    section = (
        session.query(Section)
        .join(Estimate, Estimate.id == Section.estimate_id)
        .filter(Section.id == section_id, Estimate.owner_id == owner_id)
        .one_or_none()
    )
    if section is None:
        raise NotFound("Section")
    if lock:
        get_owned_estimate(session, owner_id, section.estimate_id, lock=True)
    return section


def get_owned_item(session: Session, owner_id: str, item_id: str, *, lock: bool = False) -> Item:
    item = (
        session.query(Item)
        .join(Estimate, Estimate.id == Item.estimate_id)
        .filter(Item.id == item_id, Estimate.owner_id == owner_id)
        .one_or_none()
    )
    if item is None:
        raise NotFound("Item")
    if lock:
        get_owned_estimate(session, owner_id, item.estimate_id, lock=True)
    return item


# ──────────────────────────────────────────────────────────────────────────────
# Estimates
# ──────────────────────────────────────────────────────────────────────────────
def create_estimate(session: Session, owner_id: str, title) -> Estimate:
    """Create the bare estimate row; callers add the default views in the same unit of work."""
    estimate = Estimate(owner_id=owner_id, title=require_name(title, "title"))
    session.add(estimate)
    session.flush()
    log.info("estimate created id=%s owner=%s", estimate.id, owner_id)
    return estimate


def list_estimates(session: Session, owner_id: str) -> List[Estimate]:
    return (
        session.query(Estimate)
        .filter(Estimate.owner_id == owner_id)
        .order_by(Estimate.created_at.desc())
        .all()
    )


def update_estimate(session: Session, owner_id: str, estimate_id: str, *, title=None) -> Estimate:
    estimate = get_owned_estimate(session, owner_id, estimate_id, lock=True)
    if title is not None:
        estimate.title = require_name(title, "title")
    _touch(estimate)
    session.flush()
    return estimate


def mark_synced(estimate: Estimate) -> None:
    estimate.last_synced_at = utcnow()
    _touch(estimate)


def clear_sections(session: Session, estimate_id: str) -> None:
    """Delete every section and item of an estimate together with their view settings."""
    item_ids = select(Item.id).where(Item.estimate_id == estimate_id)
    section_ids = select(Section.id).where(Section.estimate_id == estimate_id)
    session.query(ViewItemSetting).filter(ViewItemSetting.item_id.in_(item_ids)).delete(
        synchronize_session="fetch"
    )
    session.query(ViewSectionSetting).filter(ViewSectionSetting.section_id.in_(section_ids)).delete(
        synchronize_session="fetch"
    )
    session.query(Item).filter(Item.estimate_id == estimate_id).delete(synchronize_session="fetch")
    session.query(Section).filter(Section.estimate_id == estimate_id).delete(synchronize_session="fetch")


def clear_views(session: Session, estimate_id: str) -> None:
    view_ids = select(View.id).where(View.estimate_id == estimate_id)
    session.query(ViewItemSetting).filter(ViewItemSetting.view_id.in_(view_ids)).delete(
        synchronize_session="fetch"
    )
    session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id.in_(view_ids)).delete(
        synchronize_session="fetch"
    )
    session.query(View).filter(View.estimate_id == estimate_id).delete(synchronize_session="fetch")


def _clear_versions(session: Session, estimate_id: str) -> None:
    version_ids = select(Version.id).where(Version.estimate_id == estimate_id)
    # children before parents; FK order inside one version graph
    for model in (
        VersionViewItemSetting,
        VersionViewSectionSetting,
        VersionItem,
        VersionSection,
        VersionView,
    ):
        session.query(model).filter(model.version_id.in_(version_ids)).delete(synchronize_session="fetch")
    session.query(Version).filter(Version.estimate_id == estimate_id).delete(synchronize_session="fetch")


def delete_estimate(session: Session, owner_id: str, estimate_id: str) -> None:
    estimate = get_owned_estimate(session, owner_id, estimate_id, lock=True)
    clear_sections(session, estimate.id)
    clear_views(session, estimate.id)
    _clear_versions(session, estimate.id)
    session.delete(estimate)
    session.flush()
    log.info("estimate deleted id=%s", estimate_id)


def list_sections(session: Session, estimate_id: str) -> List[Section]:
    return (
        session.query(Section)
        .filter(Section.estimate_id == estimate_id)
        .order_by(Section.sort_order.asc(), Section.created_at.asc())
        .all()
    )


def list_items(session: Session, estimate_id: str) -> List[Item]:
    return (
        session.query(Item)
        .filter(Item.estimate_id == estimate_id)
        .order_by(Item.sort_order.asc(), Item.created_at.asc())
        .all()
    )


def get_estimate_tree(session: Session, owner_id: str, estimate_id: str) -> dict:
    """
    Full nested tree for editors and the document renderer:
      views[], sections[] -> items[], every section/item carrying view_settings keyed by view id.
    Pairs without a settings row are simply absent (readers default them).
    """
    estimate = get_owned_estimate(session, owner_id, estimate_id)
    views = (
        session.query(View)
        .filter(View.estimate_id == estimate.id)
        .order_by(View.sort_order.asc(), View.created_at.asc())
        .all()
    )
    view_ids = [v.id for v in views]

    section_settings = {}
    item_settings = {}
    if view_ids:
        for s in session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id.in_(view_ids)):
            section_settings.setdefault(s.section_id, {})[s.view_id] = {"visible": bool(s.visible)}
        for s in session.query(ViewItemSetting).filter(ViewItemSetting.view_id.in_(view_ids)):
            item_settings.setdefault(s.item_id, {})[s.view_id] = s.to_dict()

    items_by_section = {}
    for item in list_items(session, estimate.id):
        row = item.to_dict()
        row["view_settings"] = item_settings.get(item.id, {})
        items_by_section.setdefault(item.section_id, []).append(row)

    sections = []
    for section in list_sections(session, estimate.id):
        row = section.to_dict()
        row["view_settings"] = section_settings.get(section.id, {})
        row["items"] = items_by_section.get(section.id, [])
        sections.append(row)

    return {
        **estimate.to_dict(),
        "views": [v.to_dict() for v in views],
        "sections": sections,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Sections
# ──────────────────────────────────────────────────────────────────────────────
def create_section(session: Session, owner_id: str, estimate_id: str, name) -> Section:
    """Create a section; the caller must run view_manager.backfill_section_settings in the same unit of work."""
    name = require_name(name)
    estimate = get_owned_estimate(session, owner_id, estimate_id, lock=True)
    section = Section(
        estimate_id=estimate.id,
        name=name,
        sort_order=next_sort_order(session, Section.sort_order, Section.estimate_id == estimate.id),
    )
    session.add(section)
    _touch(estimate)
    session.flush()
    return section


def rename_section(session: Session, owner_id: str, section_id: str, name) -> Section:
    name = require_name(name)
    section = get_owned_section(session, owner_id, section_id, lock=True)
    section.name = name
    session.flush()
    return section


def delete_section(session: Session, owner_id: str, section_id: str) -> None:
    section = get_owned_section(session, owner_id, section_id, lock=True)
    item_ids = select(Item.id).where(Item.section_id == section.id)
    session.query(ViewItemSetting).filter(ViewItemSetting.item_id.in_(item_ids)).delete(
        synchronize_session="fetch"
    )
    session.query(Item).filter(Item.section_id == section.id).delete(synchronize_session="fetch")
    session.query(ViewSectionSetting).filter(ViewSectionSetting.section_id == section.id).delete(
        synchronize_session="fetch"
    )
    session.delete(section)
    session.flush()


# ──────────────────────────────────────────────────────────────────────────────
# Items
# ──────────────────────────────────────────────────────────────────────────────
def create_item(
    session: Session,
    owner_id: str,
    section_id: str,
    name,
    *,
    unit: Optional[str] = None,
    quantity=0,
    number: Optional[str] = None,
) -> Item:
    """Create an item; the caller must run view_manager.backfill_item_settings in the same unit of work."""
    name = require_name(name, max_len=10_000)
    qty = quantity_amount(quantity if quantity not in (None, "") else 0)
    section = get_owned_section(session, owner_id, section_id, lock=True)
    item = Item(
        # always the section's estimate: an item can never straddle estimates
        estimate_id=section.estimate_id,
        section_id=section.id,
        number=clean_str(number, max_len=32) or "",
        name=name,
        unit=clean_str(unit, max_len=32) or "",
        quantity=qty,
        sort_order=next_sort_order(session, Item.sort_order, Item.section_id == section.id),
    )
    session.add(item)
    session.flush()
    return item


def update_item(
    session: Session,
    owner_id: str,
    item_id: str,
    *,
    name=None,
    unit=None,
    quantity=None,
    number=None,
) -> Item:
    item = get_owned_item(session, owner_id, item_id)
    # validate everything before the first write
    new_name = require_name(name, max_len=10_000) if name is not None else None
    new_qty = quantity_amount(quantity) if quantity is not None else None

    get_owned_estimate(session, owner_id, item.estimate_id, lock=True)
    if new_name is not None:
        item.name = new_name
    if unit is not None:
        item.unit = clean_str(unit, max_len=32) or ""
    if number is not None:
        item.number = clean_str(number, max_len=32) or ""
    if new_qty is not None and new_qty != item.quantity:
        item.quantity = new_qty
        recompute_item_totals(session, item)
    session.flush()
    return item


def recompute_item_totals(session: Session, item: Item) -> None:
    """Keep every view's persisted total equal to price x the new shared quantity."""
    for setting in session.query(ViewItemSetting).filter(ViewItemSetting.item_id == item.id):
        setting.total = line_total(setting.price, item.quantity)


def delete_item(session: Session, owner_id: str, item_id: str) -> None:
    item = get_owned_item(session, owner_id, item_id, lock=True)
    session.query(ViewItemSetting).filter(ViewItemSetting.item_id == item.id).delete(
        synchronize_session="fetch"
    )
    session.delete(item)
    session.flush()
