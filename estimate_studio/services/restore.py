from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy.orm import Session

from estimate_studio.models import (
    Section,
    Item,
    View,
    ViewSectionSetting,
    ViewItemSetting,
    VersionSection,
    VersionItem,
    VersionView,
    VersionViewSectionSetting,
    VersionViewItemSetting,
)
from estimate_studio.services import estimate_store
from estimate_studio.services.snapshots import get_owned_version
from estimate_studio.services.unit_of_work import atomic
from estimate_studio.utils.helpers import new_id, utcnow

log = logging.getLogger(__name__)


def _rebuild_from(session: Session, estimate_id: str, version_id: str) -> Dict[str, int]:
    """Mint a brand-new live graph from a frozen one. Every id and link token is fresh."""
    view_map: Dict[str, str] = {}
    section_map: Dict[str, str] = {}
    item_map: Dict[str, str] = {}

    for v in (
        session.query(VersionView)
        .filter(VersionView.version_id == version_id)
        .order_by(VersionView.sort_order.asc())
    ):
        view_map[v.id] = new_id()
        # old public links die with the old views; protection has to be set again
        session.add(
            View(
                id=view_map[v.id],
                estimate_id=estimate_id,
                name=v.name,
                link_token=new_id(),
                password=None,
                sort_order=v.sort_order,
            )
        )

    for s in (
        session.query(VersionSection)
        .filter(VersionSection.version_id == version_id)
        .order_by(VersionSection.sort_order.asc())
    ):
        section_map[s.id] = new_id()
        session.add(
            Section(id=section_map[s.id], estimate_id=estimate_id, name=s.name, sort_order=s.sort_order)
        )
    session.flush()

    for i in (
        session.query(VersionItem)
        .filter(VersionItem.version_id == version_id)
        .order_by(VersionItem.sort_order.asc())
    ):
        item_map[i.id] = new_id()
        session.add(
            Item(
                id=item_map[i.id],
                estimate_id=estimate_id,
                section_id=section_map[i.version_section_id],
                number=i.number or "",
                name=i.name,
                unit=i.unit or "",
                quantity=i.quantity,
                sort_order=i.sort_order,
            )
        )
    session.flush()

    for s in session.query(VersionViewSectionSetting).filter(VersionViewSectionSetting.version_id == version_id):
        session.add(
            ViewSectionSetting(
                view_id=view_map[s.version_view_id],
                section_id=section_map[s.version_section_id],
                visible=bool(s.visible),
            )
        )
    for s in session.query(VersionViewItemSetting).filter(VersionViewItemSetting.version_id == version_id):
        session.add(
            ViewItemSetting(
                view_id=view_map[s.version_view_id],
                item_id=item_map[s.version_item_id],
                price=s.price,
                total=s.total,
                visible=bool(s.visible),
            )
        )
    session.flush()

    return {"views": len(view_map), "sections": len(section_map), "items": len(item_map)}


def restore_version(session: Session, owner_id: str, estimate_id: str, version_id: str) -> dict:
    """
    Replace the live estimate with a copy of one of its versions and commit.

    Everything happens in one transaction under the estimate lock: the live
    graph is deleted, then rebuilt from the version. Any failure rolls back to
    the exact pre-restore state. The version itself is left untouched, so the
    same version can be restored any number of times.
    """
    with atomic(session):
        version = get_owned_version(session, owner_id, estimate_id, version_id, lock=True)
        estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id)

        estimate_store.clear_sections(session, estimate.id)
        estimate_store.clear_views(session, estimate.id)
        session.flush()

        counts = _rebuild_from(session, estimate.id, version.id)
        estimate.updated_at = utcnow()
        restored_from = {"version_number": version.version_number, "name": version.name}

    log.info(
        "version restored estimate=%s version=%s number=%s counts=%s",
        estimate_id, version_id, restored_from["version_number"], counts,
    )
    return {"restored_from": restored_from}
