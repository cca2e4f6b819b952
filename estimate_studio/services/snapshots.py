from __future__ import annotations

import logging
from typing import Dict, List

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from estimate_studio.models import (
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
from estimate_studio.services import estimate_store
from estimate_studio.services.errors import NotFound, Conflict
from estimate_studio.services.unit_of_work import atomic
from estimate_studio.utils.helpers import new_id, round_currency, safe_float
from estimate_studio.utils.validators import clean_str

log = logging.getLogger(__name__)


def _next_version_number(session: Session, estimate_id: str) -> int:
    current = (
        session.query(func.max(Version.version_number))
        .filter(Version.estimate_id == estimate_id)
        .scalar()
    )
    return (current or 0) + 1


def _copy_graph(session: Session, estimate_id: str, version: Version) -> Dict[str, int]:
    """
    Freeze the live graph of one estimate under `version`.

    First pass mints a version-scoped id for every section, item and view and
    records live id -> version id. Second pass rewrites every settings row
    through those maps, so no frozen row ever points at a live id.
    """
    section_map: Dict[str, str] = {}
    item_map: Dict[str, str] = {}
    view_map: Dict[str, str] = {}

    for section in estimate_store.list_sections(session, estimate_id):
        section_map[section.id] = new_id()
        session.add(
            VersionSection(
                id=section_map[section.id],
                version_id=version.id,
                original_section_id=section.id,
                name=section.name,
                sort_order=section.sort_order,
            )
        )
    session.flush()

    for item in estimate_store.list_items(session, estimate_id):
        item_map[item.id] = new_id()
        session.add(
            VersionItem(
                id=item_map[item.id],
                version_id=version.id,
                version_section_id=section_map[item.section_id],
                original_item_id=item.id,
                number=item.number or "",
                name=item.name,
                unit=item.unit or "",
                quantity=item.quantity,
                sort_order=item.sort_order,
            )
        )

    views = session.query(View).filter(View.estimate_id == estimate_id).all()
    for view in views:
        view_map[view.id] = new_id()
        # link_token and password stay behind; a restore mints fresh ones
        session.add(
            VersionView(
                id=view_map[view.id],
                version_id=version.id,
                original_view_id=view.id,
                name=view.name,
                sort_order=view.sort_order,
            )
        )
    session.flush()

    view_ids = list(view_map)
    section_rows = item_rows = 0
    if view_ids:
        for s in session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id.in_(view_ids)):
            if s.section_id not in section_map:
                continue
            session.add(
                VersionViewSectionSetting(
                    version_id=version.id,
                    version_view_id=view_map[s.view_id],
                    version_section_id=section_map[s.section_id],
                    visible=bool(s.visible),
                )
            )
            section_rows += 1
        for s in session.query(ViewItemSetting).filter(ViewItemSetting.view_id.in_(view_ids)):
            if s.item_id not in item_map:
                continue
            session.add(
                VersionViewItemSetting(
                    version_id=version.id,
                    version_view_id=view_map[s.view_id],
                    version_item_id=item_map[s.item_id],
                    price=s.price,
                    total=s.total,
                    visible=bool(s.visible),
                )
            )
            item_rows += 1
    session.flush()

    return {
        "sections": len(section_map),
        "items": len(item_map),
        "views": len(view_map),
        "section_settings": section_rows,
        "item_settings": item_rows,
    }


def create_version(session: Session, owner_id: str, estimate_id: str, name=None) -> Version:
    """
    Snapshot an estimate into a new numbered Version and commit it.

    The estimate row lock serializes number allocation; the unique
    (estimate_id, version_number) constraint is the backstop. A collision
    rolls the whole attempt back and retries with a fresh number.
    """
    label = clean_str(name)
    attempts = int(current_app.config.get("VERSION_CREATE_RETRIES", 3))

    for attempt in range(1, attempts + 1):
        try:
            with atomic(session):
                estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id, lock=True)
                version = Version(
                    estimate_id=estimate.id,
                    version_number=_next_version_number(session, estimate.id),
                    name=label,
                )
                session.add(version)
                session.flush()
                counts = _copy_graph(session, estimate.id, version)
        except IntegrityError:
            log.warning(
                "version number collision estimate=%s attempt=%s/%s", estimate_id, attempt, attempts
            )
            continue
        log.info(
            "version created id=%s estimate=%s number=%s counts=%s",
            version.id, estimate_id, version.version_number, counts,
        )
        return version

    raise Conflict("Could not allocate a version number, please retry")


def list_versions(session: Session, owner_id: str, estimate_id: str) -> List[Version]:
    estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id)
    return (
        session.query(Version)
        .filter(Version.estimate_id == estimate.id)
        .order_by(Version.version_number.desc())
        .all()
    )


def get_owned_version(
    session: Session, owner_id: str, estimate_id: str, version_id: str, *, lock: bool = False
) -> Version:
    estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id, lock=lock)
    version = (
        session.query(Version)
        .filter(Version.id == version_id, Version.estimate_id == estimate.id)
        .one_or_none()
    )
    if version is None:
        raise NotFound("Version")
    return version


def get_version_tree(session: Session, owner_id: str, estimate_id: str, version_id: str) -> dict:
    """Frozen tree in the live tree's shape; views carry no link token or password."""
    estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id)
    version = get_owned_version(session, owner_id, estimate_id, version_id)

    views = (
        session.query(VersionView)
        .filter(VersionView.version_id == version.id)
        .order_by(VersionView.sort_order.asc())
        .all()
    )

    section_settings: dict = {}
    for s in session.query(VersionViewSectionSetting).filter(VersionViewSectionSetting.version_id == version.id):
        section_settings.setdefault(s.version_section_id, {})[s.version_view_id] = {"visible": bool(s.visible)}

    item_settings: dict = {}
    for s in session.query(VersionViewItemSetting).filter(VersionViewItemSetting.version_id == version.id):
        item_settings.setdefault(s.version_item_id, {})[s.version_view_id] = dict(
            price=round_currency(s.price),
            total=round_currency(s.total),
            visible=bool(s.visible),
        )

    items_by_section: dict = {}
    items = (
        session.query(VersionItem)
        .filter(VersionItem.version_id == version.id)
        .order_by(VersionItem.sort_order.asc())
        .all()
    )
    for item in items:
        items_by_section.setdefault(item.version_section_id, []).append(
            dict(
                id=item.id,
                section_id=item.version_section_id,
                number=item.number or "",
                name=item.name,
                unit=item.unit or "",
                quantity=safe_float(item.quantity),
                sort_order=item.sort_order,
                view_settings=item_settings.get(item.id, {}),
            )
        )

    sections = []
    for section in (
        session.query(VersionSection)
        .filter(VersionSection.version_id == version.id)
        .order_by(VersionSection.sort_order.asc())
    ):
        sections.append(
            dict(
                id=section.id,
                name=section.name,
                sort_order=section.sort_order,
                view_settings=section_settings.get(section.id, {}),
                items=items_by_section.get(section.id, []),
            )
        )

    return {
        "id": estimate.id,
        "title": estimate.title,
        "version": version.to_dict(),
        "views": [dict(id=v.id, name=v.name, sort_order=v.sort_order) for v in views],
        "sections": sections,
    }
