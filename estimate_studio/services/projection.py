from __future__ import annotations

import hmac
import logging
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from estimate_studio.models import Estimate, View, ViewSectionSetting, ViewItemSetting
from estimate_studio.services import estimate_store
from estimate_studio.services.errors import NotFound, Unauthorized
from estimate_studio.services.tokens import issue_view_grant, check_view_grant
from estimate_studio.utils.helpers import round_currency, safe_float, to_decimal

log = logging.getLogger(__name__)


def project(session: Session, view: View) -> dict:
    """
    Client-facing document for one view.

    - sections/items without a settings row count as visible, zero-priced
    - hidden sections and hidden items are dropped
    - item numbers are reassigned 1..n inside each kept section
    - sections left with no items are suppressed
    - total is the sum of the kept sections' subtotals
    """
    estimate = session.get(Estimate, view.estimate_id)
    if estimate is None:
        raise NotFound("Estimate")

    section_visible = {
        s.section_id: bool(s.visible)
        for s in session.query(ViewSectionSetting).filter(ViewSectionSetting.view_id == view.id)
    }
    item_settings = {
        s.item_id: s for s in session.query(ViewItemSetting).filter(ViewItemSetting.view_id == view.id)
    }

    items_by_section: dict = {}
    for item in estimate_store.list_items(session, estimate.id):
        items_by_section.setdefault(item.section_id, []).append(item)

    sections = []
    grand_total = Decimal("0")
    for section in estimate_store.list_sections(session, estimate.id):
        if not section_visible.get(section.id, True):
            continue

        rows = []
        subtotal = Decimal("0")
        for item in items_by_section.get(section.id, []):
            setting = item_settings.get(item.id)
            if setting is not None and not setting.visible:
                continue
            price = setting.price if setting is not None else 0
            total = to_decimal(setting.total if setting is not None else 0)
            subtotal += total
            rows.append(
                {
                    "number": str(len(rows) + 1),
                    "name": item.name,
                    "unit": item.unit or "",
                    "quantity": safe_float(item.quantity),
                    "price": round_currency(price),
                    "total": round_currency(total),
                }
            )

        if not rows:
            continue
        grand_total += subtotal
        sections.append({"name": section.name, "items": rows, "subtotal": round_currency(subtotal)})

    return {
        "title": estimate.title,
        "view_name": view.name,
        "sections": sections,
        "total": round_currency(grand_total),
    }


def find_view_by_token(session: Session, token: str) -> View:
    view = session.query(View).filter(View.link_token == (token or "")).one_or_none()
    if view is None:
        raise NotFound("View")
    return view


def _password_matches(expected: str, given) -> bool:
    given = (given or "").strip() if isinstance(given, str) else ""
    return hmac.compare_digest(expected.encode("utf-8"), given.encode("utf-8"))


def open_public_view(session: Session, token: str, access: Optional[str] = None) -> dict:
    """Projection for an open view or a valid grant; otherwise only the password prompt."""
    view = find_view_by_token(session, token)
    if not view.password or check_view_grant(view, access):
        return project(session, view)

    estimate = session.get(Estimate, view.estimate_id)
    return {
        "requires_password": True,
        "title": estimate.title if estimate else "",
        "view_name": view.name,
    }


def verify_password(session: Session, token: str, password) -> Tuple[dict, Optional[str]]:
    """
    Check the code phrase for a view link (trimmed, case-sensitive).

    Returns the projection plus an access grant the client can replay on GET.
    Open views get the projection and no grant.
    """
    view = find_view_by_token(session, token)
    if not view.password:
        return project(session, view), None
    if not _password_matches(view.password, password):
        log.info("public view password rejected view=%s", view.id)
        raise Unauthorized("Wrong code phrase")
    return project(session, view), issue_view_grant(view)
