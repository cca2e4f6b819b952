from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from estimate_studio.models import View
from estimate_studio.services import estimate_store, view_manager
from estimate_studio.services.errors import ValidationFailed
from estimate_studio.services.unit_of_work import atomic
from estimate_studio.utils.helpers import line_total
from estimate_studio.utils.validators import clean_str, price_amount, quantity_amount

log = logging.getLogger(__name__)

PRICE_PREFIX = "price:"


@dataclass
class ParsedItem:
    name: str
    number: str = ""
    unit: str = ""
    quantity: Decimal = Decimal("0")
    # view name -> starting price
    prices: Dict[str, Decimal] = field(default_factory=dict)


@dataclass
class ParsedSection:
    name: str
    items: List[ParsedItem] = field(default_factory=list)


def _norm(val: object) -> str:
    """Lower/trim and collapse inner whitespace; None -> ''."""
    s = "" if val is None else str(val)
    return re.sub(r"\s+", " ", s.strip().lower())


def _column_key(col) -> str:
    key = _norm(col)
    if key.startswith(PRICE_PREFIX):
        # keep the view name exactly as typed; views match by exact name
        return PRICE_PREFIX + str(col).strip()[len(PRICE_PREFIX):].strip()
    return key


def _cell(row, column: str) -> Optional[str]:
    val = row.get(column)
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return None
    return clean_str(val)


def read_sheet(path) -> List[ParsedSection]:
    """
    Parse an exported estimate sheet (.csv or .xlsx).

    Columns: section, number, name, unit, quantity, plus any number of
    "price:<view name>" columns. Rows keep their sheet order; a row with an
    empty name is skipped, an empty section cell continues the previous one.
    """
    path = Path(path)
    if path.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype=object)
    elif path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=object, keep_default_na=False)
    else:
        raise ValidationFailed(f"Unsupported sheet type: {path.suffix or path.name}")

    df = df.rename(columns={c: _column_key(c) for c in df.columns})
    if "name" not in df.columns:
        raise ValidationFailed("Sheet must have a 'name' column")

    price_columns = {
        c: clean_str(c[len(PRICE_PREFIX):])
        for c in df.columns
        if c.startswith(PRICE_PREFIX) and clean_str(c[len(PRICE_PREFIX):])
    }

    sections: List[ParsedSection] = []
    by_name: Dict[str, ParsedSection] = {}
    current: Optional[ParsedSection] = None

    for idx, row in df.iterrows():
        name = _cell(row, "name")
        section_name = _cell(row, "section")
        if section_name:
            current = by_name.get(section_name)
            if current is None:
                current = by_name[section_name] = ParsedSection(name=section_name)
                sections.append(current)
        if not name:
            continue
        if current is None:
            current = by_name["Section 1"] = ParsedSection(name="Section 1")
            sections.append(current)

        qty_raw = _cell(row, "quantity")
        try:
            quantity = quantity_amount(qty_raw or 0)
            prices = {
                view_name: price_amount(_cell(row, col) or 0, f"{PRICE_PREFIX}{view_name}")
                for col, view_name in price_columns.items()
            }
        except ValidationFailed as e:
            # spreadsheet rows are 1-based plus the header line
            raise ValidationFailed(f"Row {int(idx) + 2}: {e.message}")

        current.items.append(
            ParsedItem(
                name=name,
                number=_cell(row, "number") or "",
                unit=_cell(row, "unit") or "",
                quantity=quantity,
                prices=prices,
            )
        )

    log.info(
        "sheet parsed path=%s sections=%s items=%s price_columns=%s",
        path.name, len(sections), sum(len(s.items) for s in sections), list(price_columns.values()),
    )
    return sections


def replace_estimate_contents(
    session: Session, owner_id: str, estimate_id: str, sections: List[ParsedSection]
) -> dict:
    """
    Bulk-replace an estimate's sections and items from a parsed sheet and commit.

    Rows go through the same create + backfill path as manual editing, so
    every view ends up with a complete settings matrix. Starting prices are
    applied to every view matched by exact name; views keep their names, tokens
    and passwords.
    """
    with atomic(session):
        estimate = estimate_store.get_owned_estimate(session, owner_id, estimate_id, lock=True)
        estimate_store.clear_sections(session, estimate.id)
        session.flush()

        views_by_name: Dict[str, List[View]] = {}
        for v in session.query(View).filter(View.estimate_id == estimate.id).order_by(View.sort_order):
            views_by_name.setdefault(v.name, []).append(v)
        shared = sorted(n for n, vs in views_by_name.items() if len(vs) > 1)
        if shared:
            log.warning("sheet sync pricing every view sharing a name estimate=%s views=%s", estimate.id, shared)
        unknown = sorted(
            {n for s in sections for i in s.items for n in i.prices} - set(views_by_name)
        )
        if unknown:
            log.warning("sheet sync ignoring unknown views estimate=%s views=%s", estimate.id, unknown)

        item_count = 0
        for parsed in sections:
            section = estimate_store.create_section(session, owner_id, estimate.id, parsed.name)
            view_manager.backfill_section_settings(session, estimate.id, section.id)
            for parsed_item in parsed.items:
                item = estimate_store.create_item(
                    session,
                    owner_id,
                    section.id,
                    parsed_item.name,
                    unit=parsed_item.unit,
                    quantity=parsed_item.quantity,
                    number=parsed_item.number,
                )
                view_manager.backfill_item_settings(session, estimate.id, item.id)
                for view_name, price in parsed_item.prices.items():
                    for view in views_by_name.get(view_name, ()):
                        setting = view_manager.get_item_setting(session, view.id, item.id)
                        setting.price = price
                        setting.total = line_total(price, item.quantity)
                item_count += 1

        estimate_store.mark_synced(estimate)
        session.flush()
        result = {"sections": len(sections), "items": item_count, "ignored_views": unknown}

    log.info("sheet sync applied estimate=%s result=%s", estimate_id, result)
    return result
