from decimal import Decimal

import pytest

from estimate_studio.models import View, ViewItemSetting, ViewSectionSetting
from estimate_studio.services import estimate_store, view_manager
from estimate_studio.services.projection import project
from estimate_studio.services.errors import Conflict, NotFound, ValidationFailed


def _counts(session):
    return (
        session.query(View).count(),
        session.query(ViewSectionSetting).count(),
        session.query(ViewItemSetting).count(),
    )


def test_settings_matrix_is_complete_with_backfill(session, owner_id):
    est = estimate_store.create_estimate(session, owner_id, "Garage")
    view_manager.create_default_views(session, est)  # Customer, Master
    for s in range(3):
        section = estimate_store.create_section(session, owner_id, est.id, f"S{s}")
        view_manager.backfill_section_settings(session, est.id, section.id)
        for i in range(2):
            item = estimate_store.create_item(session, owner_id, section.id, f"I{s}{i}", quantity=1)
            view_manager.backfill_item_settings(session, est.id, item.id)
    view_manager.create_view(session, owner_id, est.id, "Supplier")
    session.commit()

    views, section_rows, item_rows = _counts(session)
    assert views == 3
    assert section_rows == 3 * 3
    assert item_rows == 3 * 6


def test_backfill_is_idempotent(session, kitchen):
    assert view_manager.backfill_section_settings(session, kitchen["estimate_id"], kitchen["section_id"]) == 0
    assert view_manager.backfill_item_settings(session, kitchen["estimate_id"], kitchen["sink_id"]) == 0


def test_create_view_defaults_name_and_seeds_zero_prices(session, kitchen, owner_id):
    view = view_manager.create_view(session, owner_id, kitchen["estimate_id"], "  ")
    session.commit()

    assert view.name == "New view"
    assert view.password is None
    assert view.sort_order == 3
    rows = session.query(ViewItemSetting).filter_by(view_id=view.id).all()
    assert len(rows) == 2
    assert all(float(r.price) == 0 and float(r.total) == 0 and r.visible for r in rows)


def test_duplicate_copies_prices_with_fresh_link(session, kitchen, owner_id):
    source = session.get(View, kitchen["client_view_id"])
    source_token = source.link_token
    view_manager.update_view(session, owner_id, source.id, password="secret")

    clone = view_manager.duplicate_view(session, owner_id, source.id)
    session.commit()

    assert clone.name == "Client (copy)"
    assert clone.link_token != source_token
    assert clone.password is None
    prices = {s.item_id: float(s.price) for s in session.query(ViewItemSetting).filter_by(view_id=clone.id)}
    assert prices == {kitchen["cabinets_id"]: 1000.0, kitchen["sink_id"]: 500.0}


def test_update_view_password_trimmed_and_cleared(session, kitchen, owner_id):
    view = view_manager.update_view(session, owner_id, kitchen["client_view_id"], password="  open sesame ")
    assert view.password == "open sesame"
    view = view_manager.update_view(session, owner_id, kitchen["client_view_id"], password="   ")
    assert view.password is None


def test_cannot_delete_last_view(session, kitchen, owner_id):
    view_manager.delete_view(session, owner_id, kitchen["contractor_view_id"])
    session.commit()
    assert session.query(ViewItemSetting).filter_by(view_id=kitchen["contractor_view_id"]).count() == 0

    with pytest.raises(Conflict):
        view_manager.delete_view(session, owner_id, kitchen["client_view_id"])


def test_item_setting_merges_and_recomputes_total(session, kitchen, owner_id):
    s = view_manager.set_item_setting(session, owner_id, kitchen["client_view_id"], kitchen["sink_id"], visible=False)
    assert (float(s.price), float(s.total), s.visible) == (500.0, 1000.0, False)

    s = view_manager.set_item_setting(session, owner_id, kitchen["client_view_id"], kitchen["sink_id"], price="12.345")
    assert (s.price, s.total) == (Decimal("12.35"), Decimal("24.70"))
    assert s.visible is False


def test_item_setting_rejects_negative_price(session, kitchen, owner_id):
    with pytest.raises(ValidationFailed):
        view_manager.set_item_setting(session, owner_id, kitchen["client_view_id"], kitchen["sink_id"], price=-5)


def test_settings_cannot_cross_estimates(session, kitchen, owner_id):
    other = estimate_store.create_estimate(session, owner_id, "Other job")
    (other_view,) = view_manager.create_default_views(session, other, names=["Only"])

    with pytest.raises(NotFound):
        view_manager.set_item_setting(session, owner_id, other_view.id, kitchen["sink_id"], price=1)
    with pytest.raises(NotFound):
        view_manager.set_section_visibility(session, owner_id, other_view.id, kitchen["section_id"], False)


def test_stored_total_matches_stored_price_and_quantity(session, kitchen, owner_id):
    view_manager.set_item_setting(session, owner_id, kitchen["client_view_id"], kitchen["sink_id"], price="12.345")
    estimate_store.update_item(session, owner_id, kitchen["cabinets_id"], quantity="1.00005")
    session.commit()
    session.expire_all()

    rows = {
        s.item_id: s
        for s in session.query(ViewItemSetting).filter_by(view_id=kitchen["client_view_id"])
    }
    sink, cabinets = rows[kitchen["sink_id"]], rows[kitchen["cabinets_id"]]
    assert sink.price * 2 == sink.total == Decimal("24.70")
    # 1000.00 x 1.0001
    assert cabinets.total == Decimal("1000.10")

    projected = project(session, session.get(View, kitchen["client_view_id"]))
    lines = {i["name"]: i for s in projected["sections"] for i in s["items"]}
    assert lines["Sink"]["price"] * lines["Sink"]["quantity"] == lines["Sink"]["total"] == 24.7
