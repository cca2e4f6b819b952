from flask import jsonify, request
from flask_login import current_user

from estimate_studio.extensions import db
from estimate_studio.services import estimate_store, view_manager
from estimate_studio.services.errors import NotFound
from estimate_studio.services.unit_of_work import atomic
from . import bp


@bp.before_request
def _require_login_estimates():
    if current_user.is_authenticated:
        return None
    return jsonify({"error": "unauthorized", "code": 401}), 401


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def ensure_in_estimate(entity, estimate_id: str, label: str):
    """Child ids in the URL must belong to the estimate in the same URL."""
    if entity.estimate_id != estimate_id:
        raise NotFound(label)
    return entity


# ──────────────────────────────────────────────────────────────────────────────
# Estimates
# ──────────────────────────────────────────────────────────────────────────────
@bp.get("/")
def list_estimates():
    rows = estimate_store.list_estimates(db.session, current_user.id)
    return jsonify([e.to_dict() for e in rows]), 200


@bp.post("/")
def create_estimate():
    data = json_body()
    with atomic(db.session):
        est = estimate_store.create_estimate(db.session, current_user.id, data.get("title"))
        view_manager.create_default_views(db.session, est)
        estimate_id = est.id
    return jsonify(estimate_store.get_estimate_tree(db.session, current_user.id, estimate_id)), 201


@bp.get("/<estimate_id>")
def get_estimate(estimate_id):
    return jsonify(estimate_store.get_estimate_tree(db.session, current_user.id, estimate_id)), 200


@bp.put("/<estimate_id>")
def update_estimate(estimate_id):
    data = json_body()
    with atomic(db.session):
        est = estimate_store.update_estimate(db.session, current_user.id, estimate_id, title=data.get("title"))
        payload = est.to_dict()
    return jsonify(payload), 200


@bp.delete("/<estimate_id>")
def delete_estimate(estimate_id):
    with atomic(db.session):
        estimate_store.delete_estimate(db.session, current_user.id, estimate_id)
    return jsonify({"ok": True}), 200


# ──────────────────────────────────────────────────────────────────────────────
# Sections
# ──────────────────────────────────────────────────────────────────────────────
@bp.post("/<estimate_id>/sections")
def create_section(estimate_id):
    data = json_body()
    with atomic(db.session):
        section = estimate_store.create_section(db.session, current_user.id, estimate_id, data.get("name"))
        view_manager.backfill_section_settings(db.session, estimate_id, section.id)
        payload = section.to_dict()
    return jsonify(payload), 201


@bp.put("/<estimate_id>/sections/<section_id>")
def rename_section(estimate_id, section_id):
    data = json_body()
    with atomic(db.session):
        ensure_in_estimate(
            estimate_store.get_owned_section(db.session, current_user.id, section_id), estimate_id, "Section"
        )
        section = estimate_store.rename_section(db.session, current_user.id, section_id, data.get("name"))
        payload = section.to_dict()
    return jsonify(payload), 200


@bp.delete("/<estimate_id>/sections/<section_id>")
def delete_section(estimate_id, section_id):
    with atomic(db.session):
        ensure_in_estimate(
            estimate_store.get_owned_section(db.session, current_user.id, section_id), estimate_id, "Section"
        )
        estimate_store.delete_section(db.session, current_user.id, section_id)
    return jsonify({"ok": True}), 200


# ──────────────────────────────────────────────────────────────────────────────
# Items
# ──────────────────────────────────────────────────────────────────────────────
@bp.post("/<estimate_id>/items")
def create_item(estimate_id):
    data = json_body()
    with atomic(db.session):
        ensure_in_estimate(
            estimate_store.get_owned_section(db.session, current_user.id, data.get("section_id") or ""),
            estimate_id,
            "Section",
        )
        item = estimate_store.create_item(
            db.session,
            current_user.id,
            data.get("section_id"),
            data.get("name"),
            unit=data.get("unit"),
            quantity=data.get("quantity", 0),
            number=data.get("number"),
        )
        view_manager.backfill_item_settings(db.session, estimate_id, item.id)
        payload = item.to_dict()
    return jsonify(payload), 201


@bp.put("/<estimate_id>/items/<item_id>")
def update_item(estimate_id, item_id):
    data = json_body()
    with atomic(db.session):
        ensure_in_estimate(estimate_store.get_owned_item(db.session, current_user.id, item_id), estimate_id, "Item")
        item = estimate_store.update_item(
            db.session,
            current_user.id,
            item_id,
            name=data.get("name"),
            unit=data.get("unit"),
            quantity=data.get("quantity"),
            number=data.get("number"),
        )
        payload = item.to_dict()
    return jsonify(payload), 200


@bp.delete("/<estimate_id>/items/<item_id>")
def delete_item(estimate_id, item_id):
    with atomic(db.session):
        ensure_in_estimate(estimate_store.get_owned_item(db.session, current_user.id, item_id), estimate_id, "Item")
        estimate_store.delete_item(db.session, current_user.id, item_id)
    return jsonify({"ok": True}), 200
