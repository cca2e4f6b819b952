from flask import jsonify
from flask_login import current_user

from estimate_studio.extensions import db
from estimate_studio.services import view_manager
from estimate_studio.services.unit_of_work import atomic
from estimate_studio.utils.validators import optional_bool
from . import bp
from .routes import json_body, ensure_in_estimate


def _owned_view(estimate_id, view_id):
    return ensure_in_estimate(view_manager.get_owned_view(db.session, current_user.id, view_id), estimate_id, "View")


@bp.get("/<estimate_id>/views")
def list_views(estimate_id):
    views = view_manager.list_views(db.session, current_user.id, estimate_id)
    return jsonify([v.to_dict() for v in views]), 200


@bp.post("/<estimate_id>/views")
def create_view(estimate_id):
    data = json_body()
    with atomic(db.session):
        view = view_manager.create_view(db.session, current_user.id, estimate_id, data.get("name"))
        payload = view.to_dict()
    return jsonify(payload), 201


@bp.put("/<estimate_id>/views/<view_id>")
def update_view(estimate_id, view_id):
    data = json_body()
    with atomic(db.session):
        _owned_view(estimate_id, view_id)
        view = view_manager.update_view(
            db.session, current_user.id, view_id, name=data.get("name"), password=data.get("password")
        )
        payload = view.to_dict()
    return jsonify(payload), 200


@bp.delete("/<estimate_id>/views/<view_id>")
def delete_view(estimate_id, view_id):
    with atomic(db.session):
        _owned_view(estimate_id, view_id)
        view_manager.delete_view(db.session, current_user.id, view_id)
    return jsonify({"ok": True}), 200


@bp.post("/<estimate_id>/views/<view_id>/duplicate")
def duplicate_view(estimate_id, view_id):
    with atomic(db.session):
        _owned_view(estimate_id, view_id)
        clone = view_manager.duplicate_view(db.session, current_user.id, view_id)
        payload = clone.to_dict()
    return jsonify(payload), 201


@bp.put("/<estimate_id>/views/<view_id>/sections/<section_id>")
def set_section_visibility(estimate_id, view_id, section_id):
    data = json_body()
    visible = optional_bool(data.get("visible"), "visible")
    with atomic(db.session):
        _owned_view(estimate_id, view_id)
        setting = view_manager.set_section_visibility(
            db.session, current_user.id, view_id, section_id, True if visible is None else visible
        )
        payload = {"section_id": setting.section_id, "visible": bool(setting.visible)}
    return jsonify(payload), 200


@bp.put("/<estimate_id>/views/<view_id>/items/<item_id>")
def set_item_setting(estimate_id, view_id, item_id):
    data = json_body()
    visible = optional_bool(data.get("visible"), "visible")
    with atomic(db.session):
        _owned_view(estimate_id, view_id)
        setting = view_manager.set_item_setting(
            db.session, current_user.id, view_id, item_id, price=data.get("price"), visible=visible
        )
        payload = {"item_id": setting.item_id, **setting.to_dict()}
    return jsonify(payload), 200
