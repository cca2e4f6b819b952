from flask import jsonify
from flask_login import current_user

from estimate_studio.extensions import db
from estimate_studio.services import snapshots
from estimate_studio.services.restore import restore_version
from . import bp
from .routes import json_body


@bp.get("/<estimate_id>/versions")
def list_versions(estimate_id):
    versions = snapshots.list_versions(db.session, current_user.id, estimate_id)
    return jsonify([v.to_dict() for v in versions]), 200


@bp.post("/<estimate_id>/versions")
def create_version(estimate_id):
    data = json_body()
    # commits on its own (retries on a number collision)
    version = snapshots.create_version(db.session, current_user.id, estimate_id, data.get("name"))
    return jsonify(version.to_dict()), 201


@bp.get("/<estimate_id>/versions/<version_id>")
def get_version(estimate_id, version_id):
    return jsonify(snapshots.get_version_tree(db.session, current_user.id, estimate_id, version_id)), 200


@bp.post("/<estimate_id>/versions/<version_id>/restore")
def restore(estimate_id, version_id):
    result = restore_version(db.session, current_user.id, estimate_id, version_id)
    return jsonify(result), 200
