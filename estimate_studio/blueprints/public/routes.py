from flask import current_app, jsonify, request

from estimate_studio.extensions import db, limiter, public_link_key
from estimate_studio.services.projection import open_public_view, verify_password
from . import bp


def _verify_limit() -> str:
    return current_app.config.get("PUBLIC_VERIFY_RATE_LIMIT", "10 per minute")


@bp.get("/<token>")
def show(token):
    """Client-facing document, or just title + view name while a code phrase is pending."""
    access = request.args.get("access") or request.headers.get("X-View-Access")
    return jsonify(open_public_view(db.session, token, access=access)), 200


@bp.post("/<token>/verify")
@limiter.limit(_verify_limit, key_func=public_link_key)
def verify(token):
    data = request.get_json(silent=True) or {}
    projection, grant = verify_password(db.session, token, data.get("password"))
    body = dict(projection)
    if grant:
        body["access"] = grant
    return jsonify(body), 200
