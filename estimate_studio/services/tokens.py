import hashlib
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from flask import current_app

from estimate_studio.models import View


def _serializer() -> URLSafeTimedSerializer:
    secret = current_app.config["SECRET_KEY"]
    salt = current_app.config.get("VIEW_ACCESS_SALT", "view-access-v1")
    return URLSafeTimedSerializer(secret_key=secret, salt=salt)


def _password_digest(password: Optional[str]) -> str:
    # binds a grant to the password it was issued for without embedding it
    return hashlib.sha256((password or "").encode("utf-8")).hexdigest()[:16]


def issue_view_grant(view: View) -> str:
    """
    Short-lived proof that the holder typed the right code phrase for `view`.
    Rotating the link token (restore) or changing the password voids it.
    """
    return _serializer().dumps({"v": view.id, "t": view.link_token, "p": _password_digest(view.password)})


def check_view_grant(view: View, grant: Optional[str]) -> bool:
    if not grant:
        return False
    max_age = int(current_app.config.get("VIEW_ACCESS_MAX_AGE", 12 * 3600))
    try:
        data = _serializer().loads(grant, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return False
    if not isinstance(data, dict):
        return False
    return (
        data.get("v") == view.id
        and data.get("t") == view.link_token
        and data.get("p") == _password_digest(view.password)
    )
