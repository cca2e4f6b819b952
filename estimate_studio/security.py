from flask_talisman import Talisman

def init_security(app):
    """
    Production/staging security headers.
    The app only serves JSON, so the CSP denies everything but same-origin fetches.
    """
    csp = {
        "default-src": ["'none'"],
        "connect-src": ["'self'"],
        "frame-ancestors": ["'none'"],
        "base-uri":    ["'none'"],
        "form-action": ["'none'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="DENY",
        # Public link tokens live in the URL path; never leak them via Referer
        referrer_policy="no-referrer",
    )
