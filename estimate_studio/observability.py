import os
import re
import logging
from logging.config import dictConfig

from pythonjsonlogger import jsonlogger  # noqa: F401  (formatter resolved by dictConfig)

# Public link tokens are bearer secrets; keep them out of logs and error reports
_PUBLIC_PATH = re.compile(r"(/v/)[^/?#\s]+")


def redact_public_links(text):
    if not isinstance(text, str):
        return text
    return _PUBLIC_PATH.sub(r"\1<token>", text)


class _RedactLinks(logging.Filter):
    def filter(self, record):
        record.msg = redact_public_links(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(redact_public_links(a) for a in record.args)
        return True


def init_logging(app):
    """Structured logs (JSON) in staging/prod; keep default console in dev/tests."""
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    level = (app.config.get("LOG_LEVEL") or "INFO").upper()
    if app_env in ("staging", "production"):
        fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
        dictConfig({
            "version": 1,
            "filters": {"redact": {"()": _RedactLinks}},
            "formatters": {"json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": fmt}},
            "handlers": {
                "wsgi": {"class": "logging.StreamHandler", "formatter": "json", "filters": ["redact"]},
            },
            "root": {"level": level, "handlers": ["wsgi"]},
        })
    else:
        # Service modules log under the package namespace
        logging.getLogger("estimate_studio").setLevel(level)


def _scrub_event(event, hint):
    req = event.get("request") or {}
    if "url" in req:
        req["url"] = redact_public_links(req["url"])
    if "headers" in req and isinstance(req["headers"], dict):
        req["headers"] = {k: v for k, v in req["headers"].items() if k.lower() != "x-view-access"}
    if "query_string" in req:
        # ?access=<grant> must never reach the error tracker
        req["query_string"] = ""
    return event


def init_sentry(app):
    """Wire Sentry if DSN present; safe no-op otherwise."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
            environment=os.getenv("APP_ENV", "development"),
            send_default_pii=False,
            before_send=_scrub_event,
        )
    except Exception as exc:
        app.logger.warning("Sentry init skipped: %s", exc)
