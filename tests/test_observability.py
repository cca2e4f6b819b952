import logging

from estimate_studio.observability import _RedactLinks, _scrub_event, redact_public_links


def test_redacts_public_link_tokens():
    assert redact_public_links("GET /v/abc-123?access=x") == "GET /v/<token>?access=x"
    assert redact_public_links("/estimates/abc") == "/estimates/abc"
    assert redact_public_links(42) == 42


def test_log_filter_redacts_args():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hit %s", ("/v/secret-token/verify",), None)
    assert _RedactLinks().filter(record)
    assert record.getMessage() == "hit /v/<token>/verify"


def test_sentry_event_scrubbed():
    event = {
        "request": {
            "url": "https://example.test/v/secret-token",
            "query_string": "access=grant",
            "headers": {"X-View-Access": "grant", "Accept": "application/json"},
        }
    }
    out = _scrub_event(event, None)
    assert out["request"]["url"] == "https://example.test/v/<token>"
    assert out["request"]["query_string"] == ""
    assert out["request"]["headers"] == {"Accept": "application/json"}


def test_sentry_event_drops_grant_header_in_any_case():
    event = {"request": {"headers": {"x-view-access": "grant", "X-VIEW-ACCESS": "grant", "Host": "example.test"}}}
    assert _scrub_event(event, None)["request"]["headers"] == {"Host": "example.test"}
