from estimate_studio.extensions import db
from estimate_studio.models import View


def _login(client, user_id: str):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user_id)


def _token(app, view_id):
    with app.app_context():
        return db.session.get(View, view_id).link_token


def test_open_view_is_served_without_login(app, client, kitchen):
    resp = client.get(f"/v/{_token(app, kitchen['contractor_view_id'])}")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["view_name"] == "Contractor"
    assert body["total"] == 1300.0


def test_unknown_token_404(client):
    resp = client.get("/v/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_protected_view_prompt_verify_and_grant(app, client, kitchen, owner_id):
    _login(client, owner_id)
    client.put(
        f"/estimates/{kitchen['estimate_id']}/views/{kitchen['client_view_id']}",
        json={"password": "Blue Door"},
    )
    token = _token(app, kitchen["client_view_id"])

    prompt = client.get(f"/v/{token}").get_json()
    assert prompt == {"requires_password": True, "title": "Kitchen remodel", "view_name": "Client"}

    bad = client.post(f"/v/{token}/verify", json={"password": "blue door"})
    assert bad.status_code == 401
    assert bad.get_json()["error"] == "unauthorized"

    ok = client.post(f"/v/{token}/verify", json={"password": "Blue Door "})
    assert ok.status_code == 200
    body = ok.get_json()
    assert body["total"] == 2000.0
    grant = body["access"]

    again = client.get(f"/v/{token}", query_string={"access": grant}).get_json()
    assert again["total"] == 2000.0


def test_restore_kills_old_links(app, client, kitchen, owner_id):
    _login(client, owner_id)
    old_token = _token(app, kitchen["client_view_id"])
    est_id = kitchen["estimate_id"]
    version = client.post(f"/estimates/{est_id}/versions", json={}).get_json()
    client.post(f"/estimates/{est_id}/versions/{version['id']}/restore")

    assert client.get(f"/v/{old_token}").status_code == 404
    views = client.get(f"/estimates/{est_id}/views").get_json()
    fresh = client.get(f"/v/{views[0]['link_token']}").get_json()
    assert fresh["total"] == 2000.0
