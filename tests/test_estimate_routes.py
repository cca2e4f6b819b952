from estimate_studio.extensions import db
from estimate_studio.models import ViewItemSetting, ViewSectionSetting


def _login(client, user_id: str):
    # Simulate Flask-Login session
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user_id)


def test_requires_login(client):
    resp = client.get("/estimates/")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "unauthorized", "code": 401}


def test_create_estimate_starts_with_default_views(app, client, owner_id):
    _login(client, owner_id)
    resp = client.post("/estimates/", json={"title": "Attic"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["title"] == "Attic"
    assert [v["name"] for v in body["views"]] == ["Customer", "Master"]
    assert body["sections"] == []

    listed = client.get("/estimates/").get_json()
    assert [e["id"] for e in listed] == [body["id"]]


def test_validation_error_maps_to_400(client, owner_id):
    _login(client, owner_id)
    resp = client.post("/estimates/", json={"title": ""})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_section_and_item_creation_backfill_all_views(app, client, owner_id):
    _login(client, owner_id)
    est = client.post("/estimates/", json={"title": "Deck"}).get_json()
    section = client.post(f"/estimates/{est['id']}/sections", json={"name": "Framing"}).get_json()
    resp = client.post(
        f"/estimates/{est['id']}/items",
        json={"section_id": section["id"], "name": "Joists", "unit": "pcs", "quantity": 12},
    )
    assert resp.status_code == 201
    item = resp.get_json()
    assert item["quantity"] == 12.0

    with app.app_context():
        assert db.session.query(ViewSectionSetting).filter_by(section_id=section["id"]).count() == 2
        assert db.session.query(ViewItemSetting).filter_by(item_id=item["id"]).count() == 2


def test_foreign_estimate_is_404(client, kitchen, other_owner_id):
    _login(client, other_owner_id)
    resp = client.get(f"/estimates/{kitchen['estimate_id']}")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_child_from_another_estimate_is_404(client, kitchen, owner_id):
    _login(client, owner_id)
    other = client.post("/estimates/", json={"title": "Other"}).get_json()
    resp = client.put(f"/estimates/{other['id']}/items/{kitchen['sink_id']}", json={"quantity": 5})
    assert resp.status_code == 404


def test_deleting_last_view_is_409(client, kitchen, owner_id):
    _login(client, owner_id)
    est_id = kitchen["estimate_id"]
    assert client.delete(f"/estimates/{est_id}/views/{kitchen['contractor_view_id']}").status_code == 200
    resp = client.delete(f"/estimates/{est_id}/views/{kitchen['client_view_id']}")
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "conflict"


def test_view_settings_endpoints(client, kitchen, owner_id):
    _login(client, owner_id)
    base = f"/estimates/{kitchen['estimate_id']}/views/{kitchen['client_view_id']}"

    resp = client.put(f"{base}/items/{kitchen['sink_id']}", json={"price": 450, "visible": "false"})
    assert resp.status_code == 200
    assert resp.get_json() == {"item_id": kitchen["sink_id"], "price": 450.0, "total": 900.0, "visible": False}

    resp = client.put(f"{base}/sections/{kitchen['section_id']}", json={"visible": False})
    assert resp.get_json() == {"section_id": kitchen["section_id"], "visible": False}

    resp = client.put(f"{base}/items/{kitchen['sink_id']}", json={"visible": "maybe"})
    assert resp.status_code == 400


def test_view_create_duplicate_update(client, kitchen, owner_id):
    _login(client, owner_id)
    est_id = kitchen["estimate_id"]

    created = client.post(f"/estimates/{est_id}/views", json={}).get_json()
    assert created["name"] == "New view"

    dup = client.post(f"/estimates/{est_id}/views/{kitchen['client_view_id']}/duplicate")
    assert dup.status_code == 201
    assert dup.get_json()["name"] == "Client (copy)"

    upd = client.put(f"/estimates/{est_id}/views/{created['id']}", json={"name": "Bank", "password": " pw "})
    assert upd.get_json()["name"] == "Bank"
    assert upd.get_json()["password"] == "pw"

    names = [v["name"] for v in client.get(f"/estimates/{est_id}/views").get_json()]
    assert names == ["Client", "Contractor", "Bank", "Client (copy)"]


def test_versions_endpoints(client, kitchen, owner_id):
    _login(client, owner_id)
    est_id = kitchen["estimate_id"]

    resp = client.post(f"/estimates/{est_id}/versions", json={"name": "Quote sent"})
    assert resp.status_code == 201
    version = resp.get_json()
    assert version["version_number"] == 1

    assert client.delete(f"/estimates/{est_id}/sections/{kitchen['section_id']}").status_code == 200
    frozen = client.get(f"/estimates/{est_id}/versions/{version['id']}").get_json()
    assert len(frozen["sections"]) == 1

    resp = client.post(f"/estimates/{est_id}/versions/{version['id']}/restore")
    assert resp.status_code == 200
    assert resp.get_json() == {"restored_from": {"version_number": 1, "name": "Quote sent"}}

    tree = client.get(f"/estimates/{est_id}").get_json()
    assert [i["name"] for i in tree["sections"][0]["items"]] == ["Cabinets", "Sink"]
    assert [v["version_number"] for v in client.get(f"/estimates/{est_id}/versions").get_json()] == [1]


def test_unknown_version_is_404(client, kitchen, owner_id):
    _login(client, owner_id)
    resp = client.post(f"/estimates/{kitchen['estimate_id']}/versions/nope/restore")
    assert resp.status_code == 404


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}
