from estimate_studio.extensions import db
from estimate_studio.models import User, Version


def test_users_create(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--email", "New@Example.com", "--password", "pw"])
    assert result.exit_code == 0, result.output
    with app.app_context():
        user = db.session.query(User).one()
        assert user.email == "new@example.com"
        assert user.check_password("pw")

    dup = runner.invoke(args=["users", "create", "--email", "new@example.com", "--password", "pw"])
    assert dup.exit_code != 0
    assert "already exists" in dup.output


def test_versions_create_and_restore(app, kitchen):
    runner = app.test_cli_runner()
    est_id = kitchen["estimate_id"]
    result = runner.invoke(
        args=["versions", "create", "--estimate-id", est_id, "--owner-email", "owner@example.com", "--name", "v1"]
    )
    assert result.exit_code == 0, result.output
    assert "number=1" in result.output

    with app.app_context():
        version_id = db.session.query(Version).one().id

    result = runner.invoke(
        args=[
            "versions", "restore",
            "--estimate-id", est_id,
            "--version-id", version_id,
            "--owner-email", "owner@example.com",
        ]
    )
    assert result.exit_code == 0, result.output
    assert "from version 1 (v1)" in result.output


def test_versions_create_unknown_owner(app, kitchen):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["versions", "create", "--estimate-id", kitchen["estimate_id"], "--owner-email", "ghost@example.com"]
    )
    assert result.exit_code != 0
    assert "No user" in result.output


def test_sheets_import(app, kitchen, tmp_path):
    path = tmp_path / "sheet.csv"
    path.write_text("section,name,quantity,price:Client\nWalls,Drywall,20,15\n", encoding="utf-8")
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["sheets", "import", "--estimate-id", kitchen["estimate_id"], "--owner-email", "owner@example.com", str(path)]
    )
    assert result.exit_code == 0, result.output
    assert "sections=1 items=1" in result.output
