import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from estimate_studio import create_app
from estimate_studio.extensions import db
from estimate_studio.models import User
from estimate_studio.services import estimate_store, view_manager


@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        APP_BASE_URL="http://example.test",
        WTF_CSRF_ENABLED=False,
        RATELIMIT_ENABLED=False,
        APP_ENV="test",
        DEFAULT_VIEW_NAMES=("Customer", "Master"),
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def session(app):
    """Service-level tests run inside one app context against db.session."""
    with app.app_context():
        yield db.session


def make_user(email="owner@example.com", password="testpass") -> str:
    u = User(email=email)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u.id


@pytest.fixture()
def owner_id(app):
    with app.app_context():
        return make_user()


@pytest.fixture()
def other_owner_id(app):
    with app.app_context():
        return make_user("intruder@example.com")


def build_kitchen(session, owner_id) -> dict:
    """
    "Kitchen remodel": one section, two items, views Client and Contractor.

      Cabinets  qty 1   Client 1000  Contractor 700
      Sink      qty 2   Client  500  Contractor 300
    """
    est = estimate_store.create_estimate(session, owner_id, "Kitchen remodel")
    client_view, contractor_view = view_manager.create_default_views(session, est, names=["Client", "Contractor"])
    section = estimate_store.create_section(session, owner_id, est.id, "Kitchen")
    view_manager.backfill_section_settings(session, est.id, section.id)

    items = []
    for name, unit, qty in (("Cabinets", "set", 1), ("Sink", "pcs", 2)):
        item = estimate_store.create_item(session, owner_id, section.id, name, unit=unit, quantity=qty)
        view_manager.backfill_item_settings(session, est.id, item.id)
        items.append(item)

    cabinets, sink = items
    for view, (p1, p2) in ((client_view, (1000, 500)), (contractor_view, (700, 300))):
        view_manager.set_item_setting(session, owner_id, view.id, cabinets.id, price=p1)
        view_manager.set_item_setting(session, owner_id, view.id, sink.id, price=p2)
    session.commit()

    return dict(
        estimate_id=est.id,
        section_id=section.id,
        client_view_id=client_view.id,
        contractor_view_id=contractor_view.id,
        cabinets_id=cabinets.id,
        sink_id=sink.id,
    )


@pytest.fixture()
def kitchen(app, owner_id):
    with app.app_context():
        return build_kitchen(db.session, owner_id)
