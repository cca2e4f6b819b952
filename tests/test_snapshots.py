import pytest

from estimate_studio.models import Version, VersionViewItemSetting, VersionView
from estimate_studio.services import estimate_store, snapshots, view_manager
from estimate_studio.services.errors import Conflict, NotFound


def test_version_numbers_increase_per_estimate(session, kitchen, owner_id):
    v1 = snapshots.create_version(session, owner_id, kitchen["estimate_id"], "Sent to client")
    v2 = snapshots.create_version(session, owner_id, kitchen["estimate_id"])

    assert (v1.version_number, v2.version_number) == (1, 2)
    assert v1.name == "Sent to client"
    assert v2.name is None
    listed = snapshots.list_versions(session, owner_id, kitchen["estimate_id"])
    assert [v.version_number for v in listed] == [2, 1]


def test_snapshot_is_frozen_and_self_contained(session, kitchen, owner_id):
    version = snapshots.create_version(session, owner_id, kitchen["estimate_id"])

    # later edits do not leak into the snapshot
    view_manager.set_item_setting(session, owner_id, kitchen["client_view_id"], kitchen["sink_id"], price=999)
    session.commit()

    tree = snapshots.get_version_tree(session, owner_id, kitchen["estimate_id"], version.id)
    assert tree["version"]["version_number"] == 1
    assert [v["name"] for v in tree["views"]] == ["Client", "Contractor"]
    assert all("link_token" not in v and "password" not in v for v in tree["views"])

    (section,) = tree["sections"]
    live_ids = {kitchen["section_id"], kitchen["cabinets_id"], kitchen["sink_id"]}
    assert section["id"] not in live_ids
    assert not live_ids & {i["id"] for i in section["items"]}

    client_vid = tree["views"][0]["id"]
    sink = section["items"][1]
    assert sink["view_settings"][client_vid] == {"price": 500.0, "total": 1000.0, "visible": True}

    version_view_ids = {v.id for v in session.query(VersionView).filter_by(version_id=version.id)}
    assert version_view_ids.isdisjoint({kitchen["client_view_id"], kitchen["contractor_view_id"]})
    assert session.query(VersionViewItemSetting).filter_by(version_id=version.id).count() == 4


def test_number_collision_is_retried(session, kitchen, owner_id, monkeypatch):
    snapshots.create_version(session, owner_id, kitchen["estimate_id"])
    real = snapshots._next_version_number
    calls = []

    def stale_then_real(sess, estimate_id):
        calls.append(estimate_id)
        return 1 if len(calls) == 1 else real(sess, estimate_id)

    monkeypatch.setattr(snapshots, "_next_version_number", stale_then_real)
    version = snapshots.create_version(session, owner_id, kitchen["estimate_id"])

    assert version.version_number == 2
    assert len(calls) == 2
    assert session.query(Version).count() == 2


def test_persistent_collision_surfaces_conflict(session, kitchen, owner_id, monkeypatch):
    snapshots.create_version(session, owner_id, kitchen["estimate_id"])
    monkeypatch.setattr(snapshots, "_next_version_number", lambda sess, estimate_id: 1)

    with pytest.raises(Conflict):
        snapshots.create_version(session, owner_id, kitchen["estimate_id"])
    assert session.query(Version).count() == 1


def test_version_of_other_estimate_is_not_found(session, kitchen, owner_id):
    other = estimate_store.create_estimate(session, owner_id, "Other job")
    view_manager.create_default_views(session, other)
    session.commit()
    version = snapshots.create_version(session, owner_id, kitchen["estimate_id"])

    with pytest.raises(NotFound):
        snapshots.get_version_tree(session, owner_id, other.id, version.id)
