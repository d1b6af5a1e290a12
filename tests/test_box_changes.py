from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from Location_module.Box_change_model import BoxChange
from Location_module.Location_crud import batch_mark_boxes_changed, delete_location, mark_boxes_changed
from Location_module.Location_model import Location
from Location_module.elapsed_time import LocationStatus
from Utils.api_errors import NotFoundError
from Utils.datetime_utils import to_utc


def fail_on_commit(session):
    """Flush pending changes, then fail as a lost connection would."""
    def _commit():
        session.flush()
        raise OperationalError("COMMIT", {}, Exception("database is locked"))
    return _commit


class TestMarkBoxesChanged:
    def test_resets_clock_and_records_history(self, make_location, db_session, now, counts):
        location = make_location(days_ago=12)

        updated = mark_boxes_changed(
            db_session, location.id, changed_by="John Worker", notes="Restocked", box_count=50, now=now
        )

        assert updated.elapsed_days == 0
        assert updated.status == LocationStatus.FRESH
        assert updated.last_change_formatted == "Today"
        assert counts() == (1, 1)

        change = db_session.query(BoxChange).one()
        assert change.location_id == location.id
        assert change.changed_by == "John Worker"
        assert change.notes == "Restocked"
        assert change.box_count == 50
        assert to_utc(change.changed_at) == updated.last_box_change == now

    def test_optional_fields_may_be_omitted(self, make_location, db_session, now):
        location = make_location(days_ago=3)

        mark_boxes_changed(db_session, location.id, now=now)

        change = db_session.query(BoxChange).one()
        assert change.changed_by is None
        assert change.box_count is None

    def test_each_call_adds_one_record(self, make_location, db_session, now):
        location = make_location(days_ago=30)
        for days_ago in (20, 10, 0):
            mark_boxes_changed(db_session, location.id, now=now - timedelta(days=days_ago))

        assert db_session.query(BoxChange).filter(BoxChange.location_id == location.id).count() == 3

    def test_unknown_location_writes_nothing(self, make_location, db_session, now, counts):
        make_location(days_ago=5)

        with pytest.raises(NotFoundError):
            mark_boxes_changed(db_session, "missing", now=now)

        assert counts() == (1, 0)

    def test_inactive_location_can_still_be_marked(self, make_location, db_session, now):
        location = make_location(days_ago=9)
        delete_location(db_session, location.id, now=now)

        updated = mark_boxes_changed(db_session, location.id, now=now)

        assert updated.elapsed_days == 0

    def test_failed_commit_leaves_location_and_history_unchanged(
        self, make_location, db_session, now, counts, monkeypatch
    ):
        location = make_location(days_ago=12)
        monkeypatch.setattr(db_session, "commit", fail_on_commit(db_session))

        with pytest.raises(OperationalError):
            mark_boxes_changed(db_session, location.id, now=now)

        monkeypatch.undo()
        assert counts() == (1, 0)
        assert to_utc(db_session.get(Location, location.id).last_box_change) == now - timedelta(days=12)


class TestBatchMarkBoxesChanged:
    def test_marks_every_location_at_the_same_instant(self, make_location, db_session, now):
        first = make_location(name="B", days_ago=9)
        second = make_location(name="A", days_ago=20)

        updated = batch_mark_boxes_changed(db_session, [first.id, second.id], changed_by="Crew 2", now=now)

        assert [location.name for location in updated] == ["A", "B"]
        assert all(location.elapsed_days == 0 for location in updated)
        changes = db_session.query(BoxChange).all()
        assert sorted(change.location_id for change in changes) == sorted([first.id, second.id])
        assert {to_utc(change.changed_at) for change in changes} == {now}
        assert {change.changed_by for change in changes} == {"Crew 2"}

    def test_unknown_ids_are_skipped(self, make_location, db_session, now, counts):
        first = make_location(days_ago=9)
        second = make_location(days_ago=9)

        updated = batch_mark_boxes_changed(db_session, [first.id, "missing", second.id], now=now)

        assert {location.id for location in updated} == {first.id, second.id}
        assert counts() == (2, 2)

    def test_repeated_ids_are_marked_once(self, make_location, db_session, now, counts):
        location = make_location(days_ago=9)

        updated = batch_mark_boxes_changed(db_session, [location.id, location.id], now=now)

        assert len(updated) == 1
        assert counts() == (1, 1)

    def test_only_unknown_ids_writes_nothing(self, make_location, db_session, now, counts):
        make_location(days_ago=9)

        assert batch_mark_boxes_changed(db_session, ["missing", "also-missing"], now=now) == []
        assert counts() == (1, 0)

    def test_untouched_locations_keep_their_clock(self, make_location, db_session, now):
        marked = make_location(days_ago=9)
        untouched = make_location(days_ago=11)

        batch_mark_boxes_changed(db_session, [marked.id], now=now)

        db_session.expire_all()
        assert to_utc(db_session.get(Location, untouched.id).last_box_change) == now - timedelta(days=11)

    def test_failed_commit_writes_nothing(self, make_location, db_session, now, counts, monkeypatch):
        first = make_location(days_ago=9)
        second = make_location(days_ago=15)
        monkeypatch.setattr(db_session, "commit", fail_on_commit(db_session))

        with pytest.raises(OperationalError):
            batch_mark_boxes_changed(db_session, [first.id, second.id], now=now)

        monkeypatch.undo()
        db_session.expire_all()
        assert counts() == (2, 0)
        assert to_utc(db_session.get(Location, first.id).last_box_change) == now - timedelta(days=9)
        assert to_utc(db_session.get(Location, second.id).last_box_change) == now - timedelta(days=15)
