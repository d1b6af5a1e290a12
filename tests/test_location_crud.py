from datetime import timedelta

import pytest

from Location_module.Box_change_model import BoxChange
from Location_module.Location_crud import (
    create_location,
    delete_location,
    get_all_locations,
    get_box_change_history,
    get_location_analytics,
    get_location_by_id,
    get_locations_by_ids,
    get_overdue_locations,
    is_valid_coordinates,
    mark_boxes_changed,
    update_location,
)
from Location_module.Location_model import Location
from Location_module.elapsed_time import LocationStatus
from Utils.api_errors import DuplicateResourceError, InputValidationError, NotFoundError


class TestCreateLocation:
    def test_new_location_starts_fresh(self, db_session, now, counts):
        location = create_location(
            db_session,
            name="  Kroger Woodward  ",
            address="123 Woodward Ave, Detroit, MI",
            latitude=42.3314,
            longitude=-83.0458,
            contact_person="Jane Doe",
            now=now
        )

        assert location.name == "Kroger Woodward"
        assert location.is_active is True
        assert location.elapsed_days == 0
        assert location.status == LocationStatus.FRESH
        assert location.last_change_formatted == "Today"
        assert location.last_box_change == now
        assert location.contact_person == "Jane Doe"
        # Creating a location does not record a box change
        assert counts() == (1, 0)

    @pytest.mark.parametrize("latitude,longitude", [(91, 0), (-90.5, 0), (0, 181), (0, -180.01)])
    def test_out_of_range_coordinates_are_rejected(self, db_session, now, counts, latitude, longitude):
        with pytest.raises(InputValidationError):
            create_location(db_session, name="Bad", address="Nowhere", latitude=latitude, longitude=longitude, now=now)
        assert counts() == (0, 0)

    def test_boundary_coordinates_are_accepted(self, db_session, now):
        location = create_location(db_session, name="Pole", address="North Pole", latitude=90, longitude=-180, now=now)
        assert location.latitude == 90

    def test_duplicate_name_and_address_is_rejected(self, make_location, db_session, now, counts):
        make_location(name="Library", address="1 Library Way")
        with pytest.raises(DuplicateResourceError):
            create_location(db_session, name="Library", address="1 Library Way", latitude=0, longitude=0, now=now)
        assert counts() == (1, 0)

    def test_same_name_at_another_address_is_allowed(self, make_location):
        make_location(name="Library", address="1 Library Way")
        make_location(name="Library", address="2 Library Way")


def test_is_valid_coordinates():
    assert is_valid_coordinates(0, 0)
    assert is_valid_coordinates(-90, 180)
    assert not is_valid_coordinates(90.0001, 0)


class TestQueries:
    def test_list_is_sorted_by_name_and_classified(self, make_location, db_session, now):
        make_location(name="Zeta", days_ago=2)
        make_location(name="Alpha", days_ago=10)

        locations = get_all_locations(db_session, now)

        assert [location.name for location in locations] == ["Alpha", "Zeta"]
        assert [location.elapsed_days for location in locations] == [10, 2]
        assert [location.status for location in locations] == [LocationStatus.OVERDUE, LocationStatus.FRESH]
        assert locations[0].last_change_formatted == "1 week ago"
        assert locations[0].last_box_change_display == "Feb 19, 2026 12:00"

    def test_overdue_filter(self, make_location, db_session, now):
        make_location(name="Six", days_ago=6)
        make_location(name="Seven", days_ago=7)
        make_location(name="Thirty", days_ago=30)

        overdue = get_overdue_locations(db_session, now)

        assert [location.name for location in overdue] == ["Seven", "Thirty"]

    def test_inactive_locations_are_not_listed(self, make_location, db_session, now):
        kept = make_location(name="Kept")
        removed = make_location(name="Removed", days_ago=20)

        delete_location(db_session, removed.id, now=now)

        assert [location.id for location in get_all_locations(db_session, now)] == [kept.id]
        assert get_overdue_locations(db_session, now) == []

    def test_get_by_id_includes_recent_history(self, make_location, db_session, now):
        location = make_location(days_ago=30)
        for days_ago in (20, 10, 5):
            mark_boxes_changed(db_session, location.id, changed_by="Sam", now=now - timedelta(days=days_ago))

        detail = get_location_by_id(db_session, location.id, history_limit=2, now=now)

        assert detail.elapsed_days == 5
        assert len(detail.box_changes) == 2
        assert [change.changed_at for change in detail.box_changes] == [
            now - timedelta(days=5),
            now - timedelta(days=10),
        ]
        assert detail.box_changes[0].changed_by == "Sam"

    def test_get_by_id_returns_none_when_missing(self, db_session):
        assert get_location_by_id(db_session, "missing") is None

    def test_get_by_id_still_returns_inactive_location(self, make_location, db_session, now):
        location = make_location()
        delete_location(db_session, location.id, now=now)

        detail = get_location_by_id(db_session, location.id, now=now)

        assert detail is not None
        assert detail.is_active is False

    def test_get_by_ids_keeps_request_order_and_drops_unknown(self, make_location, db_session, now):
        first = make_location(name="B")
        second = make_location(name="A")

        locations = get_locations_by_ids(db_session, [first.id, "missing", second.id, first.id], now)

        assert [location.id for location in locations] == [first.id, second.id]

    def test_history_requires_existing_location(self, db_session):
        with pytest.raises(NotFoundError):
            get_box_change_history(db_session, "missing")

    def test_history_is_newest_first_and_limited(self, make_location, db_session, now):
        location = make_location(days_ago=10)
        for days_ago in (9, 3, 6):
            mark_boxes_changed(db_session, location.id, now=now - timedelta(days=days_ago))

        history = get_box_change_history(db_session, location.id, limit=2)

        assert len(history) == 2
        assert history[0].changed_at > history[1].changed_at


class TestUpdateAndDelete:
    def test_update_applies_only_given_fields(self, make_location, db_session, now):
        location = make_location(name="Old", days_ago=3, contact_phone="555-0100")

        updated = update_location(db_session, location.id, {"name": "New", "notes": "Back entrance"}, now=now)

        assert updated.name == "New"
        assert updated.notes == "Back entrance"
        assert updated.contact_phone == "555-0100"
        # Editing a location does not reset the box change clock
        assert updated.elapsed_days == 3
        assert updated.updated_at == now

    def test_update_ignores_last_box_change(self, make_location, db_session, now):
        location = make_location(days_ago=9)

        updated = update_location(db_session, location.id, {"last_box_change": now}, now=now)

        assert updated.elapsed_days == 9

    def test_update_validates_coordinates(self, make_location, db_session, now):
        location = make_location(latitude=10, longitude=10)

        with pytest.raises(InputValidationError):
            update_location(db_session, location.id, {"latitude": -95}, now=now)

        db_session.expire_all()
        assert db_session.get(Location, location.id).latitude == 10

    @pytest.mark.parametrize("field", ["name", "address", "latitude", "longitude"])
    def test_update_cannot_clear_required_field(self, make_location, db_session, now, field):
        location = make_location(name="Keep", address="1 Keep St", latitude=10, longitude=20)

        with pytest.raises(InputValidationError) as exc_info:
            update_location(db_session, location.id, {field: None}, now=now)

        assert exc_info.value.details == {"fields": [field]}
        db_session.expire_all()
        row = db_session.get(Location, location.id)
        assert (row.name, row.address, row.latitude, row.longitude) == ("Keep", "1 Keep St", 10, 20)

    def test_update_missing_location(self, db_session, now):
        with pytest.raises(NotFoundError):
            update_location(db_session, "missing", {"name": "x"}, now=now)

    def test_update_into_duplicate_is_rejected(self, make_location, db_session, now):
        make_location(name="Taken", address="1 Main St")
        other = make_location(name="Other", address="1 Main St")

        with pytest.raises(DuplicateResourceError):
            update_location(db_session, other.id, {"name": "Taken"}, now=now)

        assert db_session.get(Location, other.id).name == "Other"

    def test_delete_is_soft(self, make_location, db_session, now, counts):
        location = make_location()

        delete_location(db_session, location.id, now=now)

        assert counts() == (1, 0)
        assert db_session.get(Location, location.id).is_active is False

    def test_delete_missing_location(self, db_session):
        with pytest.raises(NotFoundError):
            delete_location(db_session, "missing")


class TestAnalytics:
    def test_counts_and_average_interval(self, make_location, db_session, now):
        busy = make_location(name="Busy", days_ago=20)
        make_location(name="Idle", days_ago=12)
        for days_ago in (12, 8, 2):
            mark_boxes_changed(db_session, busy.id, now=now - timedelta(days=days_ago))

        analytics = get_location_analytics(db_session, now)

        assert analytics.total_locations == 2
        assert analytics.active_locations == 2
        assert analytics.fresh_count == 1
        assert analytics.warning_count == 0
        assert analytics.overdue_count == 1
        # Intervals of 4 and 6 days
        assert analytics.average_days_between_changes == 5

    def test_average_rounds_half_up(self, make_location, db_session, now):
        location = make_location(days_ago=10)
        for days_ago in (9, 5, 0):
            mark_boxes_changed(db_session, location.id, now=now - timedelta(days=days_ago))

        # Intervals of 4 and 5 days average to 4.5
        assert get_location_analytics(db_session, now).average_days_between_changes == 5

    def test_no_history_means_zero_average(self, make_location, db_session, now):
        make_location()
        assert get_location_analytics(db_session, now).average_days_between_changes == 0

    def test_inactive_locations_are_excluded(self, make_location, db_session, now):
        location = make_location(days_ago=30)
        delete_location(db_session, location.id, now=now)

        analytics = get_location_analytics(db_session, now)

        assert analytics.total_locations == 0
        assert analytics.overdue_count == 0
        assert db_session.query(BoxChange).count() == 0
