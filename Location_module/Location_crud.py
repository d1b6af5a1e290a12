"""
Location CRUD operations and the box change transaction.
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from .Location_model import Location
from .Box_change_model import BoxChange
from .Location_schema import BoxChangeData, LocationAnalytics, LocationData, LocationDetailData
from .elapsed_time import LocationStatus, calculate_elapsed_days
from Utils.api_errors import DuplicateResourceError, InputValidationError, NotFoundError, is_unique_violation
from Utils.datetime_utils import now_utc, to_utc

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
SECONDS_PER_DAY = 60 * 60 * 24

# Descriptive fields that may be edited directly
EDITABLE_FIELDS = (
    "name",
    "address",
    "latitude",
    "longitude",
    "description",
    "contact_person",
    "contact_phone",
    "notes",
)
# Editable fields backed by NOT NULL columns
REQUIRED_FIELDS = ("name", "address", "latitude", "longitude")


def is_valid_coordinates(latitude: float, longitude: float) -> bool:
    """Validate GPS coordinates."""
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def _ensure_valid_coordinates(latitude: float, longitude: float) -> None:
    if not is_valid_coordinates(latitude, longitude):
        raise InputValidationError(
            "Invalid GPS coordinates provided",
            details={"latitude": latitude, "longitude": longitude}
        )


def decorate_location(location: Location, now: Optional[datetime] = None) -> LocationData:
    """Combine a location row with elapsed-time info computed against `now`."""
    return LocationData.from_location(location, calculate_elapsed_days(location.last_box_change, now))


def _get_location(db: Session, location_id: str) -> Optional[Location]:
    return db.query(Location).filter(Location.id == location_id).first()


def get_all_locations(db: Session, now: Optional[datetime] = None) -> List[LocationData]:
    """Get all active locations with elapsed days information, sorted by name."""
    now = now or now_utc()
    locations = db.query(Location).filter(
        Location.is_active == True
    ).order_by(Location.name.asc()).all()
    return [decorate_location(location, now) for location in locations]


def get_overdue_locations(db: Session, now: Optional[datetime] = None) -> List[LocationData]:
    """Get active locations that are overdue (7 or more days since last change)."""
    return [
        location for location in get_all_locations(db, now)
        if location.status == LocationStatus.OVERDUE
    ]


def get_location_by_id(
    db: Session,
    location_id: str,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    now: Optional[datetime] = None
) -> Optional[LocationDetailData]:
    """
    Get a single location with its most recent box changes (newest first).
    Returns None if the location does not exist.
    """
    location = _get_location(db, location_id)
    if not location:
        return None

    recent_changes = db.query(BoxChange).filter(
        BoxChange.location_id == location_id
    ).order_by(BoxChange.changed_at.desc()).limit(history_limit).all()

    return LocationDetailData.from_location(
        location,
        calculate_elapsed_days(location.last_box_change, now),
        box_changes=[BoxChangeData.model_validate(change) for change in recent_changes]
    )


def get_locations_by_ids(
    db: Session,
    location_ids: Iterable[str],
    now: Optional[datetime] = None
) -> List[LocationData]:
    """
    Get locations in the order their IDs were given.
    Unknown and repeated IDs are dropped.
    """
    unique_ids = list(dict.fromkeys(location_ids))
    now = now or now_utc()
    rows = {
        location.id: location
        for location in db.query(Location).filter(Location.id.in_(unique_ids)).all()
    }
    return [decorate_location(rows[location_id], now) for location_id in unique_ids if location_id in rows]


def get_box_change_history(db: Session, location_id: str, limit: Optional[int] = None) -> List[BoxChange]:
    """Get box change history for a location (newest first)."""
    if not _get_location(db, location_id):
        raise NotFoundError(f"Location {location_id} not found")

    query = db.query(BoxChange).filter(
        BoxChange.location_id == location_id
    ).order_by(BoxChange.changed_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def create_location(
    db: Session,
    name: str,
    address: str,
    latitude: float,
    longitude: float,
    description: Optional[str] = None,
    contact_person: Optional[str] = None,
    contact_phone: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> LocationData:
    """
    Create a new location.
    The initial box change is set to now (fresh start).
    """
    _ensure_valid_coordinates(latitude, longitude)
    now = now or now_utc()

    location = Location(
        name=name.strip(),
        address=address.strip(),
        latitude=latitude,
        longitude=longitude,
        description=description,
        contact_person=contact_person,
        contact_phone=contact_phone,
        notes=notes,
        last_box_change=now,
        is_active=True,
        created_at=now,
        updated_at=now
    )

    try:
        db.add(location)
        db.commit()
        db.refresh(location)
    except IntegrityError as e:
        db.rollback()
        if not is_unique_violation(e):
            logger.error(f"Failed to create location - Constraint violation | Error: {str(e)}", exc_info=True)
            raise
        logger.warning(f"Location create rejected - duplicate | Name: {name} | Address: {address} | Error: {e}")
        raise DuplicateResourceError(f"Location '{name}' at '{address}' already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create location - Database error | Error: {str(e)}", exc_info=True)
        raise

    logger.info(f"Location created | ID: {location.id} | Name: {location.name}")
    return decorate_location(location, now)


def update_location(
    db: Session,
    location_id: str,
    changes: Dict[str, Any],
    now: Optional[datetime] = None
) -> LocationData:
    """
    Update descriptive fields of an existing location.
    Only keys present in `changes` are applied; last_box_change cannot be set here.
    """
    location = _get_location(db, location_id)
    if not location:
        raise NotFoundError(f"Location {location_id} not found")

    changes = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}

    cleared = sorted(key for key in REQUIRED_FIELDS if key in changes and changes[key] is None)
    if cleared:
        raise InputValidationError(
            "Required location fields cannot be cleared",
            details={"fields": cleared}
        )

    if "latitude" in changes or "longitude" in changes:
        _ensure_valid_coordinates(
            changes.get("latitude", location.latitude),
            changes.get("longitude", location.longitude)
        )

    for key, value in changes.items():
        setattr(location, key, value)

    now = now or now_utc()
    location.updated_at = now

    try:
        db.commit()
        db.refresh(location)
    except IntegrityError as e:
        db.rollback()
        if not is_unique_violation(e):
            logger.error(f"Failed to update location {location_id} - Constraint violation | Error: {str(e)}", exc_info=True)
            raise
        logger.warning(f"Location update rejected - duplicate | ID: {location_id} | Error: {e}")
        raise DuplicateResourceError("A location with this name and address already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update location {location_id} - Database error | Error: {str(e)}", exc_info=True)
        raise

    logger.info(f"Location updated | ID: {location_id} | Fields: {sorted(changes)}")
    return decorate_location(location, now)


def delete_location(db: Session, location_id: str, now: Optional[datetime] = None) -> None:
    """Delete a location (soft delete - mark as inactive)."""
    location = _get_location(db, location_id)
    if not location:
        raise NotFoundError(f"Location {location_id} not found")

    location.is_active = False
    location.updated_at = now or now_utc()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete location {location_id} - Database error | Error: {str(e)}", exc_info=True)
        raise

    logger.info(f"Location soft-deleted | ID: {location_id}")


def mark_boxes_changed(
    db: Session,
    location_id: str,
    changed_by: Optional[str] = None,
    notes: Optional[str] = None,
    box_count: Optional[int] = None,
    now: Optional[datetime] = None
) -> LocationData:
    """
    Mark boxes as changed at a location.

    Resets the location's last_box_change to now and records a BoxChange history
    row in the same transaction. The returned location is classified against the
    same instant, so it is always 0 days / fresh / "Today".

    Raises:
        NotFoundError: if the location does not exist (nothing is written)
    """
    location = _get_location(db, location_id)
    if not location:
        raise NotFoundError(f"Location {location_id} not found")

    now = now or now_utc()

    try:
        location.last_box_change = now
        location.updated_at = now
        db.add(BoxChange(
            location_id=location_id,
            changed_at=now,
            changed_by=changed_by,
            notes=notes,
            box_count=box_count
        ))
        db.commit()
        db.refresh(location)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Failed to mark boxes changed - Database error | "
            f"Location ID: {location_id} | Error: {str(e)}",
            exc_info=True
        )
        raise

    logger.info(
        f"Boxes marked as changed | Location ID: {location_id} | "
        f"Changed by: {changed_by or 'unknown'} | Box count: {box_count}"
    )
    return decorate_location(location, now)


def batch_mark_boxes_changed(
    db: Session,
    location_ids: Iterable[str],
    changed_by: Optional[str] = None,
    notes: Optional[str] = None,
    box_count: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[LocationData]:
    """
    Mark several locations as changed in one transaction.

    IDs that do not match an existing location are skipped silently: they get no
    history row and do not fail the call. Either every matched location is advanced
    and gets its history row, or nothing is written.

    Returns:
        The updated locations, sorted by name
    """
    unique_ids = list(dict.fromkeys(location_ids))
    now = now or now_utc()

    try:
        existing_ids = [
            row[0] for row in db.query(Location.id).filter(Location.id.in_(unique_ids)).all()
        ]
        if existing_ids:
            db.query(Location).filter(Location.id.in_(existing_ids)).update(
                {Location.last_box_change: now, Location.updated_at: now},
                synchronize_session=False
            )
            db.add_all([
                BoxChange(
                    location_id=location_id,
                    changed_at=now,
                    changed_by=changed_by,
                    notes=notes,
                    box_count=box_count
                )
                for location_id in existing_ids
            ])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Failed to batch mark boxes changed - Database error | "
            f"Location IDs: {unique_ids} | Error: {str(e)}",
            exc_info=True
        )
        raise

    matched = set(existing_ids)
    skipped = [location_id for location_id in unique_ids if location_id not in matched]
    if skipped:
        logger.info(f"Batch mark skipped unknown location IDs: {skipped}")
    logger.info(f"Batch boxes marked as changed | Updated: {len(existing_ids)} | Changed by: {changed_by or 'unknown'}")

    if not existing_ids:
        return []

    locations = db.query(Location).filter(
        Location.id.in_(existing_ids)
    ).order_by(Location.name.asc()).all()
    return [decorate_location(location, now) for location in locations]


def _average_days_between_changes(db: Session) -> int:
    changes = db.query(BoxChange.location_id, BoxChange.changed_at).order_by(BoxChange.changed_at.asc()).all()

    changes_by_location = defaultdict(list)
    for location_id, changed_at in changes:
        changes_by_location[location_id].append(to_utc(changed_at))

    total_days = 0.0
    intervals = 0
    for dates in changes_by_location.values():
        for previous, current in zip(dates, dates[1:]):
            total_days += (current - previous).total_seconds() / SECONDS_PER_DAY
            intervals += 1

    if not intervals:
        return 0
    # Round half up
    return int(total_days / intervals + 0.5)


def get_location_analytics(db: Session, now: Optional[datetime] = None) -> LocationAnalytics:
    """Get analytics for the dashboard."""
    locations = get_all_locations(db, now)

    return LocationAnalytics(
        total_locations=len(locations),
        active_locations=len([location for location in locations if location.is_active]),
        fresh_count=len([location for location in locations if location.status == LocationStatus.FRESH]),
        warning_count=0,
        overdue_count=len([location for location in locations if location.status == LocationStatus.OVERDUE]),
        average_days_between_changes=_average_days_between_changes(db)
    )
