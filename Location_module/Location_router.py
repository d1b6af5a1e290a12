"""
Location Router - API endpoints for donation box locations
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from config import settings
from deps import get_db
from Utils.api_errors import NotFoundError
from .Location_crud import (
    batch_mark_boxes_changed,
    create_location,
    delete_location,
    get_all_locations,
    get_box_change_history,
    get_location_analytics,
    get_location_by_id,
    get_overdue_locations,
    mark_boxes_changed,
    update_location,
)
from .Location_schema import (
    BatchMarkBoxChangeRequest,
    BoxChangeData,
    BoxChangeListResponse,
    LocationAnalyticsResponse,
    LocationCreateRequest,
    LocationDetailResponse,
    LocationListResponse,
    LocationResponse,
    LocationUpdateRequest,
    MarkBoxChangeRequest,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/locations", tags=["Locations"])


@router.get("", response_model=LocationListResponse)
def list_locations(
    overdue: bool = Query(False, description="Only return overdue locations (7+ days)"),
    db: Session = Depends(get_db)
):
    """Get all active locations with elapsed days information."""
    locations = get_overdue_locations(db) if overdue else get_all_locations(db)
    return LocationListResponse(data=locations, count=len(locations))


@router.post("", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
def create_location_api(req: LocationCreateRequest, db: Session = Depends(get_db)):
    """
    Create a new location.

    The location starts fresh: its last box change is set to now.
    """
    location = create_location(
        db=db,
        name=req.name,
        address=req.address,
        latitude=req.latitude,
        longitude=req.longitude,
        description=req.description,
        contact_person=req.contact_person,
        contact_phone=req.contact_phone,
        notes=req.notes
    )
    return LocationResponse(data=location, message="Location created successfully")


@router.get("/analytics", response_model=LocationAnalyticsResponse)
def location_analytics(db: Session = Depends(get_db)):
    """Dashboard analytics: fresh/overdue counts and average days between changes."""
    return LocationAnalyticsResponse(data=get_location_analytics(db))


@router.post("/mark-changed", response_model=LocationListResponse)
def batch_mark_changed_api(req: BatchMarkBoxChangeRequest, db: Session = Depends(get_db)):
    """
    Mark boxes as changed at several locations in one transaction.
    Unknown location IDs are skipped, not reported as errors.
    """
    locations = batch_mark_boxes_changed(
        db=db,
        location_ids=req.location_ids,
        changed_by=req.changed_by,
        notes=req.notes,
        box_count=req.box_count
    )
    return LocationListResponse(
        data=locations,
        count=len(locations),
        message=f"Boxes marked as changed at {len(locations)} location(s)"
    )


@router.get("/{location_id}", response_model=LocationDetailResponse)
def get_location_api(location_id: str, db: Session = Depends(get_db)):
    """Get a single location with its recent box change history."""
    location = get_location_by_id(db, location_id, history_limit=settings.BOX_HISTORY_LIMIT)
    if not location:
        raise NotFoundError(f"Location {location_id} not found")
    return LocationDetailResponse(data=location)


@router.put("/{location_id}", response_model=LocationResponse)
def update_location_api(location_id: str, req: LocationUpdateRequest, db: Session = Depends(get_db)):
    """Update a location. Send only the fields you want to change."""
    location = update_location(db, location_id, req.dict(exclude_unset=True))
    return LocationResponse(data=location, message="Location updated successfully")


@router.delete("/{location_id}", response_model=MessageResponse)
def delete_location_api(location_id: str, db: Session = Depends(get_db)):
    """Soft delete a location (it is hidden from lists but its history is kept)."""
    delete_location(db, location_id)
    return MessageResponse(message="Location deleted successfully")


@router.post("/{location_id}/mark-changed", response_model=LocationResponse)
def mark_changed_api(
    location_id: str,
    req: Optional[MarkBoxChangeRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Mark boxes as changed at a location.

    Resets the timer to today and records a history entry. Body fields are optional:

        {"changed_by": "John Worker", "notes": "Restocked", "box_count": 50}
    """
    req = req or MarkBoxChangeRequest()
    location = mark_boxes_changed(
        db=db,
        location_id=location_id,
        changed_by=req.changed_by,
        notes=req.notes,
        box_count=req.box_count
    )
    return LocationResponse(
        data=location,
        message="Boxes marked as changed successfully! Timer reset to today."
    )


@router.get("/{location_id}/history", response_model=BoxChangeListResponse)
def location_history_api(
    location_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Full box change history for a location, newest first."""
    changes = [BoxChangeData.model_validate(change) for change in get_box_change_history(db, location_id, limit)]
    return BoxChangeListResponse(data=changes, count=len(changes))
