"""
Location Schemas - Pydantic models for request/response validation
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from Utils.datetime_utils import to_utc, to_utc_str
from .elapsed_time import ElapsedInfo, LocationStatus


class LocationCreateRequest(BaseModel):
    """Request schema for creating a location"""
    name: str = Field(..., min_length=1, max_length=255, description="Location name")
    address: str = Field(..., min_length=1, max_length=500, description="Street address used for routing")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude (-90 to 90)")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude (-180 to 180)")
    description: Optional[str] = Field(None, description="Description")
    contact_person: Optional[str] = Field(None, max_length=255, description="On-site contact")
    contact_phone: Optional[str] = Field(None, max_length=50, description="Contact phone")
    notes: Optional[str] = Field(None, description="Access notes, e.g. 'Use back entrance'")

    @validator("name", "address")
    def strip_required_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Downtown Food Bank",
                "address": "123 Main St, Detroit, MI",
                "latitude": 42.3314,
                "longitude": -83.0458,
                "description": "Main food distribution center",
                "contact_person": "John Doe",
                "contact_phone": "555-1234",
                "notes": "Use back entrance",
            }
        }


class LocationUpdateRequest(BaseModel):
    """Request schema for editing a location - send only the fields to change"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    description: Optional[str] = None
    contact_person: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    # Runs only for fields present in the request body, so omitted fields stay unchanged
    @validator("name", "address", "latitude", "longitude", pre=True)
    def reject_null_required(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @validator("name", "address")
    def strip_optional_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class MarkBoxChangeRequest(BaseModel):
    """Request schema for marking boxes as changed (all fields optional)"""
    changed_by: Optional[str] = Field(None, max_length=255, description="Name of the worker")
    notes: Optional[str] = Field(None, description="Free-text note")
    box_count: Optional[int] = Field(None, gt=0, description="Number of boxes placed")


class BatchMarkBoxChangeRequest(MarkBoxChangeRequest):
    """Mark several locations as changed in one transaction"""
    location_ids: List[str] = Field(..., min_length=1, description="Location IDs to mark")


class BoxChangeData(BaseModel):
    id: str
    location_id: str
    changed_at: datetime
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    box_count: Optional[int] = None

    @validator("changed_at")
    def normalize_changed_at(cls, v):
        return to_utc(v)

    class Config:
        from_attributes = True
        frozen = True


class LocationData(BaseModel):
    """A persisted location combined with its elapsed-time information."""
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    description: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    last_box_change: datetime
    last_box_change_display: str = Field(..., description="UTC display form, e.g. 'Mar 01, 2026 12:00'")
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    elapsed_days: int
    status: LocationStatus
    last_change_formatted: str

    @validator("last_box_change", "created_at", "updated_at")
    def normalize_timestamps(cls, v):
        return to_utc(v)

    class Config:
        frozen = True

    @staticmethod
    def location_fields(location) -> dict:
        return {
            "id": location.id,
            "name": location.name,
            "address": location.address,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "description": location.description,
            "contact_person": location.contact_person,
            "contact_phone": location.contact_phone,
            "notes": location.notes,
            "last_box_change": location.last_box_change,
            "last_box_change_display": to_utc_str(location.last_box_change),
            "is_active": location.is_active,
            "created_at": location.created_at,
            "updated_at": location.updated_at,
        }

    @classmethod
    def from_location(cls, location, elapsed: ElapsedInfo, **extra):
        return cls(
            **cls.location_fields(location),
            elapsed_days=elapsed.days,
            status=elapsed.status,
            last_change_formatted=elapsed.formatted,
            **extra
        )


class LocationDetailData(LocationData):
    """Single location with its most recent box changes (newest first)"""
    box_changes: List[BoxChangeData] = Field(default_factory=list)


class LocationAnalytics(BaseModel):
    total_locations: int
    active_locations: int
    fresh_count: int
    warning_count: int = 0  # the warning tier is never produced
    overdue_count: int
    average_days_between_changes: int


class LocationResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: LocationData


class LocationDetailResponse(BaseModel):
    success: bool = True
    data: LocationDetailData


class LocationListResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: List[LocationData]
    count: int


class BoxChangeListResponse(BaseModel):
    success: bool = True
    data: List[BoxChangeData]
    count: int


class LocationAnalyticsResponse(BaseModel):
    success: bool = True
    data: LocationAnalytics


class MessageResponse(BaseModel):
    success: bool = True
    message: str
