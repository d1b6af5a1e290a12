"""
Route Schemas - Pydantic models for route optimization requests/responses
"""
from typing import List

from pydantic import BaseModel, Field, validator

from Location_module.elapsed_time import LocationStatus


class RouteOptimizeRequest(BaseModel):
    """Request schema for optimizing a multi-stop visit"""
    current_location: str = Field(..., min_length=1, description="Starting address, e.g. 'Charity HQ, Detroit, MI'")
    location_ids: List[str] = Field(..., min_length=1, description="Locations to visit")
    return_to_start: bool = Field(True, description="Should the route return to the starting location?")

    @validator("current_location")
    def strip_current_location(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Current location is required")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "current_location": "Charity HQ, Detroit, MI",
                "location_ids": ["4f1c...", "9a2b...", "c7d3..."],
                "return_to_start": True,
            }
        }


class DistancesRequest(BaseModel):
    current_location: str = Field(..., min_length=1)
    location_ids: List[str] = Field(..., min_length=1)


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)


class RouteStop(BaseModel):
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    elapsed_days: int
    status: LocationStatus

    class Config:
        frozen = True


class OptimizedRouteData(BaseModel):
    optimized_order: List[RouteStop]
    total_distance: float = Field(..., ge=0, description="Miles")
    total_duration: int = Field(..., ge=0, description="Minutes")
    route_summary: str
    estimated_time: str


class LocationDistance(BaseModel):
    id: str
    name: str
    address: str
    status: LocationStatus
    elapsed_days: int
    distance: float = Field(..., description="Miles")
    duration: int = Field(..., description="Minutes")


class GeocodeData(BaseModel):
    address: str
    latitude: float
    longitude: float


class OptimizedRouteResponse(BaseModel):
    success: bool = True
    message: str
    data: OptimizedRouteData


class LocationDistanceListResponse(BaseModel):
    success: bool = True
    data: List[LocationDistance]
    count: int


class GeocodeResponse(BaseModel):
    success: bool = True
    data: GeocodeData
