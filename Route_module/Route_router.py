"""
Route Router - API endpoints for planning visits to donation box locations
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from deps import get_db, get_maps_client
from .maps_client import GoogleMapsClient
from .Route_schema import (
    DistancesRequest,
    GeocodeRequest,
    GeocodeResponse,
    LocationDistanceListResponse,
    OptimizedRouteResponse,
    RouteOptimizeRequest,
)
from .Route_service import calculate_location_distances, geocode_address, optimize_location_route

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/routes", tags=["Routes"])


@router.post("/optimize", response_model=OptimizedRouteResponse)
def optimize_route_api(
    req: RouteOptimizeRequest,
    db: Session = Depends(get_db),
    maps_client: GoogleMapsClient = Depends(get_maps_client)
):
    """
    Calculate the most efficient order for visiting multiple locations.

    Typical use: a worker picks today's overdue locations and gets back the
    order to visit them in, with total miles and minutes.
    """
    route = optimize_location_route(
        db=db,
        maps_client=maps_client,
        current_location=req.current_location,
        location_ids=req.location_ids,
        return_to_start=req.return_to_start
    )
    return OptimizedRouteResponse(
        data=route,
        message=f"Optimized route for {len(route.optimized_order)} locations"
    )


@router.post("/distances", response_model=LocationDistanceListResponse)
def location_distances_api(
    req: DistancesRequest,
    db: Session = Depends(get_db),
    maps_client: GoogleMapsClient = Depends(get_maps_client)
):
    """Driving distance and time from the current location to each selected location."""
    distances = calculate_location_distances(db, maps_client, req.current_location, req.location_ids)
    return LocationDistanceListResponse(data=distances, count=len(distances))


@router.post("/geocode", response_model=GeocodeResponse)
def geocode_api(req: GeocodeRequest, maps_client: GoogleMapsClient = Depends(get_maps_client)):
    """Convert an address to GPS coordinates (useful before creating a location)."""
    return GeocodeResponse(data=geocode_address(maps_client, req.address.strip()))
