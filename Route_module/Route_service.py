"""
Route service - plans multi-stop visits to donation box locations.

Only reads from the datastore; the ordering itself comes from the maps provider.
"""
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, List

from sqlalchemy.orm import Session

from Location_module.Location_crud import get_locations_by_ids
from Location_module.Location_schema import LocationData
from Utils.api_errors import InternalError, NoValidLocationsError, RouteOptimizationFailed
from .maps_client import GoogleMapsClient, RouteProviderError
from .Route_schema import GeocodeData, LocationDistance, OptimizedRouteData, RouteStop

logger = logging.getLogger(__name__)

START_LABEL = "Current Location"
ROUTE_SEPARATOR = " → "


def _resolve_locations(db: Session, location_ids: List[str]) -> List[LocationData]:
    locations = get_locations_by_ids(db, location_ids)
    if not locations:
        raise NoValidLocationsError()
    if len(locations) < len(set(location_ids)):
        logger.info(f"Route request dropped {len(set(location_ids)) - len(locations)} unknown location IDs")
    return locations


def map_addresses_to_locations(addresses: List[str], locations: List[LocationData]) -> List[LocationData]:
    """
    Map the provider's ordered addresses back to the locations that supplied them.
    Each address consumes the first unused location with that address, so
    locations sharing an address still appear exactly once.
    """
    by_address: Dict[str, Deque[LocationData]] = defaultdict(deque)
    for location in locations:
        by_address[location.address].append(location)

    ordered = []
    for address in addresses:
        candidates = by_address.get(address)
        if not candidates:
            raise RouteProviderError(f"Provider returned an unknown address: {address}")
        ordered.append(candidates.popleft())
    return ordered


def format_estimated_time(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def build_route_summary(stops: List[RouteStop], return_to_start: bool) -> str:
    labels = [START_LABEL, *(stop.name for stop in stops)]
    if return_to_start:
        labels.append(START_LABEL)
    return ROUTE_SEPARATOR.join(labels)


def optimize_location_route(
    db: Session,
    maps_client: GoogleMapsClient,
    current_location: str,
    location_ids: List[str],
    return_to_start: bool = True
) -> OptimizedRouteData:
    """
    Calculate the most efficient order for visiting the given locations.

    Raises:
        NoValidLocationsError: none of the IDs exist
        RouteOptimizationFailed: the provider could not produce a route (retryable)
    """
    locations = _resolve_locations(db, location_ids)
    destination_addresses = [location.address for location in locations]

    try:
        optimized = maps_client.optimize_route(current_location, destination_addresses)
        ordered_locations = map_addresses_to_locations(optimized.optimized_order, locations)
    except RouteProviderError as e:
        logger.error(f"Route optimization error | Stops: {len(locations)} | Error: {e}")
        raise RouteOptimizationFailed(details={"reason": str(e)}) from e

    stops = [
        RouteStop(
            id=location.id,
            name=location.name,
            address=location.address,
            latitude=location.latitude,
            longitude=location.longitude,
            elapsed_days=location.elapsed_days,
            status=location.status
        )
        for location in ordered_locations
    ]

    return OptimizedRouteData(
        optimized_order=stops,
        total_distance=optimized.total_distance,
        total_duration=optimized.total_duration,
        route_summary=build_route_summary(stops, return_to_start),
        estimated_time=format_estimated_time(optimized.total_duration)
    )


def calculate_location_distances(
    db: Session,
    maps_client: GoogleMapsClient,
    current_location: str,
    location_ids: List[str]
) -> List[LocationDistance]:
    """Real driving distance and duration from the current location to each location."""
    locations = _resolve_locations(db, location_ids)

    try:
        distances = maps_client.calculate_driving_distances(
            current_location, [location.address for location in locations]
        )
    except RouteProviderError as e:
        raise InternalError("Could not calculate driving distances") from e

    return [
        LocationDistance(
            id=location.id,
            name=location.name,
            address=location.address,
            status=location.status,
            elapsed_days=location.elapsed_days,
            distance=distance.distance,
            duration=distance.duration
        )
        for location, distance in zip(locations, distances)
    ]


def geocode_address(maps_client: GoogleMapsClient, address: str) -> GeocodeData:
    try:
        latitude, longitude = maps_client.geocode(address)
    except RouteProviderError as e:
        raise InternalError("Could not convert address to coordinates") from e
    return GeocodeData(address=address, latitude=latitude, longitude=longitude)
