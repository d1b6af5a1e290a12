"""
Google Maps integration for route optimization, driving distances and geocoding.

Uses the Directions, Distance Matrix and Geocoding REST APIs. Distances and
durations arrive as display strings ("3.2 mi", "1 hour 5 mins") and are parsed
into miles and minutes.
"""
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://maps.googleapis.com/maps/api"
DEFAULT_TIMEOUT_SECONDS = 10

FEET_PER_MILE = 5280
KM_PER_MILE = 1.609344

_NUMBER_UNIT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([a-zA-Z]+)")

_DISTANCE_UNITS_TO_MILES = {
    "mi": 1.0,
    "mile": 1.0,
    "miles": 1.0,
    "ft": 1.0 / FEET_PER_MILE,
    "km": 1.0 / KM_PER_MILE,
    "m": 1.0 / (KM_PER_MILE * 1000),
}

_DURATION_UNITS_TO_MINUTES = {
    "day": 24 * 60,
    "days": 24 * 60,
    "hour": 60,
    "hours": 60,
    "hr": 60,
    "hrs": 60,
    "min": 1,
    "mins": 1,
    "minute": 1,
    "minutes": 1,
}


class RouteProviderError(Exception):
    """The mapping provider could not fulfil a request."""


class OptimizedRoute(NamedTuple):
    optimized_order: List[str]
    total_distance: float  # miles
    total_duration: int  # minutes


class DrivingDistance(NamedTuple):
    destination: str
    distance: float  # miles
    duration: int  # minutes


def _number(raw: str) -> float:
    return float(raw.replace(",", ""))


def parse_distance_miles(text: str) -> float:
    """Convert a provider distance string like "3.2 mi" or "500 ft" to miles."""
    match = _NUMBER_UNIT_RE.search(text or "")
    if not match:
        raise ValueError(f"Unrecognized distance: {text!r}")
    value, unit = match.groups()
    factor = _DISTANCE_UNITS_TO_MILES.get(unit.lower())
    if factor is None:
        raise ValueError(f"Unrecognized distance unit in {text!r}")
    return round(_number(value) * factor, 2)


def parse_duration_minutes(text: str) -> int:
    """Convert a provider duration string like "8 mins" or "1 hour 5 mins" to minutes."""
    total = 0.0
    matched = False
    for value, unit in _NUMBER_UNIT_RE.findall(text or ""):
        factor = _DURATION_UNITS_TO_MINUTES.get(unit.lower())
        if factor is None:
            continue
        total += _number(value) * factor
        matched = True
    if not matched:
        raise ValueError(f"Unrecognized duration: {text!r}")
    return int(round(total))


class GoogleMapsClient:
    """
    Stateless Google Maps API handle.
    Created once at startup with credentials and shared by all requests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT_SECONDS
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "GoogleMapsClient":
        if not settings.GOOGLE_MAPS_API_KEY:
            logger.warning("GOOGLE_MAPS_API_KEY is not set. Route optimization requests will fail.")
        return cls(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            base_url=settings.MAPS_API_BASE_URL,
            timeout=settings.MAPS_REQUEST_TIMEOUT_SECONDS
        )

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}/{endpoint}/json"
        try:
            response = requests.get(
                url,
                params={**params, "key": self._api_key},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Google Maps {endpoint} request timed out")
            raise RouteProviderError(f"Google Maps {endpoint} request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Google Maps {endpoint} request failed: {e}")
            raise RouteProviderError(f"Google Maps {endpoint} request failed") from e
        except ValueError as e:
            logger.error(f"Google Maps {endpoint} returned invalid JSON: {e}")
            raise RouteProviderError(f"Google Maps {endpoint} returned an invalid response") from e

        status = payload.get("status")
        if status != "OK":
            logger.error(
                f"Google Maps {endpoint} error | Status: {status} | "
                f"Message: {payload.get('error_message', '')}"
            )
            raise RouteProviderError(f"Google Maps {endpoint} returned status {status}")
        return payload

    def optimize_route(self, origin: str, destinations: List[str]) -> OptimizedRoute:
        """
        Find the optimal visiting order for multiple stops, starting and ending at origin.
        """
        payload = self._get("directions", {
            "origin": origin,
            "destination": origin,
            "waypoints": "|".join(["optimize:true", *destinations]),
            "mode": "driving",
            "units": "imperial",
        })

        routes = payload.get("routes") or []
        if not routes:
            raise RouteProviderError("Google Maps returned no routes")
        route = routes[0]

        waypoint_order = route.get("waypoint_order") or list(range(len(destinations)))
        if sorted(waypoint_order) != list(range(len(destinations))):
            raise RouteProviderError(f"Invalid waypoint order from provider: {waypoint_order}")

        try:
            total_distance = sum(parse_distance_miles(leg["distance"]["text"]) for leg in route.get("legs", []))
            total_duration = sum(parse_duration_minutes(leg["duration"]["text"]) for leg in route.get("legs", []))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Could not parse route legs: {e}")
            raise RouteProviderError("Could not parse route legs") from e

        logger.info(
            f"Route optimized | Stops: {len(destinations)} | "
            f"Distance: {total_distance:.1f} mi | Duration: {total_duration} min"
        )
        return OptimizedRoute(
            optimized_order=[destinations[index] for index in waypoint_order],
            total_distance=round(total_distance, 2),
            total_duration=total_duration
        )

    def calculate_driving_distances(self, origin: str, destinations: List[str]) -> List[DrivingDistance]:
        """Calculate driving distances from origin to each destination."""
        payload = self._get("distancematrix", {
            "origins": origin,
            "destinations": "|".join(destinations),
            "mode": "driving",
            "units": "imperial",
        })

        rows = payload.get("rows") or []
        elements = rows[0].get("elements", []) if rows else []
        if len(elements) != len(destinations):
            raise RouteProviderError("Distance matrix size does not match destinations")

        results = []
        for destination, element in zip(destinations, elements):
            if element.get("status") == "OK":
                try:
                    results.append(DrivingDistance(
                        destination=destination,
                        distance=parse_distance_miles(element["distance"]["text"]),
                        duration=parse_duration_minutes(element["duration"]["text"])
                    ))
                    continue
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Could not parse distance to {destination}: {e}")
            else:
                logger.warning(f"Could not calculate distance to {destination} (status: {element.get('status')})")
            results.append(DrivingDistance(destination=destination, distance=0.0, duration=0))
        return results

    def geocode(self, address: str) -> Tuple[float, float]:
        """Convert address to GPS coordinates (lat, lng)."""
        payload = self._get("geocode", {"address": address})

        results = payload.get("results") or []
        if not results:
            raise RouteProviderError(f"Could not geocode address: {address}")
        location: Optional[Dict[str, float]] = results[0].get("geometry", {}).get("location")
        if not location:
            raise RouteProviderError(f"Could not geocode address: {address}")
        return location["lat"], location["lng"]
