"""
Geocoding helper utilities for auto-resolving plan locations to coordinates
and vice-versa using Nominatim.
"""
import httpx
from typing import Optional, Tuple

from utils.logger import get_logger

logger = get_logger("geocoding")

NOMINATIM_URL = "https://nominatim.openstreetmap.org"
USER_AGENT = "GoPlanApp/1.0"


async def geocode_place_to_coords(
    place_query: str,
    timeout: float = 10.0
) -> Optional[Tuple[float, float, str]]:
    """
    Convert a place name/address to coordinates.

    Returns:
        (lat, lon, display_name) or None if geocoding fails
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(
                f"{NOMINATIM_URL}/search",
                params={
                    "q": place_query,
                    "format": "json",
                    "limit": 1,
                    "addressdetails": 1
                },
                headers={"User-Agent": USER_AGENT}
            )
            resp.raise_for_status()
            data = resp.json()

            if data:
                result = data[0]
                return (float(result["lat"]), float(result["lon"]), result["display_name"])
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        logger.warning("Forward geocoding failed for %r: %s", place_query, exc)

    return None


async def reverse_geocode_coords(
    lat: float,
    lon: float,
    timeout: float = 10.0
) -> Optional[dict]:
    """
    Convert coordinates to an address.

    Returns:
        Dict with keys: display_name, city, country, address or None
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(
                f"{NOMINATIM_URL}/reverse",
                params={
                    "lat": lat,
                    "lon": lon,
                    "format": "json",
                    "addressdetails": 1
                },
                headers={"User-Agent": USER_AGENT}
            )
            resp.raise_for_status()
            data = resp.json()

            if "error" not in data:
                address_parts = data.get("address", {})
                return {
                    "display_name": data.get("display_name", ""),
                    "city": (
                        address_parts.get("city") or
                        address_parts.get("town") or
                        address_parts.get("village") or
                        address_parts.get("municipality") or
                        ""
                    ),
                    "country": address_parts.get("country", ""),
                    "address": data.get("display_name", "")
                }
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Reverse geocoding failed for (%s, %s): %s", lat, lon, exc)

    return None


def build_place_query(city: Optional[str] = None, address: Optional[str] = None) -> Optional[str]:
    """Build a place query string from address and city."""
    parts = []
    if address:
        parts.append(address)
    if city and city != address:
        parts.append(city)

    return ", ".join(parts) if parts else None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on the Earth
    (specified in decimal degrees) using the Haversine formula.

    Returns:
        Distance in meters
    """
    from math import radians, cos, sin, asin, sqrt

    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * asin(sqrt(a))

    # Radius of earth in meters
    r = 6371000

    return c * r


async def resolve_location(location: dict) -> dict:
    """
    Fill in missing coordinates or city for a plan location.

    `location` has keys address, city, latitude, longitude; a new dict is
    returned and lookups that fail leave the fields as they were.
    """
    data = dict(location)
    if data.get("latitude") is None or data.get("longitude") is None:
        place_query = build_place_query(city=data.get("city"), address=data.get("address"))
        if place_query:
            result = await geocode_place_to_coords(place_query)
            if result:
                lat, lon, display_name = result
                data["latitude"] = lat
                data["longitude"] = lon
                if not data.get("address"):
                    data["address"] = display_name

    if data.get("latitude") is not None and data.get("longitude") is not None and not data.get("city"):
        result = await reverse_geocode_coords(data["latitude"], data["longitude"])
        if result:
            data["city"] = result.get("city") or None
            if not data.get("address"):
                data["address"] = result.get("address") or None

    return data
