"""Location detection via IP geolocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

IP_API_URL = "http://ip-api.com/json/"
REQUEST_TIMEOUT = 5

# Used when nothing else is configured
DEFAULT_LATITUDE = 52.52
DEFAULT_LONGITUDE = 13.41
DEFAULT_CITY = "Berlin"


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    city: str = ""
    region: str = ""
    country: str = ""
    timezone: str = ""


def lookup_location(session: Optional[requests.Session] = None) -> Optional[GeoLocation]:
    """Approximate location of this machine, or None if the lookup fails."""
    http = session or requests
    try:
        response = http.get(IP_API_URL, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("IP geolocation failed: %s", exc)
        return None

    if data.get("status") != "success":
        logger.warning("IP geolocation refused: %s", data.get("message", "unknown error"))
        return None

    try:
        location = GeoLocation(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            city=data.get("city", ""),
            region=data.get("regionName", ""),
            country=data.get("country", ""),
            timezone=data.get("timezone", ""),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("IP geolocation returned no coordinates")
        return None

    logger.info("Detected location %s (%.2f, %.2f)", location.city or "?", location.latitude, location.longitude)
    return location
