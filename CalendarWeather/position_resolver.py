"""Geographic position resolution: IP lookup, device time zone, default cities."""
import logging
from typing import Dict, List, Optional, Tuple

import requests

from weather_data import Position
from weather_provider import DecodeFailure, PositionUnavailable, TransportFailure

IPINFO_URL = "https://ipinfo.io/json"
REVERSE_GEOCODE_URL = "https://nominatim.openstreetmap.org/reverse"

DEFAULT_POSITIONS: List[Position] = [
    Position(40.7128, -74.0060, "New York"),
    Position(51.5074, -0.1278, "London"),
    Position(35.6762, 139.6503, "Tokyo"),
    Position(48.8566, 2.3522, "Paris"),
    Position(-33.8688, 151.2093, "Sydney"),
]

TIMEZONE_COORDINATES: Dict[str, Tuple[float, float]] = {
    # North America
    "America/New_York": (40.7128, -74.0060),
    "America/Chicago": (41.8781, -87.6298),
    "America/Denver": (39.7392, -104.9903),
    "America/Los_Angeles": (34.0522, -118.2437),
    "America/Phoenix": (33.4484, -112.0740),
    "America/Toronto": (43.6532, -79.3832),
    "America/Vancouver": (49.2827, -123.1207),
    "America/Mexico_City": (19.4326, -99.1332),
    # Europe
    "Europe/London": (51.5074, -0.1278),
    "Europe/Paris": (48.8566, 2.3522),
    "Europe/Berlin": (52.5200, 13.4050),
    "Europe/Rome": (41.9028, 12.4964),
    "Europe/Madrid": (40.4168, -3.7038),
    "Europe/Amsterdam": (52.3676, 4.9041),
    "Europe/Stockholm": (59.3293, 18.0686),
    "Europe/Moscow": (55.7558, 37.6176),
    # Asia
    "Asia/Tokyo": (35.6762, 139.6503),
    "Asia/Shanghai": (31.2304, 121.4737),
    "Asia/Hong_Kong": (22.3193, 114.1694),
    "Asia/Singapore": (1.3521, 103.8198),
    "Asia/Seoul": (37.5665, 126.9780),
    "Asia/Kolkata": (19.0760, 72.8777),
    "Asia/Dubai": (25.2048, 55.2708),
    "Asia/Bangkok": (13.7563, 100.5018),
    "Asia/Jerusalem": (31.7683, 35.2137),
    "Asia/Tehran": (35.6892, 51.3890),
    # Oceania
    "Australia/Sydney": (-33.8688, 151.2093),
    "Australia/Melbourne": (-37.8136, 144.9631),
    "Australia/Perth": (-31.9505, 115.8605),
    "Pacific/Auckland": (-36.8485, 174.7633),
    # South America
    "America/Sao_Paulo": (-23.5505, -46.6333),
    "America/Argentina/Buenos_Aires": (-34.6118, -58.3960),
    "America/Lima": (-12.0464, -77.0428),
    # Africa
    "Africa/Cairo": (30.0444, 31.2357),
    "Africa/Lagos": (6.5244, 3.3792),
    "Africa/Johannesburg": (-26.2041, 28.0473),
}

COUNTRY_CENTROIDS: Dict[str, Tuple[float, float]] = {
    "US": (39.8283, -98.5795),
    "CA": (56.1304, -106.3468),
    "GB": (55.3781, -3.4360),
    "DE": (51.1657, 10.4515),
    "FR": (46.2276, 2.2137),
    "JP": (36.2048, 138.2529),
    "AU": (-25.2744, 133.7751),
    "CN": (35.8617, 104.1954),
    "IN": (20.5937, 78.9629),
    "BR": (-14.2350, -51.9253),
}


def position_from_timezone(timezone_id: str, country_code: Optional[str] = None) -> Optional[Position]:
    """
    Map a time zone identifier (and optional country code) to coordinates.

    Tries an exact zone match, then a match on the city part of the zone
    (so "America/Argentina/Buenos_Aires" and "America/Buenos_Aires" agree),
    then the country centroid.
    """
    if timezone_id in TIMEZONE_COORDINATES:
        lat, lon = TIMEZONE_COORDINATES[timezone_id]
        return Position(lat, lon, timezone_id, "timezone")

    city = timezone_id.rsplit("/", 1)[-1] if timezone_id else ""
    if city:
        for zone, (lat, lon) in TIMEZONE_COORDINATES.items():
            if zone.rsplit("/", 1)[-1] == city:
                return Position(lat, lon, zone, "timezone")

    if country_code and country_code.upper() in COUNTRY_CENTROIDS:
        lat, lon = COUNTRY_CENTROIDS[country_code.upper()]
        return Position(lat, lon, country_code.upper(), "country")

    logging.debug(f"No coordinates for timezone {timezone_id!r} / country {country_code!r}")
    return None


class PositionResolver:
    """
    Resolves a position by precise signal first, coarse signal next.

    Static defaults are not part of `resolve()`; the caller rotates
    through DEFAULT_POSITIONS when this returns None.
    """

    def __init__(
        self,
        timezone_id: str = "",
        country_code: Optional[str] = None,
        ip_url: str = IPINFO_URL,
        timeout: float = 5,
    ):
        self.timezone_id = timezone_id
        self.country_code = country_code
        self.ip_url = ip_url
        self.timeout = timeout

    def lookup_ip(self) -> Position:
        """
        Query the IP geolocation service.

        Raises:
            PositionUnavailable: If the payload carries no usable "loc"
            TransportFailure: On network errors
            DecodeFailure: On non-JSON bodies
        """
        try:
            logging.info(f"Trying IP geolocation: {self.ip_url}")
            response = requests.get(self.ip_url, timeout=self.timeout)
            logging.debug(f"IP geolocation HTTP status: {response.status_code}")
            if not response.ok:
                raise PositionUnavailable(f"IP geolocation HTTP {response.status_code}")
            data = response.json()
        except ValueError as e:
            raise DecodeFailure(f"IP geolocation decode error: {e}")
        except requests.exceptions.RequestException as e:
            raise TransportFailure(f"IP geolocation network error: {e}")

        loc = data.get("loc", "") if isinstance(data, dict) else ""
        parts = loc.split(",") if isinstance(loc, str) else []
        try:
            if len(parts) != 2:
                raise ValueError(loc)
            lat, lon = float(parts[0]), float(parts[1])
        except ValueError:
            raise PositionUnavailable(f"Could not extract coordinates from {loc!r}")

        name = ", ".join(p for p in (data.get("city"), data.get("region"), data.get("country")) if p)
        logging.info(f"IP geolocation success: {name} ({lat}, {lon})")
        return Position(lat, lon, name, "ip")

    def lookup_device(self) -> Optional[Position]:
        logging.info(f"Trying device time zone {self.timezone_id!r} / country {self.country_code!r}")
        return position_from_timezone(self.timezone_id, self.country_code)

    def resolve(self) -> Optional[Position]:
        """First success wins: IP lookup, then device time zone table."""
        try:
            return self.lookup_ip()
        except (PositionUnavailable, TransportFailure, DecodeFailure) as e:
            logging.warning(f"IP geolocation failed: {e}, trying device-based detection")

        position = self.lookup_device()
        if position is None:
            logging.warning("All location detection methods failed")
        return position


def default_position(index: int) -> Position:
    return DEFAULT_POSITIONS[index % len(DEFAULT_POSITIONS)]


def reverse_geocode(position: Position, timeout: float = 5) -> Optional[str]:
    """
    Look up a locality name for display. Never used in cache keys.

    Returns None on any failure.
    """
    params = {"format": "jsonv2", "lat": position.lat, "lon": position.lon, "zoom": 10}
    headers = {"User-Agent": "calendar-weather/0.1"}
    try:
        response = requests.get(REVERSE_GEOCODE_URL, params=params, headers=headers, timeout=timeout)
        if not response.ok:
            logging.debug(f"Reverse geocoding HTTP {response.status_code}")
            return None
        address = response.json().get("address", {})
    except (requests.exceptions.RequestException, ValueError, AttributeError) as e:
        logging.debug(f"Reverse geocoding failed: {e}")
        return None

    for field in ("city", "town", "village", "municipality", "county"):
        if address.get(field):
            return address[field]
    return None
