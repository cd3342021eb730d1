"""Tests for position resolution."""
from unittest.mock import Mock, patch

import pytest
import requests

from position_resolver import (
    DEFAULT_POSITIONS,
    PositionResolver,
    default_position,
    position_from_timezone,
    reverse_geocode,
)
from weather_data import Position
from weather_provider import PositionUnavailable, TransportFailure


@pytest.fixture
def ipinfo_response():
    """Sample ipinfo.io response."""
    return {
        "ip": "203.0.113.7",
        "city": "Munich",
        "region": "Bavaria",
        "country": "DE",
        "loc": "48.1374,11.5755",
        "timezone": "Europe/Berlin",
    }


def _response(payload, ok=True, status_code=200):
    mock_response = Mock()
    mock_response.ok = ok
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    return mock_response


def test_ip_lookup_success(ipinfo_response):
    """Test coordinates are extracted from the "lat,lon" field."""
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.return_value = _response(ipinfo_response)

        position = PositionResolver().lookup_ip()

        assert position.lat == 48.1374
        assert position.lon == 11.5755
        assert position.source == "ip"
        assert "Munich" in position.name


@pytest.mark.parametrize("loc", ["", "48.1", "north,east", "1,2,3"])
def test_ip_lookup_bad_loc(ipinfo_response, loc):
    """Test unusable "loc" values raise PositionUnavailable."""
    ipinfo_response["loc"] = loc
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.return_value = _response(ipinfo_response)

        with pytest.raises(PositionUnavailable):
            PositionResolver().lookup_ip()


def test_ip_lookup_network_error():
    """Test connection errors become TransportFailure."""
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.side_effect = requests.exceptions.Timeout("timed out")

        with pytest.raises(TransportFailure):
            PositionResolver().lookup_ip()


def test_resolve_prefers_ip(ipinfo_response):
    """Test the IP result wins over the time zone table."""
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.return_value = _response(ipinfo_response)

        position = PositionResolver(timezone_id="Asia/Tokyo").resolve()

        assert position.source == "ip"


def test_resolve_falls_back_to_timezone():
    """Test the device time zone is used when IP lookup fails."""
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.side_effect = requests.exceptions.ConnectionError("offline")

        position = PositionResolver(timezone_id="Asia/Tokyo").resolve()

        assert position == Position(35.6762, 139.6503, "Asia/Tokyo", "timezone")


def test_resolve_returns_none_when_everything_fails():
    """Test None when neither IP nor device data helps."""
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.return_value = _response({}, ok=False, status_code=429)

        assert PositionResolver(timezone_id="Etc/Unknown", country_code="ZZ").resolve() is None


def test_timezone_city_match():
    """Test a zone matched on its city component."""
    position = position_from_timezone("America/Buenos_Aires")
    assert position.name == "America/Argentina/Buenos_Aires"


def test_country_centroid_fallback():
    """Test country centroids when the zone is unknown."""
    position = position_from_timezone("America/Boise", "us")
    assert position.source == "country"
    assert (position.lat, position.lon) == (39.8283, -98.5795)


def test_default_positions_rotate():
    """Test default positions wrap around."""
    assert default_position(0).name == "New York"
    assert default_position(len(DEFAULT_POSITIONS)).name == "New York"
    assert default_position(1).name == "London"


def test_reverse_geocode():
    """Test locality name lookup and its silent failure."""
    position = Position(48.1374, 11.5755)
    with patch('position_resolver.requests.get') as mock_get:
        mock_get.return_value = _response({"address": {"city": "München", "country": "Deutschland"}})
        assert reverse_geocode(position) == "München"

        mock_get.side_effect = requests.exceptions.ConnectionError("offline")
        assert reverse_geocode(position) is None
