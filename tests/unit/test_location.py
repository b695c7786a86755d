"""Tests for location service."""

import requests
import responses

from weathr.services.location import IP_API_URL, GeoLocation, lookup_location


class TestLookupLocation:
    """Tests for IP geolocation."""

    @responses.activate
    def test_lookup_from_ip_api(self):
        """Test location lookup via IP API."""
        responses.add(
            responses.GET,
            IP_API_URL,
            json={
                "status": "success",
                "lat": 37.7749,
                "lon": -122.4194,
                "city": "San Francisco",
                "regionName": "California",
                "country": "USA",
                "timezone": "America/Los_Angeles",
            },
            status=200,
        )

        location = lookup_location()

        assert location == GeoLocation(
            37.7749, -122.4194, "San Francisco", "California", "USA", "America/Los_Angeles"
        )

    @responses.activate
    def test_server_error_returns_none(self):
        responses.add(responses.GET, IP_API_URL, status=500)
        assert lookup_location() is None

    @responses.activate
    def test_refused_lookup_returns_none(self):
        responses.add(responses.GET, IP_API_URL, json={"status": "fail", "message": "private range"})
        assert lookup_location() is None

    @responses.activate
    def test_connection_error_returns_none(self):
        responses.add(responses.GET, IP_API_URL, body=requests.ConnectionError("offline"))
        assert lookup_location() is None

    @responses.activate
    def test_missing_coordinates_returns_none(self):
        responses.add(responses.GET, IP_API_URL, json={"status": "success", "lon": 1.0})
        assert lookup_location() is None

    @responses.activate
    def test_invalid_json_returns_none(self):
        responses.add(responses.GET, IP_API_URL, body="<html>", status=200)
        assert lookup_location() is None
