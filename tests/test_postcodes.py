"""
Tests for postcode shape checks, prefix lookup and the postcodes.io fallback.
"""

from unittest.mock import MagicMock

import pytest
import requests

from cafe_directory.config import GeoSettings
from cafe_directory.exceptions import InvalidPostcodeError
from cafe_directory.geo import Coordinates
from cafe_directory.postcodes import (
    POSTCODE_COORDINATES,
    PostcodeGeocoder,
    format_postcode,
    get_postcode_coordinates,
    is_valid_postcode,
    looks_like_postcode,
)


class TestLooksLikePostcode:
    """Tests for the search-box postcode detection."""

    @pytest.mark.parametrize("query", ["SW1A 1AA", "sw1a1aa", "E1", "E14", "SS9", "CO10", "  SS9 1AA  "])
    def test_accepts(self, query):
        assert looks_like_postcode(query) is True

    @pytest.mark.parametrize("query", ["hello", "", None, "coffee near me", "12345", "E"])
    def test_rejects(self, query):
        assert looks_like_postcode(query) is False


class TestPrefixLookup:
    """Tests for longest-prefix coordinate lookup."""

    def test_longest_prefix_wins(self):
        table = {"BR": (1.0, 1.0), "BR1": (2.0, 2.0)}
        assert get_postcode_coordinates("BR1 2AB", table) == Coordinates(2.0, 2.0)
        assert get_postcode_coordinates("BR6 7AA", table) == Coordinates(1.0, 1.0)

    def test_co10_not_shadowed_by_co1(self):
        assert get_postcode_coordinates("CO10 2AB") == Coordinates(*POSTCODE_COORDINATES["CO10"])

    def test_case_and_spacing_ignored(self):
        assert get_postcode_coordinates("ss9 1aa") == get_postcode_coordinates("SS91AA")
        assert get_postcode_coordinates("ss9 1aa") == Coordinates(*POSTCODE_COORDINATES["SS9"])

    def test_unknown_prefix(self):
        assert get_postcode_coordinates("M1 1AE") is None

    def test_empty(self):
        assert get_postcode_coordinates("") is None
        assert get_postcode_coordinates(None) is None


class TestFormatting:
    """Tests for postcode formatting and full-postcode validation."""

    def test_format_full(self):
        assert format_postcode("sw1a1aa") == "SW1A 1AA"
        assert format_postcode("ss9 1aa") == "SS9 1AA"

    def test_format_outward_only(self):
        assert format_postcode("e14") == "E14"

    def test_format_rejects_non_postcode(self):
        with pytest.raises(InvalidPostcodeError):
            format_postcode("hello")

    def test_is_valid_postcode(self):
        assert is_valid_postcode("SW1A 1AA") is True
        assert is_valid_postcode("SW1A") is False


def _response(status_code: int, payload: dict) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


class TestPostcodeGeocoder:
    """Tests for the static-table-first geocoder."""

    def test_static_table_first(self):
        session = MagicMock()
        geocoder = PostcodeGeocoder(GeoSettings(postcodes_io_enabled=True), session=session)
        assert geocoder.geocode("SS9 1AA") == Coordinates(*POSTCODE_COORDINATES["SS9"])
        session.get.assert_not_called()

    def test_remote_disabled_by_default(self):
        session = MagicMock()
        geocoder = PostcodeGeocoder(GeoSettings(), session=session)
        assert geocoder.geocode("M1 1AE") is None
        session.get.assert_not_called()

    def test_remote_full_postcode(self):
        session = MagicMock()
        session.get.return_value = _response(200, {"result": {"latitude": 53.48, "longitude": -2.24}})
        geocoder = PostcodeGeocoder(GeoSettings(postcodes_io_enabled=True), session=session)

        assert geocoder.geocode("M1 1AE") == Coordinates(53.48, -2.24)
        url = session.get.call_args[0][0]
        assert url.endswith("/postcodes/M11AE")

    def test_remote_outcode(self):
        session = MagicMock()
        session.get.return_value = _response(200, {"result": {"latitude": 53.47, "longitude": -2.23}})
        geocoder = PostcodeGeocoder(GeoSettings(postcodes_io_enabled=True), session=session)

        assert geocoder.geocode("M1") == Coordinates(53.47, -2.23)
        assert session.get.call_args[0][0].endswith("/outcodes/M1")

    def test_remote_not_found(self):
        session = MagicMock()
        session.get.return_value = _response(404, {"status": 404, "error": "Postcode not found"})
        geocoder = PostcodeGeocoder(GeoSettings(postcodes_io_enabled=True), session=session)
        assert geocoder.geocode("M1 1AE") is None

    def test_remote_network_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        geocoder = PostcodeGeocoder(GeoSettings(postcodes_io_enabled=True), session=session)
        assert geocoder.geocode("M1 1AE") is None
