"""Tests for location lookup and great-circle distance."""

import pytest

from trustlens.domain.locations import (
    LOCATIONS,
    Coordinates,
    resolve_location,
    supported_locations,
)
from trustlens.services.geo import haversine_km


class TestHaversine:
    def test_identical_points_are_zero(self):
        chennai = LOCATIONS["Chennai"]

        assert haversine_km(chennai, chennai) == 0.0

    def test_chennai_to_delhi(self):
        distance = haversine_km(LOCATIONS["Chennai"], LOCATIONS["Delhi"])

        assert 1750 < distance < 1775

    def test_is_symmetric(self):
        a, b = LOCATIONS["Mumbai"], LOCATIONS["Kolkata"]

        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))

    def test_quarter_meridian(self):
        distance = haversine_km(Coordinates(0.0, 0.0), Coordinates(90.0, 0.0))

        assert distance == pytest.approx(10007.5, rel=1e-3)


class TestResolveLocation:
    def test_exact_name(self):
        assert resolve_location("Delhi") == Coordinates(28.6139, 77.2090)

    def test_case_insensitive_name(self):
        assert resolve_location("  bangalore ") == LOCATIONS["Bangalore"]

    @pytest.mark.parametrize("name", ["Atlantis", "", None])
    def test_unknown_names(self, name):
        assert resolve_location(name) is None

    def test_supported_locations_sorted(self):
        names = supported_locations()

        assert names == sorted(names)
        assert "Chennai" in names
        assert len(names) == 7
