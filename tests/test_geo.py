# ============================================================================
# COORDINATE GEOMETRY TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Cache keys, validation, haversine
# PURPOSE: Verify core.geo pure functions
# CREATED: 16 SEP 2026
# ============================================================================
"""
Coordinate Geometry Tests

Pure functions only, no I/O.

Run with:
    pytest tests/test_geo.py -v
"""

import math

import pytest

from core.errors import ValidationError
from core.geo import (
    haversine_km,
    key_to_degrees,
    round_coordinate,
    round_key,
    search_window,
    validate_coordinates,
)


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidateCoordinates:

    def test_accepts_bounds(self):
        assert validate_coordinates(-90, 180) == (-90.0, 180.0)
        assert validate_coordinates(90, -180) == (90.0, -180.0)

    def test_accepts_numeric_strings(self):
        assert validate_coordinates("-15.5", "-47.25") == (-15.5, -47.25)

    @pytest.mark.parametrize("lat,lon", [
        (90.0001, 0.0),
        (-91, 0.0),
        (0.0, 180.5),
        (0.0, -181),
    ])
    def test_rejects_out_of_range(self, lat, lon):
        with pytest.raises(ValidationError):
            validate_coordinates(lat, lon)

    def test_rejects_nan_and_inf(self):
        with pytest.raises(ValidationError, match="finite"):
            validate_coordinates(math.nan, 0.0)
        with pytest.raises(ValidationError, match="finite"):
            validate_coordinates(0.0, math.inf)

    def test_rejects_non_numeric(self):
        with pytest.raises(ValidationError, match="numbers"):
            validate_coordinates("north", 0.0)
        with pytest.raises(ValidationError, match="numbers"):
            validate_coordinates(None, 0.0)


# ============================================================================
# CACHE KEYS
# ============================================================================

class TestRoundKey:

    def test_fixed_point_integer(self):
        assert round_key(-15.7939) == -157939
        assert round_key(47.0) == 470000

    def test_truncates_toward_zero(self):
        assert round_key(-15.05009) == -150500
        assert round_key(15.05009) == 150500
        assert round_key(-15.05004) == -150500

    def test_pair_across_half_boundary_shares_key(self):
        assert round_key(-15.00004) == round_key(-15.00006) == -150000
        assert round_key(47.12344) == round_key(47.12346) == 471234

    def test_beyond_fourth_decimal_shares_key(self):
        assert round_key(-15.79391) == round_key(-15.793912)
        assert round_key(-47.88281) == round_key(-47.882849)

    def test_fourth_decimal_difference_changes_key(self):
        assert round_key(-15.7939) != round_key(-15.7940)

    def test_precision_argument(self):
        assert round_key(-15.7939, precision=2) == -1579

    def test_round_trip_degrees(self):
        assert key_to_degrees(-157939) == -15.7939
        assert round_coordinate(-15.793912) == -15.7939


# ============================================================================
# DISTANCE
# ============================================================================

class TestHaversine:

    def test_zero_distance(self):
        assert haversine_km(-15.0, -47.0, -15.0, -47.0) == 0.0

    def test_one_degree_latitude(self):
        # 2πR / 360
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)

    def test_grid_neighbour_distance(self):
        d = haversine_km(-15.05, -47.02, -15.0, -47.0)
        assert 5.9 < d < 6.0

    def test_symmetry(self):
        a = haversine_km(-15.05, -47.02, -15.5, -47.5)
        b = haversine_km(-15.5, -47.5, -15.05, -47.02)
        assert a == pytest.approx(b)

    def test_across_antimeridian(self):
        assert haversine_km(0.0, 179.9, 0.0, -179.9) == pytest.approx(22.24, abs=0.01)


class TestSearchWindow:

    def test_simple_box(self):
        lat_range, lon_ranges = search_window(-15.0, -47.0, 0.5)
        assert lat_range == (-15.5, -14.5)
        assert lon_ranges == [(-47.5, -46.5)]

    def test_latitude_clamped_at_pole(self):
        lat_range, _ = search_window(89.8, 10.0, 0.5)
        assert lat_range == (89.3, 90.0)

    def test_split_at_west_antimeridian(self):
        _, lon_ranges = search_window(0.0, -179.8, 0.5)
        assert len(lon_ranges) == 2
        assert lon_ranges[0][0] == -180.0
        assert lon_ranges[1][1] == 180.0
        assert lon_ranges[1][0] == pytest.approx(179.7)

    def test_split_at_east_antimeridian(self):
        _, lon_ranges = search_window(0.0, 179.8, 0.5)
        assert lon_ranges[0][1] == 180.0
        assert lon_ranges[1][0] == -180.0
        assert lon_ranges[1][1] == pytest.approx(-179.7)
