"""
Unit tests for projection helpers.
"""
import pytest
from pyproj import CRS
from shapely.geometry import Polygon, box

from richness_report.domain.exceptions import CoordinateSystemError
from richness_report.utils.geo_projection import (
    area_km2,
    get_utm_crs,
    get_utm_zone,
    resolve_crs,
    resolve_geographic_crs,
)

WGS84 = CRS.from_epsg(4326)


class TestUtm:
    """Tests for UTM zone selection."""

    @pytest.mark.parametrize("longitude,zone", [(-180.0, 1), (-84.5, 16), (0.0, 31), (180.0, 60)])
    def test_zone(self, longitude, zone):
        assert get_utm_zone(longitude) == zone

    def test_hemisphere(self):
        """Northern and southern hemispheres use different EPSG ranges."""
        assert get_utm_crs(-84.5, 9.5) == "EPSG:32616"
        assert get_utm_crs(18.8, -32.3) == "EPSG:32734"


class TestResolveCrs:
    """Tests for CRS parsing."""

    def test_epsg_string(self):
        assert resolve_crs("EPSG:4326", "target") == WGS84

    @pytest.mark.parametrize("value", [None, ""])
    def test_unset(self, value):
        with pytest.raises(CoordinateSystemError, match="No coordinate reference system"):
            resolve_crs(value, "occurrences")

    def test_invalid(self):
        with pytest.raises(CoordinateSystemError, match="Invalid"):
            resolve_crs("EPSG:not-a-code", "target")

    def test_projected_target_rejected(self):
        """Projected CRSs cannot be the target."""
        with pytest.raises(CoordinateSystemError, match="must be geographic"):
            resolve_geographic_crs("EPSG:3857")


class TestAreaKm2:
    """Tests for area computation."""

    def test_one_degree_cell_near_equator(self):
        """A 1x1 degree cell near the equator is roughly 12,150 km²."""
        result = area_km2(box(-85.0, 9.0, -84.0, 10.0), WGS84)

        assert result == pytest.approx(12_150, rel=0.03)

    def test_empty_geometry(self):
        assert area_km2(Polygon(), WGS84) is None
        assert area_km2(None, WGS84) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
