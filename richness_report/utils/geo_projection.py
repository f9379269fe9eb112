"""
Geospatial projection utilities for coordinate reference systems.
"""
from typing import Optional

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

from richness_report.domain.exceptions import CoordinateSystemError


def get_utm_zone(longitude: float) -> int:
    """
    Calculate the UTM zone number from longitude.

    Args:
        longitude: Longitude in degrees

    Returns:
        UTM zone number (1-60)
    """
    # Longitude 180 belongs to zone 60, not a nonexistent zone 61
    return min(int((longitude + 180) / 6) + 1, 60)


def get_utm_crs(longitude: float, latitude: float) -> str:
    """
    Get the appropriate UTM CRS (Coordinate Reference System) for a location.

    Args:
        longitude: Longitude in degrees
        latitude: Latitude in degrees

    Returns:
        EPSG code for the UTM zone
    """
    zone = get_utm_zone(longitude)
    # Northern hemisphere: EPSG:326XX, Southern hemisphere: EPSG:327XX
    hemisphere = "6" if latitude >= 0 else "7"
    return f"EPSG:32{hemisphere}{zone:02d}"


def resolve_crs(value: object, role: str) -> CRS:
    """
    Parse a user-supplied CRS definition.

    Args:
        value: EPSG string, WKT, PROJ string or pyproj CRS
        role: What the CRS describes, used in error messages

    Raises:
        CoordinateSystemError: If the value is unset or cannot be parsed
    """
    if value is None or value == "":
        raise CoordinateSystemError(f"No coordinate reference system set for {role}")
    try:
        return CRS.from_user_input(value)
    except CRSError as e:
        raise CoordinateSystemError(f"Invalid coordinate reference system for {role}: {e}")


def resolve_geographic_crs(value: object, role: str = "target") -> CRS:
    """
    Parse a CRS and require it to be geographic (longitude/latitude degrees).

    Raises:
        CoordinateSystemError: If the CRS is invalid or projected
    """
    crs = resolve_crs(value, role)
    if not crs.is_geographic:
        raise CoordinateSystemError(
            f"The {role} coordinate reference system must be geographic, got {crs.to_string()}"
        )
    return crs


def project_geometry_to_meters(
    geometry: BaseGeometry,
    source_crs: CRS,
) -> BaseGeometry:
    """
    Project a geographic geometry to the UTM zone of its centroid.

    Args:
        geometry: Geometry in a geographic CRS
        source_crs: CRS the geometry is expressed in

    Returns:
        Geometry with coordinates in meters
    """
    centroid = geometry.centroid
    utm_crs = get_utm_crs(centroid.x, centroid.y)

    transformer = Transformer.from_crs(
        source_crs,
        utm_crs,
        always_xy=True  # Ensure (lon, lat) -> (x, y) order
    )
    return transform(transformer.transform, geometry)


def area_km2(geometry: Optional[BaseGeometry], source_crs: CRS) -> Optional[float]:
    """
    Planar area of a geographic geometry in square kilometres.

    Returns None for missing or empty geometries.
    """
    if geometry is None or geometry.is_empty:
        return None
    projected = project_geometry_to_meters(geometry, source_crs)
    return projected.area / 1_000_000
