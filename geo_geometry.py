"""Geometry primitives used by the geohash coverage algorithms.

Points are ``(longitude, latitude)`` tuples, the same order GeoJSON uses.
Scalar arguments are always passed as ``latitude, longitude``.

Planar tests (containment, segment intersection) are delegated to shapely and
treat degrees as plane coordinates. Distances and circle vertices are
computed on the sphere/ellipsoid with geopy.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from geopy.distance import geodesic, great_circle
from shapely.geometry import LineString, MultiPoint, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from geohash_errors import InvalidCoordinateError, InvalidPolygonError

# Constants -------------------------------------------------------------------
LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)

# Type Aliases ----------------------------------------------------------------
LonLat = Tuple[float, float]
Segment = Tuple[LonLat, LonLat]
Ring = Sequence[LonLat]
PolygonLike = Union[Ring, BaseGeometry, PreparedGeometry]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in degrees.

    Attributes:
        south: Minimum latitude
        north: Maximum latitude
        west: Minimum longitude
        east: Maximum longitude
    """

    south: float
    north: float
    west: float
    east: float

    @property
    def center(self) -> LonLat:
        """Midpoint as (lon, lat)."""
        return (self.west + self.east) / 2, (self.south + self.north) / 2

    @property
    def height_degrees(self) -> float:
        return self.north - self.south

    @property
    def width_degrees(self) -> float:
        return self.east - self.west

    def contains(self, latitude: float, longitude: float) -> bool:
        """True if the coordinate lies inside the box, edges included."""
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east

    def corners(self) -> Tuple[LonLat, LonLat, LonLat, LonLat]:
        """Return the (nw, ne, sw, se) corners."""
        return (
            (self.west, self.north),
            (self.east, self.north),
            (self.west, self.south),
            (self.east, self.south),
        )

    def edges(self) -> Tuple[Segment, Segment, Segment, Segment]:
        """Return the south, east, north and west sides as segments."""
        nw, ne, sw, se = self.corners()
        return (sw, se), (se, ne), (ne, nw), (nw, sw)

    def to_polygon(self, closed: bool = True) -> List[LonLat]:
        """Return the corners as a SW -> SE -> NE -> NW ring."""
        nw, ne, sw, se = self.corners()
        ring = [sw, se, ne, nw]
        if closed:
            ring.append(sw)
        return ring


def validate(latitude: float, longitude: float, strict: bool = False) -> None:
    """Raise InvalidCoordinateError unless the coordinate is on the globe.

    With ``strict`` the exact poles and the antimeridian are rejected too.
    """
    if math.isnan(latitude) or math.isnan(longitude):
        raise InvalidCoordinateError(f"Coordinate ({latitude}, {longitude}) is not a number")
    if strict:
        lat_ok = LAT_RANGE[0] < latitude < LAT_RANGE[1]
        lon_ok = LON_RANGE[0] < longitude < LON_RANGE[1]
    else:
        lat_ok = LAT_RANGE[0] <= latitude <= LAT_RANGE[1]
        lon_ok = LON_RANGE[0] <= longitude <= LON_RANGE[1]
    if not lat_ok:
        raise InvalidCoordinateError(f"Latitude {latitude} out of range {LAT_RANGE}")
    if not lon_ok:
        raise InvalidCoordinateError(f"Longitude {longitude} out of range {LON_RANGE}")


def bounding_box(points: Ring) -> BoundingBox:
    """Smallest BoundingBox containing every (lon, lat) point."""
    if not points:
        raise InvalidPolygonError("Cannot compute the bounding box of zero points")
    west, south, east, north = MultiPoint([tuple(p) for p in points]).bounds
    return BoundingBox(south=south, north=north, west=west, east=east)


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    return great_circle((lat1, lon1), (lat2, lon2)).meters


def prepare_polygon(points: Ring) -> PreparedGeometry:
    """Build a prepared shapely polygon for repeated containment tests."""
    if len(points) < 3:
        raise InvalidPolygonError(f"A polygon needs at least 3 points, got {len(points)}")
    return prep(Polygon([tuple(p) for p in points]))


def polygon_contains(latitude: float, longitude: float, polygon: PolygonLike) -> bool:
    """True if the coordinate is inside the polygon or on its boundary.

    ``polygon`` may be a ring of (lon, lat) points or a (prepared) shapely
    geometry. Pass a prepared geometry when testing many points.
    """
    if not isinstance(polygon, (BaseGeometry, PreparedGeometry)):
        polygon = prepare_polygon(polygon)
    return polygon.covers(Point(longitude, latitude))


def lines_cross(a_start: LonLat, a_end: LonLat, b_start: LonLat, b_end: LonLat) -> bool:
    """True if segment a and segment b share at least one point."""
    return LineString([a_start, a_end]).intersects(LineString([b_start, b_end]))


def circle_to_polygon(segments: int, latitude: float, longitude: float, radius: float) -> List[LonLat]:
    """Approximate a circle with a ring of ``segments`` vertices.

    Vertices are geodesic destinations ``radius`` meters from the center,
    starting due north and moving clockwise.

    Args:
        segments: Number of vertices (at least 3)
        latitude: Center latitude
        longitude: Center longitude
        radius: Radius in meters

    Returns:
        List of (lon, lat) tuples, not closed
    """
    if segments < 3:
        raise InvalidPolygonError(f"A circle needs at least 3 segments, got {segments}")
    if radius <= 0:
        raise InvalidPolygonError(f"Circle radius must be positive, got {radius}")
    validate(latitude, longitude)

    reach = geodesic(meters=radius)
    step = 360.0 / segments
    ring: List[LonLat] = []
    for i in range(segments):
        vertex = reach.destination((latitude, longitude), bearing=i * step)
        ring.append((vertex.longitude, vertex.latitude))
    return ring


__all__ = [
    "BoundingBox",
    "LonLat",
    "Segment",
    "validate",
    "bounding_box",
    "distance",
    "prepare_polygon",
    "polygon_contains",
    "lines_cross",
    "circle_to_polygon",
]
