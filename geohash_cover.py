"""Cover polygons, lines, paths and circles with sets of geohashes.

The polygon algorithm seeds a coarse grid of cells over the polygon's
bounding box and then refines it one character at a time. Every child of a
partially covered cell is classified by sampling its four corners:

- all corners inside: the child is kept as it is
- some corners inside, or a polygon edge runs through it: refined further
- otherwise: dropped

Corner sampling is an approximation. Very concave polygons can be over- or
under-covered at a given length; a larger ``max_length`` gives a closer fit
at the cost of more cells.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Set, Tuple

from shapely.prepared import PreparedGeometry

from geo_geometry import (
    LAT_RANGE,
    BoundingBox,
    LonLat,
    Segment,
    bounding_box,
    circle_to_polygon,
    distance,
    lines_cross,
    polygon_contains,
    prepare_polygon,
    validate,
)
from geohash_errors import (
    InvalidCoordinateError,
    InvalidPathError,
    InvalidPolygonError,
    InvalidPrecisionError,
)
from geohash_utils import (
    BASE32_ALPHABET,
    DEFAULT_GEOHASH_LENGTH,
    decode_bbox,
    east,
    encode,
    encode_with_bbox,
    is_west,
    north,
    sub_hashes,
)

LOGGER = logging.getLogger(__name__)

# Constants -------------------------------------------------------------------
POLE_LATITUDE_LIMIT = 89.5
MAX_LONGITUDE_SPAN = 180.0
MIN_GRANULARITY_METERS = 5.0
FINE_GRANULARITY_LENGTH = 10
CIRCLE_SEGMENTS = (200, 100, 50, 15)


class Containment(Enum):
    """How much of a cell a polygon covers, judged from its corners."""

    FULL = "full"
    PARTIAL = "partial"
    EXCLUDED = "excluded"


class _Ring(NamedTuple):
    points: Tuple[LonLat, ...]
    prepared: PreparedGeometry
    edges: Tuple[Segment, ...]


# Helper Functions ------------------------------------------------------------
def _to_ring(polygon: Sequence[LonLat]) -> _Ring:
    points = tuple((float(lon), float(lat)) for lon, lat in polygon)
    if len(points) < 3:
        raise InvalidPolygonError(f"A polygon needs at least 3 points, got {len(points)}")
    for lon, lat in points:
        validate(lat, lon)
        if lat < -POLE_LATITUDE_LIMIT or lat > POLE_LATITUDE_LIMIT:
            raise InvalidCoordinateError(
                f"Polygon vertex ({lon}, {lat}) is within "
                f"{90 - POLE_LATITUDE_LIMIT} degrees of a pole"
            )
    # the closing edge is implied; zero-length edges are skipped
    edges = tuple(
        (start, end)
        for start, end in zip(points, points[1:] + points[:1])
        if start != end
    )
    return _Ring(points=points, prepared=prepare_polygon(points), edges=edges)


def _edge_overlaps(edge: Segment, bbox: BoundingBox) -> bool:
    (lon1, lat1), (lon2, lat2) = edge
    return (
        min(lon1, lon2) <= bbox.east
        and max(lon1, lon2) >= bbox.west
        and min(lat1, lat2) <= bbox.north
        and max(lat1, lat2) >= bbox.south
    )


def _classify(bbox: BoundingBox, ring: _Ring) -> Containment:
    inside = [polygon_contains(lat, lon, ring.prepared) for lon, lat in bbox.corners()]
    if all(inside):
        return Containment.FULL
    if any(inside):
        return Containment.PARTIAL

    for edge in ring.edges:
        if not _edge_overlaps(edge, bbox):
            continue
        for side_start, side_end in bbox.edges():
            if lines_cross(side_start, side_end, edge[0], edge[1]):
                return Containment.PARTIAL

    # a polygon small enough to sit inside the cell touches neither corners nor sides
    if any(bbox.contains(lat, lon) for lon, lat in ring.points):
        return Containment.PARTIAL
    return Containment.EXCLUDED


def _seed_cells(bbox: BoundingBox, length: int) -> Set[str]:
    """Every cell of ``length`` that overlaps the bounding box.

    Rows are walked east from the south-west corner cell, then the walk
    steps one row north until the box's north edge is passed.
    """
    cells: Set[str] = set()
    row = encode(bbox.south, bbox.west, length)
    row_box = decode_bbox(row)
    while True:
        column, column_box = row, row_box
        while is_west(column_box.west, bbox.east):
            cells.add(column)
            column = east(column)
            column_box = decode_bbox(column)
        if row_box.north >= bbox.north or row_box.north >= LAT_RANGE[1]:
            return cells
        row = north(row)
        row_box = decode_bbox(row)


def _refine(ring: _Ring, partial: Set[str]) -> Tuple[Set[str], Set[str]]:
    """Split each partial cell into its children and classify them.

    Returns the cells found fully inside and the cells still partial. A
    parent whose 32 children are all inside is returned instead of them.
    """
    contained: Set[str] = set()
    still_partial: Set[str] = set()
    for cell in partial:
        full_children = []
        for child in sub_hashes(cell):
            state = _classify(decode_bbox(child), ring)
            if state is Containment.FULL:
                full_children.append(child)
            elif state is Containment.PARTIAL:
                still_partial.add(child)
        if len(full_children) == len(BASE32_ALPHABET):
            contained.add(cell)
        else:
            contained.update(full_children)
    return contained, still_partial


# Public API ------------------------------------------------------------------
def suitable_hash_length(granularity_in_meters: float, latitude: float, longitude: float) -> int:
    """Return the shortest length whose cell width is below the granularity.

    The width of a cell shrinks towards the poles, so the answer depends on
    where it is measured. Granularities under 5 meters always return 10.

    Args:
        granularity_in_meters: Target cell width in meters
        latitude: Reference latitude
        longitude: Reference longitude

    Returns:
        Geohash length between 3 and 12
    """
    if granularity_in_meters < MIN_GRANULARITY_METERS:
        return FINE_GRANULARITY_LENGTH

    geohash = encode(latitude, longitude)
    width = 0.0
    length = len(geohash)
    while width < granularity_in_meters and len(geohash) >= 2:
        length = len(geohash)
        bbox = decode_bbox(geohash)
        width = distance(bbox.south, bbox.west, bbox.south, bbox.east)
        geohash = geohash[:-1]
    return min(length + 1, DEFAULT_GEOHASH_LENGTH)


def geo_hashes_for_polygon(polygon: Sequence[LonLat], max_length: Optional[int] = None) -> List[str]:
    """Cover a polygon with geohashes.

    The polygon is filled from the inside: cells that are only partly
    inside are refined until ``max_length`` and then left out. If no cell
    ends up fully inside (a polygon smaller than a cell, or a very thin
    one), the partially covered cells at ``max_length`` are returned
    instead, so the result is never empty for a real polygon.

    Args:
        polygon: Ring of (lon, lat) points; closing the ring is optional
        max_length: Longest geohash to produce, 1 to 11. Defaults to the
            suitable length for the bounding box diagonal plus one.

    Returns:
        Sorted list of geohashes, possibly of mixed lengths

    Raises:
        InvalidPolygonError: If the ring has fewer than 3 points or spans
            180 degrees of longitude or more
        InvalidCoordinateError: If a vertex is invalid or within 0.5
            degrees of a pole
        InvalidPrecisionError: If max_length is out of range
    """
    ring = _to_ring(polygon)
    if max_length is not None and (max_length < 1 or max_length >= DEFAULT_GEOHASH_LENGTH):
        raise InvalidPrecisionError(
            f"max_length must be between 1 and {DEFAULT_GEOHASH_LENGTH - 1}, got {max_length}"
        )
    bbox = bounding_box(ring.points)
    if bbox.width_degrees >= MAX_LONGITUDE_SPAN:
        raise InvalidPolygonError(
            f"Polygon spans {bbox.width_degrees} degrees of longitude; "
            f"it must span less than {MAX_LONGITUDE_SPAN}"
        )

    diagonal = distance(bbox.south, bbox.west, bbox.north, bbox.east)
    seed_length = suitable_hash_length(diagonal, bbox.south, bbox.west)
    if max_length is None:
        max_length = seed_length + 1
    seed_length = min(seed_length, max_length)

    partial = _seed_cells(bbox, seed_length)
    LOGGER.debug(
        "Seeded %d cells of length %d over bbox=(%.5f,%.5f,%.5f,%.5f), max_length=%d",
        len(partial), seed_length, bbox.west, bbox.south, bbox.east, bbox.north, max_length,
    )

    fully_contained: Set[str] = set()
    for detail in range(seed_length + 1, max_length + 1):
        contained, partial = _refine(ring, partial)
        fully_contained |= contained
        LOGGER.debug(
            "Length %d: %d cells inside, %d partial", detail, len(fully_contained), len(partial)
        )

    if not fully_contained:
        LOGGER.info(
            "No geohash of length <= %d lies fully inside the polygon; "
            "returning %d partially covered cells", max_length, len(partial)
        )
        fully_contained = set(partial)
    return sorted(fully_contained)


def _segment_polygon(length: int, start: LonLat, end: LonLat) -> List[str]:
    lon1, lat1 = start
    lon2, lat2 = end
    hash1, box1 = encode_with_bbox(lat1, lon1, length)
    hash2, box2 = encode_with_bbox(lat2, lon2, length)
    if hash1 == hash2:
        return [hash1]

    if abs(lat2 - lat1) > abs(lon2 - lon1):
        # one cell wide band from the south cell's bottom to the north cell's top
        low, high = (box1, box2) if lat1 < lat2 else (box2, box1)
        quad = [
            (low.west, low.south),
            (low.east, low.south),
            (high.east, high.north),
            (high.west, high.north),
        ]
    else:
        # one cell high band from the west cell's left side to the east cell's right side
        low, high = (box1, box2) if lon1 < lon2 else (box2, box1)
        quad = [
            (low.west, low.south),
            (high.east, high.south),
            (high.east, high.north),
            (low.west, low.north),
        ]
    return geo_hashes_for_polygon(quad, length)


def geo_hashes_for_line(width: float, start: LonLat, end: LonLat) -> List[str]:
    """Cover the segment between two (lon, lat) points.

    ``width`` in meters picks the geohash length. If both ends fall in the
    same cell that single cell is returned.

    Raises:
        InvalidPathError: If start and end are the same point
    """
    if tuple(start) == tuple(end):
        raise InvalidPathError(
            f"Identical begin and end coordinate {tuple(start)}: a line needs two different points"
        )
    lon1, lat1 = start
    length = suitable_hash_length(width, lat1, lon1)
    return _segment_polygon(length, start, end)


def geo_hashes_for_path(length: int, waypoints: Sequence[LonLat]) -> List[str]:
    """Cover each leg of a path of (lon, lat) waypoints at the given length."""
    if len(waypoints) < 2:
        raise InvalidPathError(f"A path needs at least two waypoints, got {len(waypoints)}")
    hashes: Set[str] = set()
    for previous, point in zip(waypoints, waypoints[1:]):
        if tuple(previous) == tuple(point):
            raise InvalidPathError(f"Consecutive waypoints are identical: {tuple(point)}")
        hashes.update(_segment_polygon(length, previous, point))
    return sorted(hashes)


def geo_hashes_for_circle(length: int, latitude: float, longitude: float, radius: float) -> List[str]:
    """Cover a circle of ``radius`` meters with geohashes of up to ``length``.

    The circle becomes a polygon first. The closer ``length`` is to the
    suitable length for the radius, the more vertices that polygon gets.

    Raises:
        InvalidPolygonError: If the radius is not positive, or the circle
            crosses the antimeridian, since its vertices then span 180
            degrees of longitude or more
        InvalidCoordinateError: If the center is invalid or the circle
            reaches within 0.5 degrees of a pole
    """
    suitable = suitable_hash_length(radius, latitude, longitude)
    if length > suitable - 1:
        segments = CIRCLE_SEGMENTS[0]
    elif length > suitable - 2:
        segments = CIRCLE_SEGMENTS[1]
    elif length > suitable - 3:
        segments = CIRCLE_SEGMENTS[2]
    else:
        segments = CIRCLE_SEGMENTS[3]
    LOGGER.debug("Circle at (%.5f, %.5f) r=%.1fm uses %d segments", latitude, longitude, radius, segments)

    ring = circle_to_polygon(segments, latitude, longitude, radius)
    return geo_hashes_for_polygon(ring, length)


__all__ = [
    "Containment",
    "suitable_hash_length",
    "geo_hashes_for_polygon",
    "geo_hashes_for_line",
    "geo_hashes_for_path",
    "geo_hashes_for_circle",
    "POLE_LATITUDE_LIMIT",
]
