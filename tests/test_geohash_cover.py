import logging

import pytest

import geohash_cover
from geo_geometry import BoundingBox, distance
from geohash_cover import (
    CIRCLE_SEGMENTS,
    Containment,
    _classify,
    _to_ring,
    geo_hashes_for_circle,
    geo_hashes_for_line,
    geo_hashes_for_path,
    geo_hashes_for_polygon,
    suitable_hash_length,
)
from geohash_errors import (
    InvalidCoordinateError,
    InvalidPathError,
    InvalidPolygonError,
    InvalidPrecisionError,
)
from geohash_utils import decode, decode_bbox, encode

AMSTERDAM = (52.3702, 4.8952)


def _overlaps(bbox, south, north, west, east):
    return bbox.south <= north and bbox.north >= south and bbox.west <= east and bbox.east >= west


def test_suitable_hash_length_for_fine_granularity():
    assert suitable_hash_length(1.0, *AMSTERDAM) == 10
    assert suitable_hash_length(4.99, 0.0, 0.0) == 10


@pytest.mark.parametrize("granularity, expected", [(5.0, 9), (1_000.0, 7), (100_000.0, 4)])
def test_suitable_hash_length_at_equator(granularity, expected):
    assert suitable_hash_length(granularity, 0.0, 0.0) == expected


def test_suitable_hash_length_shrinks_with_granularity():
    lengths = [suitable_hash_length(g, *AMSTERDAM) for g in (10.0, 100.0, 1_000.0, 10_000.0, 1_000_000.0)]

    assert lengths == sorted(lengths, reverse=True)
    assert all(3 <= length <= 12 for length in lengths)


def test_square_coverage_grows_with_max_length(unit_square):
    coarse = geo_hashes_for_polygon(unit_square, max_length=3)
    fine = geo_hashes_for_polygon(unit_square, max_length=4)

    assert coarse
    assert all(len(h) == 3 for h in coarse)
    assert all(len(h) == 4 for h in fine)
    assert len(fine) > len(coarse)
    assert fine == sorted(set(fine))


def test_fully_contained_cells_lie_inside_square(unit_square):
    for geohash in geo_hashes_for_polygon(unit_square, max_length=4):
        bbox = decode_bbox(geohash)
        assert 0.0 <= bbox.south <= bbox.north <= 1.0
        assert 0.0 <= bbox.west <= bbox.east <= 1.0


def test_cells_stay_near_bounding_box(unit_square):
    for max_length in (3, 4, 5):
        for geohash in geo_hashes_for_polygon(unit_square, max_length=max_length):
            # one length-3 cell is about 1.4 degrees wide
            assert _overlaps(decode_bbox(geohash), -1.5, 2.5, -1.5, 2.5)


def test_default_max_length_covers_polygon():
    polygon = [(4.85, 52.35), (4.95, 52.35), (4.95, 52.40), (4.85, 52.40)]
    hashes = geo_hashes_for_polygon(polygon)

    assert hashes
    assert encode(52.375, 4.9, 6)[:5] in {h[:5] for h in hashes}


def test_closed_ring_gives_same_result(unit_square):
    closed = unit_square + [unit_square[0]]

    assert geo_hashes_for_polygon(closed, 4) == geo_hashes_for_polygon(unit_square, 4)


def test_concave_polygon_leaves_notch_empty():
    l_shape = [(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0)]
    hashes = geo_hashes_for_polygon(l_shape, 4)

    assert hashes
    for geohash in hashes:
        bbox = decode_bbox(geohash)
        assert not (bbox.east > 1.0 and bbox.north > 1.0)


def test_large_polygon_compacts_full_parents():
    square = [(0.0, 0.0), (10.5, 0.0), (10.5, 10.5), (0.0, 10.5)]
    hashes = geo_hashes_for_polygon(square, 4)
    lengths = {len(h) for h in hashes}

    assert lengths == {3, 4}
    for geohash in hashes:
        assert not any(other != geohash and other.startswith(geohash) for other in hashes)


def test_tiny_polygon_inside_one_cell_is_not_empty():
    lat, lon = AMSTERDAM
    triangle = [(lon, lat), (lon + 0.0001, lat), (lon, lat + 0.0001)]
    hashes = geo_hashes_for_polygon(triangle, 5)

    assert hashes
    assert encode(lat, lon, 5) in hashes


def test_fallback_to_partial_cells_is_logged(unit_square, caplog):
    with caplog.at_level(logging.INFO, logger="geohash_cover"):
        hashes = geo_hashes_for_polygon(unit_square, max_length=3)

    assert hashes
    assert "partially covered" in caplog.text


def test_polygon_near_pole_is_rejected():
    with pytest.raises(InvalidCoordinateError):
        geo_hashes_for_polygon([(0.0, 89.0), (1.0, 89.7), (2.0, 89.0)])


@pytest.mark.parametrize("max_length", [0, 12, 13])
def test_polygon_max_length_out_of_range(unit_square, max_length):
    with pytest.raises(InvalidPrecisionError):
        geo_hashes_for_polygon(unit_square, max_length)


def test_polygon_needs_three_points():
    with pytest.raises(InvalidPolygonError):
        geo_hashes_for_polygon([(0.0, 0.0), (1.0, 1.0)])


def test_polygon_spanning_half_the_globe_is_rejected():
    with pytest.raises(InvalidPolygonError):
        geo_hashes_for_polygon([(-100.0, 0.0), (100.0, 0.0), (100.0, 10.0), (-100.0, 10.0)])


def test_line_within_one_cell_returns_that_cell():
    lat, lon = AMSTERDAM
    length = suitable_hash_length(1_000.0, lat, lon)
    geohash = encode(lat, lon, length)
    center_lon, center_lat = decode(geohash)

    hashes = geo_hashes_for_line(1_000.0, (center_lon, center_lat), (center_lon + 1e-5, center_lat + 1e-5))

    assert hashes == [geohash]


def test_north_south_line_covers_its_column():
    length = suitable_hash_length(1_000.0, 52.0, 4.0)
    hashes = geo_hashes_for_line(1_000.0, (4.0, 52.0), (4.0, 52.05))

    assert all(len(h) == length for h in hashes)
    for lat in (52.0, 52.025, 52.05):
        assert encode(lat, 4.0, length) in hashes


def test_line_needs_two_points():
    with pytest.raises(InvalidPathError):
        geo_hashes_for_line(100.0, (4.0, 52.0), (4.0, 52.0))


def test_path_covers_every_waypoint():
    waypoints = [(4.0, 52.0), (4.0, 52.05), (4.1, 52.05)]
    hashes = geo_hashes_for_path(6, waypoints)

    for lon, lat in waypoints:
        assert encode(lat, lon, 6) in hashes
    assert set(geo_hashes_for_path(6, waypoints[:2])) <= set(hashes)
    assert hashes == sorted(set(hashes))


@pytest.mark.parametrize("waypoints", [[], [(4.0, 52.0)], [(4.0, 52.0), (4.0, 52.0)]])
def test_path_rejects_degenerate_waypoints(waypoints):
    with pytest.raises(InvalidPathError):
        geo_hashes_for_path(6, waypoints)


def test_circle_covers_its_center():
    hashes = geo_hashes_for_circle(6, 52.0, 4.0, 2_000.0)

    assert encode(52.0, 4.0, 6) in hashes
    for geohash in hashes:
        lon, lat = decode(geohash)
        assert distance(52.0, 4.0, lat, lon) < 2_000.0 + 1_000.0


def test_circle_rejects_non_positive_radius():
    with pytest.raises(InvalidPolygonError):
        geo_hashes_for_circle(6, 52.0, 4.0, 0.0)


def test_edge_through_cell_keeps_it_partial():
    cell = BoundingBox(south=0.0, north=1.0, west=0.0, east=1.0)
    # a sliver that enters through the west side and leaves through the east side
    sliver = _to_ring([(-1.0, 0.4), (2.0, 0.5), (-1.0, 0.6)])
    elsewhere = _to_ring([(5.0, 5.0), (6.0, 5.0), (5.0, 6.0)])

    assert _classify(cell, sliver) is Containment.PARTIAL
    assert _classify(cell, elsewhere) is Containment.EXCLUDED


@pytest.mark.parametrize("offset, segments", list(enumerate(CIRCLE_SEGMENTS)))
def test_circle_segments_follow_distance_to_suitable_length(monkeypatch, offset, segments):
    calls = []
    real_circle_to_polygon = geohash_cover.circle_to_polygon

    def recording_circle_to_polygon(count, *args):
        calls.append(count)
        return real_circle_to_polygon(count, *args)

    monkeypatch.setattr(geohash_cover, "circle_to_polygon", recording_circle_to_polygon)
    suitable = suitable_hash_length(2_000.0, 52.0, 4.0)

    assert geo_hashes_for_circle(suitable - offset, 52.0, 4.0, 2_000.0)
    assert calls == [segments]


def test_circle_across_antimeridian_is_rejected():
    with pytest.raises(InvalidPolygonError):
        geo_hashes_for_circle(5, 10.0, 179.99, 2_000.0)
