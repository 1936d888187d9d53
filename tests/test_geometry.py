# tests/test_geometry.py
"""
Deterministic tests for polygon primitives: containment, centroid, boxes,
half-plane clipping, ring cleanup, safe interior point. See: docs/ALGORITHM.md.
"""

from __future__ import annotations

import math

import numpy as np
import pytest
from shapely.geometry import Polygon

from dispolabel.core.geometry import (
    box_overlap_center,
    boxes_overlap,
    clean_ring,
    clip_polygon,
    intersect_segment_with_line,
    nearest_point_on_boundary,
    point_in_polygon,
    polygon_area,
    polygon_box,
    polygon_centroid,
    safe_interior_point,
    side_sign,
    signed_area,
    to_shapely,
)
from dispolabel.core.types import Box

HEXAGON = [(math.cos(math.pi / 3 * i) * 50 + 10, math.sin(math.pi / 3 * i) * 50 - 5) for i in range(6)]
L_SHAPE = [(0, 0), (10, 0), (10, 4), (4, 4), (4, 10), (0, 10)]
CLOSED_SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
U_SHAPE = [(0, 0), (30, 0), (30, 30), (20, 30), (20, 10), (10, 10), (10, 30), (0, 30)]


def _half_plane_inside(polygon: list, p: tuple) -> bool:
    """Reference test for a counter-clockwise convex polygon."""
    n = len(polygon)
    for i in range(n):
        ax, ay = polygon[i]
        bx, by = polygon[(i + 1) % n]
        if (bx - ax) * (p[1] - ay) - (by - ay) * (p[0] - ax) < -1e-9:
            return False
    return True


def test_point_in_polygon_matches_half_plane_reference() -> None:
    rng = np.random.default_rng(7)
    xs = rng.uniform(-50, 70, 1000)
    ys = rng.uniform(-65, 55, 1000)
    for x, y in zip(xs, ys):
        p = (float(x), float(y))
        assert point_in_polygon(HEXAGON, p) == _half_plane_inside(HEXAGON, p)


def test_point_in_polygon_boundary_is_inside() -> None:
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    for p in square:
        assert point_in_polygon(square, p)
    for p in [(5, 0), (10, 5), (5, 10), (0, 5)]:
        assert point_in_polygon(square, p)
    assert not point_in_polygon(square, (10.001, 5))


def test_point_in_polygon_within_tolerance_of_edge() -> None:
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    assert point_in_polygon(square, (5, -1e-10))
    assert point_in_polygon(square, (10 + 1e-10, 5))
    assert not point_in_polygon(square, (5, -1e-6))


def test_point_in_polygon_explicitly_closed_ring() -> None:
    assert point_in_polygon(CLOSED_SQUARE, (5, 5))
    assert point_in_polygon(CLOSED_SQUARE, (0, 0))
    assert point_in_polygon(CLOSED_SQUARE, (5, 0))
    assert not point_in_polygon(CLOSED_SQUARE, (500, -300))
    assert not point_in_polygon(CLOSED_SQUARE, (11, 5))


def test_point_in_polygon_repeated_vertex() -> None:
    ring = [(0, 0), (10, 0), (10, 0), (10, 10), (0, 10)]
    assert point_in_polygon(ring, (5, 5))
    assert point_in_polygon(ring, (10, 0))
    assert not point_in_polygon(ring, (500, 500))


def test_point_in_polygon_concave() -> None:
    assert point_in_polygon(L_SHAPE, (2, 8))
    assert point_in_polygon(L_SHAPE, (8, 2))
    assert not point_in_polygon(L_SHAPE, (8, 8))


def test_point_in_polygon_degenerate_is_outside() -> None:
    assert not point_in_polygon([(0, 0), (10, 0)], (5, 0))
    assert not point_in_polygon([], (0, 0))


def test_centroid_rectangle() -> None:
    cx, cy = polygon_centroid([(0, 0), (4, 0), (4, 2), (0, 2)])
    assert cx == pytest.approx(2.0) and cy == pytest.approx(1.0)


def test_centroid_matches_shapely_for_concave() -> None:
    cx, cy = polygon_centroid(L_SHAPE)
    ref = Polygon(L_SHAPE).centroid
    assert cx == pytest.approx(ref.x) and cy == pytest.approx(ref.y)


def test_centroid_explicitly_closed_ring() -> None:
    assert polygon_centroid(CLOSED_SQUARE) == pytest.approx((5.0, 5.0))


def test_centroid_degenerate_falls_back_to_first_vertex() -> None:
    assert polygon_centroid([(3, 1), (4, 2), (5, 3)]) == (3.0, 1.0)


def test_boxes_overlap_inclusive() -> None:
    a = Box((0, 0), (10, 10))
    assert boxes_overlap(a, Box((10, 10), (20, 20)))
    assert boxes_overlap(a, Box((5, -5), (6, 15)))
    assert not boxes_overlap(a, Box((10.5, 0), (20, 10)))


def test_boxes_overlap_3d() -> None:
    a = Box((0, 0, 0), (1, 1, 1))
    assert boxes_overlap(a, Box((1, 1, 1), (2, 2, 2)))
    assert not boxes_overlap(a, Box((0, 0, 1.5), (1, 1, 2)))


def test_polygon_box() -> None:
    box = polygon_box([(1, 2), (5, 2), (5, 6), (1, 6)])
    assert box.min_pt == (1, 2) and box.max_pt == (5, 6)


@pytest.mark.parametrize(
    "polygon,line",
    [
        ([(0, 0), (10, 0), (10, 10), (0, 10)], ((0, 0), (10, 10))),
        ([(0, 0), (10, 0), (10, 10), (0, 10)], ((3, -1), (3, 11))),
        (L_SHAPE, ((6, -1), (6, 11))),
        (L_SHAPE, ((-1, 7), (11, 1))),
        (HEXAGON, ((10, -5), (30, 40))),
    ],
)
def test_clip_conserves_area(polygon: list, line: tuple) -> None:
    plus = clip_polygon(polygon, line[0], line[1], 1)
    minus = clip_polygon(polygon, line[0], line[1], -1)
    assert polygon_area(plus) + polygon_area(minus) == pytest.approx(polygon_area(polygon), rel=1e-9)


def test_clip_explicitly_closed_ring() -> None:
    plus = clip_polygon(CLOSED_SQUARE, (3, -1), (3, 11), 1)
    minus = clip_polygon(CLOSED_SQUARE, (3, -1), (3, 11), -1)
    assert polygon_area(plus) == pytest.approx(30.0)
    assert polygon_area(minus) == pytest.approx(70.0)


def test_clip_keeps_left_side_for_positive_sign() -> None:
    kept = clip_polygon(L_SHAPE, (6, -1), (6, 11), 1)
    assert polygon_area(kept) == pytest.approx(48.0)
    assert all(x <= 6 + 1e-9 for x, _ in kept)


def test_clip_line_missing_polygon() -> None:
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    assert clip_polygon(square, (20, 0), (20, 10), -1) == []
    assert polygon_area(clip_polygon(square, (20, 0), (20, 10), 1)) == pytest.approx(100.0)


def test_intersect_segment_parallel_is_none() -> None:
    assert intersect_segment_with_line((0, 0), (10, 0), (0, 5), (10, 5)) is None
    hit = intersect_segment_with_line((0, 0), (10, 0), (4, -1), (4, 1))
    assert hit == pytest.approx((4.0, 0.0))


def test_side_sign() -> None:
    assert side_sign((0, 0), (10, 0), (5, 1)) == 1
    assert side_sign((0, 0), (10, 0), (5, -1)) == -1
    assert side_sign((0, 0), (10, 0), (5, 0)) == 0


def test_clean_ring_drops_duplicates_and_closing_vertex() -> None:
    ring = clean_ring([(0, 0), (0, 0), (10, 0), (10, 10), (0, 10), (0, 0)])
    assert ring == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    assert clean_ring([(0, 0), (1, 1), (0, 0)]) is None


def test_signed_area_orientation() -> None:
    ccw = [(0, 0), (10, 0), (10, 10), (0, 10)]
    assert signed_area(ccw) == pytest.approx(100.0)
    assert signed_area(list(reversed(ccw))) == pytest.approx(-100.0)


def test_safe_interior_point_concave() -> None:
    p = safe_interior_point(U_SHAPE)
    assert point_in_polygon(U_SHAPE, p)


def test_safe_interior_point_closed_ring_leaves_the_notch() -> None:
    p = safe_interior_point(U_SHAPE + [U_SHAPE[0]])
    assert p != (15.0, 15.0)
    assert point_in_polygon(U_SHAPE, p)


def test_nearest_point_on_boundary() -> None:
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    q = nearest_point_on_boundary(square, (5, -3))
    assert q == pytest.approx((5.0, 0.0))
    assert nearest_point_on_boundary([(0, 0), (1, 1)], (0, 0)) is None


def test_box_overlap_center() -> None:
    center = box_overlap_center(Box((0, 0), (10, 10)), Box((6, 2), (20, 4)))
    assert center == pytest.approx((8.0, 3.0))


def test_to_shapely_repairs_bowtie() -> None:
    geom = to_shapely([(0, 0), (10, 10), (10, 0), (0, 10)])
    assert geom.is_valid
    assert to_shapely([(0, 0), (1, 1)]).is_empty
