# tests/test_intersect.py
"""Polygon intersection strategies: shapely, half-plane clipping, and the fallback chain."""

from __future__ import annotations

import pytest

from dispolabel.core.geometry import polygon_area
from dispolabel.core.intersect import (
    ClipIntersector,
    FallbackIntersector,
    ShapelyIntersector,
    intersect_polygons,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]
SHIFTED = [(5, 5), (15, 5), (15, 15), (5, 15)]
FAR = [(50, 50), (60, 50), (60, 60), (50, 60)]


class _Failing:
    def intersect(self, subject, clip):
        return []


@pytest.mark.parametrize("strategy", [ShapelyIntersector(), ClipIntersector(), FallbackIntersector()])
def test_overlapping_squares(strategy) -> None:
    rings = strategy.intersect(SQUARE, SHIFTED)
    assert len(rings) == 1
    assert polygon_area(rings[0]) == pytest.approx(25.0)


@pytest.mark.parametrize("strategy", [ShapelyIntersector(), ClipIntersector()])
def test_disjoint_is_empty(strategy) -> None:
    assert strategy.intersect(SQUARE, FAR) == []


def test_degenerate_input_is_empty() -> None:
    assert intersect_polygons([(0, 0), (1, 1)], SQUARE) == []
    assert intersect_polygons(SQUARE, []) == []


def test_clip_intersector_handles_clockwise_clip() -> None:
    rings = ClipIntersector().intersect(SQUARE, list(reversed(SHIFTED)))
    assert polygon_area(rings[0]) == pytest.approx(25.0)


def test_shapely_intersector_multipart() -> None:
    u_shape = [(0, 0), (30, 0), (30, 30), (20, 30), (20, 10), (10, 10), (10, 30), (0, 30)]
    band = [(-5, 20), (35, 20), (35, 25), (-5, 25)]
    rings = ShapelyIntersector().intersect(u_shape, band)
    assert len(rings) == 2
    assert sum(polygon_area(r) for r in rings) == pytest.approx(100.0)


def test_fallback_uses_second_strategy() -> None:
    chain = FallbackIntersector(primary=_Failing(), fallback=ClipIntersector())
    rings = intersect_polygons(SQUARE, SHIFTED, chain)
    assert polygon_area(rings[0]) == pytest.approx(25.0)
