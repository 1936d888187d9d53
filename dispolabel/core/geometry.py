# dispolabel/core/geometry.py
"""
Polygon primitives: ring cleanup, containment, centroid, boxes, half-plane
clipping, safe interior point. All functions are total: degenerate input
returns a documented fallback instead of raising. See: docs/ALGORITHM.md P1–P4.
"""

from __future__ import annotations

import math
from typing import Iterable

from shapely.geometry import LinearRing, Point as ShapelyPoint, Polygon
from shapely.geometry.base import BaseGeometry

from dispolabel.core.config import (
    AREA_EPS,
    BOUNDARY_EPS,
    DEDUPE_EPS,
    SAFE_POINT_RINGS,
    SAFE_POINT_STEP_DIVISOR,
)
from dispolabel.core.types import Box, Point, PolygonLike, Ring


def _pt(p: Iterable[float]) -> Point:
    x, y = tuple(p)[:2]
    return (float(x), float(y))


def clean_ring(points: Iterable[Iterable[float]]) -> Ring | None:
    """
    Drop consecutive duplicate vertices and an explicit closing vertex.
    Returns None if fewer than 3 distinct vertices remain.
    """
    cleaned: Ring = []
    for p in points:
        q = _pt(p)
        if not cleaned or math.dist(q, cleaned[-1]) > DEDUPE_EPS:
            cleaned.append(q)
    if len(cleaned) >= 2 and math.dist(cleaned[0], cleaned[-1]) < DEDUPE_EPS:
        cleaned.pop()
    if len(cleaned) < 3:
        return None
    return cleaned


def signed_area(polygon: PolygonLike) -> float:
    """Shoelace signed area; positive for counter-clockwise rings."""
    n = len(polygon)
    if n < 3:
        return 0.0
    s = 0.0
    for i in range(n):
        x1, y1 = polygon[i]
        x2, y2 = polygon[(i + 1) % n]
        s += x1 * y2 - x2 * y1
    return s / 2.0


def polygon_area(polygon: PolygonLike) -> float:
    return abs(signed_area(polygon))


def _on_segment(p: Point, a: Point, b: Point, tol: float = BOUNDARY_EPS) -> bool:
    abx, aby = b[0] - a[0], b[1] - a[1]
    apx, apy = p[0] - a[0], p[1] - a[1]
    length = math.hypot(abx, aby)
    if length <= tol:
        # zero-length edge (closing or repeated vertex)
        return math.hypot(apx, apy) <= tol
    if abs(abx * apy - aby * apx) / length > tol:
        return False
    along = (apx * abx + apy * aby) / length
    return -tol <= along <= length + tol


def point_in_polygon(polygon: PolygonLike, point: Point) -> bool:
    """
    Even-odd ray casting. Points on the boundary (within BOUNDARY_EPS) are inside.
    Fewer than 3 vertices: False.
    """
    n = len(polygon)
    if n < 3:
        return False
    px, py = point
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if _on_segment(point, (xj, yj), (xi, yi)):
            return True
        if (yi > py) != (yj > py):
            x_cross = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_cross:
                inside = not inside
        j = i
    return inside


def polygon_centroid(polygon: PolygonLike) -> Point:
    """Area-weighted centroid; near-zero area falls back to the first vertex."""
    n = len(polygon)
    if n == 0:
        return (0.0, 0.0)
    a = 0.0
    cx = 0.0
    cy = 0.0
    for i in range(n):
        x1, y1 = polygon[i]
        x2, y2 = polygon[(i + 1) % n]
        cross = x1 * y2 - x2 * y1
        a += cross
        cx += (x1 + x2) * cross
        cy += (y1 + y2) * cross
    a *= 0.5
    if abs(a) < AREA_EPS:
        return _pt(polygon[0])
    return (cx / (6.0 * a), cy / (6.0 * a))


def polygon_box(polygon: PolygonLike) -> Box:
    """Bounding box of the vertices; empty polygon gives a zero box at the origin."""
    if not polygon:
        return Box((0.0, 0.0), (0.0, 0.0))
    xs = [p[0] for p in polygon]
    ys = [p[1] for p in polygon]
    return Box((min(xs), min(ys)), (max(xs), max(ys)))


def boxes_overlap(a: Box, b: Box) -> bool:
    """Inclusive on every boundary: touching boxes overlap. Works in 2D or 3D."""
    for amin, amax, bmin, bmax in zip(a.min_pt, a.max_pt, b.min_pt, b.max_pt):
        if amax < bmin or amin > bmax:
            return False
    return True


def box_overlap_center(a: Box, b: Box) -> Point:
    """Centre of the overlap of two boxes (meaningless but finite when disjoint)."""
    min_x = max(a.min_pt[0], b.min_pt[0])
    max_x = min(a.max_pt[0], b.max_pt[0])
    min_y = max(a.min_pt[1], b.min_pt[1])
    max_y = min(a.max_pt[1], b.max_pt[1])
    return ((min_x + max_x) / 2.0, (min_y + max_y) / 2.0)


def signed_side(line_start: Point, line_end: Point, point: Point) -> float:
    """2D cross of (line direction) x (point - line_start)."""
    dx = line_end[0] - line_start[0]
    dy = line_end[1] - line_start[1]
    return dx * (point[1] - line_start[1]) - dy * (point[0] - line_start[0])


def side_sign(line_start: Point, line_end: Point, point: Point) -> int:
    """+1 left of the line, -1 right, 0 within BOUNDARY_EPS of it."""
    s = signed_side(line_start, line_end, point)
    if abs(s) < BOUNDARY_EPS:
        return 0
    return 1 if s > 0 else -1


def _kept(side: float, keep_sign: float) -> bool:
    if keep_sign > 0:
        return side >= -BOUNDARY_EPS
    return side <= BOUNDARY_EPS


def intersect_segment_with_line(
    seg_start: Point,
    seg_end: Point,
    line_start: Point,
    line_end: Point,
) -> Point | None:
    """Parametric line-line solve; None for near-parallel (|cross| < BOUNDARY_EPS)."""
    rx, ry = seg_end[0] - seg_start[0], seg_end[1] - seg_start[1]
    sx, sy = line_end[0] - line_start[0], line_end[1] - line_start[1]
    cross = rx * sy - ry * sx
    if abs(cross) < BOUNDARY_EPS:
        return None
    qpx = line_start[0] - seg_start[0]
    qpy = line_start[1] - seg_start[1]
    t = (qpx * sy - qpy * sx) / cross
    return (seg_start[0] + t * rx, seg_start[1] + t * ry)


def clip_polygon(
    polygon: PolygonLike,
    line_start: Point,
    line_end: Point,
    keep_sign: float,
) -> Ring:
    """
    Sutherland–Hodgman clip against the infinite line through line_start/line_end.
    keep_sign > 0 keeps the left side (positive cross), otherwise the right side.
    Points within BOUNDARY_EPS of the line are kept. Near-parallel crossings emit
    no intersection, so the result may be degenerate; callers re-check vertex count.
    """
    output: Ring = []
    if not polygon:
        return output
    prev = polygon[-1]
    prev_inside = _kept(signed_side(line_start, line_end, prev), keep_sign)
    for current in polygon:
        current_inside = _kept(signed_side(line_start, line_end, current), keep_sign)
        if current_inside:
            if not prev_inside:
                hit = intersect_segment_with_line(prev, current, line_start, line_end)
                if hit is not None:
                    output.append(hit)
            output.append(_pt(current))
        elif prev_inside:
            hit = intersect_segment_with_line(prev, current, line_start, line_end)
            if hit is not None:
                output.append(hit)
        prev = current
        prev_inside = current_inside
    return output


def perimeter(polygon: PolygonLike) -> float:
    n = len(polygon)
    if n < 2:
        return 0.0
    return sum(math.dist(polygon[i], polygon[(i + 1) % n]) for i in range(n))


def ring_offsets(center: Point, step: float, ring: int) -> list[Point]:
    """The 8 points at 45° increments, ring * step away from center."""
    out: list[Point] = []
    for i in range(8):
        angle = (math.pi / 4.0) * i
        out.append((
            center[0] + math.cos(angle) * step * ring,
            center[1] + math.sin(angle) * step * ring,
        ))
    return out


def safe_interior_point(polygon: PolygonLike) -> Point:
    """
    Bounding-box centre if inside; otherwise the first inside point of an
    8-direction ring search around it; otherwise the bounding-box centre.
    """
    box = polygon_box(polygon)
    center = (
        (box.min_pt[0] + box.max_pt[0]) / 2.0,
        (box.min_pt[1] + box.max_pt[1]) / 2.0,
    )
    if point_in_polygon(polygon, center):
        return center
    step = max(perimeter(polygon) / SAFE_POINT_STEP_DIVISOR, 1.0)
    for r in range(1, SAFE_POINT_RINGS + 1):
        for p in ring_offsets(center, step, r):
            if point_in_polygon(polygon, p):
                return p
    return center


def to_shapely(polygon: PolygonLike) -> BaseGeometry:
    """Shapely polygon for a ring; invalid rings are repaired with buffer(0)."""
    if len(polygon) < 3:
        return Polygon()
    poly = Polygon(polygon)
    if not poly.is_valid:
        poly = poly.buffer(0)
    return poly


def nearest_point_on_boundary(polygon: PolygonLike, point: Point) -> Point | None:
    """Closest point on the polygon outline to point; None for degenerate rings."""
    if len(polygon) < 3:
        return None
    ring = LinearRing(polygon)
    if ring.length <= 0:
        return None
    q = ring.interpolate(ring.project(ShapelyPoint(point)))
    return (float(q.x), float(q.y))
