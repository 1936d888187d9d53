# dispolabel/core/width.py
"""
Corridor width measurement: principal axes from vertex covariance (2D PCA),
perpendicular cross-section probes along the major axis, median/min/max and
variability. Falls back to the oriented bounding width when no probe succeeds.
See: docs/ALGORITHM.md W1–W3.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
from shapely.errors import GEOSException
from shapely.geometry import LinearRing, LineString
from shapely.geometry.base import BaseGeometry

from dispolabel.core.config import (
    BOUNDARY_EPS,
    DEDUPE_EPS,
    PROBE_LENGTH_FACTOR,
    PROBE_MIN_LENGTH,
    VARIABLE_WIDTH_ABS_TOLERANCE,
    VARIABLE_WIDTH_REL_TOLERANCE,
    WIDTH_SAMPLE_COUNT,
)
from dispolabel.core.geometry import safe_interior_point
from dispolabel.core.types import Point, PolygonLike, PrincipalAxes, WidthMeasurement

logger = logging.getLogger(__name__)

WORLD_MAJOR: Point = (1.0, 0.0)
WORLD_MINOR: Point = (0.0, 1.0)


def principal_axes(polygon: PolygonLike) -> PrincipalAxes | None:
    """
    Vertex centroid plus major/minor unit axes; major angle is
    0.5 * atan2(2*sxy, sxx - syy). None when fewer than 3 vertices or the
    covariance is numerically isotropic.
    """
    if len(polygon) < 3:
        return None
    xy = np.asarray(polygon, dtype=float)[:, :2]
    mean = xy.mean(axis=0)
    d = xy - mean
    sxx = float(np.sum(d[:, 0] * d[:, 0]))
    syy = float(np.sum(d[:, 1] * d[:, 1]))
    sxy = float(np.sum(d[:, 0] * d[:, 1]))
    if abs(sxy) < BOUNDARY_EPS and abs(sxx - syy) < BOUNDARY_EPS:
        return None
    angle = 0.5 * math.atan2(2.0 * sxy, sxx - syy)
    major = (math.cos(angle), math.sin(angle))
    minor = (-major[1], major[0])
    return PrincipalAxes(origin=(float(mean[0]), float(mean[1])), major=major, minor=minor)


def principal_ranges(
    polygon: PolygonLike,
    axes: PrincipalAxes,
) -> tuple[float, float, float, float]:
    """(min_t, max_t, min_s, max_s): vertex projections on major (t) and minor (s)."""
    if not polygon:
        return (0.0, 0.0, 0.0, 0.0)
    xy = np.asarray(polygon, dtype=float)[:, :2] - np.asarray(axes.origin)
    t = xy @ np.asarray(axes.major)
    s = xy @ np.asarray(axes.minor)
    min_t, max_t = float(np.min(t)), float(np.max(t))
    min_s, max_s = float(np.min(s)), float(np.max(s))
    if not (math.isfinite(min_t) and math.isfinite(max_t)):
        min_t = max_t = 0.0
    if not (math.isfinite(min_s) and math.isfinite(max_s)):
        min_s = max_s = 0.0
    return (min_t, max_t, min_s, max_s)


def _hit_coords(geom: BaseGeometry) -> list[Point]:
    """Coordinates of a line/ring intersection (points and collinear piece ends)."""
    if geom is None or geom.is_empty:
        return []
    if hasattr(geom, "geoms"):
        out: list[Point] = []
        for g in geom.geoms:
            out.extend(_hit_coords(g))
        return out
    return [(float(x), float(y)) for x, y in list(geom.coords)]


def cross_section_width(
    polygon: PolygonLike,
    center: Point,
    direction: Point,
    half_length: float,
) -> tuple[float, Point] | None:
    """
    Intersect a probe segment through center along direction with the outline.
    Width = max - min of the deduplicated hit projections; returns (width, chord
    midpoint) or None when fewer than two distinct hits survive.
    """
    norm = math.hypot(direction[0], direction[1])
    if norm < BOUNDARY_EPS or len(polygon) < 3:
        return None
    ux, uy = direction[0] / norm, direction[1] / norm
    p1 = (center[0] - ux * half_length, center[1] - uy * half_length)
    p2 = (center[0] + ux * half_length, center[1] + uy * half_length)
    try:
        hits = LineString([p1, p2]).intersection(LinearRing(polygon))
    except (GEOSException, ValueError) as e:
        logger.debug(f"Cross-section probe failed: {e}")
        return None
    proj: list[float] = []
    for x, y in _hit_coords(hits):
        s = (x - center[0]) * ux + (y - center[1]) * uy
        if all(abs(s - other) >= DEDUPE_EPS for other in proj):
            proj.append(s)
    if len(proj) < 2:
        return None
    lo, hi = min(proj), max(proj)
    mid = (lo + hi) / 2.0
    return (hi - lo, (center[0] + ux * mid, center[1] + uy * mid))


def measure_corridor_width(
    polygon: PolygonLike,
    sample_count: int = WIDTH_SAMPLE_COUNT,
    abs_tolerance: float = VARIABLE_WIDTH_ABS_TOLERANCE,
    rel_tolerance: float = VARIABLE_WIDTH_REL_TOLERANCE,
) -> WidthMeasurement:
    """
    Sample sample_count probes perpendicular to the major axis at evenly spaced
    fractions strictly inside the major range. is_variable when the sample
    range exceeds max(abs_tolerance, median * rel_tolerance). With no
    successful sample, the minor-axis range is returned with used_samples=False.
    """
    if sample_count < 1:
        sample_count = WIDTH_SAMPLE_COUNT
    axes = principal_axes(polygon)
    if axes is None:
        logger.debug("Principal axes degenerate; using world axes through safe point")
        origin = safe_interior_point(polygon) if len(polygon) >= 3 else (0.0, 0.0)
        axes = PrincipalAxes(origin=origin, major=WORLD_MAJOR, minor=WORLD_MINOR)

    min_t, max_t, min_s, max_s = principal_ranges(polygon, axes)
    half_length = max(PROBE_LENGTH_FACTOR * max(max_t - min_t, max_s - min_s), PROBE_MIN_LENGTH) / 2.0
    mid_s = (min_s + max_s) / 2.0
    ox, oy = axes.origin
    (mx, my), (nx, ny) = axes.major, axes.minor

    samples: list[tuple[float, Point]] = []
    for i in range(1, sample_count + 1):
        t = min_t + (max_t - min_t) * i / (sample_count + 1)
        center = (ox + mx * t + nx * mid_s, oy + my * t + ny * mid_s)
        got = cross_section_width(polygon, center, axes.minor, half_length)
        if got is not None and got[0] > DEDUPE_EPS:
            samples.append(got)

    if not samples:
        fallback = abs(max_s - min_s)
        center = safe_interior_point(polygon) if len(polygon) >= 3 else axes.origin
        logger.debug(f"No cross-section succeeded; oriented bounding width {fallback:.3f}")
        return WidthMeasurement(fallback, fallback, fallback, False, False, center)

    samples.sort(key=lambda s: s[0])
    widths = [w for w, _ in samples]
    median = widths[len(widths) // 2]
    min_w, max_w = widths[0], widths[-1]
    is_variable = (max_w - min_w) > max(abs_tolerance, median * rel_tolerance)
    median_center = min(samples, key=lambda s: abs(s[0] - median))[1]
    return WidthMeasurement(median, min_w, max_w, is_variable, True, median_center)


def snap_to_acceptable(
    measured: float,
    acceptable: Sequence[float],
    tolerance: float,
) -> float:
    """
    Nearest acceptable width if within tolerance, else measured unchanged.
    Ties go to the first candidate in input order.
    """
    if not acceptable:
        return measured
    tolerance = max(0.0, tolerance)
    best = measured
    best_diff = math.inf
    for w in acceptable:
        diff = abs(measured - w)
        if diff < best_diff:
            best_diff = diff
            best = w
    return best if best_diff <= tolerance else measured
