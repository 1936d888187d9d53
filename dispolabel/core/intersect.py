# dispolabel/core/intersect.py
"""
Polygon intersection strategies. A true Boolean intersection (shapely/GEOS)
is tried first; successive half-plane clipping is the fallback. Every strategy
returns a list of rings and [] on failure, never raising.
"""

from __future__ import annotations

import logging

from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from dispolabel.core.geometry import clean_ring, clip_polygon, signed_area, to_shapely
from dispolabel.core.types import PolygonLike, Ring

logger = logging.getLogger(__name__)


class PolygonIntersector:
    """Interface for intersection strategies."""

    def intersect(self, subject: PolygonLike, clip: PolygonLike) -> list[Ring]:  # pragma: no cover
        raise NotImplementedError


def _polygon_parts(geom: BaseGeometry) -> list[Polygon]:
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        out: list[Polygon] = []
        for g in geom.geoms:
            out.extend(_polygon_parts(g))
        return out
    return []


class ShapelyIntersector(PolygonIntersector):
    """True polygon intersection. Holes are dropped; each part's outline is returned."""

    def intersect(self, subject: PolygonLike, clip: PolygonLike) -> list[Ring]:
        if len(subject) < 3 or len(clip) < 3:
            return []
        try:
            a = to_shapely(subject)
            b = to_shapely(clip)
            if a.is_empty or b.is_empty:
                return []
            inter = a.intersection(b)
        except (GEOSException, ValueError) as e:
            logger.debug(f"Region intersection failed: {e}")
            return []
        rings: list[Ring] = []
        for part in _polygon_parts(inter):
            if part.area <= 0:
                continue
            ring = clean_ring(part.exterior.coords)
            if ring is not None:
                rings.append(ring)
        return rings


class ClipIntersector(PolygonIntersector):
    """
    Clip the subject by the half-plane of each clip edge. Exact for convex clip
    polygons; an approximation (convex-hull-like) for concave ones.
    """

    def intersect(self, subject: PolygonLike, clip: PolygonLike) -> list[Ring]:
        if len(subject) < 3 or len(clip) < 3:
            return []
        area = signed_area(clip)
        if area == 0:
            return []
        keep = 1.0 if area > 0 else -1.0
        out: Ring = list(subject)
        n = len(clip)
        for i in range(n):
            out = clip_polygon(out, clip[i], clip[(i + 1) % n], keep)
            if len(out) < 3:
                return []
        ring = clean_ring(out)
        if ring is None or signed_area(ring) == 0:
            return []
        return [ring]


class FallbackIntersector(PolygonIntersector):
    """Try primary; use fallback when primary yields nothing."""

    def __init__(
        self,
        primary: PolygonIntersector | None = None,
        fallback: PolygonIntersector | None = None,
    ) -> None:
        self.primary = primary if primary is not None else ShapelyIntersector()
        self.fallback = fallback if fallback is not None else ClipIntersector()

    def intersect(self, subject: PolygonLike, clip: PolygonLike) -> list[Ring]:
        rings = self.primary.intersect(subject, clip)
        if rings:
            return rings
        return self.fallback.intersect(subject, clip)


DEFAULT_INTERSECTOR = FallbackIntersector()


def intersect_polygons(
    subject: PolygonLike,
    clip: PolygonLike,
    strategy: PolygonIntersector | None = None,
) -> list[Ring]:
    """Intersection rings of subject and clip; [] when they do not overlap or on failure."""
    return (strategy or DEFAULT_INTERSECTOR).intersect(subject, clip)
