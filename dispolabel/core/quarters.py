# dispolabel/core/quarters.py
"""
Quarter-section subdivision of an arbitrary closed section polygon.

Anchors: pick a reference 'top' edge, derive local east/north axes, group
edges into contiguous east-west and north-south chains, select the chain
touching each extreme band, and take the existing chain vertex nearest the
mid-span. Anchors far from the mid-span are replaced by synthesized extents
points. Quartering clips the outline by the two anchor lines, falling back
to a bounding-box quartering. See: docs/ALGORITHM.md Q1–Q4.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from dispolabel.core.config import (
    ANCHOR_BAND_FRACTION,
    ANCHOR_BAND_MIN,
    ANCHOR_MAX_DEVIATION,
    TOP_EDGE_ANGLE_TOL_DEG,
)
from dispolabel.core.geometry import clean_ring, clip_polygon, polygon_box, side_sign
from dispolabel.core.types import Point, PolygonLike, Quadrant, QuarterAnchors, QuarterMap, Ring

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    index: int
    a: Point
    b: Point
    mid: Point
    u: Point
    length: float


@dataclass(frozen=True)
class Chain:
    """Run of consecutive edges starting at vertex `start`, seg_count edges long."""
    start: int
    seg_count: int
    score: float
    total_length: float

    def vertex_indices(self, vertex_count: int) -> list[int]:
        return [(self.start + k) % vertex_count for k in range(self.seg_count + 1)]


def _dot(p: Point, v: Point) -> float:
    return p[0] * v[0] + p[1] * v[1]


def build_edges(vertices: PolygonLike) -> list[Edge]:
    """Directed edges i -> i+1 (closing edge included) with unit direction."""
    n = len(vertices)
    edges: list[Edge] = []
    for i in range(n):
        a = vertices[i]
        b = vertices[(i + 1) % n]
        dx, dy = b[0] - a[0], b[1] - a[1]
        length = math.hypot(dx, dy)
        if length <= 1e-9:
            continue
        edges.append(Edge(
            index=i,
            a=a,
            b=b,
            mid=((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5),
            u=(dx / length, dy / length),
            length=length,
        ))
    return edges


def reference_top_edge(edges: list[Edge], angle_tol_deg: float = TOP_EDGE_ANGLE_TOL_DEG) -> Edge:
    """Highest near-horizontal edge; the longest edge when none is near-horizontal."""
    cos_tol = math.cos(math.radians(angle_tol_deg))
    best: Edge | None = None
    best_y = -math.inf
    for e in edges:
        avg_y = (e.a[1] + e.b[1]) * 0.5
        if abs(e.u[0]) >= cos_tol and avg_y > best_y:
            best_y = avg_y
            best = e
    if best is None:
        best = max(edges, key=lambda e: e.length)
    return best


def build_chains(edges: list[Edge], primary: Point, other: Point) -> list[Chain]:
    """
    Maximal runs of edges whose direction is closer to primary than to other.
    Score = mean projection of member edge midpoints onto other. A chain
    running off the end of the edge list merges with one starting at index 0.
    """
    chains: list[Chain] = []
    start = -1
    proj_sum = 0.0
    count = 0
    total = 0.0
    in_chain = False

    def close() -> None:
        chains.append(Chain(start, count, proj_sum / count if count else 0.0, total))

    for e in edges:
        if abs(_dot(e.u, primary)) >= abs(_dot(e.u, other)):
            if not in_chain:
                in_chain = True
                start = e.index
                proj_sum = 0.0
                count = 0
                total = 0.0
            proj_sum += _dot(e.mid, other)
            count += 1
            total += e.length
        elif in_chain:
            close()
            in_chain = False
    if in_chain:
        close()

    if len(chains) >= 2:
        first, last = chains[0], chains[-1]
        if first.start == 0 and last.start + last.seg_count == len(edges):
            seg = first.seg_count + last.seg_count
            score = (first.score * first.seg_count + last.score * last.seg_count) / seg
            chains[0] = Chain(last.start, seg, score, first.total_length + last.total_length)
            chains.pop()
    return chains


def _nearest_vertex(vertices: PolygonLike, chain: Chain, axis: Point, target: float) -> Point:
    best_idx = chain.start % len(vertices)
    best = math.inf
    for idx in chain.vertex_indices(len(vertices)):
        d = abs(_dot(vertices[idx], axis) - target)
        if d < best:
            best = d
            best_idx = idx
    return vertices[best_idx]


def quarter_anchors(section: PolygonLike) -> tuple[QuarterAnchors, bool] | None:
    """
    Cardinal anchors of a section. Returns (anchors, synthesized) where
    synthesized means the chain anchors were rejected for deviating from the
    mid-span and extents points were substituted. None when the outline has
    no usable edges.
    """
    verts = clean_ring(section)
    if verts is None:
        return None
    n = len(verts)
    edges = build_edges(verts)
    if not edges:
        return None

    top_edge = reference_top_edge(edges)
    east = top_edge.u
    if east[0] < 0:
        east = (-east[0], -east[1])
    north = (-east[1], east[0])

    es = [_dot(v, east) for v in verts]
    ns = [_dot(v, north) for v in verts]
    min_e, max_e = min(es), max(es)
    min_n, max_n = min(ns), max(ns)
    span_e = max(1e-6, max_e - min_e)
    span_n = max(1e-6, max_n - min_n)
    band = max(ANCHOR_BAND_MIN, ANCHOR_BAND_FRACTION * max(span_e, span_n))

    e_chains = build_chains(edges, east, north)
    n_chains = build_chains(edges, north, east)
    if not e_chains or not n_chains:
        return None

    def touches(chain: Chain, values: list[float], extreme: float) -> bool:
        return any(abs(values[i] - extreme) <= band for i in chain.vertex_indices(n))

    def pick(chains: list[Chain], values: list[float], extreme: float, highest: bool) -> Chain:
        for c in chains:
            if touches(c, values, extreme):
                return c
        return max(chains, key=lambda c: c.score) if highest else min(chains, key=lambda c: c.score)

    top = pick(e_chains, ns, max_n, True)
    bottom = pick(e_chains, ns, min_n, False)
    left = pick(n_chains, es, min_e, False)
    right = pick(n_chains, es, max_e, True)

    target_e = 0.5 * (min_e + max_e)
    target_n = 0.5 * (min_n + max_n)
    top_v = _nearest_vertex(verts, top, east, target_e)
    bottom_v = _nearest_vertex(verts, bottom, east, target_e)
    left_v = _nearest_vertex(verts, left, north, target_n)
    right_v = _nearest_vertex(verts, right, north, target_n)

    max_de = ANCHOR_MAX_DEVIATION * span_e
    max_dn = ANCHOR_MAX_DEVIATION * span_n
    e_mid = 0.5 * (_dot(left_v, east) + _dot(right_v, east))
    n_mid = 0.5 * (_dot(top_v, north) + _dot(bottom_v, north))
    deviates = (
        abs(e_mid - target_e) > max_de
        or abs(n_mid - target_n) > max_dn
        or abs(_dot(top_v, east) - target_e) > max_de
        or abs(_dot(bottom_v, east) - target_e) > max_de
        or abs(_dot(left_v, north) - target_n) > max_dn
        or abs(_dot(right_v, north) - target_n) > max_dn
    )
    if deviates:
        def from_en(e: float, nv: float) -> Point:
            return (east[0] * e + north[0] * nv, east[1] * e + north[1] * nv)

        logger.debug("Chain anchors deviate from mid-span; using extents anchors")
        return QuarterAnchors(
            top=from_en(target_e, max_n),
            bottom=from_en(target_e, min_n),
            left=from_en(min_e, target_n),
            right=from_en(max_e, target_n),
        ), True

    return QuarterAnchors(top=top_v, bottom=bottom_v, left=left_v, right=right_v), False


def fallback_anchors(section: PolygonLike) -> QuarterAnchors:
    """World-aligned extents anchors (mid-span on each side of the bounding box)."""
    box = polygon_box(section)
    min_x, min_y = box.min_pt[0], box.min_pt[1]
    max_x, max_y = box.max_pt[0], box.max_pt[1]
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0
    return QuarterAnchors(
        top=(mid_x, max_y),
        bottom=(mid_x, min_y),
        left=(min_x, mid_y),
        right=(max_x, mid_y),
    )


def _rectangle(min_x: float, min_y: float, max_x: float, max_y: float) -> Ring:
    return [(min_x, min_y), (max_x, min_y), (max_x, max_y), (min_x, max_y)]


def quarter_map_from_extents(section: PolygonLike) -> dict[Quadrant, Ring]:
    """Axis-aligned bounding-box quartering."""
    box = polygon_box(section)
    min_x, min_y = box.min_pt[0], box.min_pt[1]
    max_x, max_y = box.max_pt[0], box.max_pt[1]
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0
    return {
        Quadrant.SW: _rectangle(min_x, min_y, mid_x, mid_y),
        Quadrant.SE: _rectangle(mid_x, min_y, max_x, mid_y),
        Quadrant.NW: _rectangle(min_x, mid_y, mid_x, max_y),
        Quadrant.NE: _rectangle(mid_x, mid_y, max_x, max_y),
    }


def clip_quarters(outline: PolygonLike, anchors: QuarterAnchors) -> dict[Quadrant, Ring] | None:
    """
    Split by the east-west line (left -> right), then each half by the
    north-south line (top -> bottom). None unless all four pieces have >= 3 vertices.
    """
    ns_sign = side_sign(anchors.left, anchors.right, anchors.top)
    if ns_sign == 0:
        ns_sign = -side_sign(anchors.left, anchors.right, anchors.bottom)
    we_sign = side_sign(anchors.top, anchors.bottom, anchors.left)
    if we_sign == 0:
        we_sign = -side_sign(anchors.top, anchors.bottom, anchors.right)
    if ns_sign == 0 or we_sign == 0:
        return None

    north = clip_polygon(outline, anchors.left, anchors.right, ns_sign)
    south = clip_polygon(outline, anchors.left, anchors.right, -ns_sign)
    pieces = {
        Quadrant.NW: clip_polygon(north, anchors.top, anchors.bottom, we_sign),
        Quadrant.NE: clip_polygon(north, anchors.top, anchors.bottom, -we_sign),
        Quadrant.SW: clip_polygon(south, anchors.top, anchors.bottom, we_sign),
        Quadrant.SE: clip_polygon(south, anchors.top, anchors.bottom, -we_sign),
    }
    out: dict[Quadrant, Ring] = {}
    for quadrant, points in pieces.items():
        ring = clean_ring(points)
        if ring is None:
            return None
        out[quadrant] = ring
    return out


def build_quarter_map(section: PolygonLike) -> QuarterMap | None:
    """
    Quarter a section polygon. Anchor detection falls back to extents anchors;
    clipping falls back to bounding-box quartering. None for < 3 vertices.
    """
    outline = clean_ring(section)
    if outline is None:
        return None
    found = quarter_anchors(outline)
    anchors_fallback = found is None
    if found is None:
        logger.debug("Quarter anchors not found; using bounding-box anchors")
        anchors = fallback_anchors(outline)
    else:
        anchors, synthesized = found
        anchors_fallback = synthesized
    quarters = clip_quarters(outline, anchors)
    if quarters is not None:
        return QuarterMap(quarters=quarters, anchors=anchors, anchors_fallback=anchors_fallback)
    logger.warning("Quarter clipping failed; using bounding-box quarters")
    return QuarterMap(
        quarters=quarter_map_from_extents(outline),
        anchors=anchors,
        anchors_fallback=anchors_fallback,
        extents_fallback=True,
    )
