# dispolabel/core/candidates.py
"""
Label candidates: an outward 8-direction ring spiral around the target,
filtered by containment. Corridor labels prefer points in the quarter but
outside the disposition. See: docs/ALGORITHM.md L2.
"""

from __future__ import annotations

from typing import Iterator

from dispolabel.core.geometry import point_in_polygon, ring_offsets
from dispolabel.core.types import Point, PolygonLike


def spiral_offsets(center: Point, step: float, max_points: int) -> Iterator[Point]:
    """
    Yield center, then rings of 8 points at 45° increments and radius
    ring * step, until max_points points have been produced. Each call is a
    fresh, finite generator.
    """
    if max_points <= 0:
        return
    yield center
    produced = 1
    ring = 1
    while produced < max_points:
        for p in ring_offsets(center, step, ring):
            if produced >= max_points:
                return
            yield p
            produced += 1
        ring += 1


def candidate_label_points(
    container: PolygonLike,
    subject: PolygonLike,
    target: Point,
    allow_outside: bool,
    step: float,
    max_points: int,
) -> Iterator[Point]:
    """
    Spiral points inside the container. Without allow_outside they must also
    be inside the subject. With allow_outside, points outside the subject come
    first, then the ones inside it, each group in spiral order.
    """
    spiral = list(spiral_offsets(target, step, max_points))
    if not allow_outside:
        for p in spiral:
            if point_in_polygon(container, p) and point_in_polygon(subject, p):
                yield p
        return

    inside: list[Point] = []
    for p in spiral:
        if not point_in_polygon(container, p):
            continue
        if point_in_polygon(subject, p):
            inside.append(p)
        else:
            yield p
    yield from inside
