# dispolabel/core/preprocess.py
"""
Preprocess raw outlines before labelling: clean rings (drop duplicate and
closing vertices), reject outlines with fewer than 3 vertices, and keep only
dispositions whose extents touch the buffered section extents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, Sequence

from dispolabel.core.config import SECTION_BUFFER_DISTANCE
from dispolabel.core.error_codes import NOT_CLOSED, OUTSIDE_SECTIONS
from dispolabel.core.geometry import boxes_overlap, clean_ring, polygon_box
from dispolabel.core.types import Box, PolygonLike, Ring

logger = logging.getLogger(__name__)


@dataclass
class PreparedInput:
    """Cleaned rings by id plus skip counts keyed by error code."""
    rings: dict[Hashable, Ring] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)

    def skip(self, key: str) -> None:
        self.skipped[key] = self.skipped.get(key, 0) + 1


def buffered_extents(
    sections: Iterable[PolygonLike],
    distance: float = SECTION_BUFFER_DISTANCE,
) -> list[Box]:
    """Bounding box of each section grown by distance on every side."""
    out: list[Box] = []
    for ring in sections:
        if len(ring) == 0:
            continue
        out.append(polygon_box(ring).expanded(distance))
    return out


def within_sections(box: Box, section_extents: Sequence[Box]) -> bool:
    """True when box touches any section extent (touching counts)."""
    return any(boxes_overlap(box, ext) for ext in section_extents)


def prepare_rings(
    raw: Mapping[Hashable, PolygonLike],
    section_extents: Sequence[Box] | None = None,
) -> PreparedInput:
    """
    Clean each raw outline. Outlines with < 3 distinct vertices are counted under
    NOT_CLOSED; with section_extents given, outlines outside all of them are
    counted under OUTSIDE_SECTIONS. Input order is preserved.
    """
    prepared = PreparedInput()
    for key, points in raw.items():
        ring = clean_ring(points)
        if ring is None:
            prepared.skip(NOT_CLOSED)
            continue
        if section_extents is not None and not within_sections(polygon_box(ring), section_extents):
            prepared.skip(OUTSIDE_SECTIONS)
            continue
        prepared.rings[key] = ring
    if prepared.skipped:
        logger.info(f"Preprocess skipped: {prepared.skipped}")
    return prepared
