# dispolabel/core/types.py
"""
Dataclasses for polygons, boxes, width measurements, quarter anchors and
placement results. Polygons are plain lists of (x, y) tuples in ring order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Sequence

Point = tuple[float, float]
Ring = list[Point]
PolygonLike = Sequence[Point]


@dataclass(frozen=True)
class Box:
    """Axis-aligned box, 2D or 3D. Fast-reject only, never containment truth."""
    min_pt: tuple[float, ...]
    max_pt: tuple[float, ...]

    @classmethod
    def around(cls, center: Point, width: float, height: float) -> "Box":
        """Box of the given size centred on center (middle-centre text attachment)."""
        hw = width / 2.0
        hh = height / 2.0
        return cls((center[0] - hw, center[1] - hh), (center[0] + hw, center[1] + hh))

    @property
    def center(self) -> tuple[float, ...]:
        return tuple((a + b) / 2.0 for a, b in zip(self.min_pt, self.max_pt))

    def expanded(self, distance: float) -> "Box":
        return Box(
            tuple(v - distance for v in self.min_pt),
            tuple(v + distance for v in self.max_pt),
        )


@dataclass(frozen=True)
class PrincipalAxes:
    """Vertex centroid plus orthonormal major/minor unit vectors."""
    origin: Point
    major: Point
    minor: Point


@dataclass(frozen=True)
class WidthMeasurement:
    """Corridor width summary. usedSamples=False means the oriented-box fallback."""
    median_width: float
    min_width: float
    max_width: float
    is_variable: bool
    used_samples: bool
    median_center: Point


@dataclass(frozen=True)
class QuarterAnchors:
    """Cardinal anchor points of a section: existing vertices unless synthesized."""
    top: Point
    bottom: Point
    left: Point
    right: Point


class Quadrant(str, Enum):
    NW = "NW"
    NE = "NE"
    SW = "SW"
    SE = "SE"


@dataclass
class QuarterMap:
    """Four quarter rings keyed by quadrant, and how they were produced."""
    quarters: dict[Quadrant, Ring]
    anchors: QuarterAnchors
    anchors_fallback: bool = False
    extents_fallback: bool = False


@dataclass(frozen=True)
class LookupEntry:
    """One row of a company/purpose lookup table: display value plus extra column."""
    value: str
    extra: str = ""


@dataclass
class DispositionSpec:
    """
    A disposition to label. text_layer blank means no layer mapping (skipped).
    allow_outside lets the label sit in the quarter outside the disposition;
    add_leader asks for a connector from target to label.
    """
    id: Hashable
    ring: Ring
    label_text: str
    text_layer: str | None
    safe_point: Point
    line_layer: str | None = None
    allow_outside: bool = False
    add_leader: bool = False
    width: WidthMeasurement | None = None


@dataclass(frozen=True)
class LeaderLine:
    """Connector from the marker edge (or target) to the label point."""
    start: Point
    end: Point
    marker_center: Point | None = None
    marker_radius: float = 0.0


@dataclass
class PlacementDecision:
    """Per-disposition outcome for one quarter. point is None only when nothing was placed."""
    disposition_id: Hashable
    quarter_index: int
    target: Point
    point: Point | None
    placed: bool
    forced: bool
    extent: Box | None = None
    leader: LeaderLine | None = None
    candidates_tried: int = 0


@dataclass
class PlacementCounters:
    """Run-scoped counters; a fresh instance per placement run."""
    labels_placed: int = 0
    overlap_forced: int = 0
    multi_quarter_processed: int = 0
    skipped_no_mapping: int = 0
    not_placed: int = 0


@dataclass
class PlacementRun:
    """Result of one placement run."""
    decisions: list[PlacementDecision] = field(default_factory=list)
    counters: PlacementCounters = field(default_factory=PlacementCounters)
