# dispolabel/core/placement.py
"""
Disposition label placement with overlap avoidance.

Per disposition and quarter: pick a target point (intersection centroid,
then cheaper fallbacks), walk the spiral candidates, accept the first label
footprint that does not overlap an earlier one, and force the last candidate
when none fits. Placement order is the input order and is significant: each
accepted footprint joins the run's accumulator before the next disposition.
See: docs/ALGORITHM.md L1–L5.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, Sequence

from dispolabel.core.candidates import candidate_label_points
from dispolabel.core.config import DEFAULT_SETTINGS, LEADER_MIN_LENGTH, EngineSettings
from dispolabel.core.error_codes import NO_PLACEMENT, user_message
from dispolabel.core.geometry import (
    box_overlap_center,
    boxes_overlap,
    nearest_point_on_boundary,
    point_in_polygon,
    polygon_box,
    polygon_centroid,
    safe_interior_point,
)
from dispolabel.core.intersect import PolygonIntersector, intersect_polygons
from dispolabel.core.text_metrics import measure_label_extent
from dispolabel.core.types import (
    Box,
    DispositionSpec,
    LeaderLine,
    PlacementDecision,
    PlacementRun,
    Point,
    PolygonLike,
)

logger = logging.getLogger(__name__)

MeasureFn = Callable[[str, float], tuple[float, float]]


class PlacedExtents:
    """Footprints placed so far in one run, optionally seeded with obstacles."""

    def __init__(self, obstacles: Iterable[Box] | None = None) -> None:
        self.boxes: list[Box] = list(obstacles) if obstacles else []

    def overlaps(self, box: Box) -> bool:
        return any(boxes_overlap(b, box) for b in self.boxes)

    def add(self, box: Box) -> None:
        self.boxes.append(box)

    def __len__(self) -> int:
        return len(self.boxes)


def select_target_point(
    container: PolygonLike,
    subject: PolygonLike,
    fallback: Point,
    use_region_intersection: bool = True,
    intersector: PolygonIntersector | None = None,
) -> tuple[Point, str]:
    """
    Leader target inside container ∩ subject when possible. Returns (point, source)
    where source names the rule that won: intersection, fallback, box_overlap,
    nearest_boundary or unconditional.
    """
    def inside_both(p: Point) -> bool:
        return point_in_polygon(container, p) and point_in_polygon(subject, p)

    if use_region_intersection:
        for ring in intersect_polygons(subject, container, intersector):
            c = polygon_centroid(ring)
            if math.isfinite(c[0]) and math.isfinite(c[1]) and inside_both(c):
                return c, "intersection"

    if inside_both(fallback):
        return fallback, "fallback"

    overlap = box_overlap_center(polygon_box(container), polygon_box(subject))
    if inside_both(overlap):
        return overlap, "box_overlap"

    closest = nearest_point_on_boundary(subject, safe_interior_point(container))
    if closest is not None and point_in_polygon(container, closest):
        return closest, "nearest_boundary"

    return fallback, "unconditional"


def leader_segment(target: Point, label_point: Point, marker_radius: float = 0.0) -> LeaderLine | None:
    """
    Connector from target to label_point. With a marker, the line starts on the
    marker edge; None when the (trimmed) segment collapses.
    """
    dx = label_point[0] - target[0]
    dy = label_point[1] - target[1]
    length = math.hypot(dx, dy)
    if length < LEADER_MIN_LENGTH:
        return None
    if marker_radius <= LEADER_MIN_LENGTH:
        return LeaderLine(start=target, end=label_point)
    if length - marker_radius < LEADER_MIN_LENGTH:
        return None
    start = (target[0] + dx / length * marker_radius, target[1] + dy / length * marker_radius)
    return LeaderLine(start=start, end=label_point, marker_center=target, marker_radius=marker_radius)


def place_disposition_label(
    container: PolygonLike,
    disposition: DispositionSpec,
    placed: PlacedExtents,
    settings: EngineSettings = DEFAULT_SETTINGS,
    quarter_index: int = 0,
    intersector: PolygonIntersector | None = None,
    measure: MeasureFn = measure_label_extent,
) -> PlacementDecision:
    """
    Place one disposition label inside one container (quarter). The accepted
    footprint is added to placed. Returns the decision; nothing is persisted.
    """
    target, source = select_target_point(
        container,
        disposition.ring,
        disposition.safe_point,
        use_region_intersection=settings.use_region_intersection,
        intersector=intersector,
    )
    logger.debug(f"Disposition {disposition.id}: target {target} from {source}")

    candidates = list(candidate_label_points(
        container,
        disposition.ring,
        target,
        disposition.allow_outside,
        settings.text_height,
        settings.max_overlap_attempts,
    ))
    if not candidates:
        candidates = [disposition.safe_point]

    width, height = measure(disposition.label_text, settings.text_height)
    chosen: Point | None = None
    extent: Box | None = None
    forced = False
    tried = 0
    for pt in candidates:
        tried += 1
        box = Box.around(pt, width, height)
        if placed.overlaps(box):
            continue
        chosen, extent = pt, box
        break

    if chosen is None and settings.place_when_overlap_fails:
        chosen = candidates[-1]
        extent = Box.around(chosen, width, height)
        forced = True

    if chosen is None or extent is None:
        logger.warning(f"Could not place label for disposition {disposition.id}: {user_message(NO_PLACEMENT)}")
        return PlacementDecision(
            disposition_id=disposition.id,
            quarter_index=quarter_index,
            target=target,
            point=None,
            placed=False,
            forced=False,
            candidates_tried=tried,
        )

    placed.add(extent)
    leader = None
    if settings.enable_leaders and disposition.add_leader:
        leader = leader_segment(target, chosen, settings.leader_marker_radius)
    return PlacementDecision(
        disposition_id=disposition.id,
        quarter_index=quarter_index,
        target=target,
        point=chosen,
        placed=True,
        forced=forced,
        extent=extent,
        leader=leader,
        candidates_tried=tried,
    )


def run_label_placement(
    quarters: Sequence[PolygonLike],
    dispositions: Sequence[DispositionSpec],
    settings: EngineSettings = DEFAULT_SETTINGS,
    intersector: PolygonIntersector | None = None,
    existing_obstacles: Iterable[Box] | None = None,
    measure: MeasureFn = measure_label_extent,
) -> PlacementRun:
    """
    Label every disposition in every quarter it overlaps, quarters outer and
    dispositions inner, strictly in input order. Counters are fresh per run.
    """
    run = PlacementRun()
    counters = run.counters
    placed = PlacedExtents(existing_obstacles)
    processed: set = set()
    disposition_boxes = [polygon_box(d.ring) for d in dispositions]

    for qi, quarter in enumerate(quarters):
        if len(quarter) < 3:
            continue
        quarter_box = polygon_box(quarter)
        for disposition, disposition_box in zip(dispositions, disposition_boxes):
            already = disposition.id in processed
            if already and not settings.allow_multi_quarter_dispositions:
                continue
            if not boxes_overlap(quarter_box, disposition_box):
                continue
            if not (disposition.text_layer or "").strip():
                counters.skipped_no_mapping += 1
                continue
            if already:
                counters.multi_quarter_processed += 1

            decision = place_disposition_label(
                quarter,
                disposition,
                placed,
                settings=settings,
                quarter_index=qi,
                intersector=intersector,
                measure=measure,
            )
            run.decisions.append(decision)
            if decision.placed:
                counters.labels_placed += 1
                if decision.forced:
                    counters.overlap_forced += 1
            else:
                counters.not_placed += 1
            processed.add(disposition.id)

    logger.info(
        f"Placement run: {counters.labels_placed} placed, {counters.overlap_forced} forced, "
        f"{counters.multi_quarter_processed} multi-quarter, {counters.skipped_no_mapping} no mapping"
    )
    return run
