# tests/test_placement.py
"""
Label placement: target selection chain, overlap invariant, forced placement,
leaders, multi-quarter runs and counters. Uses a fixed label size so results
do not depend on installed fonts.
"""

from __future__ import annotations

import math
from dataclasses import replace

import pytest

from dispolabel.core.config import DEFAULT_SETTINGS
from dispolabel.core.error_codes import NO_PLACEMENT, user_message
from dispolabel.core.geometry import boxes_overlap
from dispolabel.core.placement import (
    PlacedExtents,
    leader_segment,
    place_disposition_label,
    run_label_placement,
    select_target_point,
)
from dispolabel.core.types import Box, DispositionSpec


def _measure(text: str, text_height: float) -> tuple[float, float]:
    return (4.0, 2.0)


def _square(x0: float, y0: float, size: float) -> list:
    return [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)]


def _disp(did: str, ring: list, safe_point: tuple, **kw) -> DispositionSpec:
    return DispositionSpec(
        id=did,
        ring=ring,
        label_text=did,
        text_layer=kw.pop("text_layer", "C-ROW-T"),
        safe_point=safe_point,
        **kw,
    )


QUARTER_W = _square(0, 0, 100)
QUARTER_E = _square(100, 0, 100)


def test_target_from_intersection() -> None:
    target, source = select_target_point(QUARTER_W, _square(20, 20, 20), (25, 25))
    assert source == "intersection"
    assert target == pytest.approx((30.0, 30.0))


def test_target_fallback_point() -> None:
    target, source = select_target_point(QUARTER_W, _square(20, 20, 20), (25, 25), use_region_intersection=False)
    assert source == "fallback"
    assert target == (25, 25)


def test_target_box_overlap() -> None:
    subject = [(90, 0), (150, 0), (150, 20), (90, 20)]
    target, source = select_target_point(QUARTER_W, subject, (140, 10), use_region_intersection=False)
    assert source == "box_overlap"
    assert target == pytest.approx((95.0, 10.0))


def test_target_nearest_boundary() -> None:
    # Overlap-box centre (95, 50) lies outside the thin diagonal subject.
    subject = [(90, 10), (100, 10), (160, 90), (150, 90)]
    container = _square(0, 0, 100)
    target, source = select_target_point(container, subject, (155, 85), use_region_intersection=False)
    assert source == "nearest_boundary"
    assert 0 <= target[0] <= 100 and 0 <= target[1] <= 100


def test_target_unconditional() -> None:
    target, source = select_target_point(_square(0, 0, 10), _square(20, 20, 10), (25, 25))
    assert source == "unconditional"


def test_target_with_explicitly_closed_rings() -> None:
    container = QUARTER_W + [QUARTER_W[0]]
    far = _square(200, 200, 10)
    target, source = select_target_point(container, far + [far[0]], (205, 205), use_region_intersection=False)
    assert source == "unconditional"
    assert target == (205, 205)

    near = _square(20, 20, 20)
    target, source = select_target_point(container, near + [near[0]], (25, 25), use_region_intersection=False)
    assert source == "fallback"
    assert target == (25, 25)


def test_leader_segment_trimmed_by_marker() -> None:
    leader = leader_segment((0.0, 0.0), (10.0, 0.0), 1.0)
    assert leader is not None
    assert leader.start == pytest.approx((1.0, 0.0))
    assert leader.end == (10.0, 0.0)
    assert leader.marker_center == (0.0, 0.0)


def test_leader_segment_without_marker() -> None:
    leader = leader_segment((0.0, 0.0), (3.0, 4.0), 0.0)
    assert leader.start == (0.0, 0.0)
    assert leader.marker_center is None


def test_leader_segment_collapses() -> None:
    assert leader_segment((0.0, 0.0), (0.5, 0.0), 1.0) is None
    assert leader_segment((1.0, 1.0), (1.0, 1.0), 0.0) is None


def test_placed_extents() -> None:
    placed = PlacedExtents([Box((0, 0), (1, 1))])
    assert len(placed) == 1
    assert placed.overlaps(Box((1, 1), (2, 2)))
    placed.add(Box((5, 5), (6, 6)))
    assert len(placed) == 2
    assert not placed.overlaps(Box((2, 2), (3, 3)))


def test_accepted_labels_never_overlap() -> None:
    settings = replace(DEFAULT_SETTINGS, text_height=3.0, max_overlap_attempts=25)
    dispositions = [_disp(f"D{i}", _square(90, 90, 20), (100, 100)) for i in range(12)]
    run = run_label_placement([_square(0, 0, 200)], dispositions, settings, measure=_measure)
    accepted = [d.extent for d in run.decisions if d.placed and not d.forced]
    assert len(accepted) >= 2
    for i in range(len(accepted)):
        for j in range(i + 1, len(accepted)):
            assert not boxes_overlap(accepted[i], accepted[j])
    assert run.counters.labels_placed == 12
    assert run.counters.overlap_forced == sum(1 for d in run.decisions if d.forced)


def test_forced_placement_uses_last_candidate() -> None:
    settings = replace(DEFAULT_SETTINGS, max_overlap_attempts=1)
    dispositions = [
        _disp("A", _square(40, 40, 20), (50, 50)),
        _disp("B", _square(140, 40, 20), (150, 50)),
    ]
    blocker = Box((0, 0), (200, 100))
    run = run_label_placement([QUARTER_W, QUARTER_E], dispositions, settings, existing_obstacles=[blocker], measure=_measure)
    assert [d.forced for d in run.decisions] == [True, True]
    a, b = run.decisions
    assert a.point == pytest.approx((50.0, 50.0))
    assert b.point == pytest.approx((150.0, 50.0))
    assert a.point != b.point
    assert run.counters.labels_placed == 2
    assert run.counters.overlap_forced == 2


def test_no_forcing_reports_not_placed() -> None:
    settings = replace(DEFAULT_SETTINGS, max_overlap_attempts=1, place_when_overlap_fails=False)
    dispositions = [_disp("A", _square(40, 40, 20), (50, 50))]
    run = run_label_placement([QUARTER_W], dispositions, settings, existing_obstacles=[Box((0, 0), (100, 100))], measure=_measure)
    decision = run.decisions[0]
    assert not decision.placed and decision.point is None
    assert run.counters.not_placed == 1
    assert run.counters.labels_placed == 0


def test_no_forcing_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    settings = replace(DEFAULT_SETTINGS, max_overlap_attempts=1, place_when_overlap_fails=False)
    dispositions = [_disp("A", _square(40, 40, 20), (50, 50))]
    run_label_placement([QUARTER_W], dispositions, settings, existing_obstacles=[Box((0, 0), (100, 100))], measure=_measure)
    assert "Could not place label for disposition A" in caplog.text
    assert user_message(NO_PLACEMENT) in caplog.text


def test_zero_candidates_uses_safe_point() -> None:
    disposition = _disp("A", _square(20, 20, 10), (25, 25))
    decision = place_disposition_label(_square(0, 0, 10), disposition, PlacedExtents(), measure=_measure)
    assert decision.placed and not decision.forced
    assert decision.point == (25, 25)


def test_multi_quarter_disposition() -> None:
    spanning = _disp("S", [(80, 40), (120, 40), (120, 60), (80, 60)], (100, 50))
    run = run_label_placement([QUARTER_W, QUARTER_E], [spanning], DEFAULT_SETTINGS, measure=_measure)
    assert len(run.decisions) == 2
    assert run.decisions[0].point == pytest.approx((90.0, 50.0))
    assert run.decisions[1].point == pytest.approx((110.0, 50.0))
    assert run.counters.multi_quarter_processed == 1
    assert run.counters.labels_placed == 2

    single = replace(DEFAULT_SETTINGS, allow_multi_quarter_dispositions=False)
    run = run_label_placement([QUARTER_W, QUARTER_E], [spanning], single, measure=_measure)
    assert len(run.decisions) == 1
    assert run.counters.multi_quarter_processed == 0


def test_multi_quarter_count_ignores_quarters_the_box_misses() -> None:
    spanning = _disp("S", [(80, 40), (120, 40), (120, 60), (80, 60)], (100, 50))
    run = run_label_placement([QUARTER_W, QUARTER_E, _square(500, 500, 100)], [spanning], DEFAULT_SETTINGS, measure=_measure)
    assert len(run.decisions) == 2
    assert run.counters.multi_quarter_processed == 1


def test_candidates_tried_counts_examined_points() -> None:
    dispositions = [
        _disp("A", _square(40, 40, 20), (50, 50)),
        _disp("B", _square(40, 40, 20), (50, 50)),
    ]
    run = run_label_placement([QUARTER_W], dispositions, DEFAULT_SETTINGS, measure=_measure)
    a, b = run.decisions
    assert a.point == pytest.approx((50.0, 50.0))
    assert a.candidates_tried == 1
    assert not b.forced
    assert b.candidates_tried == 2


def test_missing_text_layer_is_skipped() -> None:
    disposition = _disp("A", _square(40, 40, 20), (50, 50), text_layer=None)
    run = run_label_placement([QUARTER_W], [disposition], DEFAULT_SETTINGS, measure=_measure)
    assert run.decisions == []
    assert run.counters.skipped_no_mapping == 1


def test_corridor_label_outside_with_leader() -> None:
    corridor = _disp("C", [(0, 45), (100, 45), (100, 55), (0, 55)], (50, 50), allow_outside=True, add_leader=True)
    run = run_label_placement([QUARTER_W], [corridor], DEFAULT_SETTINGS, measure=_measure)
    decision = run.decisions[0]
    s = math.sqrt(0.5) * DEFAULT_SETTINGS.text_height
    assert decision.target == pytest.approx((50.0, 50.0))
    assert decision.point == pytest.approx((50.0 + s, 50.0 + s))
    leader = decision.leader
    assert leader is not None
    assert leader.end == decision.point
    assert leader.marker_center == decision.target
    dist = math.hypot(leader.start[0] - 50.0, leader.start[1] - 50.0)
    assert dist == pytest.approx(DEFAULT_SETTINGS.leader_marker_radius)


def test_leaders_disabled() -> None:
    corridor = _disp("C", [(0, 45), (100, 45), (100, 55), (0, 55)], (50, 50), add_leader=True)
    settings = replace(DEFAULT_SETTINGS, enable_leaders=False)
    run = run_label_placement([QUARTER_W], [corridor], settings, measure=_measure)
    assert run.decisions[0].leader is None


def test_counters_fresh_per_run() -> None:
    dispositions = [_disp("A", _square(40, 40, 20), (50, 50))]
    first = run_label_placement([QUARTER_W], dispositions, DEFAULT_SETTINGS, measure=_measure)
    second = run_label_placement([QUARTER_W], dispositions, DEFAULT_SETTINGS, measure=_measure)
    assert first.counters.labels_placed == 1
    assert second.counters.labels_placed == 1
    assert first.counters is not second.counters
    assert second.decisions[0].forced is False
