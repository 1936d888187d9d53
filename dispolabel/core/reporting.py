# dispolabel/core/reporting.py
"""
Create reports/<run_name>/ and write placements.json (one entry per placement
decision plus counters) and run_metadata.json (timestamp and settings snapshot).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from dispolabel.core.config import REPORTS_DIR, EngineSettings, settings_to_dict
from dispolabel.core.types import (
    Box,
    DispositionSpec,
    LeaderLine,
    PlacementCounters,
    PlacementDecision,
    PlacementRun,
    Point,
    QuarterMap,
)


def _xy(p: Point | None) -> dict | None:
    if p is None:
        return None
    return {"x": float(p[0]), "y": float(p[1])}


def _box(box: Box | None) -> dict | None:
    if box is None:
        return None
    return {"min": _xy(box.min_pt[:2]), "max": _xy(box.max_pt[:2])}


def _leader(leader: LeaderLine | None) -> dict | None:
    if leader is None:
        return None
    return {
        "start": _xy(leader.start),
        "end": _xy(leader.end),
        "marker_center": _xy(leader.marker_center),
        "marker_radius": leader.marker_radius,
    }


def decision_to_dict(decision: PlacementDecision, disposition: DispositionSpec | None = None) -> dict:
    """One placements.json entry. Label text and layer come from the disposition when given."""
    out = {
        "disposition_id": str(decision.disposition_id),
        "quarter_index": decision.quarter_index,
        "placed": decision.placed,
        "forced": decision.forced,
        "target": _xy(decision.target),
        "point": _xy(decision.point),
        "extent": _box(decision.extent),
        "leader": _leader(decision.leader),
        "candidates_tried": decision.candidates_tried,
    }
    if disposition is not None:
        out["label_text"] = disposition.label_text
        out["text_layer"] = disposition.text_layer
        out["line_layer"] = disposition.line_layer
        if disposition.width is not None:
            w = disposition.width
            out["width"] = {
                "median": w.median_width,
                "min": w.min_width,
                "max": w.max_width,
                "is_variable": w.is_variable,
                "used_samples": w.used_samples,
            }
    return out


def counters_to_dict(counters: PlacementCounters) -> dict:
    return {
        "labels_placed": counters.labels_placed,
        "overlap_forced": counters.overlap_forced,
        "multi_quarter_processed": counters.multi_quarter_processed,
        "skipped_no_mapping": counters.skipped_no_mapping,
        "not_placed": counters.not_placed,
    }


def quarter_map_to_dict(section_id: str, qmap: QuarterMap) -> dict:
    a = qmap.anchors
    return {
        "section_id": section_id,
        "anchors": {"top": _xy(a.top), "bottom": _xy(a.bottom), "left": _xy(a.left), "right": _xy(a.right)},
        "anchors_fallback": qmap.anchors_fallback,
        "extents_fallback": qmap.extents_fallback,
        "quarters": {q.value: [_xy(p) for p in ring] for q, ring in qmap.quarters.items()},
    }


def placement_run_to_dict(
    run: PlacementRun,
    dispositions: Mapping[str, DispositionSpec] | None = None,
    skipped: Mapping[str, int] | None = None,
) -> dict:
    """Exact structure for placements.json."""
    lookup = dispositions or {}
    return {
        "placements": [decision_to_dict(d, lookup.get(str(d.disposition_id))) for d in run.decisions],
        "counters": counters_to_dict(run.counters),
        "skipped": dict(skipped or {}),
    }


def run_metadata_dict(run_name: str, job_path: str, settings: EngineSettings) -> dict:
    """Timestamp and config snapshot for run_metadata.json."""
    return {
        "run_name": run_name,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "job_path": job_path,
        "config": settings_to_dict(settings),
    }


def ensure_report_dir(
    repo_root: Path,
    run_name: str,
    output_dir: str | None = None,
) -> Path:
    """Create output_dir/<run_name>/ under repo_root; return path. Default output_dir from config."""
    base = output_dir if output_dir is not None else REPORTS_DIR
    out = (repo_root / base).resolve() / run_name
    out.mkdir(parents=True, exist_ok=True)
    return out


def write_placements_json(
    report_dir: Path,
    run: PlacementRun,
    dispositions: Mapping[str, DispositionSpec] | None = None,
    skipped: Mapping[str, int] | None = None,
    quarter_maps: list[dict] | None = None,
) -> Path:
    """Write placements.json to report_dir. Returns path to file."""
    path = report_dir / "placements.json"
    data = placement_run_to_dict(run, dispositions, skipped)
    if quarter_maps is not None:
        data["sections"] = quarter_maps
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def write_run_metadata_json(
    report_dir: Path,
    run_name: str,
    job_path: str,
    settings: EngineSettings,
) -> Path:
    """Write run_metadata.json to report_dir."""
    path = report_dir / "run_metadata.json"
    data = run_metadata_dict(run_name, job_path, settings)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path
