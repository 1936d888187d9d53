# dispolabel/core/runner.py
"""
CLI entrypoint: load a job file, quarter sections, prepare disposition labels,
run placement, write reports and render.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path

from dispolabel.core.config import DEFAULT_SETTINGS, EngineSettings, load_settings
from dispolabel.core.error_codes import NOT_CLOSED, user_message
from dispolabel.core.geometry import clean_ring
from dispolabel.core.io import Job, load_job
from dispolabel.core.labels import prepare_disposition
from dispolabel.core.placement import run_label_placement
from dispolabel.core.preprocess import buffered_extents, prepare_rings
from dispolabel.core.quarters import build_quarter_map
from dispolabel.core.render import render_placements
from dispolabel.core.reporting import (
    ensure_report_dir,
    quarter_map_to_dict,
    write_placements_json,
    write_run_metadata_json,
)
from dispolabel.core.types import DispositionSpec, PlacementRun, Quadrant, Ring

logger = logging.getLogger(__name__)

QUADRANT_ORDER = (Quadrant.NW, Quadrant.NE, Quadrant.SW, Quadrant.SE)


@dataclass
class JobResult:
    quarters: list[Ring]
    dispositions: list[DispositionSpec]
    run: PlacementRun
    skipped: dict[str, int] = field(default_factory=dict)
    sections: list[dict] = field(default_factory=list)


def run_job(job: Job, settings: EngineSettings = DEFAULT_SETTINGS) -> JobResult:
    """
    Quarter every section (or use the job's explicit quarters), keep the
    dispositions that touch the sections, and place their labels.
    """
    quarters: list[Ring] = []
    sections: list[dict] = []
    section_rings: list[Ring] = []
    for section in job.sections:
        qmap = build_quarter_map(section.coords)
        if qmap is None:
            logger.warning(f"Section {section.id}: {user_message(NOT_CLOSED)}")
            continue
        section_rings.append(clean_ring(section.coords))
        sections.append(quarter_map_to_dict(section.id, qmap))
        if not job.quarters:
            quarters.extend(qmap.quarters[q] for q in QUADRANT_ORDER)
    for quarter in job.quarters:
        ring = clean_ring(quarter.coords)
        if ring is not None:
            quarters.append(ring)

    extents = buffered_extents(section_rings, settings.section_buffer_distance) if section_rings else None
    raw = {d.id: d.coords for d in job.dispositions}
    prepared = prepare_rings(raw, extents)
    by_id = {d.id: d for d in job.dispositions}

    specs: list[DispositionSpec] = []
    for disposition_id, ring in prepared.rings.items():
        spec = prepare_disposition(
            disposition_id,
            ring,
            by_id[disposition_id].attributes,
            job.company_lookup,
            job.purpose_lookup,
            job.current_client,
            settings,
        )
        if spec is not None:
            specs.append(spec)

    run = run_label_placement(quarters, specs, settings)
    return JobResult(quarters=quarters, dispositions=specs, run=run, skipped=prepared.skipped, sections=sections)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Disposition label placement by section quarter.")
    p.add_argument("job", type=str, help="Job JSON path (repo-relative)")
    p.add_argument("--settings", type=str, default=None, help="Settings JSON path; created with defaults if missing")
    p.add_argument("--run-name", type=str, default="run", dest="run_name", help="Reports subdir name")
    p.add_argument("--output-dir", type=str, default=None, dest="output_dir", help="Output directory (repo-relative)")
    p.add_argument("--repo-root", type=str, default=None, dest="repo_root", help="Repo root (default: cwd)")
    p.add_argument("--no-render", action="store_true", dest="no_render", help="Skip the PNG")
    p.add_argument("--log-level", type=str, default="INFO", dest="log_level", help="Logging level")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    repo_root = Path(args.repo_root).resolve() if args.repo_root else Path.cwd().resolve()

    settings = DEFAULT_SETTINGS
    if args.settings:
        settings_path = Path(args.settings)
        if not settings_path.is_absolute():
            settings_path = repo_root / settings_path
        settings = load_settings(settings_path)

    job = load_job(args.job, repo_root=repo_root)
    result = run_job(job, settings)

    report_dir = ensure_report_dir(repo_root, args.run_name, output_dir=args.output_dir)
    paths = [
        write_placements_json(
            report_dir,
            result.run,
            {str(d.id): d for d in result.dispositions},
            result.skipped,
            result.sections,
        ),
        write_run_metadata_json(report_dir, args.run_name, args.job, settings),
    ]
    if not args.no_render:
        png = report_dir / "placements.png"
        render_placements(result.quarters, result.dispositions, result.run, png, settings.text_height)
        paths.append(png)

    for p in paths:
        print(p)
    c = result.run.counters
    print(
        f"Labels placed: {c.labels_placed} (forced {c.overlap_forced}), "
        f"multi-quarter: {c.multi_quarter_processed}, no mapping: {c.skipped_no_mapping}, "
        f"not placed: {c.not_placed}"
    )


if __name__ == "__main__":
    main()
