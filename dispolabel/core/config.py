# dispolabel/core/config.py
"""
Central configuration for disposition labelling and section quartering.
All tunable values live here; no magic numbers in other modules.
See: docs/ALGORITHM.md.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from dispolabel.core.error_codes import CONFIG_INVALID, user_message

logger = logging.getLogger(__name__)

# ----- Paths -----
REPORTS_DIR: str = "reports"
DEFAULT_SETTINGS_FILE: str = "dispolabel.json"

# ----- Geometric tolerances -----
BOUNDARY_EPS: float = 1e-9
"""Cross/dot tolerance for on-boundary and on-line tests. Boundary counts as inside."""

DEDUPE_EPS: float = 1e-6
"""Distance under which two vertices or probe hits are considered the same."""

AREA_EPS: float = 1e-12
"""Signed area below which a ring is degenerate (centroid falls back to first vertex)."""

# ----- Label placement -----
TEXT_HEIGHT: float = 10.0
"""Label text height (drawing units). Also the spiral step."""

MAX_OVERLAP_ATTEMPTS: int = 25
"""Number of spiral candidates tried per disposition."""

PLACE_WHEN_OVERLAP_FAILS: bool = True
"""Force the last candidate when every candidate overlaps an earlier label."""

USE_REGION_INTERSECTION: bool = True
"""Target the centroid of disposition ∩ quarter before cheaper fallbacks."""

ALLOW_MULTI_QUARTER_DISPOSITIONS: bool = True
"""Label a disposition once per quarter it touches."""

LABEL_LINE_SPACING: float = 1.25
"""Line pitch as a multiple of text height for multi-line labels."""

# ----- Leaders -----
ENABLE_LEADERS: bool = True
LEADER_MARKER_RADIUS: float = 0.75
"""Radius of the marker circle at the leader target; 0 disables the marker."""

LEADER_MIN_LENGTH: float = 1e-6

# ----- Safe interior point search -----
SAFE_POINT_RINGS: int = 50
SAFE_POINT_STEP_DIVISOR: float = 200.0
"""Ring step = max(perimeter / divisor, 1.0)."""

# ----- Width measurement / snapping -----
WIDTH_SAMPLE_COUNT: int = 7
VARIABLE_WIDTH_ABS_TOLERANCE: float = 0.50
VARIABLE_WIDTH_REL_TOLERANCE: float = 0.15
WIDTH_SNAP_TOLERANCE: float = 0.25
PROBE_LENGTH_FACTOR: float = 4.0
PROBE_MIN_LENGTH: float = 10.0

ACCEPTABLE_ROW_WIDTHS: tuple[float, ...] = (
    10.50, 10.06, 3.05, 4.57, 6.10, 15.24, 20.12,
    30.18, 30.48, 36.58, 18.29, 9.14, 7.62,
)

WIDTH_REQUIRED_PURPOSE_CODES: tuple[str, ...] = (
    "PIPELINE",
    "ACCESS",
    "POWERLINE",
    "ACCESS ROAD",
    "VEGETATION CONTROL",
    "FLOW LINE",
    "FRESH WATER",
    "COMMUNICATIONS CABLE",
    "WATER PIPELINE",
    "DRAINAGE AND IRRIGATION",
    "FLOWLINE",
)

ALLOW_OUTSIDE_DISPOSITION_FOR_WIDTH_PURPOSES: bool = True
"""Width-required (corridor) labels may sit in the quarter outside the disposition."""

# ----- Quarter anchors -----
TOP_EDGE_ANGLE_TOL_DEG: float = 12.0
"""An edge within this angle of the X axis is a candidate reference 'top' edge."""

ANCHOR_BAND_MIN: float = 5.0
ANCHOR_BAND_FRACTION: float = 0.01
"""Band tolerance = max(ANCHOR_BAND_MIN, ANCHOR_BAND_FRACTION * larger span)."""

ANCHOR_MAX_DEVIATION: float = 0.25
"""Anchors deviating from mid-span by more than this fraction of the span are replaced."""

# ----- Section filtering -----
SECTION_BUFFER_DISTANCE: float = 0.0
"""Expand section extents by this distance when filtering dispositions."""

# ----- Rendering -----
RENDER_WIDTH_PX: int = 1000
RENDER_HEIGHT_PX: int = 800

# ----- Text metrics -----
DEFAULT_FONT_FAMILY: str = "DejaVu Sans"
REFERENCE_FONT_PX: int = 100
"""Pixel size fonts are measured at before scaling to text height."""


@dataclass(frozen=True)
class EngineSettings:
    """Numeric configuration and feature toggles supplied to the engine."""
    text_height: float = TEXT_HEIGHT
    max_overlap_attempts: int = MAX_OVERLAP_ATTEMPTS
    place_when_overlap_fails: bool = PLACE_WHEN_OVERLAP_FAILS
    use_region_intersection: bool = USE_REGION_INTERSECTION
    allow_multi_quarter_dispositions: bool = ALLOW_MULTI_QUARTER_DISPOSITIONS
    enable_leaders: bool = ENABLE_LEADERS
    leader_marker_radius: float = LEADER_MARKER_RADIUS
    width_sample_count: int = WIDTH_SAMPLE_COUNT
    variable_width_abs_tolerance: float = VARIABLE_WIDTH_ABS_TOLERANCE
    variable_width_rel_tolerance: float = VARIABLE_WIDTH_REL_TOLERANCE
    acceptable_row_widths: tuple[float, ...] = ACCEPTABLE_ROW_WIDTHS
    width_snap_tolerance: float = WIDTH_SNAP_TOLERANCE
    width_required_purpose_codes: tuple[str, ...] = WIDTH_REQUIRED_PURPOSE_CODES
    allow_outside_for_width_purposes: bool = ALLOW_OUTSIDE_DISPOSITION_FOR_WIDTH_PURPOSES
    section_buffer_distance: float = SECTION_BUFFER_DISTANCE


DEFAULT_SETTINGS = EngineSettings()

_TUPLE_FIELDS = {"acceptable_row_widths", "width_required_purpose_codes"}


def settings_to_dict(settings: EngineSettings) -> dict:
    """JSON-ready snapshot of settings (tuples become lists)."""
    out = asdict(settings)
    for key in _TUPLE_FIELDS:
        out[key] = list(out[key])
    return out


def settings_from_dict(data: dict, base: EngineSettings = DEFAULT_SETTINGS) -> EngineSettings:
    """
    Merge known keys from data over base. Unknown keys are ignored; values of
    the wrong type raise ValueError/TypeError.
    """
    merged = asdict(base)
    for f in fields(EngineSettings):
        if f.name not in data or data[f.name] is None:
            continue
        value = data[f.name]
        if f.name in _TUPLE_FIELDS:
            if not value:
                continue
            if f.name == "acceptable_row_widths":
                value = tuple(float(v) for v in value)
            else:
                value = tuple(str(v) for v in value)
        elif isinstance(merged[f.name], bool):
            if not isinstance(value, bool):
                raise TypeError(f"{f.name} must be a boolean, got {value!r}")
        elif isinstance(merged[f.name], int):
            value = int(value)
        elif isinstance(merged[f.name], float):
            value = float(value)
        merged[f.name] = value
    return EngineSettings(**merged)


def save_settings(settings: EngineSettings, path: str | Path) -> None:
    """Write settings as indented JSON; failures are logged, not raised."""
    try:
        Path(path).write_text(json.dumps(settings_to_dict(settings), indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Settings save failed: {e}")


def load_settings(path: str | Path) -> EngineSettings:
    """
    Load settings from a JSON file merged over defaults.
    Missing file: write defaults there and return them. Unreadable or invalid
    file: log and return defaults.
    """
    p = Path(path)
    if not p.exists():
        save_settings(DEFAULT_SETTINGS, p)
        return DEFAULT_SETTINGS
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings file must hold a JSON object")
        return settings_from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.warning(f"{user_message(CONFIG_INVALID)} ({p}: {e})")
        return DEFAULT_SETTINGS
