# dispolabel/core/labels.py
"""
Label content for dispositions: disposition number formatting, purpose code
normalisation, width wording for corridor purposes and layer naming. Builds
the DispositionSpec handed to the placement engine.
"""

from __future__ import annotations

import re
from typing import Hashable, Mapping, Sequence

from dispolabel.core.config import DEFAULT_SETTINGS, EngineSettings
from dispolabel.core.geometry import clean_ring, safe_interior_point
from dispolabel.core.types import DispositionSpec, LookupEntry, Point, PolygonLike, WidthMeasurement
from dispolabel.core.width import measure_corridor_width, snap_to_acceptable

PARAGRAPH_BREAK = "\\P"
VARIABLE_WIDTH_TEXT = "Variable Width"

_DISP_NUM = re.compile(r"^([A-Z]{3})(\d+)")
_SMALL_WORDS = ("And", "Of", "The")


def format_disp_num(disp_num: str) -> str:
    """'LOC123456' -> 'LOC 123456'; anything else unchanged."""
    m = _DISP_NUM.match(disp_num or "")
    if not m:
        return disp_num or ""
    return f"{m.group(1)} {m.group(2)}"


def normalize_purpose_code(value: str | None) -> str:
    """Trim, upper-case, collapse whitespace runs to one space."""
    if not value or not value.strip():
        return ""
    return " ".join(value.upper().split())


def title_case_words(value: str | None) -> str:
    """Title case with 'and', 'of', 'the' kept lower-case between words."""
    norm = normalize_purpose_code(value)
    if not norm:
        return ""
    title = " ".join(w.capitalize() for w in norm.lower().split(" "))
    for word in _SMALL_WORDS:
        title = title.replace(f" {word} ", f" {word.lower()} ")
    return title


def purpose_requires_width(purpose: str | None, codes: Sequence[str]) -> bool:
    norm = normalize_purpose_code(purpose)
    if not norm:
        return False
    return any(normalize_purpose_code(c) == norm for c in codes)


def lookup_entry(table: Mapping[str, LookupEntry], key: str | None) -> LookupEntry | None:
    """Case-insensitive, whitespace-trimmed lookup."""
    if not key or not key.strip():
        return None
    wanted = key.strip().lower()
    for k, entry in table.items():
        if k.strip().lower() == wanted:
            return entry
    return None


def map_value(table: Mapping[str, LookupEntry], key: str | None, fallback: str) -> str:
    entry = lookup_entry(table, key)
    if entry is None or not entry.value.strip():
        return fallback
    return entry.value


def layer_names(suffix: str | None, is_client: bool) -> tuple[str, str] | None:
    """('C-ROW', 'C-ROW-T') for client dispositions, 'F-' prefix for foreign ones."""
    s = (suffix or "").strip()
    if s.startswith("-"):
        s = s[1:]
    if not s:
        return None
    line_layer = f"{'C' if is_client else 'F'}-{s}"
    return line_layer, f"{line_layer}-T"


def compose_label_text(
    company: str,
    purpose_text: str,
    disp_num: str,
    measurement: WidthMeasurement | None = None,
    purpose_code: str | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> str:
    """
    Lines joined by the CAD paragraph break. Corridor labels carry either the
    snapped width ("20.12 Pipeline") or "Variable Width" plus the purpose.
    """
    formatted = format_disp_num(disp_num)
    if measurement is None:
        return PARAGRAPH_BREAK.join([company, purpose_text, formatted])
    if measurement.is_variable:
        return PARAGRAPH_BREAK.join([
            company,
            VARIABLE_WIDTH_TEXT,
            title_case_words(purpose_code or purpose_text),
            formatted,
        ])
    snapped = snap_to_acceptable(
        measurement.median_width,
        settings.acceptable_row_widths,
        settings.width_snap_tolerance,
    )
    return PARAGRAPH_BREAK.join([company, f"{snapped:.2f} {purpose_text}", formatted])


def prepare_disposition(
    disposition_id: Hashable,
    ring: PolygonLike,
    attributes: Mapping[str, str],
    company_lookup: Mapping[str, LookupEntry],
    purpose_lookup: Mapping[str, LookupEntry],
    current_client: str,
    settings: EngineSettings = DEFAULT_SETTINGS,
    safe_point: Point | None = None,
) -> DispositionSpec | None:
    """
    Build the placement input for one disposition from its outline and
    attribute values (DISP_NUM, COMPANY, PURPCD). None for outlines with fewer
    than 3 distinct vertices. text_layer stays None when the purpose has no
    layer suffix; the placement run counts that as no mapping.
    """
    outline = clean_ring(ring)
    if outline is None:
        return None
    disp_num = attributes.get("DISP_NUM", "") or ""
    company = attributes.get("COMPANY", "") or ""
    purpose = attributes.get("PURPCD", "") or ""

    mapped_company = map_value(company_lookup, company, company)
    mapped_purpose = map_value(purpose_lookup, purpose, purpose)
    purpose_entry = lookup_entry(purpose_lookup, purpose)
    is_client = current_client.strip().lower() in (mapped_company.strip().lower(), company.strip().lower())
    layers = layer_names(purpose_entry.extra if purpose_entry else None, is_client)

    measurement = None
    requires_width = purpose_requires_width(purpose, settings.width_required_purpose_codes)
    if requires_width:
        measurement = measure_corridor_width(
            outline,
            settings.width_sample_count,
            settings.variable_width_abs_tolerance,
            settings.variable_width_rel_tolerance,
        )
    text = compose_label_text(mapped_company, mapped_purpose, disp_num, measurement, purpose, settings)

    return DispositionSpec(
        id=disposition_id,
        ring=outline,
        label_text=text,
        text_layer=layers[1] if layers else None,
        line_layer=layers[0] if layers else None,
        safe_point=safe_point if safe_point is not None else safe_interior_point(outline),
        allow_outside=requires_width and settings.allow_outside_for_width_purposes,
        add_leader=requires_width,
        width=measurement,
    )
