# dispolabel/core/io.py
"""
Load a labelling job from JSON: sections, optional quarters and dispositions
given as WKT or coordinate lists, plus company/purpose lookup tables.
Supports Polygon, MultiPolygon, GeometryCollection (largest polygon kept).
Invalid geometry is fixed with buffer(0) when possible.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shapely import wkt
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from dispolabel.core.types import LookupEntry, Ring


@dataclass
class JobFeature:
    id: str
    coords: Ring
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class Job:
    sections: list[JobFeature]
    dispositions: list[JobFeature]
    quarters: list[JobFeature] = field(default_factory=list)
    company_lookup: dict[str, LookupEntry] = field(default_factory=dict)
    purpose_lookup: dict[str, LookupEntry] = field(default_factory=dict)
    current_client: str = ""


def _resolve_path(path: str | Path, repo_root: Path | None) -> Path:
    """Resolve path; if relative, against repo_root (or cwd if repo_root is None)."""
    p = Path(path)
    if not p.is_absolute() and repo_root is not None:
        p = repo_root / p
    return p.resolve()


def _first_wkt_only(wkt_string: str) -> str:
    """Return the first complete WKT geometry, stripping trailing text."""
    s = wkt_string.strip()
    for prefix in ("MULTIPOLYGON", "POLYGON", "GEOMETRYCOLLECTION"):
        if s.upper().startswith(prefix):
            depth = 0
            for i in range(len(prefix), len(s)):
                if s[i] == "(":
                    depth += 1
                elif s[i] == ")":
                    depth -= 1
                    if depth == 0:
                        return s[: i + 1]
            break
    return s


def _extract_polygons(geom: BaseGeometry) -> list[Polygon]:
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        out: list[Polygon] = []
        for g in geom.geoms:
            out.extend(_extract_polygons(g))
        return out
    return []


def ring_from_wkt(wkt_string: str) -> Ring:
    """
    Exterior ring (without closing vertex) of the largest polygon in the WKT.
    Raises ValueError if no polygon can be recovered.
    """
    try:
        geom = wkt.loads(_first_wkt_only(wkt_string))
    except GEOSException as e:
        raise ValueError(f"Unparseable WKT: {e}") from e
    polygons: list[Polygon] = []
    for p in _extract_polygons(geom):
        polygons.extend(_extract_polygons(p if p.is_valid else p.buffer(0)))
    if not polygons:
        raise ValueError("No polygon(s) found in geometry")
    best = max(polygons, key=lambda p: p.area)
    coords = [(float(x), float(y)) for x, y in list(best.exterior.coords)[:-1]]
    return coords


def _feature(raw: dict[str, Any], index: int, kind: str) -> JobFeature:
    fid = str(raw.get("id", f"{kind}-{index}"))
    if "wkt" in raw:
        coords = ring_from_wkt(raw["wkt"])
    elif "coords" in raw:
        coords = [(float(p[0]), float(p[1])) for p in raw["coords"]]
    else:
        raise ValueError(f"{kind} {fid!r} has neither 'wkt' nor 'coords'")
    attributes = {str(k): "" if v is None else str(v) for k, v in (raw.get("attributes") or {}).items()}
    return JobFeature(id=fid, coords=coords, attributes=attributes)


def _lookup(raw: dict[str, Any] | None) -> dict[str, LookupEntry]:
    out: dict[str, LookupEntry] = {}
    for key, value in (raw or {}).items():
        if isinstance(value, dict):
            out[str(key)] = LookupEntry(str(value.get("value", "")), str(value.get("extra", "") or ""))
        else:
            out[str(key)] = LookupEntry(str(value))
    return out


def parse_job(data: dict[str, Any]) -> Job:
    """Build a Job from decoded JSON. Raises ValueError for malformed features."""
    return Job(
        sections=[_feature(r, i, "section") for i, r in enumerate(data.get("sections") or [])],
        dispositions=[_feature(r, i, "disposition") for i, r in enumerate(data.get("dispositions") or [])],
        quarters=[_feature(r, i, "quarter") for i, r in enumerate(data.get("quarters") or [])],
        company_lookup=_lookup(data.get("company_lookup")),
        purpose_lookup=_lookup(data.get("purpose_lookup")),
        current_client=str(data.get("current_client") or ""),
    )


def load_job(path: str | Path, repo_root: Path | None = None) -> Job:
    """
    Read and parse a job file.
    Raises FileNotFoundError if path is missing, ValueError if content is invalid.
    """
    resolved = _resolve_path(path, repo_root)
    if not resolved.exists():
        raise FileNotFoundError(f"Job file not found: {resolved}")
    try:
        data = json.loads(resolved.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Job file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Job file must hold a JSON object")
    return parse_job(data)
