# dispolabel/core/text_metrics.py
"""
Measure label footprints in drawing units using Pillow font metrics.
One text line is text_height tall; width scales with the rendered glyph width.
"""

from __future__ import annotations

import re
import warnings

from dispolabel.core.config import DEFAULT_FONT_FAMILY, LABEL_LINE_SPACING, REFERENCE_FONT_PX

_font_warning_emitted: set[str] = set()
_font_cache: dict[tuple[str, int], object] = {}

_LINE_BREAK = re.compile(r"\\P|\n")


def split_label_lines(text: str) -> list[str]:
    """Split on the CAD paragraph break (\\P) or newline."""
    return _LINE_BREAK.split(text or "")


def _load_font(font_family: str, size_px: int):
    """Load PIL ImageFont; fallback with warning if font not found."""
    from PIL import ImageFont

    key = (font_family, size_px)
    if key in _font_cache:
        return _font_cache[key]
    candidates = [
        font_family + ".ttf",
        font_family.replace(" ", "") + ".ttf",
        "DejaVuSans.ttf",
        "arial.ttf",
        "Arial.ttf",
    ]
    font = None
    for name in candidates:
        try:
            font = ImageFont.truetype(name, size=size_px)
            break
        except OSError:
            continue
    if font is None:
        if font_family not in _font_warning_emitted:
            _font_warning_emitted.add(font_family)
            warnings.warn(f"Font not found: {font_family!r}; using default.", UserWarning)
        font = ImageFont.load_default()
    _font_cache[key] = font
    return font


def _line_width_ratio(line: str, font_family: str) -> float:
    """Rendered width of line divided by the font's pixel size."""
    from PIL import Image, ImageDraw

    if not line:
        return 0.0
    font = _load_font(font_family, REFERENCE_FONT_PX)
    draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    bbox = draw.textbbox((0, 0), line, font=font)
    size_used = float(getattr(font, "size", REFERENCE_FONT_PX) or REFERENCE_FONT_PX)
    return float(bbox[2] - bbox[0]) / max(1.0, size_used)


def measure_label_extent(
    text: str,
    text_height: float,
    font_family: str = DEFAULT_FONT_FAMILY,
) -> tuple[float, float]:
    """
    Return (width, height) of a middle-centre attached label. Blank text still
    occupies one text_height square so it takes part in overlap checks.
    """
    lines = split_label_lines(text)
    width = max((_line_width_ratio(line, font_family) for line in lines), default=0.0) * text_height
    height = text_height * (1 + LABEL_LINE_SPACING * (len(lines) - 1))
    return (max(width, text_height), height)
