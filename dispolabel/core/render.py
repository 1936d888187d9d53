# dispolabel/core/render.py
"""
Matplotlib PNG rendering of a placement run: quarter outlines, disposition
outlines, label text at the placed points, leader lines and markers.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Mapping, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from dispolabel.core.config import RENDER_HEIGHT_PX, RENDER_WIDTH_PX
from dispolabel.core.text_metrics import split_label_lines
from dispolabel.core.types import DispositionSpec, PlacementRun, PolygonLike


def set_axes_to_rings(ax: plt.Axes, rings: Sequence[PolygonLike], pad_frac: float = 0.05) -> None:
    """Set xlim/ylim from ring bounds with margin; equal aspect; hide axes."""
    pts = [p for ring in rings for p in ring]
    if not pts:
        return
    xy = np.array(pts, dtype=float)
    minx, miny = xy.min(axis=0)
    maxx, maxy = xy.max(axis=0)
    dx = max(1.0, (maxx - minx) * pad_frac)
    dy = max(1.0, (maxy - miny) * pad_frac)
    ax.set_xlim(minx - dx, maxx + dx)
    ax.set_ylim(miny - dy, maxy + dy)
    ax.set_aspect("equal", adjustable="box")
    ax.axis("off")


def _new_fig(width_px: int, height_px: int) -> tuple[plt.Figure, plt.Axes]:
    fig = plt.figure(
        figsize=(width_px / 100.0, height_px / 100.0),
        dpi=100,
        constrained_layout=False,
    )
    ax = fig.add_axes([0, 0, 1, 1])
    ax.axis("off")
    return fig, ax


def _draw_ring(ax: plt.Axes, ring: PolygonLike, facecolor: str, edgecolor: str, alpha: float, linestyle: str = "-") -> None:
    if len(ring) < 3:
        return
    xy = np.array(list(ring) + [ring[0]], dtype=float)
    ax.fill(xy[:, 0], xy[:, 1], facecolor=facecolor, edgecolor=edgecolor, linewidth=1, alpha=alpha, linestyle=linestyle)


def render_placements(
    quarters: Sequence[PolygonLike],
    dispositions: Sequence[DispositionSpec],
    run: PlacementRun,
    output_path: str | Path,
    text_height: float,
    width_px: int = RENDER_WIDTH_PX,
    height_px: int = RENDER_HEIGHT_PX,
    scale: int = 1,
) -> None:
    """Render quarters, dispositions and placed labels. scale multiplies output resolution."""
    w, h = width_px * scale, height_px * scale
    fig, ax = _new_fig(w, h)
    for quarter in quarters:
        _draw_ring(ax, quarter, facecolor="none", edgecolor="gray", alpha=1.0, linestyle="--")
    for d in dispositions:
        _draw_ring(ax, d.ring, facecolor="lightblue", edgecolor="navy", alpha=0.6)

    by_id: Mapping = {d.id: d for d in dispositions}
    rings = list(quarters) + [d.ring for d in dispositions]
    set_axes_to_rings(ax, rings, pad_frac=0.05)

    # Font size in points from drawing units: axes span the full figure height.
    ylim = ax.get_ylim()
    units_per_pt = max(1e-9, (ylim[1] - ylim[0]) / (h * 72.0 / 100.0))
    fontsize = max(1.0, text_height / units_per_pt * 0.8)

    for decision in run.decisions:
        if decision.point is None:
            continue
        d = by_id.get(decision.disposition_id)
        text = "\n".join(split_label_lines(d.label_text)) if d is not None else str(decision.disposition_id)
        ax.text(
            decision.point[0], decision.point[1], text,
            fontsize=fontsize,
            ha="center", va="center",
            color="red" if decision.forced else "black",
            zorder=6,
        )
        if decision.extent is not None:
            (x0, y0), (x1, y1) = decision.extent.min_pt[:2], decision.extent.max_pt[:2]
            ax.plot([x0, x1, x1, x0, x0], [y0, y0, y1, y1, y0], linewidth=0.5, color="orange", zorder=5)
        if decision.leader is not None:
            leader = decision.leader
            ax.plot([leader.start[0], leader.end[0]], [leader.start[1], leader.end[1]], linewidth=1, color="black", zorder=5)
            if leader.marker_center is not None and leader.marker_radius > 0:
                ax.add_patch(plt.Circle(leader.marker_center, leader.marker_radius, fill=False, color="black", zorder=5))

    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message=".*constrained_layout.*", category=UserWarning)
        fig.savefig(output_path, dpi=100, facecolor="white")
    plt.close(fig)
