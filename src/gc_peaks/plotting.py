"""Plotting helpers."""
from __future__ import annotations

import io
from typing import List

import matplotlib.pyplot as plt
import numpy as np

from .analysis import AnalysisResult
from .clustering import Peak

PEAK_FIELDS = ["position", "height", "width", "prominence"]


def build_peak_table(peaks: List[Peak]) -> List[dict]:
    table = []
    for p in sorted(peaks, key=lambda pk: pk.position):
        row = {
            "position": p.position,
            "height": p.height,
            "width": p.width,
            "prominence": p.prominence,
        }
        table.append(row)
    return table


def plot_analysis(result: AnalysisResult, show_smoothed: bool = False):
    fig, ax = plt.subplots(figsize=(10, 6))
    x = np.arange(result.signal.size)
    ax.plot(x, result.signal, label="trace", color="C0", lw=1.2)

    if show_smoothed:
        ax.plot(x, result.smoothed, label="smoothed", color="C2", lw=1.0, ls="--")

    if result.peaks:
        peaks = sorted(result.peaks, key=lambda p: p.position)
        positions = [p.position for p in peaks]
        heights = [p.height for p in peaks]
        ax.scatter(positions, heights, color="C1", s=30, zorder=5, label="peaks")
        for p in peaks:
            ax.axvspan(p.position - p.width, p.position + p.width, color="C1", alpha=0.08)
            ax.annotate(
                f"{p.position:.0f}",
                xy=(p.position, p.height),
                xytext=(0, 6),
                textcoords="offset points",
                ha="center",
                fontsize=8,
            )

    ax.set_xlabel("Elution time (samples)")
    ax.set_ylabel("Detector signal (a.u.)")
    ax.set_title("GC trace peaks (multiscale DDOG)")
    ax.legend()
    ax.grid(True, alpha=0.2)
    fig.tight_layout()
    return fig


def save_plot_bytes(fig) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=150)
    buf.seek(0)
    return buf.getvalue()
