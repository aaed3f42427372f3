"""Trace preprocessing: noise threshold and optional smoothing."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

BASELINE_SAMPLES = 250
SIGMA_MULTIPLIER = -2.0


def estimate_threshold(
    signal: np.ndarray,
    window: int = BASELINE_SAMPLES,
    sigma_multiplier: float = SIGMA_MULTIPLIER,
) -> float:
    """Noise gate from the leading baseline segment of the trace.

    Returns ``std(signal[:window]) * sigma_multiplier``. With the default
    negative multiplier the threshold is never positive, and a filtered value
    only counts as a trough when it lies at or below it.
    """
    y = np.asarray(signal, dtype=float)
    if y.size == 0:
        return 0.0
    baseline = y[: max(1, int(window))]
    return float(np.std(baseline)) * sigma_multiplier


class NoSmoothing:
    def smooth(self, signal: np.ndarray) -> np.ndarray:
        return np.array(signal, dtype=float)


@dataclass(frozen=True)
class MovingAverage:
    """Centred moving average over ``k // 2`` samples on each side."""
    k: int

    def __post_init__(self):
        if int(self.k) < 1:
            raise ValueError(f"Moving average window must be >= 1, got {self.k}")

    def smooth(self, signal: np.ndarray) -> np.ndarray:
        y = np.asarray(signal, dtype=float)
        n = y.size
        if n == 0:
            return y.copy()
        half = int(self.k) // 2
        # window [i - half, i + half] clipped to the trace
        csum = np.concatenate([[0.0], np.cumsum(y)])
        idx = np.arange(n)
        lo = np.clip(idx - half, 0, n)
        hi = np.clip(idx + half + 1, 0, n)
        return (csum[hi] - csum[lo]) / (hi - lo)


def make_smoother(window: int | None):
    """Return the smoother for a window size; 0, 1 or None disables smoothing."""
    if not window or window <= 1:
        return NoSmoothing()
    return MovingAverage(int(window))
