"""Multiscale second-derivative-of-Gaussian (DDOG) peak detection."""
from __future__ import annotations

import abc
import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.signal import convolve

from .clustering import GROUPING_CONSTANT, MIN_GROUP_RADIUS, Candidate, Peak, cluster_peaks
from .preprocessing import BASELINE_SAMPLES, SIGMA_MULTIPLIER, estimate_threshold

logger = logging.getLogger(__name__)

DEFAULT_SCALES: Tuple[float, ...] = (5.0, 10.0, 20.0, 40.0, 80.0)


@dataclass(frozen=True)
class DetectorConfig:
    """Parameters of the DDOG detector and of the cross-scale clustering."""
    scales: Tuple[float, ...] = DEFAULT_SCALES
    sigma_multiplier: float = SIGMA_MULTIPLIER  # threshold = std(baseline) * sigma_multiplier
    grouping_constant: float = GROUPING_CONSTANT
    min_group_radius: float = MIN_GROUP_RADIUS  # in samples
    baseline_samples: int = BASELINE_SAMPLES

    def __post_init__(self):
        scales = tuple(_as_float("scales", s) for s in self.scales)
        for scale in scales:
            _check_scale(scale)
        object.__setattr__(self, "scales", scales)
        for name in ("sigma_multiplier", "grouping_constant", "min_group_radius"):
            object.__setattr__(self, name, _as_float(name, getattr(self, name)))
        if not self.min_group_radius > 0:
            raise ValueError(f"min_group_radius must be positive, got {self.min_group_radius}")
        object.__setattr__(self, "baseline_samples", as_int("baseline_samples", self.baseline_samples))
        if self.baseline_samples < 1:
            raise ValueError(f"baseline_samples must be >= 1, got {self.baseline_samples}")


def _as_float(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number


def as_int(name: str, value) -> int:
    """Coerce a whole-number setting, rejecting fractional or non-numeric values."""
    number = _as_float(name, value)
    if not number.is_integer():
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    return int(number)


def _check_scale(scale: float) -> None:
    if not (math.isfinite(scale) and scale > 0):
        raise ValueError(f"Kernel scale must be a positive finite number, got {scale!r}")


# Kernel ---------------------------------------------------------------------

def gauss_second_derivative(x: np.ndarray, scale: float) -> np.ndarray:
    """Second derivative of an (unnormalized-width) Gaussian of sd ``scale``."""
    x = np.asarray(x, dtype=float)
    d = x ** 2 / scale ** 4 - scale ** -2
    c = 1.0 / np.sqrt(2 * np.pi)
    g = np.exp(-(x ** 2) / (2 * scale ** 2))
    return d * c * g


def ddog_kernel(scale: float) -> np.ndarray:
    """Build the zero-mean Mexican-hat kernel for ``scale``.

    The kernel has ``6 * floor(scale) + 1`` taps centred on offset 0. Its mean is
    subtracted so that a flat signal produces no response; truncation at three
    widths otherwise leaves a small DC gain.
    """
    scale = float(scale)
    _check_scale(scale)
    n = 6 * int(math.floor(scale)) + 1
    x = np.arange(n, dtype=float) - n // 2
    kernel = gauss_second_derivative(x, scale)
    return kernel - kernel.mean()


# Filtering and extrema ------------------------------------------------------

def convolve_same(signal: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Same-length convolution with implicit zero padding at both edges."""
    signal = np.asarray(signal, dtype=float)
    if signal.size == 0:
        return np.zeros(0, dtype=float)
    # direct summation keeps flat regions exactly flat (no FFT round-off)
    return convolve(signal, np.asarray(kernel, dtype=float), mode="same", method="direct")


def find_local_minima(response: np.ndarray, threshold: float) -> Tuple[np.ndarray, np.ndarray]:
    """Strict interior local minima of ``response`` that lie at or below ``threshold``."""
    r = np.asarray(response, dtype=float)
    if r.size < 3:
        return np.array([], dtype=int), np.array([], dtype=float)
    left, mid, right = r[:-2], r[1:-1], r[2:]
    mask = (mid < left) & (mid < right) & (mid <= threshold)
    idxs = np.flatnonzero(mask) + 1
    return idxs, r[idxs]


def assemble_candidates(
    signal: np.ndarray,
    scale: float,
    indices: Sequence[int],
    values: Sequence[float],
) -> List[Candidate]:
    """Tag the minima found at one scale with the raw trace height and prominence."""
    return [
        Candidate(
            scale=float(scale),
            position=int(idx),
            raw_height=float(signal[idx]),
            prominence=-float(val),
        )
        for idx, val in zip(indices, values)
    ]


# Detectors ------------------------------------------------------------------

class PeakDetector(abc.ABC):
    """A peak detection strategy over a complete trace."""

    @abc.abstractmethod
    def detect(self, signal: Sequence[float], filtered: Sequence[float] | None = None) -> List[Peak]:
        raise NotImplementedError


class DDOGPeakDetector(PeakDetector):
    """Double derivative of Gaussian peak detector (Mexican hat).

    Each configured scale filters the trace with its own kernel; troughs of the
    filtered response deeper than the baseline noise threshold become candidates,
    which are then merged across scales into consolidated peaks.
    """

    def __init__(self, config: DetectorConfig | None = None):
        self.config = config or DetectorConfig()
        self.kernels: List[Tuple[float, np.ndarray]] = [(s, ddog_kernel(s)) for s in self.config.scales]

    @classmethod
    def from_scales(cls, scales: Sequence[float], **kwargs) -> "DDOGPeakDetector":
        return cls(DetectorConfig(scales=tuple(scales), **kwargs))

    def threshold(self, signal: np.ndarray) -> float:
        return estimate_threshold(
            signal,
            window=self.config.baseline_samples,
            sigma_multiplier=self.config.sigma_multiplier,
        )

    def find_candidates(
        self,
        signal: Sequence[float],
        filtered: Sequence[float] | None = None,
    ) -> List[Candidate]:
        """Pool per-scale candidates, in scale order then position order.

        ``filtered`` is the trace the kernels are applied to (e.g. a smoothed
        copy); the threshold and raw heights always come from ``signal``.
        """
        raw = np.asarray(signal, dtype=float)
        source = raw if filtered is None else np.asarray(filtered, dtype=float)
        if source.shape != raw.shape:
            raise ValueError("filtered trace must have the same length as the raw trace")
        if raw.size == 0:
            return []

        threshold = self.threshold(raw)
        pool: List[Candidate] = []
        for scale, kernel in self.kernels:
            response = convolve_same(source, kernel)
            idxs, vals = find_local_minima(response, threshold)
            logger.debug("scale %g: %d minima at or below %.4g", scale, len(idxs), threshold)
            pool.extend(assemble_candidates(raw, scale, idxs, vals))
        return pool

    def detect(
        self,
        signal: Sequence[float],
        filtered: Sequence[float] | None = None,
        candidates: Sequence[Candidate] | None = None,
    ) -> List[Peak]:
        """Consolidated peaks of ``signal``.

        ``candidates`` skips the filtering step when the pool was already built
        with :meth:`find_candidates`.
        """
        if candidates is None:
            candidates = self.find_candidates(signal, filtered)
        return cluster_peaks(
            candidates,
            grouping_constant=self.config.grouping_constant,
            min_radius=self.config.min_group_radius,
        )
