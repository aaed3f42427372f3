"""High-level trace analysis pipeline."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import List, Sequence, Tuple

import numpy as np

from .clustering import GROUPING_CONSTANT, MIN_GROUP_RADIUS, Candidate, Peak
from .detection import DEFAULT_SCALES, DDOGPeakDetector, DetectorConfig, as_int
from .preprocessing import BASELINE_SAMPLES, SIGMA_MULTIPLIER, make_smoother

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    scales: Tuple[float, ...] = DEFAULT_SCALES
    sigma_multiplier: float = SIGMA_MULTIPLIER
    grouping_constant: float = GROUPING_CONSTANT
    min_group_radius: float = MIN_GROUP_RADIUS
    baseline_samples: int = BASELINE_SAMPLES
    smoothing_window: int = 0  # moving average in points, 0 disables

    def __post_init__(self):
        # coerced through DetectorConfig
        detector = self.detector_config()
        self.scales = detector.scales
        self.sigma_multiplier = detector.sigma_multiplier
        self.grouping_constant = detector.grouping_constant
        self.min_group_radius = detector.min_group_radius
        self.baseline_samples = detector.baseline_samples
        self.smoothing_window = as_int("smoothing_window", self.smoothing_window or 0)
        if self.smoothing_window < 0:
            raise ValueError(f"smoothing_window must be >= 0, got {self.smoothing_window}")

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig(
            scales=tuple(self.scales),
            sigma_multiplier=self.sigma_multiplier,
            grouping_constant=self.grouping_constant,
            min_group_radius=self.min_group_radius,
            baseline_samples=self.baseline_samples,
        )

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


@dataclass
class AnalysisResult:
    signal: np.ndarray
    smoothed: np.ndarray
    threshold: float
    candidates: List[Candidate]
    peaks: List[Peak]

    def sorted_peaks(self) -> List[Peak]:
        return sorted(self.peaks, key=lambda p: p.position)

    @property
    def total_prominence(self) -> float:
        return float(sum(p.prominence for p in self.peaks))


def analyze_trace(values: Sequence[float], config: AnalysisConfig) -> AnalysisResult:
    """Detect and consolidate peaks on a complete trace."""
    signal = np.array(values, dtype=float)
    detector = DDOGPeakDetector(config.detector_config())
    smoothed = make_smoother(config.smoothing_window).smooth(signal)

    threshold = detector.threshold(signal)
    candidates = detector.find_candidates(signal, filtered=smoothed)
    peaks = detector.detect(signal, filtered=smoothed, candidates=candidates)
    logger.info(
        "Trace of %d samples: %d candidates over %d scales -> %d peaks (threshold %.4g)",
        signal.size,
        len(candidates),
        len(detector.kernels),
        len(peaks),
        threshold,
    )
    return AnalysisResult(signal, smoothed, threshold, candidates, peaks)
