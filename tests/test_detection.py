import numpy as np
import pytest

from gc_peaks.clustering import GROUPING_CONSTANT, MIN_GROUP_RADIUS, Candidate, Peak
from gc_peaks.preprocessing import BASELINE_SAMPLES, SIGMA_MULTIPLIER, MovingAverage
from gc_peaks.detection import (
    DDOGPeakDetector,
    DetectorConfig,
    PeakDetector,
    assemble_candidates,
    convolve_same,
    ddog_kernel,
    find_local_minima,
)


def test_convolution_keeps_signal_length():
    kernel = ddog_kernel(5.0)
    assert convolve_same(np.ones(200), kernel).shape == (200,)
    # shorter than the kernel is still same-length
    assert convolve_same(np.ones(5), kernel).shape == (5,)
    assert convolve_same(np.array([]), kernel).shape == (0,)


def test_convolution_zero_pads_edges():
    kernel = ddog_kernel(5.0)
    signal = np.zeros(40)
    signal[0] = 1.0
    response = convolve_same(signal, kernel)
    assert np.allclose(response[:16], kernel[15:])
    assert np.allclose(response[16:], 0.0)


def test_flat_region_has_no_response():
    response = convolve_same(np.full(200, 3.0), ddog_kernel(5.0))
    assert np.allclose(response[15:185], 0.0, atol=1e-12)


def test_positive_peak_gives_trough_at_center(make_trace):
    y = make_trace(300, [(150.0, 1.0, 5.0)])
    response = convolve_same(y, ddog_kernel(5.0))
    assert int(np.argmin(response)) == 150
    assert response[150] < 0


def test_local_minima_respect_threshold_and_edges():
    r = np.array([0.0, -1.0, 0.0, -3.0, -2.0, -5.0, 1.0])
    idxs, vals = find_local_minima(r, -0.5)
    assert idxs.tolist() == [1, 3, 5]
    assert vals.tolist() == [-1.0, -3.0, -5.0]

    idxs, _ = find_local_minima(np.array([-5.0, 0.0, -1.0, 0.0, -6.0]), 0.0)
    assert idxs.tolist() == [2]

    idxs, _ = find_local_minima(np.array([0.0, -0.2, 0.0]), -0.5)
    assert idxs.size == 0


def test_plateau_is_not_a_minimum():
    idxs, _ = find_local_minima(np.array([0.0, -1.0, -1.0, 0.0]), 0.0)
    assert idxs.size == 0


def test_short_response_has_no_minima():
    idxs, vals = find_local_minima(np.array([-1.0, -2.0]), 0.0)
    assert idxs.size == 0 and vals.size == 0


def test_assemble_uses_raw_height_and_flips_sign():
    signal = np.array([10.0, 11.0, 12.0, 13.0])
    candidates = assemble_candidates(signal, 5.0, [1, 2], [-0.5, -0.25])
    assert candidates == [
        Candidate(scale=5.0, position=1, raw_height=11.0, prominence=0.5),
        Candidate(scale=5.0, position=2, raw_height=12.0, prominence=0.25),
    ]


def test_detector_is_a_peak_detector():
    assert isinstance(DDOGPeakDetector(), PeakDetector)
    assert DDOGPeakDetector().config.scales == (5.0, 10.0, 20.0, 40.0, 80.0)


def test_single_peak_detected_once(single_peak_trace):
    detector = DDOGPeakDetector.from_scales([5, 10])
    peaks = detector.detect(single_peak_trace)
    assert len(peaks) == 1
    peak = peaks[0]
    assert abs(peak.position - 400) <= 2
    assert peak.prominence > 0
    assert peak.height == pytest.approx(1.0, abs=1e-3)
    assert 5.0 <= peak.width <= 10.0


def test_candidates_pooled_per_scale(single_peak_trace):
    detector = DDOGPeakDetector.from_scales([5, 10])
    candidates = detector.find_candidates(single_peak_trace)
    assert [c.scale for c in candidates] == [5.0, 10.0]
    assert all(c.position == 400 for c in candidates)
    # wider kernel responds less to a narrow peak
    assert candidates[0].prominence > candidates[1].prominence > 0


def test_two_separated_peaks(make_trace):
    y = make_trace(900, [(350.0, 1.0, 5.0), (650.0, 0.5, 8.0)])
    peaks = sorted(DDOGPeakDetector.from_scales([5, 10]).detect(y), key=lambda p: p.position)
    assert len(peaks) == 2
    assert abs(peaks[0].position - 350) <= 2
    assert abs(peaks[1].position - 650) <= 2
    assert peaks[0].height > peaks[1].height


def test_noisy_baseline_sets_threshold(make_trace):
    y = make_trace(900, [(400.0, 1.0, 5.0), (650.0, 1.0, 5.0)], noise=0.01, seed=3)
    detector = DDOGPeakDetector.from_scales([5, 10, 20])
    assert detector.threshold(y) == pytest.approx(-2.0 * np.std(y[:250]))
    peaks = sorted(detector.detect(y), key=lambda p: p.position)
    assert len(peaks) == 2
    assert abs(peaks[0].position - 400) <= 2
    assert abs(peaks[1].position - 650) <= 2


@pytest.mark.parametrize("scales", [[5], [5, 10, 20, 40, 80], [2.5, 160]])
def test_flat_trace_has_no_peaks(scales):
    detector = DDOGPeakDetector.from_scales(scales)
    assert detector.detect(np.zeros(600)) == []


def test_empty_and_short_traces():
    detector = DDOGPeakDetector.from_scales([20])
    assert detector.detect([]) == []
    result = detector.detect(np.linspace(0.0, 1.0, 10))
    assert isinstance(result, list)
    assert all(isinstance(p, Peak) and 0 <= p.position < 10 for p in result)


def test_input_is_not_mutated(single_peak_trace):
    before = single_peak_trace.copy()
    DDOGPeakDetector.from_scales([5, 10]).detect(single_peak_trace)
    assert np.array_equal(before, single_peak_trace)


def test_filtered_trace_must_match_length(single_peak_trace):
    detector = DDOGPeakDetector.from_scales([5])
    with pytest.raises(ValueError):
        detector.find_candidates(single_peak_trace, filtered=single_peak_trace[:-1])


@pytest.mark.parametrize("scales", [[5, 0], [-1], [float("nan")]])
def test_invalid_scales_rejected(scales):
    with pytest.raises(ValueError):
        DDOGPeakDetector.from_scales(scales)


def test_invalid_baseline_window_rejected():
    with pytest.raises(ValueError):
        DetectorConfig(baseline_samples=0)


def test_config_defaults_come_from_module_constants():
    config = DetectorConfig()
    assert config.sigma_multiplier == SIGMA_MULTIPLIER == -2.0
    assert config.grouping_constant == GROUPING_CONSTANT == 1.5
    assert config.min_group_radius == MIN_GROUP_RADIUS == 20.0
    assert config.baseline_samples == BASELINE_SAMPLES == 250


def test_config_rejects_non_numeric_values():
    with pytest.raises(ValueError, match="grouping_constant"):
        DetectorConfig(grouping_constant="wide")
    with pytest.raises(ValueError, match="min_group_radius"):
        DetectorConfig(min_group_radius=-1.0)


def test_detect_filters_the_smoothed_trace(make_trace):
    y = make_trace(900, [(400.0, 1.0, 6.0), (700.0, 2.0, 6.0)], noise=0.005, seed=5)
    smoothed = MovingAverage(5).smooth(y)
    detector = DDOGPeakDetector.from_scales([5, 10])
    candidates = detector.find_candidates(y, filtered=smoothed)
    peaks = detector.detect(y, filtered=smoothed)
    assert peaks == detector.detect(y, candidates=candidates)
    assert [round(p.position / 10) for p in sorted(peaks, key=lambda p: p.position)] == [40, 70]
