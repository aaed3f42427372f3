import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")


def gaussian_trace(n, peaks, noise=0.0, seed=0):
    """Flat trace with Gaussian elution peaks given as (center, amplitude, sd)."""
    x = np.arange(n, dtype=float)
    y = np.zeros(n, dtype=float)
    for center, amplitude, sd in peaks:
        y += amplitude * np.exp(-0.5 * ((x - center) / sd) ** 2)
    if noise:
        rng = np.random.default_rng(seed)
        y += rng.normal(0.0, noise, size=n)
    return y


@pytest.fixture
def single_peak_trace():
    return gaussian_trace(800, [(400.0, 1.0, 5.0)])


@pytest.fixture
def trace_json(tmp_path):
    def _write(values, name="trace.json"):
        import json

        path = tmp_path / name
        path.write_text(json.dumps({"detectors": {"FID": {"values": list(map(float, values))}}}))
        return path

    return _write


@pytest.fixture
def make_trace():
    return gaussian_trace
