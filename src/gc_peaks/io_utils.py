"""Detector trace loading utilities."""
from __future__ import annotations

import json
import numbers
from pathlib import Path
from typing import Any, Union

import numpy as np


class TraceFormatError(ValueError):
    """The trace document does not have the expected layout."""


def trace_from_document(document: Any) -> np.ndarray:
    """Extract the single detector's values from a parsed trace document.

    Expected layout::

        {"detectors": {"<name>": {"values": [0.0, 0.1, ...]}}}
    """
    if not isinstance(document, dict) or "detectors" not in document:
        raise TraceFormatError("No detectors.")
    detectors = document["detectors"]
    if not isinstance(detectors, dict):
        raise TraceFormatError("Invalid data format.")
    if len(detectors) > 1:
        raise TraceFormatError("More than one detector.")
    if not detectors:
        raise TraceFormatError("No detectors.")

    (detector,) = detectors.values()
    if not isinstance(detector, dict) or "values" not in detector:
        raise TraceFormatError("No values read.")
    values = detector["values"]
    if not isinstance(values, list):
        raise TraceFormatError("values property is not an array.")
    # bool is an int subclass but not a reading
    if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in values):
        raise TraceFormatError("Failed to read all datapoints.")

    return np.asarray(values, dtype=float)


def load_trace_json(path: Union[str, Path]) -> np.ndarray:
    """Load a detector trace from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    with path.open("r", encoding="utf-8") as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as exc:
            raise TraceFormatError(f"Invalid JSON in {path}: {exc}") from exc
    return trace_from_document(document)


def load_trace_from_string(text: str) -> np.ndarray:
    """Parse a detector trace from a JSON text blob."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TraceFormatError(f"Invalid JSON: {exc}") from exc
    return trace_from_document(document)
