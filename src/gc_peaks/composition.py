"""Refrigerant mixture composition and classification from GC concentrations.

The optimization itself is delegated to ``scipy.optimize.linprog``; this module
only builds the linear program and interprets its solution.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from scipy.optimize import linprog

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "Mixed"
DEFAULT_PURITY = 0.995

# per-position cost that breaks ties in favour of earlier references
_PREFERENCE_STEP = 1e-6
_TOLERANCE = 1e-9


class CompositionError(RuntimeError):
    """The composition solver did not find an optimal solution."""


def normalize_name(name: str) -> str:
    """Canonical refrigerant name: upper case, no spaces (``"r 410a"`` -> ``"R410A"``)."""
    normalized = str(name).upper().replace(" ", "")
    if not normalized:
        raise ValueError("Empty refrigerant name")
    return normalized


def _normalize_components(components: Mapping[str, float]) -> Dict[str, float]:
    return {normalize_name(name): float(value) for name, value in components.items()}


@dataclass
class GCReading:
    """Measured concentration per component."""
    components: Dict[str, float]

    def __post_init__(self):
        self.components = _normalize_components(self.components)

    def get_component(self, name: str) -> Optional[float]:
        return self.components.get(normalize_name(name))

    def component_set(self) -> set:
        return set(self.components)


def parse_reading(text: str) -> GCReading:
    """Parse ``"R32 0.5, R125 0.5"`` into a reading."""
    components: Dict[str, float] = {}
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.rsplit(None, 1)
        if len(parts) != 2:
            raise ValueError(f"Expected '<name> <concentration>', got '{entry}'")
        name, value = parts
        try:
            components[normalize_name(name)] = float(value)
        except ValueError as exc:
            raise ValueError(f"Invalid concentration in '{entry}'") from exc
    return GCReading(components)


@dataclass
class Classification:
    purity: float = DEFAULT_PURITY
    max_lows: Optional[float] = None
    # other mixture -> largest proportion it may contribute
    mixed_with: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self.mixed_with = _normalize_components(self.mixed_with)


@dataclass
class RefrigerantMixture:
    identifier: str
    components: Dict[str, float]
    classifications: Dict[str, Classification] = field(default_factory=dict)

    def __post_init__(self):
        self.identifier = normalize_name(self.identifier)
        self.components = _normalize_components(self.components)

    def get_component(self, name: str) -> Optional[float]:
        return self.components.get(normalize_name(name))

    def component_set(self) -> set:
        return set(self.components)


@dataclass
class CompositionResult:
    proportions: Dict[str, float]
    residual: float
    lows: float


@dataclass
class ClassificationResult:
    label: str
    origin: str
    purity: float
    components: Dict[str, float]

    def __str__(self) -> str:
        return (
            f"Origin: {self.origin}, Classified Label: {self.label}, "
            f"Purity: {self.purity * 100.0:.3f}%, {len(self.components)} total components."
        )


def valid_comparison(observed: GCReading, target: RefrigerantMixture) -> bool:
    """The reading must contain every component of the target mixture."""
    return observed.component_set() >= target.component_set()


def find_concentration(observed: GCReading, target: RefrigerantMixture) -> Optional[float]:
    """Fraction of the target mixture present, limited by its weakest component."""
    if not valid_comparison(observed, target) or not target.components:
        return None
    ratios = []
    for name, concentration in target.components.items():
        if concentration <= 0:
            ratios.append(1.0)
            continue
        ratios.append(min(observed.get_component(name) / concentration, 1.0))
    return min(ratios)


def estimate_composition(
    reading: GCReading,
    references: Sequence[RefrigerantMixture],
) -> CompositionResult:
    """Non-negative proportions of ``references`` that best explain ``reading``.

    Minimizes the L1 residual ``sum_k |observed_k - sum_j x_j * c_jk|`` subject to
    ``x >= 0``. Ties are resolved in favour of references listed first.
    """
    if not references:
        raise ValueError("At least one reference mixture is required")

    names = sorted(set(reading.components).union(*(r.components for r in references)))
    n_comp, n_ref = len(names), len(references)
    observed = np.array([reading.get_component(n) or 0.0 for n in names], dtype=float)
    a = np.array([[r.get_component(n) or 0.0 for r in references] for n in names], dtype=float)

    # variables: [x (n_ref), over (n_comp), under (n_comp)]
    eye = np.eye(n_comp)
    a_eq = np.hstack([a, eye, -eye])
    cost = np.concatenate([
        _PREFERENCE_STEP * np.arange(n_ref, dtype=float),
        np.ones(2 * n_comp),
    ])
    res = linprog(cost, A_eq=a_eq, b_eq=observed, bounds=(0, None), method="highs")
    if res.status != 0:
        raise CompositionError(f"Composition solver failed: {res.message}")

    x = np.clip(res.x[:n_ref], 0.0, None)
    residual = float(np.sum(res.x[n_ref:]))
    total = float(np.sum(x))
    proportions = {
        r.identifier: (float(v) / total if total > 0 else 0.0) for r, v in zip(references, x)
    }
    observed_total = float(np.sum(observed))
    lows = residual / observed_total if observed_total > 0 else 0.0
    logger.debug("composition %s, residual %.4g", proportions, residual)
    return CompositionResult(proportions, residual, lows)


def _references_for(
    origin: RefrigerantMixture,
    classification: Classification,
    library: Mapping[str, RefrigerantMixture],
) -> List[RefrigerantMixture]:
    refs = [origin]
    for name in classification.mixed_with:
        if name == origin.identifier:
            continue
        if name not in library:
            raise ValueError(f"Unknown reference mixture '{name}'")
        refs.append(library[name])
    return refs


def classify(
    reading: GCReading,
    origin: RefrigerantMixture,
    library: Optional[Mapping[str, RefrigerantMixture]] = None,
) -> ClassificationResult:
    """Label ``reading`` with the first of ``origin``'s classifications it satisfies."""
    library = {normalize_name(k): v for k, v in (library or {}).items()}
    if valid_comparison(reading, origin):
        for label, classification in origin.classifications.items():
            refs = _references_for(origin, classification, library)
            comp = estimate_composition(reading, refs)
            if classification.max_lows is not None and comp.lows > classification.max_lows + _TOLERANCE:
                continue
            purity = comp.proportions[origin.identifier]
            if purity + _TOLERANCE < classification.purity:
                continue
            allowed = classification.mixed_with
            if any(
                share > allowed.get(name, 0.0) + _TOLERANCE
                for name, share in comp.proportions.items()
                if name != origin.identifier
            ):
                continue
            logger.info("%s classified as %s (purity %.4f)", origin.identifier, label, purity)
            return ClassificationResult(label, origin.identifier, purity, comp.proportions)

    return ClassificationResult(DEFAULT_LABEL, origin.identifier, 0.0, {})
