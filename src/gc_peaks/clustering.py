"""Cross-scale grouping of candidate detections into consolidated peaks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

GROUPING_CONSTANT = 1.5
MIN_GROUP_RADIUS = 20.0


@dataclass(frozen=True)
class Candidate:
    """Single-scale detection, before cross-scale merging."""
    scale: float
    position: int
    raw_height: float
    prominence: float


@dataclass(frozen=True)
class Peak:
    width: float
    height: float
    prominence: float
    position: float


def merge_radius(
    a: Candidate,
    b: Candidate,
    grouping_constant: float = GROUPING_CONSTANT,
    min_radius: float = MIN_GROUP_RADIUS,
) -> float:
    """Distance below which two candidates belong to the same peak."""
    return max(grouping_constant * 0.5 * (a.scale + b.scale), min_radius)


def cluster_candidates(
    candidates: Sequence[Candidate],
    grouping_constant: float = GROUPING_CONSTANT,
    min_radius: float = MIN_GROUP_RADIUS,
) -> List[List[Candidate]]:
    """Single-linkage flood fill over the pooled candidates.

    The first unvisited candidate (in pool order) seeds a cluster. Members are
    popped from the frontier last-in first-out, and each one absorbs every
    unvisited candidate closer than their pairwise merge radius, in pool order.
    The radius depends on both scales, so adjacency is not transitive and the
    partition depends on this visiting order.
    """
    if not candidates:
        return []

    positions = np.array([c.position for c in candidates], dtype=float)
    scales = np.array([c.scale for c in candidates], dtype=float)
    unvisited = np.ones(len(candidates), dtype=bool)

    clusters: List[List[Candidate]] = []
    while unvisited.any():
        seed = int(np.argmax(unvisited))
        unvisited[seed] = False
        frontier = [seed]
        members: List[int] = []
        while frontier:
            m = frontier.pop()
            radius = np.maximum(grouping_constant * 0.5 * (scales + scales[m]), min_radius)
            near = unvisited & (np.abs(positions - positions[m]) < radius)
            absorbed = np.flatnonzero(near)
            unvisited[absorbed] = False
            frontier.extend(int(i) for i in absorbed)
            members.append(m)
        clusters.append([candidates[i] for i in members])
    return clusters


def merge_cluster(cluster: Sequence[Candidate]) -> Peak:
    """Collapse one cluster into a peak, weighting members by prominence."""
    if not cluster:
        raise ValueError("Cannot merge an empty cluster")

    widths = np.array([c.scale for c in cluster], dtype=float)
    heights = np.array([c.raw_height for c in cluster], dtype=float)
    prominences = np.array([c.prominence for c in cluster], dtype=float)
    positions = np.array([c.position for c in cluster], dtype=float)

    total = float(np.sum(prominences))
    if total > 0:
        weights = prominences / total
    else:
        weights = np.full(len(cluster), 1.0 / len(cluster))

    apex = int(np.argmax(prominences))
    centroid = float(np.sum((positions + 0.5 * widths) * weights))
    logger.debug(
        "merged %d candidates: apex at %d, prominence-weighted centre %.2f",
        len(cluster),
        int(positions[apex]),
        centroid,
    )

    return Peak(
        width=float(np.sum(widths * weights)),
        height=float(np.sum(heights * weights)),
        prominence=total,
        position=float(positions[apex]),
    )


def cluster_peaks(
    candidates: Sequence[Candidate],
    grouping_constant: float = GROUPING_CONSTANT,
    min_radius: float = MIN_GROUP_RADIUS,
) -> List[Peak]:
    clusters = cluster_candidates(candidates, grouping_constant, min_radius)
    peaks = [merge_cluster(c) for c in clusters]
    logger.debug("%d candidates grouped into %d peaks", len(candidates), len(peaks))
    return peaks
