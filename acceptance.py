# acceptance.py
# Multiplicity-dependent cut on the cluster vertex quality

from __future__ import annotations
import math
from typing import Sequence

from filter_config import ClusterShapeConfig


def poly_threshold(n_hits: int, cluster_pars: Sequence[float],
                   nhits_trunc: int, cluster_trunc: float) -> float:
    """
    Threshold on the vertex quality for an event with `n_hits` pixel hits.

    sum_i cluster_pars[i] * n_hits**i, forced to 0 below `nhits_trunc`
    and capped at `cluster_trunc` when that is positive. A negative
    polynomial value is raised to 0; the quality is never negative, so
    the decision is the same either way.
    """
    # term by term in increasing power, not Horner
    cut = 0.0
    for i, c in enumerate(cluster_pars):
        cut += c * math.pow(n_hits, i)
    cut = max(cut, 0.0)
    if n_hits < nhits_trunc:
        cut = 0.0
    if cluster_trunc > 0 and cut > cluster_trunc:
        cut = cluster_trunc
    return cut


def accept_event(quality: float, threshold: float) -> bool:
    # reject only when strictly below the cut
    return bool(quality >= threshold)


def event_threshold(total_hits: int, config: ClusterShapeConfig) -> float:
    return poly_threshold(total_hits, config.cluster_pars,
                          config.nhits_trunc, config.cluster_trunc)


def decide(total_hits: int, quality: float, config: ClusterShapeConfig) -> bool:
    return accept_event(quality, event_threshold(total_hits, config))
