# ---------------------------------------------------------------------
# cluster_shape_filter.py
# Per-event accept/reject from pixel cluster-shape vertex compatibility
# ---------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from acceptance import accept_event, event_threshold
from filter_config import ClusterShapeConfig
from hit import Hit
from vertex_scan import is_degenerate, scan_vertex, vertex_quality

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecisionRecord:
    """
    Outcome of the filter for one event.

    Attributes:
        accept    : final decision
        hit_count : pixel multiplicity used for the threshold
        best_z    : estimated vertex position (cm)
        quality   : cluster vertex quality at best_z
        threshold : cut the quality was compared against
        n_scanned : number of hits handed to the vertex scan
    """
    accept: bool
    hit_count: int
    best_z: float
    quality: float
    threshold: float
    n_scanned: int


class ClusterShapeFilter:
    """
    Runs scan → quality → threshold for one event at a time.

    Holds only the (immutable) configuration, so one instance can be
    shared between threads or pickled into worker processes.
    """

    def __init__(self, config: Optional[ClusterShapeConfig] = None) -> None:
        self.config = config if config is not None else ClusterShapeConfig()

    def process(self, hits: Sequence[Hit], n_total_hits: Optional[int] = None) -> DecisionRecord:
        """
        Parameters
        ----------
        hits : sequence of Hit
            Barrel hits of the event, edge clusters already removed.
        n_total_hits : int, optional
            Pixel multiplicity for the threshold polynomial. Defaults to
            len(hits); the pixel reader passes the count of all valid hits.
        """
        cfg = self.config
        hits = tuple(hits)
        n_total = len(hits) if n_total_hits is None else int(n_total_hits)

        n_bad = sum(1 for h in hits if is_degenerate(h))
        if n_bad:
            logger.debug("excluding %d degenerate hit(s) out of %d", n_bad, len(hits))

        best_z = scan_vertex(hits, cfg.min_z, cfg.max_z, cfg.z_step)
        quality = vertex_quality(hits, best_z, cfg.quality_offset)
        threshold = event_threshold(n_total, cfg)

        return DecisionRecord(
            accept=accept_event(quality, threshold),
            hit_count=n_total,
            best_z=best_z,
            quality=quality,
            threshold=threshold,
            n_scanned=len(hits),
        )
