# ---------------------------------------------------------------------
# vertex_scan.py
# z-vertex estimate from pixel cluster lengths (v-shaped window in w vs z)
# ---------------------------------------------------------------------

from __future__ import annotations
import math
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from filter_config import ConfigurationError, QUALITY_OFFSET
from hit import Hit

# =====================================================================
#                         Constants
# =====================================================================

# Expected cluster length: w ≈ SLOPE * |z - z0| / r + OFFSET
SLOPE = 2.0
OFFSET = 0.5          # empirical, not a physical constant
WINDOW = 1.0          # max |predicted - observed| for a contained hit

QUALITY_SENTINEL = 1000.0   # control positions empty but best one is not

SCAN_CHUNK_CELLS = 1 << 18   # candidates x hits per block in scan_profile


@dataclass(frozen=True)
class CandidateResult:
    """Support for one candidate vertex position."""
    count: int
    residual: float


# =====================================================================
#                         Single hit
# =====================================================================

def is_degenerate(hit: Hit) -> bool:
    """True for hits the scan cannot use (r <= 0 or non-finite values)."""
    return not (math.isfinite(hit.z) and math.isfinite(hit.r)
                and math.isfinite(hit.w) and hit.r > 0)


def predicted_width(hit: Hit, z0: float) -> Optional[float]:
    """Cluster length expected for `hit` if the vertex sits at `z0`."""
    if is_degenerate(hit):
        return None
    return SLOPE * abs(hit.z - z0) / hit.r + OFFSET


def is_compatible(hit: Hit, z0: float) -> Tuple[bool, float]:
    """
    Containment test of one hit against one candidate vertex.

    Returns (contained, residual); the residual is 0.0 whenever the
    hit is not contained, degenerate hits included.
    """
    p = predicted_width(hit, z0)
    if p is None:
        return False, 0.0
    dev = abs(p - hit.w)
    if dev <= WINDOW:
        return True, dev
    return False, 0.0


# =====================================================================
#                         Many hits, many candidates
# =====================================================================

def _hit_arrays(hits: Sequence[Hit]):
    arr = np.array([(h.z, h.r, h.w) for h in hits], float).reshape(-1, 3)
    valid = np.isfinite(arr).all(axis=1)
    valid[valid] = arr[valid, 1] > 0
    z, r, w = arr[valid].T
    return z, r, w


def scan_profile(hits: Sequence[Hit], z_grid,
                 chunk_cells: int = SCAN_CHUNK_CELLS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Count contained hits and sum their residuals for every candidate.

    Parameters
    ----------
    hits : sequence of Hit
        Hits of one event. Degenerate hits are never contained.
    z_grid : array_like
        Candidate vertex positions.
    chunk_cells : int, optional
        Upper bound on candidates x hits evaluated at once; the grid is
        processed in row blocks so memory stays O(hits).

    Returns
    -------
    counts : (N,) ndarray of int
    residuals : (N,) ndarray of float
        Summed in hit order, like a running sum over the hit list.
    """
    z, r, w = _hit_arrays(hits)
    z_grid = np.atleast_1d(np.asarray(z_grid, float))

    counts = np.zeros(len(z_grid), dtype=int)
    residuals = np.zeros(len(z_grid), dtype=float)
    if len(z) == 0:
        return counts, residuals

    rows = max(1, chunk_cells // len(z))
    for start in range(0, len(z_grid), rows):
        block = z_grid[start:start + rows]

        # (candidates, hits)
        pred = SLOPE * np.abs(z[None, :] - block[:, None]) / r[None, :] + OFFSET
        dev = np.abs(pred - w[None, :])
        inside = dev <= WINDOW

        counts[start:start + rows] = inside.sum(axis=1)
        # cumsum adds left to right; sum() would pair terms up
        residuals[start:start + rows] = np.cumsum(np.where(inside, dev, 0.0), axis=1)[:, -1]
    return counts, residuals


def contained_hits(hits: Sequence[Hit], z0: float) -> CandidateResult:
    counts, residuals = scan_profile(hits, [z0])
    return CandidateResult(int(counts[0]), float(residuals[0]))


# =====================================================================
#                         Scan
# =====================================================================

def z_candidates(min_z: float, max_z: float, z_step: float) -> np.ndarray:
    """Candidate positions min_z, min_z + z_step, ... up to max_z inclusive."""
    if z_step <= 0:
        raise ConfigurationError(f"z_step must be positive, got {z_step}")
    if min_z > max_z:
        raise ConfigurationError(f"min_z ({min_z}) must not exceed max_z ({max_z})")
    n_steps = math.floor((max_z - min_z) / z_step + 1e-9)
    grid = min_z + z_step * np.arange(n_steps + 1)
    return np.minimum(grid, max_z)


def select_best_z(z_grid, counts, residuals, default: float) -> float:
    """
    Pick the best candidate, walking the grid in ascending order.

    A candidate with more contained hits than any before it wins outright
    (the residual bound is reset). At equal multiplicity a strictly smaller
    residual wins. Candidates with no contained hit are skipped, so
    `default` is returned when nothing is ever contained.
    """
    best_z = default
    best_count = 0
    best_residual = math.inf
    for z0, count, residual in zip(z_grid, counts, residuals):
        if count == 0:
            continue
        if count > best_count:
            best_count = count
            best_residual = math.inf
        if count >= best_count and residual < best_residual:
            best_residual = residual
            best_z = float(z0)
    return best_z


def scan_vertex(hits: Sequence[Hit], min_z: float, max_z: float, z_step: float) -> float:
    z_grid = z_candidates(min_z, max_z, z_step)
    counts, residuals = scan_profile(hits, z_grid)
    return select_best_z(z_grid, counts, residuals, default=min_z)


# =====================================================================
#                         Quality
# =====================================================================

def quality_ratio(n_best: int, n_minus: int, n_plus: int) -> float:
    if n_minus + n_plus > 0:
        return 2.0 * n_best / (n_minus + n_plus)
    if n_best > 0:
        return QUALITY_SENTINEL
    return 0.0


def vertex_quality(hits: Sequence[Hit], best_z: float,
                   offset: float = QUALITY_OFFSET) -> float:
    """
    Compare the support at `best_z` with the support `offset` away on
    both sides: 2*n(best) / (n(best-offset) + n(best+offset)).
    """
    counts, _ = scan_profile(hits, [best_z, best_z - offset, best_z + offset])
    n_best, n_minus, n_plus = (int(c) for c in counts)
    return quality_ratio(n_best, n_minus, n_plus)
