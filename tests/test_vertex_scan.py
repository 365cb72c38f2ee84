import math
import tracemalloc
import numpy as np
import pytest

from filter_config import ConfigurationError
from hit import Hit
from vertex_scan import (
    QUALITY_SENTINEL,
    SLOPE,
    contained_hits,
    is_compatible,
    is_degenerate,
    predicted_width,
    quality_ratio,
    scan_profile,
    scan_vertex,
    select_best_z,
    vertex_quality,
    z_candidates,
)


# ---------------------------------------------------------
# Single hit
# ---------------------------------------------------------

def test_predicted_width_is_v_shaped():
    hit = Hit(z=3.0, r=4.0, w=1.0)
    assert predicted_width(hit, 1.0) == pytest.approx(1.5)
    assert predicted_width(hit, 5.0) == pytest.approx(1.5)
    assert predicted_width(hit, 3.0) == pytest.approx(0.5)


def test_window_edge_is_contained():
    hit = Hit(z=3.0, r=4.0, w=2.5)
    contained, residual = is_compatible(hit, 1.0)
    assert contained
    assert residual == pytest.approx(1.0)


def test_outside_window_has_no_residual():
    hit = Hit(z=3.0, r=4.0, w=2.6)
    assert is_compatible(hit, 1.0) == (False, 0.0)


@pytest.mark.parametrize("hit", [
    Hit(z=0.0, r=0.0, w=0.5),
    Hit(z=0.0, r=-4.4, w=0.5),
    Hit(z=0.0, r=math.nan, w=0.5),
    Hit(z=math.inf, r=4.4, w=0.5),
    Hit(z=0.0, r=4.4, w=math.nan),
])
def test_degenerate_hits_never_contained(hit):
    assert is_degenerate(hit)
    assert predicted_width(hit, 0.0) is None
    assert is_compatible(hit, 0.0) == (False, 0.0)
    assert contained_hits([hit], 0.0).count == 0


# ---------------------------------------------------------
# Profile
# ---------------------------------------------------------

def test_profile_matches_per_hit_sums(vertex_hits):
    for z0 in (-3.0, 0.0, 1.0, 2.0, 7.5):
        flags = [is_compatible(h, z0) for h in vertex_hits]
        result = contained_hits(vertex_hits, z0)
        assert result.count == sum(c for c, _ in flags)
        assert result.residual == pytest.approx(sum(r for _, r in flags))


def test_profile_ignores_degenerate_hit(vertex_hits):
    grid = np.arange(-5.0, 6.0)
    clean = scan_profile(vertex_hits, grid)
    mixed = scan_profile(vertex_hits + [Hit(z=2.0, r=0.0, w=0.5)], grid)
    np.testing.assert_array_equal(clean[0], mixed[0])
    np.testing.assert_allclose(clean[1], mixed[1])


def _running_sums(hits, z0):
    count, chi = 0, 0.0
    for h in hits:
        contained, residual = is_compatible(h, z0)
        if contained:
            count += 1
            chi += residual
    return count, chi


def _busy_event(n_hits, seed=11):
    rng = np.random.default_rng(seed)
    zs = rng.uniform(-25.0, 25.0, n_hits)
    rs = rng.choice([4.4, 7.3, 10.2], n_hits)
    ws = np.round(SLOPE * np.abs(zs - 1.3) / rs + 0.5 + rng.normal(0, 0.4, n_hits))
    return [Hit(z=float(z), r=float(r), w=float(w)) for z, r, w in zip(zs, rs, ws)]


def test_chunked_profile_matches_running_sums():
    hits = _busy_event(40) + [Hit(z=0.0, r=0.0, w=1.0)]
    grid = z_candidates(-20.0, 20.05, 0.2)
    # 100 cells per block -> 2 candidates per block, 101 blocks
    counts, residuals = scan_profile(hits, grid, chunk_cells=100)

    for z0, n, chi in zip(grid, counts, residuals):
        expected_n, expected_chi = _running_sums(hits, z0)
        assert n == expected_n
        assert chi == expected_chi   # summed in hit order, bit for bit

    whole = scan_profile(hits, grid, chunk_cells=len(grid) * len(hits))
    np.testing.assert_array_equal(counts, whole[0])
    np.testing.assert_array_equal(residuals, whole[1])


def test_chunk_smaller_than_one_row():
    hits = _busy_event(12)
    grid = [-1.0, 0.0, 1.3]
    counts, residuals = scan_profile(hits, grid, chunk_cells=1)
    for z0, n, chi in zip(grid, counts, residuals):
        assert (n, chi) == _running_sums(hits, z0)


def test_profile_memory_stays_bounded():
    hits = _busy_event(30_000)
    grid = z_candidates(-20.0, 20.05, 0.2)
    tracemalloc.start()
    try:
        scan_profile(hits, grid)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    assert peak < 50 * 1024 * 1024


def test_profile_of_no_hits():
    counts, residuals = scan_profile([], [0.0, 1.0])
    np.testing.assert_array_equal(counts, [0, 0])
    np.testing.assert_array_equal(residuals, [0.0, 0.0])


# ---------------------------------------------------------
# Candidates
# ---------------------------------------------------------

def test_candidates_include_endpoint():
    grid = z_candidates(-5.0, 5.0, 1.0)
    assert len(grid) == 11
    assert grid[0] == -5.0
    assert grid[-1] == 5.0


def test_candidates_absorb_float_error():
    grid = z_candidates(0.0, 0.3, 0.1)
    assert len(grid) == 4
    assert grid[-1] == 0.3


def test_default_trigger_range():
    grid = z_candidates(-20.0, 20.05, 0.2)
    assert len(grid) == 201
    assert grid[-1] == pytest.approx(20.0)
    assert grid.max() <= 20.05


def test_single_candidate():
    np.testing.assert_array_equal(z_candidates(1.5, 1.5, 0.2), [1.5])


@pytest.mark.parametrize("args", [(0.0, 1.0, 0.0), (0.0, 1.0, -0.1), (1.0, 0.0, 0.1)])
def test_bad_range_rejected(args):
    with pytest.raises(ConfigurationError):
        z_candidates(*args)


# ---------------------------------------------------------
# Best candidate selection
# ---------------------------------------------------------

def test_new_count_record_wins_regardless_of_residual():
    best = select_best_z([0.0, 1.0], [2, 3], [0.1, 9.0], default=-1.0)
    assert best == 1.0


def test_equal_count_needs_strictly_smaller_residual():
    assert select_best_z([0.0, 1.0], [3, 3], [1.0, 1.0], default=-1.0) == 0.0
    assert select_best_z([0.0, 1.0], [3, 3], [1.0, 0.5], default=-1.0) == 1.0


def test_lower_count_never_wins():
    assert select_best_z([0.0, 1.0], [3, 2], [1.0, 0.0], default=-1.0) == 0.0


def test_residual_competition_restarts_at_new_record():
    z = [0.0, 1.0, 2.0, 3.0]
    counts = [0, 2, 3, 3]
    residuals = [0.0, 0.1, 5.0, 1.0]
    assert select_best_z(z, counts, residuals, default=-1.0) == 3.0


def test_nothing_contained_returns_default():
    assert select_best_z([0.0, 1.0], [0, 0], [0.0, 0.0], default=-7.0) == -7.0


# ---------------------------------------------------------
# Scan
# ---------------------------------------------------------

def test_scan_finds_vertex(vertex_hits):
    assert scan_vertex(vertex_hits, -5.0, 5.0, 1.0) == pytest.approx(2.0)


def test_scan_stays_in_range(vertex_hits):
    # true vertex at 2 cm lies outside the scanned range
    best = scan_vertex(vertex_hits, -10.0, -4.0, 0.5)
    assert -10.0 <= best <= -4.0


def test_scan_without_contained_hits_returns_min_z():
    hits = [Hit(z=0.0, r=4.4, w=30.0)]
    assert scan_vertex(hits, -5.0, 5.0, 1.0) == -5.0
    assert scan_vertex([], -5.0, 5.0, 1.0) == -5.0


def test_scan_with_only_degenerate_hit_returns_min_z():
    assert scan_vertex([Hit(z=0.0, r=0.0, w=0.5)], -5.0, 5.0, 1.0) == -5.0


# ---------------------------------------------------------
# Quality
# ---------------------------------------------------------

def test_quality_ratio_branches():
    assert quality_ratio(4, 1, 3) == pytest.approx(2.0)
    assert quality_ratio(3, 0, 0) == QUALITY_SENTINEL == 1000.0
    assert quality_ratio(0, 0, 0) == 0.0
    assert quality_ratio(0, 2, 0) == 0.0


def test_vertex_quality(vertex_hits):
    # one hit survives at each control position
    assert vertex_quality(vertex_hits, 2.0) == pytest.approx(5.0)


def test_vertex_quality_offset():
    hits = [Hit(z=0.0, r=10.0, w=0.5)] * 3
    assert vertex_quality(hits, 0.0) == QUALITY_SENTINEL
    # within the window at +-2 cm: 2 * 3 / 6
    assert vertex_quality(hits, 0.0, offset=2.0) == pytest.approx(1.0)


def test_vertex_quality_no_hits():
    assert vertex_quality([], 0.0) == 0.0
