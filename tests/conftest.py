import matplotlib
matplotlib.use("Agg")

import csv
import pytest

from filter_config import ClusterShapeConfig
from hit import Hit
from pixel_reader import COLUMNS


@pytest.fixture
def vertex_hits():
    # clusters consistent with a vertex at z = 2 cm (w = 2|z-2|/r + 0.5)
    return [
        Hit(z=2.0, r=4.4, w=0.5),
        Hit(z=6.4, r=4.4, w=2.5),
        Hit(z=-2.4, r=4.4, w=2.5),
        Hit(z=9.3, r=7.3, w=2.5),
        Hit(z=12.2, r=10.2, w=2.5),
    ]


@pytest.fixture
def scan_config():
    return ClusterShapeConfig(min_z=-5.0, max_z=5.0, z_step=1.0,
                              cluster_pars=(0.0,), nhits_trunc=0, cluster_trunc=0.0)


@pytest.fixture
def pixel_csv(tmp_path):
    rows = [
        # EventID, Valid, Subdet, OnEdge, x, y, z, size_y
        (0, 1, 1, 0, 4.4, 0.0, 0.0, 1),
        (0, 1, 1, 0, 0.0, 7.3, 0.0, 1),
        (0, 1, 1, 1, 0.0, -4.4, 3.0, 2),    # edge pixel
        (0, 1, 2, 0, 6.0, 8.0, 40.0, 2),    # endcap
        (0, 0, 1, 0, 10.2, 0.0, 1.0, 1),    # invalid
        (1, 1, 1, 0, 3.0, 4.0, -4.0, 2),
        (2, 0, 1, 0, 4.4, 0.0, 0.0, 1),     # nothing valid
    ]
    path = tmp_path / "pixel_hits.csv"
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        writer.writerows(rows)
    return str(path)
