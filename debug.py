# debug.py
import logging
import numpy as np
import matplotlib.pyplot as plt

from cluster_shape_filter import ClusterShapeFilter
from filter_config import ClusterShapeConfig
from pixel_reader import PixelReader
from pyscripts.plotting import plot_scan_profile, plot_width_vs_z
from vertex_scan import scan_profile, z_candidates


# ---- Debug helper: dump the z scan of one event ----
def debug_scan(csv_path: str, event_id: int,
               config: ClusterShapeConfig = None,
               do_plot: bool = True):
    config = config if config is not None else ClusterShapeConfig()
    reader = PixelReader(csv_path)
    event = reader.events.get(event_id)
    if event is None:
        raise SystemExit(f"[!] Event {event_id} not found in {csv_path}")

    z_grid = z_candidates(config.min_z, config.max_z, config.z_step)
    counts, residuals = scan_profile(event.hits, z_grid)
    record = ClusterShapeFilter(config).process(event.hits, n_total_hits=event.n_pixel_hits)

    print(f"[i] Event {event_id}: {len(event.hits)} barrel hits scanned, "
          f"{event.n_pixel_hits} valid pixel hits")
    print("    z0        n    chi")
    for z0, n, chi in zip(z_grid, counts, residuals):
        if n == 0:
            continue
        mark = "  <-- best" if np.isclose(z0, record.best_z) else ""
        print(f"    {z0:8.3f} {n:4d} {chi:8.3f}{mark}")

    print(f"    [debug] best z = {record.best_z:.3f} cm, "
          f"quality = {record.quality:.3f}, threshold = {record.threshold:.3f}, "
          f"accept = {record.accept}")

    if do_plot:
        plot_width_vs_z(event.hits, record.best_z)
        plot_scan_profile(z_grid, counts, residuals, record.best_z)

    return record


# ---- Run directly ----
if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    csv_path = "pixel_hits.csv"   # adjust to your CSV
    event_id = 0                  # choose your event
    debug_scan(csv_path, event_id)
    plt.show()
