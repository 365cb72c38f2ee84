# main.py
import csv
import logging
import numpy as np

from event_selection import select_events, write_decisions
from particle import create_random_particle
from pixel_reader import COLUMNS, PIXEL_BARREL, PIXEL_ENDCAP
from sensor import BarrelLayer

# Barrel pixel layers: radius (cm)
LAYER_RADII = (4.4, 7.3, 10.2)
HALF_LENGTH = 26.5


def simulate_events(
    output_file: str = "pixel_hits.csv",
    num_events: int = 10,
    avg_particles: float = 20,
    avg_noise_hits: float = 5,
    avg_endcap_hits: float = 10,
    vertex_sigma_z: float = 5.0,
    invalid_frac: float = 0.01,
    seed=None
) -> str:
    """
    Write toy pixel events in the raw rec-hit CSV layout.

    Each event has a Gaussian z-vertex, Poisson numbers of tracks crossing
    the barrel layers, random noise clusters with no vertex correlation,
    and endcap hits that only count towards the multiplicity.
    """
    rng = np.random.default_rng(seed)
    layers = [BarrelLayer(layer_id=i, radius=r, half_length=HALF_LENGTH,
                          invalid_prob=invalid_frac, rng=rng)
              for i, r in enumerate(LAYER_RADII)]

    with open(output_file, mode="w", newline="") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(COLUMNS)

        for event_id in range(num_events):
            vertex_z = rng.normal(0, vertex_sigma_z)

            # 1. Signal Loop
            for i in range(rng.poisson(avg_particles)):
                particle = create_random_particle(i, vertex_z, rng=rng)
                for layer in layers:
                    layer.detect_hit(particle)

            for layer in layers:
                for hit in layer.hits:
                    writer.writerow([
                        event_id,
                        int(hit.valid),
                        hit.subdet,
                        int(hit.on_edge),
                        f"{hit.x:.4f}",
                        f"{hit.y:.4f}",
                        f"{hit.z:.4f}",
                        hit.size_y
                    ])

            # 2. Noise Loop
            for layer in layers:
                for _ in range(rng.poisson(avg_noise_hits)):
                    phi = rng.uniform(0, 2 * np.pi)
                    writer.writerow([
                        event_id, 1, PIXEL_BARREL, 0,
                        f"{layer.radius * np.cos(phi):.4f}",
                        f"{layer.radius * np.sin(phi):.4f}",
                        f"{rng.uniform(-layer.half_length, layer.half_length):.4f}",
                        int(rng.integers(1, 8))
                    ])

            # 3. Endcap hits (multiplicity only)
            for _ in range(rng.poisson(avg_endcap_hits)):
                phi = rng.uniform(0, 2 * np.pi)
                r = rng.uniform(6.0, 15.0)
                writer.writerow([
                    event_id, 1, PIXEL_ENDCAP, 0,
                    f"{r * np.cos(phi):.4f}",
                    f"{r * np.sin(phi):.4f}",
                    f"{rng.choice([-1, 1]) * rng.uniform(34.5, 46.5):.4f}",
                    int(rng.integers(1, 4))
                ])

            # Clear layers for next event
            for layer in layers:
                layer.clear()

    return output_file


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("Starting simulation...")
    hits_file = simulate_events("pixel_hits.csv", num_events=100, seed=1)
    print(f"Simulation complete. Hits saved to {hits_file}")

    decisions, data = select_events(hits_file)
    out = write_decisions(data, "decisions.csv")
    print(f"[FILTER] {int(data['Accept'].sum())}/{len(data)} events accepted, saved to {out}")
