# particle.py
import numpy as np
import math
from typing import Optional

# --- CONSTANTS ---
ETA_MAX = 2.5   # tracker acceptance


class Particle:
    """
    Straight charged track leaving a vertex on the beam line.

    Attributes:
        id       : particle identifier
        vertex_z : z of the production vertex (cm)
        eta, phi : pseudorapidity and azimuth of the direction
    """
    def __init__(self, particle_id: int, vertex_z: float, eta: float, phi: float):
        self.id = particle_id
        self.vertex_z = vertex_z
        self.eta = eta
        self.phi = phi

    def cot_theta(self) -> float:
        return math.sinh(self.eta)

    def propagation_to_radius(self, radius: float) -> Optional[np.ndarray]:
        """Crossing point (x, y, z) of the track with a cylinder of given radius."""
        if radius <= 0:
            return None
        x = radius * math.cos(self.phi)
        y = radius * math.sin(self.phi)
        z = self.vertex_z + radius * self.cot_theta()
        return np.array([x, y, z])


def create_random_particle(particle_id: int, vertex_z: float,
                           rng: Optional[np.random.Generator] = None,
                           eta_max: float = ETA_MAX) -> Particle:
    rng = rng if rng is not None else np.random.default_rng()
    eta = rng.uniform(-eta_max, eta_max)
    phi = rng.uniform(0, 2 * np.pi)
    return Particle(particle_id, vertex_z, eta, phi)
