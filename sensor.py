# sensor.py
import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from pixel_reader import PIXEL_BARREL
from vertex_scan import OFFSET, SLOPE

# Type checking import to avoid circular dependency
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from .particle import Particle

@dataclass
class PixelRecHit:
    """
    One raw pixel rec-hit, in the column layout read by pixel_reader.

    Attributes:
        valid      : rec-hit quality flag
        subdet     : subdetector code (1 barrel, 2 endcap)
        on_edge    : cluster touches an edge pixel of its module

        x, y, z    : global position (cm), z smeared by the resolution
        size_y     : cluster length along z in pixels
    """
    valid: bool
    subdet: int
    on_edge: bool

    x: float
    y: float
    z: float
    size_y: int

class BarrelLayer:
    """
    Cylindrical pixel barrel layer centred on the beam line.

    Attributes:
        id           : layer identifier
        radius       : layer radius (cm)
        half_length  : half of the active length along z (cm)
        z_resolution : Gaussian sigma of the measured z (cm)
        width_sigma  : Gaussian sigma of the cluster length (pixels)
        edge_prob    : probability that a cluster touches a module edge
        invalid_prob : probability that a rec-hit is flagged invalid
        hits         : list of PixelRecHit objects recorded by this layer
    """
    def __init__(self, layer_id: int, radius: float, half_length: float = 26.5,
                 z_resolution: float = 0.002, width_sigma: float = 0.3,
                 edge_prob: float = 0.05, invalid_prob: float = 0.0,
                 rng: Optional[np.random.Generator] = None):
        self.id = layer_id
        self.radius = radius
        self.half_length = half_length
        self.z_resolution = z_resolution
        self.width_sigma = width_sigma
        self.edge_prob = edge_prob
        self.invalid_prob = invalid_prob
        self.rng = rng if rng is not None else np.random.default_rng()

        self.hits: List[PixelRecHit] = [] # list of recorded hits

    def clear(self):
        """
        Reset the layer by clearing all recorded hits.
        Called between simulated events.
        """
        self.hits = []

    def cluster_length(self, dz: float) -> int:
        w = SLOPE * abs(dz) / self.radius + OFFSET + self.rng.normal(0, self.width_sigma)
        return max(1, int(round(w)))

    def detect_hit(self, particle: "Particle") -> Optional[PixelRecHit]:
        """
        Simulate the cluster left by a particle crossing the layer.

        Steps:
          1. Propagate the particle to the layer radius.
          2. Check it lands inside the active length.
          3. Smear z and draw the cluster length from |Δz| / r.
          4. Flag edge and invalid clusters, store the PixelRecHit.

        Returns:
            PixelRecHit if the particle crosses the active area, otherwise None.
        """
        position = particle.propagation_to_radius(self.radius)
        if position is None:
            return None

        x, y, z_true = position
        if abs(z_true) > self.half_length:
            return None

        new_hit = PixelRecHit(
            valid = bool(self.rng.random() >= self.invalid_prob),
            subdet = PIXEL_BARREL,
            on_edge = bool(self.rng.random() < self.edge_prob),
            x = float(x),
            y = float(y),
            z = float(z_true + self.rng.normal(0, self.z_resolution)),
            size_y = self.cluster_length(z_true - particle.vertex_z)
        )

        self.hits.append(new_hit)

        return new_hit
