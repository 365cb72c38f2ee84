"""
Defines the Hit class for representing pixel cluster measurements.
"""

from dataclasses import dataclass

@dataclass(frozen=True)
class Hit:
    """
    Represents a single barrel pixel cluster seen by the vertex scan.

    Attributes:
        z (float): Z-position of the cluster (along beam axis) in cm
        r (float): Radial distance of the cluster from the beam line in cm
        w (float): Cluster length along z, in pixels (cluster y-size)
    """
    z: float
    r: float
    w: float
