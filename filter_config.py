# filter_config.py
# Static configuration of the cluster-shape vertex filter

from __future__ import annotations
import math
from dataclasses import dataclass, fields
from typing import Any, Iterable, Mapping, Tuple

import yaml

# =====================================================================
#                         Defaults
# =====================================================================

# Scan range and granularity (cm)
MIN_Z = -20.0
MAX_Z = 20.05   # slightly above 20 so the last step survives float error
Z_STEP = 0.2

# Threshold polynomial in pixel multiplicity: index = power
CLUSTER_PARS = (0.0, 0.0045)
NHITS_TRUNC = 150     # no cut below this many pixel hits
CLUSTER_TRUNC = 2.0   # threshold ceiling, <= 0 disables it

# Distance of the two control positions from the best z (cm)
QUALITY_OFFSET = 10.0

# camelCase parameter names of the trigger configuration
_ALIASES = {
    "minZ": "min_z",
    "maxZ": "max_z",
    "zStep": "z_step",
    "clusterPars": "cluster_pars",
    "nhitsTrunc": "nhits_trunc",
    "clusterTrunc": "cluster_trunc",
    "qualityOffset": "quality_offset",
}


class ConfigurationError(ValueError):
    """Raised when the filter configuration cannot be used."""


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, (str, bytes, bool)):
        raise ConfigurationError(f"{key}: expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{key}: expected a number, got {value!r}") from exc


def _as_int(key: str, value: Any) -> int:
    number = _as_float(key, value)
    if not number.is_integer():
        raise ConfigurationError(f"{key}: expected an integer, got {value!r}")
    return int(number)


@dataclass(frozen=True)
class ClusterShapeConfig:
    """
    Immutable settings shared by every event.

    Attributes:
        min_z, max_z  : first and last candidate vertex position (cm)
        z_step        : spacing of candidate positions (cm)
        cluster_pars  : threshold polynomial coefficients, index = power
        nhits_trunc   : multiplicity below which the threshold is 0
        cluster_trunc : threshold ceiling, disabled when <= 0
        quality_offset: offset of the two control positions (cm)
    """
    min_z: float = MIN_Z
    max_z: float = MAX_Z
    z_step: float = Z_STEP
    cluster_pars: Tuple[float, ...] = CLUSTER_PARS
    nhits_trunc: int = NHITS_TRUNC
    cluster_trunc: float = CLUSTER_TRUNC
    quality_offset: float = QUALITY_OFFSET

    def __post_init__(self) -> None:
        # normalise lists from YAML/kwargs into a hashable tuple of floats
        pars = self.cluster_pars
        if isinstance(pars, (str, bytes)) or not isinstance(pars, Iterable):
            raise ConfigurationError(
                f"cluster_pars must be a sequence of numbers, got {pars!r}")
        object.__setattr__(self, "cluster_pars",
                           tuple(_as_float("cluster_pars", p) for p in pars))
        self.validate()

    def validate(self) -> None:
        numbers = {
            "min_z": self.min_z,
            "max_z": self.max_z,
            "z_step": self.z_step,
            "cluster_trunc": self.cluster_trunc,
            "quality_offset": self.quality_offset,
        }
        for name, value in numbers.items():
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite, got {value!r}")
        if not self.cluster_pars:
            raise ConfigurationError("cluster_pars must hold at least one coefficient")
        if not all(math.isfinite(p) for p in self.cluster_pars):
            raise ConfigurationError(f"cluster_pars must be finite, got {self.cluster_pars!r}")
        if self.z_step <= 0:
            raise ConfigurationError(f"z_step must be positive, got {self.z_step}")
        if self.min_z > self.max_z:
            raise ConfigurationError(
                f"min_z ({self.min_z}) must not exceed max_z ({self.max_z})")
        if self.quality_offset < 0:
            raise ConfigurationError(
                f"quality_offset must be non-negative, got {self.quality_offset}")


# =====================================================================
#                         Loaders
# =====================================================================

def config_from_mapping(mapping: Mapping[str, Any]) -> ClusterShapeConfig:
    """
    Build a config from a flat mapping.

    Keys may be the field names or the camelCase trigger parameter
    names (minZ, zStep, clusterPars, ...). Missing keys keep defaults.
    """
    known = {f.name for f in fields(ClusterShapeConfig)}
    kwargs = {}
    for key, value in mapping.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            raise ConfigurationError(f"unknown configuration key {key!r}")
        if name in kwargs:
            raise ConfigurationError(f"configuration key {name!r} given twice")
        kwargs[name] = value

    if "nhits_trunc" in kwargs:
        kwargs["nhits_trunc"] = _as_int("nhits_trunc", kwargs["nhits_trunc"])
    for name in ("min_z", "max_z", "z_step", "cluster_trunc", "quality_offset"):
        if name in kwargs:
            kwargs[name] = _as_float(name, kwargs[name])
    if "cluster_pars" in kwargs:
        pars = kwargs["cluster_pars"]
        if isinstance(pars, (int, float)) and not isinstance(pars, bool):
            pars = (pars,)
        if isinstance(pars, (str, bytes)) or not isinstance(pars, Iterable):
            raise ConfigurationError(
                f"cluster_pars: expected a list of numbers, got {pars!r}")
        kwargs["cluster_pars"] = tuple(_as_float("cluster_pars", p) for p in pars)

    return ClusterShapeConfig(**kwargs)


def load_config(path: str) -> ClusterShapeConfig:
    """Read a YAML file holding a flat mapping of filter parameters."""
    with open(path) as f:
        payload = yaml.safe_load(f)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    return config_from_mapping(payload)
