# ---------------------------------------------------------------------
# pixel_reader.py
# Raw pixel rec-hits (CSV) -> per-event barrel Hit lists + multiplicity
# ---------------------------------------------------------------------

from __future__ import annotations
import csv
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Tuple

from hit import Hit

# Subdetector codes
PIXEL_BARREL = 1
PIXEL_ENDCAP = 2

COLUMNS = ("EventID", "Valid", "Subdet", "OnEdge",
           "x_global", "y_global", "z_global", "size_y")


@dataclass(frozen=True)
class PixelEvent:
    """
    Hits of one event as seen by the filter.

    Attributes:
        hits         : barrel hits without edge pixels
        n_pixel_hits : all valid pixel hits (barrel + endcap, edges included)
    """
    hits: Tuple[Hit, ...]
    n_pixel_hits: int


class PixelReader:
    """
    Loads raw pixel rec-hits from CSV and groups them by event.

    Per event: invalid hits are dropped, the remaining ones are counted
    as the multiplicity, then only barrel hits without an edge pixel are
    turned into Hit(z, r, w).
    """

    def __init__(self, csv_path: str = "pixel_hits.csv") -> None:
        self.csv_path = csv_path
        self.events: Dict[int, PixelEvent] = {}
        self._load_csv(csv_path)

    def _load_csv(self, path: str) -> None:
        buckets = defaultdict(list)
        counts = defaultdict(int)
        with open(path, newline="") as f:
            reader = csv.DictReader(f)
            for row in reader:
                ev = int(row["EventID"])
                counts.setdefault(ev, 0)   # keep events with no valid hit
                if not int(row["Valid"]):
                    continue
                counts[ev] += 1
                if int(row["Subdet"]) != PIXEL_BARREL:
                    continue
                if int(row["OnEdge"]):
                    continue
                x = float(row["x_global"])
                y = float(row["y_global"])
                z = float(row["z_global"])
                w = float(row["size_y"])
                buckets[ev].append(Hit(z=z, r=math.hypot(x, y), w=w))
        self.events = {
            ev: PixelEvent(tuple(buckets.get(ev, ())), n)
            for ev, n in sorted(counts.items())
        }


def read_pixel_events(csv_path: str) -> Dict[int, PixelEvent]:
    return PixelReader(csv_path).events
