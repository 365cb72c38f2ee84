import logging
from concurrent.futures import ProcessPoolExecutor

import pandas as pd

from cluster_shape_filter import ClusterShapeFilter
from filter_config import ClusterShapeConfig
from pixel_reader import PixelReader

logger = logging.getLogger(__name__)


def _run_event(filt: ClusterShapeFilter, event):
    return filt.process(event.hits, n_total_hits=event.n_pixel_hits)


# ----------------------------------------------------------
# 1. Filter every event of a raw pixel hit file
# ----------------------------------------------------------
def select_events(
    csv_path: str,
    config: ClusterShapeConfig = None,
    n_workers: int = 1
):
    """
    Run the cluster-shape filter over all events of a rec-hit CSV.

    Parameters
    ----------
    csv_path : str
        Path to the raw pixel hits CSV (see pixel_reader.COLUMNS).
    config : ClusterShapeConfig, optional
        Filter settings; defaults are used when omitted.
    n_workers : int, optional
        Number of worker processes. Events are independent, so the
        result does not depend on this.

    Returns
    -------
    decisions : dict
        EventID -> DecisionRecord

    data : pd.DataFrame
        One row per event, indexed by EventID:
            Accept | nPxlHits | BestZ | Quality | Threshold
    """

    reader = PixelReader(csv_path)
    filt = ClusterShapeFilter(config)
    event_ids = list(reader.events.keys())
    events = [reader.events[ev] for ev in event_ids]

    if n_workers > 1 and len(events) > 1:
        with ProcessPoolExecutor(max_workers=n_workers) as pool:
            records = list(pool.map(_run_event, [filt] * len(events), events))
    else:
        records = [_run_event(filt, ev) for ev in events]

    decisions = dict(zip(event_ids, records))

    data = pd.DataFrame({
        "EventID": event_ids,
        "Accept": [rec.accept for rec in records],
        "nPxlHits": [rec.hit_count for rec in records],
        "BestZ": [rec.best_z for rec in records],
        "Quality": [rec.quality for rec in records],
        "Threshold": [rec.threshold for rec in records],
    })
    data.set_index("EventID", inplace=True)

    if len(data):
        logger.info("filtered %d events, accepted fraction %.3f",
                    len(data), data["Accept"].mean())

    return decisions, data


# ----------------------------------------------------------
# 2. Decision sink
# ----------------------------------------------------------
def write_decisions(data: pd.DataFrame, path: str = "decisions.csv") -> str:
    data.to_csv(path)
    return path
