"""Conversion of cumulative store counters into per-tick rates."""

import logging
from typing import Dict, List

import pandas as pd

from .models import HISTORY_CAPACITY, MetricsSnapshot, Number, RollingSeries

logger = logging.getLogger(__name__)

# Series name -> snapshot counter it is derived from
RATE_SERIES = {
    "writes": "queries",
    "reads": "iter_queries",
    "write_errors": "errors",
    "read_errors": "iter_errors",
}

LATENCY_SERIES = {
    "latency_avg_ms": "latency_avg_ms",
    "latency_p999_ms": "latency_p999_ms",
}

SERIES_NAMES = tuple(RATE_SERIES) + tuple(LATENCY_SERIES)


class MetricsAggregator:
    """Keeps the previous snapshot and a rolling history of derived values.

    Rates are deltas between consecutive cumulative snapshots. Latencies are
    passed through as reported, with 0 standing in for a missing value.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        self.previous = MetricsSnapshot()
        self.series: Dict[str, RollingSeries] = {
            name: RollingSeries(capacity) for name in SERIES_NAMES
        }

    def update(self, snapshot: MetricsSnapshot) -> Dict[str, Number]:
        """Push one tick's derived values and remember ``snapshot``.

        Returns:
            The values pushed, keyed by series name
        """
        pushed: Dict[str, Number] = {}

        for name, counter in RATE_SERIES.items():
            delta = getattr(snapshot, counter) - getattr(self.previous, counter)
            if delta < 0:
                logger.warning(f"Counter {counter} went backwards ({delta}), recording 0")
                delta = 0
            pushed[name] = delta

        for name, field_name in LATENCY_SERIES.items():
            value = getattr(snapshot, field_name)
            pushed[name] = value if value is not None else 0

        for name, value in pushed.items():
            self.series[name].push(value)

        self.previous = snapshot
        self.trim()
        return pushed

    def trim(self) -> None:
        for series in self.series.values():
            series.trim()

    def history(self, name: str) -> List[Number]:
        return self.series[name].values()

    def latest(self, name: str) -> Number:
        return self.series[name].last()

    def to_dataframe(self) -> pd.DataFrame:
        """Get the retained history as a DataFrame, one column per series."""
        return pd.DataFrame({name: series.values() for name, series in self.series.items()})
