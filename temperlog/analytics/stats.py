# temperlog/analytics/stats.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

from temperlog.core.errors import EmptyDatasetError
from temperlog.model.reading import Reading


@dataclass(frozen=True)
class SummaryStats:
    n: int
    min_c: float
    min_timestamp: int
    max_c: float
    max_timestamp: int
    median_c: float
    mean_c: float
    std_c: float


def lower_median(values: List[float]) -> float:
    """Element at index n // 2 of the sorted values (no averaging for even n)."""
    if not values:
        raise ValueError("median requires at least one value")
    return sorted(values)[len(values) // 2]


def compute_stats(readings: Iterable[Reading]) -> SummaryStats:
    """
    Summary statistics over a batch of readings.

    - min/max keep the timestamp of their first occurrence
    - std is the population standard deviation (divide by n)
    - median is the lower-middle convention, see lower_median()
    """
    values: List[float] = []
    total = 0.0
    min_c = max_c = 0.0
    min_ts = max_ts = 0

    for r in readings:
        t = r.temperature_c
        if not values:
            min_c, min_ts = t, r.timestamp
            max_c, max_ts = t, r.timestamp
        else:
            if t > max_c:
                max_c, max_ts = t, r.timestamp
            if t < min_c:
                min_c, min_ts = t, r.timestamp
        total += t
        values.append(t)

    n = len(values)
    if n == 0:
        raise EmptyDatasetError(
            "No readings to summarize.",
            hint="Widen the query window or check that the logger is writing.",
        )

    mean = total / n
    sq_dev = 0.0
    for t in values:
        sq_dev += (t - mean) * (t - mean)
    std = math.sqrt(sq_dev / n)

    return SummaryStats(
        n=n,
        min_c=min_c,
        min_timestamp=min_ts,
        max_c=max_c,
        max_timestamp=max_ts,
        median_c=lower_median(values),
        mean_c=mean,
        std_c=std,
    )
