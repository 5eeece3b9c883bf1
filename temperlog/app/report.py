# temperlog/app/report.py
from __future__ import annotations

import time
from typing import Iterable, List

from temperlog.analytics.stats import SummaryStats
from temperlog.model.codec import c_delta_to_f, c_to_f
from temperlog.model.reading import Reading


def _local(ts: int) -> str:
    return time.strftime("%c", time.localtime(ts))


def format_records(readings: Iterable[Reading]) -> List[str]:
    return [
        f"{_local(r.timestamp)} [{r.timestamp}]: {c_to_f(r.temperature_c):.1f} deg F "
        f"({r.temperature_c:.1f} deg C)"
        for r in readings
    ]


def format_stats(stats: SummaryStats) -> List[str]:
    def cf(c: float) -> str:
        return f"{c:5.1f} C, {c_to_f(c):5.1f} F"

    return [
        "STATS:",
        f"  n ..... {stats.n}",
        f"  min ... {cf(stats.min_c)} @ {_local(stats.min_timestamp)}",
        f"  max ... {cf(stats.max_c)} @ {_local(stats.max_timestamp)}",
        f"  med ... {cf(stats.median_c)}",
        f"  avg ... {cf(stats.mean_c)}",
        f"  std ... {stats.std_c:5.1f} C, {c_delta_to_f(stats.std_c):5.1f} F",
    ]
