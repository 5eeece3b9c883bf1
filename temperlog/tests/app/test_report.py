from __future__ import annotations

import time

from temperlog.analytics.stats import compute_stats
from temperlog.app.report import format_records, format_stats
from temperlog.model.reading import Reading


def test_record_line():
    ts = 1700000000
    lines = format_records([Reading(ts, 22.0)])

    local = time.strftime("%c", time.localtime(ts))
    assert lines == [f"{local} [{ts}]: 71.6 deg F (22.0 deg C)"]


def test_stats_block():
    stats = compute_stats([Reading(1, 5.0), Reading(2, 9.0), Reading(3, 3.0), Reading(4, 7.0)])

    lines = format_stats(stats)

    assert lines[0] == "STATS:"
    assert lines[1] == "  n ..... 4"
    assert lines[2].startswith("  min ...   3.0 C,  37.4 F @ ")
    assert lines[3].startswith("  max ...   9.0 C,  48.2 F @ ")
    assert lines[4] == "  med ...   7.0 C,  44.6 F"
    assert lines[5] == "  avg ...   6.0 C,  42.8 F"
    # std converts as a temperature difference, no +32 offset
    assert lines[6] == "  std ...   2.2 C,   4.0 F"
