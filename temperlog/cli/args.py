# temperlog/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

# `-l` given without a value: loop at the configured / per-mode interval
LOOP_DEFAULT_INTERVAL = "default"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="temperlog",
        description="Read, log and summarize TEMPer USB thermometer readings.",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose/debug output.")
    common.add_argument("--config", help="Path to a YAML config file.")
    common.add_argument("--log-file", help="Also write log records to this file.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_devices = sub.add_parser("devices", parents=[common], help="List attached sensors.")
    p_devices.add_argument("--device", help="Device catalog key (see devices.yml).")

    p_read = sub.add_parser("read", parents=[common], help="Read the sensor (console or sqlite).")
    p_read.add_argument("--device", help="Device catalog key (see devices.yml).")
    p_read.add_argument(
        "-n", "--device-index",
        type=int,
        help="Use device number N (0 is the first one found on the bus).",
    )
    p_read.add_argument(
        "-l", "--loop",
        nargs="?",
        const=LOOP_DEFAULT_INTERVAL,
        default=None,
        metavar="SECS",
        help="Loop every SECS seconds (default 5, or 300 with --db).",
    )
    units = p_read.add_mutually_exclusive_group()
    units.add_argument("-c", "--celsius", dest="units", action="store_const", const="c", help="Output only Celsius.")
    units.add_argument("-f", "--fahrenheit", dest="units", action="store_const", const="f", help="Output only Fahrenheit.")
    p_read.add_argument("-m", "--mrtg", action="store_true", default=None, help="Output for MRTG integration.")
    p_read.add_argument(
        "-a", "--calibration",
        type=int,
        help="Calibration offset added to the raw sensor value before scaling.",
    )
    p_read.add_argument("--db", dest="db_path", help="Append readings to this sqlite file instead of printing.")

    p_schema = sub.add_parser("schema", parents=[common], help="Print (or create) the sqlite schema.")
    p_schema.add_argument("--init", metavar="SQLITE_FILE", help="Create the schema in SQLITE_FILE.")

    p_query = sub.add_parser("query", parents=[common], help="Query logged readings.")
    p_query.add_argument("-f", "--db", dest="db_path", required=True, help="sqlite file to query.")
    p_query.add_argument(
        "-n", "--records",
        type=int,
        help="Query the newest N records (default 10); set -n 0 to use --hours/--days.",
    )
    p_query.add_argument("-H", "--hours", type=int, default=0, help="Query the last HOURS worth of records.")
    p_query.add_argument(
        "-d", "--days",
        type=int,
        default=0,
        help="Query the last DAYS worth of records (takes precedence over hours).",
    )
    p_query.add_argument(
        "-s", "--style",
        type=int,
        help="Print style bit mask: 1 = records, 2 = summary stats, 3 = both.",
    )

    return parser


def parse_loop_interval(value: Optional[str]) -> Optional[int]:
    """
    Map the -l value to an explicit interval (None = configured default).

    Raises ValueError for non-numeric or negative values.
    """
    if value is None or value == LOOP_DEFAULT_INTERVAL:
        return None
    secs = int(value)
    if secs < 0:
        raise ValueError(f"loop interval must be >= 0, got {secs}")
    return secs
