# temperlog/cli/commands.py
from __future__ import annotations

import logging
from typing import List, Optional

from temperlog.analytics.stats import compute_stats
from temperlog.app.config import STYLE_RECORDS, STYLE_STATS, TemperConfig
from temperlog.app.loop import AcquisitionLoop, install_signal_handlers, restore_signal_handlers
from temperlog.app.report import format_records, format_stats
from temperlog.app.sinks import ConsoleSink, SqliteSink
from temperlog.core.errors import ConfigError, DeviceNotFoundError
from temperlog.interfaces.reading_sink import ReadingSink
from temperlog.model.loader import load_device_type
from temperlog.protocol.driver import TemperDriver
from temperlog.storage.db import SCHEMA, init_db
from temperlog.storage.reader import QueryWindow, SampleReader
from temperlog.storage.writer import SampleWriter
from temperlog.transport.errors import TransportError
from temperlog.transport.usb import describe_device, find_devices

log = logging.getLogger(__name__)


# ---------------- Commands ----------------

def cmd_devices(cfg: TemperConfig) -> int:
    dt = load_device_type(cfg.device)
    try:
        devices = find_devices(dt.vendor_id, dt.product_id)
    except TransportError as e:
        raise DeviceNotFoundError("USB enumeration failed.", hint=str(e)) from None

    print(f"{dt.label} ({dt.id_pair}):")
    if not devices:
        print("  (none attached)")
        return 0

    for index, dev in enumerate(devices):
        d = describe_device(dev)
        print(f"  - index={index} bus={d['bus']} address={d['address']} id={d['vendor_id']}:{d['product_id']}")
    return 0


def cmd_read(cfg: TemperConfig, *, loop: bool, interval_s: Optional[int]) -> int:
    dt = load_device_type(cfg.device)
    interval = interval_s if interval_s is not None else cfg.effective_interval_s()

    sinks: List[ReadingSink] = []
    if cfg.db_path:
        sinks.append(SqliteSink(SampleWriter(cfg.db_path)))
    else:
        sinks.append(ConsoleSink(units=cfg.units, mrtg=cfg.mrtg))

    driver = TemperDriver(
        dt,
        device_index=cfg.device_index,
        calibration=cfg.calibration,
        debug=cfg.verbose,
    )

    with driver:
        acq = AcquisitionLoop(driver, sinks, interval_s=interval, loop=loop)
        previous = install_signal_handlers(acq)
        try:
            result = acq.run()
        finally:
            restore_signal_handlers(previous)
            for sink in sinks:
                sink.close()

    if not result.ok:
        print(f"ERROR: {result.error.message}")
        if result.error.hint:
            print(f"Hint: {result.error.hint}")
        return 1
    return 0


def cmd_schema(init_path: Optional[str]) -> int:
    if init_path:
        init_db(init_path)
        print(f"Initialized {init_path}")
        return 0
    print(SCHEMA)
    return 0


def cmd_query(cfg: TemperConfig, *, hours: int, days: int) -> int:
    if not cfg.db_path:
        raise ConfigError(
            "No sqlite database to query.",
            hint="Pass --db FILE or set db_path in the config file.",
        )
    window = QueryWindow.from_cli(records=cfg.query_records, hours=hours, days=days)
    batch = SampleReader(cfg.db_path).fetch(window)

    if cfg.query_style & STYLE_STATS:
        for line in format_stats(compute_stats(batch)):
            print(line)

    if cfg.query_style & STYLE_RECORDS:
        for line in format_records(batch):
            print(line)

    return 0
