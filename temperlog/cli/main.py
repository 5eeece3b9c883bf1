# temperlog/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from temperlog.app.config import TemperConfig, load_config
from temperlog.common.logging_config import configure_logging
from temperlog.core.errors import TemperError

from temperlog.cli.args import build_parser, parse_loop_interval
from temperlog.cli.commands import (
    cmd_devices,
    cmd_query,
    cmd_read,
    cmd_schema,
)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config else TemperConfig()
        cfg = cfg.with_overrides(
            verbose=args.verbose,
            log_file=args.log_file,
            device=getattr(args, "device", None),
            device_index=getattr(args, "device_index", None),
            calibration=getattr(args, "calibration", None),
            units=getattr(args, "units", None),
            mrtg=getattr(args, "mrtg", None),
            db_path=getattr(args, "db_path", None),
            query_records=getattr(args, "records", None),
            query_style=getattr(args, "style", None),
        )

        configure_logging(
            verbose=cfg.verbose,
            log_file=Path(cfg.log_file) if cfg.log_file else None,
        )

        if args.cmd == "devices":
            return cmd_devices(cfg)

        if args.cmd == "read":
            try:
                interval = parse_loop_interval(args.loop)
            except ValueError as e:
                parser.error(str(e))
            return cmd_read(cfg, loop=cfg.loop or args.loop is not None, interval_s=interval)

        if args.cmd == "schema":
            return cmd_schema(args.init)

        if args.cmd == "query":
            return cmd_query(cfg, hours=args.hours, days=args.days)

        return 2
    except TemperError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
