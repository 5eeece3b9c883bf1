# temperlog/common/logging_config.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(*, verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure the root logger for CLI use.

    - Console output goes to stderr so stdout stays clean for records/MRTG.
    - verbose selects DEBUG and enables pyusb's own logger.
    - log_file adds a file handler (idempotent per path).
    """
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.WARNING
    root.setLevel(level)

    if not any(getattr(h, "_temperlog_console", False) for h in root.handlers):
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(logging.Formatter(LOG_FORMAT))
        sh._temperlog_console = True  # type: ignore[attr-defined]
        root.addHandler(sh)

    for h in root.handlers:
        if getattr(h, "_temperlog_console", False):
            h.setLevel(level)

    logging.getLogger("usb").setLevel(logging.DEBUG if verbose else logging.WARNING)

    if log_file is not None:
        configure_file_logging(Path(log_file))


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)
