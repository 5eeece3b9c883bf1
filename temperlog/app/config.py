# temperlog/app/config.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from temperlog.core.errors import ConfigError

DEFAULT_DB_INTERVAL_S = 300
DEFAULT_CONSOLE_INTERVAL_S = 5
DEFAULT_QUERY_RECORDS = 10

STYLE_RECORDS = 1
STYLE_STATS = 2


@dataclass(frozen=True)
class TemperConfig:
    device: Optional[str] = None          # devices.yml key, None = catalog default
    device_index: int = 0
    calibration: int = 0
    verbose: bool = False
    interval_s: Optional[int] = None      # None = per-mode default
    loop: bool = False
    units: str = "both"                   # both | c | f
    mrtg: bool = False
    db_path: Optional[str] = None
    log_file: Optional[str] = None
    query_records: int = DEFAULT_QUERY_RECORDS
    query_style: int = STYLE_RECORDS | STYLE_STATS

    def effective_interval_s(self) -> int:
        if self.interval_s is not None:
            return self.interval_s
        return DEFAULT_DB_INTERVAL_S if self.db_path else DEFAULT_CONSOLE_INTERVAL_S

    def with_overrides(self, **overrides: Any) -> "TemperConfig":
        """Return a copy with every non-None override applied (validated)."""
        given = {k: v for k, v in overrides.items() if v is not None}
        return _validated(dataclasses.replace(self, **_check_keys(given)))


_FIELD_TYPES: Dict[str, type] = {
    "device": str,
    "device_index": int,
    "calibration": int,
    "verbose": bool,
    "interval_s": int,
    "loop": bool,
    "units": str,
    "mrtg": bool,
    "db_path": str,
    "log_file": str,
    "query_records": int,
    "query_style": int,
}


def _check_keys(values: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in values.items():
        if key not in _FIELD_TYPES:
            raise ConfigError(
                f"Unknown config key '{key}'.",
                hint=f"Valid keys: {sorted(_FIELD_TYPES)}",
                details={"key": key},
            )
        if value is None:
            continue
        expected = _FIELD_TYPES[key]
        ok = isinstance(value, expected) and not (expected is int and isinstance(value, bool))
        if not ok:
            raise ConfigError(
                f"Invalid value for config key '{key}'.",
                hint=f"Expected {expected.__name__}, got {type(value).__name__}",
                details={"key": key, "value": value},
            )
    return values


def _validated(cfg: TemperConfig) -> TemperConfig:
    if cfg.device_index < 0:
        raise ConfigError("device_index must be >= 0.", details={"device_index": cfg.device_index})
    if cfg.interval_s is not None and cfg.interval_s < 0:
        raise ConfigError("interval_s must be >= 0.", details={"interval_s": cfg.interval_s})
    if cfg.units not in ("both", "c", "f"):
        raise ConfigError(
            f"Invalid units '{cfg.units}'.",
            hint="Use one of: both, c, f",
            details={"units": cfg.units},
        )
    if not 0 <= cfg.query_style <= (STYLE_RECORDS | STYLE_STATS):
        raise ConfigError(
            f"Invalid query_style {cfg.query_style}.",
            hint="Bit mask: 1 = records, 2 = stats, 3 = both",
            details={"query_style": cfg.query_style},
        )
    return cfg


def load_config(path: str | Path) -> TemperConfig:
    """Load a YAML config file; its top-level mapping overrides the defaults."""
    path_obj = Path(path)
    if not path_obj.exists():
        raise ConfigError(f"Config path does not exist: {path_obj}")

    try:
        with path_obj.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {path_obj}.", hint=str(e)) from None

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path_obj} must contain a mapping.")

    return _validated(TemperConfig(**_check_keys(dict(data))))
