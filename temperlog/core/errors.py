# temperlog/core/errors.py
from __future__ import annotations


class TemperError(Exception):
    """
    Base class for all expected operational errors in temperlog.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, scripts, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no hardware access yet)
# ---------------------------------------------------------------------------

class ConfigError(TemperError):
    """
    Configuration or device metadata is invalid.

    Examples:
      - unknown key in a config file
      - wrongly typed value
      - malformed devices.yml entry
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Device discovery / claim errors
# ---------------------------------------------------------------------------

class DeviceNotFoundError(TemperError):
    """
    Fewer matching sensors are attached than the requested device index needs.
    """
    code = "device_not_found"


class DeviceClaimFailedError(TemperError):
    """
    The sensor was found but could not be configured or its interfaces claimed.

    Examples:
      - permission denied on the USB device node
      - interface held by another process
    """
    code = "device_claim_failed"


# ---------------------------------------------------------------------------
# Protocol errors
# ---------------------------------------------------------------------------

class ProtocolError(TemperError):
    """
    Initialization handshake failed.

    Examples:
      - control write rejected
      - interrupt read returned a short frame
      - device timed out during init
    """
    code = "protocol_error"


class PollError(TemperError):
    """
    Steady-state temperature read failed.
    """
    code = "poll_error"


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class PersistenceError(TemperError):
    """
    A reading could not be persisted (e.g. database file cannot be opened).
    """
    code = "persistence_error"


class PersistenceExhaustedError(PersistenceError):
    """
    Every attempt of the bounded write retry failed.
    """
    code = "persistence_exhausted"


class QueryError(TemperError):
    """
    Historical readings could not be fetched.

    Examples:
      - database file missing or unreadable
      - temps table missing
    """
    code = "query_error"


class EmptyDatasetError(TemperError):
    """
    Summary statistics were requested over zero readings.
    """
    code = "empty_dataset"
