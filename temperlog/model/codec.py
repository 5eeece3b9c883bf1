# temperlog/model/codec.py
from __future__ import annotations

import struct

FRAME_SIZE = 8

# 125 degC full scale over 32000 counts
DEFAULT_LSB_C = 125.0 / 32000.0

_RAW = struct.Struct(">H")


def decode_raw(frame: bytes, *, offset: int = 2) -> int:
    """
    Extract the raw sensor word from a reply frame.

    The word is big-endian at ``frame[offset:offset + 2]``, i.e.
    ``frame[offset + 1] + (frame[offset] << 8)``.
    """
    if len(frame) < FRAME_SIZE:
        raise ValueError(f"Frame length {len(frame)} < expected {FRAME_SIZE}")
    return _RAW.unpack_from(bytes(frame), offset)[0]


def raw_to_celsius(raw: int, *, calibration: int = 0, lsb_c: float = DEFAULT_LSB_C) -> float:
    """Apply the calibration offset (raw units) then scale to Celsius."""
    return (int(raw) + int(calibration)) * lsb_c


def decode_frame(
    frame: bytes,
    *,
    calibration: int = 0,
    offset: int = 2,
    lsb_c: float = DEFAULT_LSB_C,
) -> float:
    return raw_to_celsius(decode_raw(frame, offset=offset), calibration=calibration, lsb_c=lsb_c)


def c_to_f(deg_c: float) -> float:
    return 9.0 / 5.0 * deg_c + 32.0


def c_delta_to_f(delta_c: float) -> float:
    """Convert a temperature difference (e.g. a standard deviation)."""
    return 9.0 / 5.0 * delta_c
