# temperlog/app/sinks.py
from __future__ import annotations

import logging
import sys
import time
from typing import Optional, TextIO

from temperlog.interfaces.reading_sink import ReadingSink
from temperlog.model.codec import c_to_f
from temperlog.model.reading import Sample
from temperlog.storage.writer import SampleWriter

UNITS = ("both", "c", "f")


class ConsoleSink(ReadingSink):
    """
    Print samples to a text stream.

    Normal mode:  ``2024/01/31 12:00:00 Temperature 71.60F 22.00C``
    MRTG mode:    value, value, ``HH:MM``, ``pcsensor`` on four lines.
    """

    def __init__(self, *, units: str = "both", mrtg: bool = False, stream: Optional[TextIO] = None):
        if units not in UNITS:
            raise ValueError(f"units must be one of {UNITS}, got {units!r}")
        self._units = units
        self._mrtg = mrtg
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def on_sample(self, sample: Sample) -> None:
        local = time.localtime(sample.timestamp)
        out = self.stream

        if self._mrtg:
            if sample.temperature_c is None:
                value = "UNKNOWN"
            elif self._units == "f":
                value = f"{c_to_f(sample.temperature_c):.2f}"
            else:
                value = f"{sample.temperature_c:.2f}"
            out.write(f"{value}\n{value}\n")
            out.write(time.strftime("%H:%M", local) + "\n")
            out.write("pcsensor\n")
            out.flush()
            return

        stamp = time.strftime("%Y/%m/%d %H:%M:%S", local)
        if sample.temperature_c is None:
            out.write(f"{stamp} Temperature unavailable ({sample.error})\n")
        elif self._units == "f":
            out.write(f"{stamp} Temperature {c_to_f(sample.temperature_c):.2f}F\n")
        elif self._units == "c":
            out.write(f"{stamp} Temperature {sample.temperature_c:.2f}C\n")
        else:
            out.write(
                f"{stamp} Temperature {c_to_f(sample.temperature_c):.2f}F {sample.temperature_c:.2f}C\n"
            )
        out.flush()

    def close(self) -> None:
        return None


class SqliteSink(ReadingSink):
    """
    Persist ok samples via SampleWriter; failed samples are logged and skipped.

    PersistenceError from the writer propagates to the caller.
    """

    def __init__(self, writer: SampleWriter):
        self._writer = writer
        self._log = logging.getLogger(__name__)

    def on_sample(self, sample: Sample) -> None:
        if not sample.ok:
            self._log.warning("SAMPLE_SKIPPED ts=%d err=%s", sample.timestamp, sample.error)
            return
        self._writer.write_reading(sample.reading())

    def close(self) -> None:
        return None
