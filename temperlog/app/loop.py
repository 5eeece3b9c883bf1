# temperlog/app/loop.py
from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol

from temperlog.core.errors import PersistenceError
from temperlog.interfaces.reading_sink import ReadingSink
from temperlog.model.reading import Sample


class SampleSource(Protocol):
    def get_temperature(self, now: Optional[float] = None) -> Sample: ...


@dataclass(frozen=True)
class LoopResult:
    """
    reason is one of: 'single' | 'stopped' | 'persistence_failed'
    """
    cycles: int
    reason: str
    error: Optional[PersistenceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AcquisitionLoop:
    """
    Poll a sample source and fan each sample out to the sinks.

    - One poll completes (ok or failed sample) before the interval wait starts.
    - With loop=False exactly one cycle runs.
    - stop() is cooperative: checked at the top of every cycle and wakes the
      interval wait, but never interrupts an in-flight poll or write.
    - A PersistenceError from a sink ends the loop instead of propagating.
    """

    def __init__(
        self,
        source: SampleSource,
        sinks: Iterable[ReadingSink],
        *,
        interval_s: float = 300.0,
        loop: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        self.source = source
        self.sinks: List[ReadingSink] = list(sinks)
        self.interval_s = float(interval_s)
        self.loop = bool(loop)
        self._log = logger or logging.getLogger(__name__)
        self._stop = threading.Event()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> LoopResult:
        cycles = 0
        reason = "stopped"

        while not self.stop_requested:
            sample = self.source.get_temperature()
            cycles += 1

            try:
                for sink in self.sinks:
                    sink.on_sample(sample)
            except PersistenceError as e:
                self._log.error("PERSISTENCE_FAILED cycle=%d err=%s; stopping acquisition", cycles, e.message)
                return LoopResult(cycles=cycles, reason="persistence_failed", error=e)

            if not self.loop:
                reason = "single"
                break

            if self._stop.wait(self.interval_s):
                break

        self._log.info("ACQUISITION_DONE cycles=%d reason=%s", cycles, reason)
        return LoopResult(cycles=cycles, reason=reason)


def install_signal_handlers(
    loop: AcquisitionLoop,
    signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
) -> Dict[int, Any]:
    """
    First signal requests a cooperative stop; the default handler is restored
    so a second one terminates the process.

    Returns the previous handlers for restore_signal_handlers().
    """
    def _handler(signum, _frame) -> None:
        logging.getLogger(__name__).info("SIGNAL_RECEIVED signum=%d; stopping after current cycle", signum)
        loop.stop()
        signal.signal(signum, signal.SIG_DFL)

    previous: Dict[int, Any] = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
