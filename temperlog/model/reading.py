# temperlog/model/reading.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .codec import c_to_f


@dataclass(frozen=True)
class Reading:
    """
    One valid temperature measurement.

    Attributes:
        timestamp: Unix time in whole seconds.
        temperature_c: Calibrated temperature in degrees Celsius.
    """
    timestamp: int
    temperature_c: float

    @property
    def temperature_f(self) -> float:
        return c_to_f(self.temperature_c)


@dataclass(frozen=True)
class Sample:
    """
    Outcome of one acquisition attempt: either a valid temperature or a failure.
    """
    timestamp: int
    temperature_c: Optional[float]
    error: Optional[str] = None

    @classmethod
    def ok_at(cls, timestamp: int, temperature_c: float) -> "Sample":
        return cls(timestamp=int(timestamp), temperature_c=float(temperature_c))

    @classmethod
    def failed_at(cls, timestamp: int, error: str) -> "Sample":
        return cls(timestamp=int(timestamp), temperature_c=None, error=str(error))

    @property
    def ok(self) -> bool:
        return self.temperature_c is not None

    def reading(self) -> Reading:
        if self.temperature_c is None:
            raise ValueError(f"sample at {self.timestamp} has no temperature: {self.error}")
        return Reading(timestamp=self.timestamp, temperature_c=self.temperature_c)
