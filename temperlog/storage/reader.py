# temperlog/storage/reader.py
from __future__ import annotations

import logging
import pathlib
import sqlite3
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Sequence, overload

from temperlog.core.errors import QueryError
from temperlog.model.reading import Reading

from .db import get_readonly_connection

SELECT_ALL_SQL = "SELECT timestamp,tempc FROM temps ORDER BY timestamp;"
SELECT_LAST_SQL = "SELECT timestamp,tempc FROM temps ORDER BY timestamp DESC LIMIT ?;"
SELECT_SINCE_SQL = "SELECT timestamp,tempc FROM temps WHERE timestamp > ? ORDER BY timestamp;"

DEFAULT_BATCH_CAPACITY = 256

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


class WindowMode(str, Enum):
    LAST = "last"
    SINCE = "since"
    ALL = "all"


@dataclass(frozen=True)
class QueryWindow:
    """
    Selection of historical readings.

    A positive `limit` selects the most recent N records and takes precedence
    over `lookback_s`; a positive `lookback_s` selects records newer than
    now - lookback_s; otherwise every record is selected.
    """
    limit: Optional[int] = None
    lookback_s: Optional[int] = None

    @classmethod
    def last(cls, n: int) -> "QueryWindow":
        if n <= 0:
            raise ValueError("n must be > 0")
        return cls(limit=int(n))

    @classmethod
    def since(cls, seconds: int) -> "QueryWindow":
        if seconds <= 0:
            raise ValueError("seconds must be > 0")
        return cls(lookback_s=int(seconds))

    @classmethod
    def all(cls) -> "QueryWindow":
        return cls()

    @classmethod
    def from_cli(cls, records: int = 0, hours: int = 0, days: int = 0) -> "QueryWindow":
        """Days take precedence over hours; records=0 disables the count limit."""
        seconds = 0
        if hours > 0:
            seconds = hours * SECONDS_PER_HOUR
        if days > 0:
            seconds = days * SECONDS_PER_DAY
        return cls(limit=records if records > 0 else None, lookback_s=seconds if seconds > 0 else None)

    @property
    def mode(self) -> WindowMode:
        if self.limit is not None and self.limit > 0:
            return WindowMode.LAST
        if self.lookback_s is not None and self.lookback_s > 0:
            return WindowMode.SINCE
        return WindowMode.ALL


class ReadingBatch(Sequence[Reading]):
    """
    Growable, ordered batch of readings with an explicit length.

    Storage starts at `capacity` slots and doubles whenever an append finds
    at most one free slot left.
    """

    def __init__(self, capacity: int = DEFAULT_BATCH_CAPACITY):
        if capacity < 2:
            raise ValueError("capacity must be >= 2")
        self._slots: List[Optional[Reading]] = [None] * capacity
        self._len = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def append(self, reading: Reading) -> None:
        if self._len >= len(self._slots) - 1:
            self._slots.extend([None] * len(self._slots))
        self._slots[self._len] = reading
        self._len += 1

    def reverse(self) -> None:
        self._slots[: self._len] = reversed(self._slots[: self._len])

    def values(self) -> List[float]:
        return [r.temperature_c for r in self]

    def __len__(self) -> int:
        return self._len

    @overload
    def __getitem__(self, i: int) -> Reading: ...

    @overload
    def __getitem__(self, i: slice) -> List[Reading]: ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return list(self._slots[: self._len][i])
        if i < 0:
            i += self._len
        if not 0 <= i < self._len:
            raise IndexError("ReadingBatch index out of range")
        return self._slots[i]

    def __iter__(self) -> Iterator[Reading]:
        for i in range(self._len):
            yield self._slots[i]  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"ReadingBatch(n={self._len}, capacity={self.capacity})"


class SampleReader:
    """
    Fetches historical readings in chronological order.

    In LAST mode the newest N rows are selected (timestamp DESC) and then
    re-ordered oldest-first so every mode yields the same ordering.
    """

    def __init__(
        self,
        db_path: str | pathlib.Path,
        *,
        clock: Callable[[], float] = time.time,
        connect: Callable[[str | pathlib.Path], sqlite3.Connection] = get_readonly_connection,
        batch_capacity: int = DEFAULT_BATCH_CAPACITY,
        logger: Optional[logging.Logger] = None,
    ):
        self.db_path = db_path
        self._clock = clock
        self._connect = connect
        self._batch_capacity = batch_capacity
        self._log = logger or logging.getLogger(__name__)

    def fetch(self, window: QueryWindow = QueryWindow()) -> ReadingBatch:
        mode = window.mode
        if mode is WindowMode.LAST:
            sql, params = SELECT_LAST_SQL, (int(window.limit),)  # type: ignore[arg-type]
        elif mode is WindowMode.SINCE:
            cutoff = int(self._clock()) - int(window.lookback_s)  # type: ignore[arg-type]
            sql, params = SELECT_SINCE_SQL, (cutoff,)
        else:
            sql, params = SELECT_ALL_SQL, ()

        try:
            conn = self._connect(self.db_path)
        except sqlite3.Error as e:
            self._log.error("SQLITE_OPEN_FAILED path=%s err=%s", self.db_path, e)
            raise QueryError(
                f"Could not open sqlite database {str(self.db_path)!r}.",
                hint=str(e),
                details={"path": str(self.db_path)},
            ) from None

        batch = ReadingBatch(self._batch_capacity)
        try:
            for ts, tempc in conn.execute(sql, params):
                batch.append(Reading(timestamp=int(ts), temperature_c=float(tempc)))
        except sqlite3.Error as e:
            self._log.error("SQLITE_QUERY_FAILED mode=%s err=%s", mode.value, e)
            raise QueryError(
                "Query on temps table failed.",
                hint=str(e),
                details={"path": str(self.db_path), "mode": mode.value},
            ) from None
        finally:
            conn.close()

        if mode is WindowMode.LAST:
            batch.reverse()

        self._log.debug("SQLITE_FETCH mode=%s rows=%d", mode.value, len(batch))
        return batch
