# temperlog/storage/writer.py
from __future__ import annotations

import logging
import pathlib
import sqlite3
import time
from typing import Callable, Optional

from temperlog.common.retry import RetryExhausted, RetryPolicy, call_with_retry
from temperlog.core.errors import PersistenceError, PersistenceExhaustedError
from temperlog.model.reading import Reading

from .db import get_connection

INSERT_SQL = "INSERT INTO temps (timestamp,tempc) VALUES (?, ?);"


class SampleWriter:
    """
    Appends one reading per call to the temps table.

    Each write opens its own connection, retries the INSERT with a fixed pause
    on sqlite errors (reusing that connection), and closes it again.
    """

    def __init__(
        self,
        db_path: str | pathlib.Path,
        *,
        policy: RetryPolicy = RetryPolicy(attempts=10, delay_s=1.0),
        connect: Callable[[str | pathlib.Path], sqlite3.Connection] = get_connection,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.db_path = db_path
        self.policy = policy
        self._connect = connect
        self._sleep = sleep
        self._log = logger or logging.getLogger(__name__)

    def write(self, timestamp: int, tempc: float) -> None:
        try:
            conn = self._connect(self.db_path)
        except sqlite3.Error as e:
            self._log.error("SQLITE_OPEN_FAILED path=%s err=%s", self.db_path, e)
            raise PersistenceError(
                "Could not open sqlite database.",
                hint=str(e),
                details={"path": str(self.db_path)},
            ) from None

        params = (int(timestamp), float(tempc))

        def _insert() -> None:
            with conn:
                conn.execute(INSERT_SQL, params)

        def _log_failure(attempt: int, attempts: int, err: Optional[BaseException]) -> None:
            self._log.error("SQLITE_INSERT_FAILED try=%d/%d err=%s", attempt, attempts, err)

        try:
            call_with_retry(
                _insert,
                policy=self.policy,
                retry_on=(sqlite3.Error,),
                on_failure=_log_failure,
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            raise PersistenceExhaustedError(
                f"Insert failed after {e.attempts} attempts.",
                hint=str(e.last_error),
                details={"path": str(self.db_path), "timestamp": params[0], "tempc": params[1]},
            ) from None
        finally:
            conn.close()

        self._log.debug("SQLITE_INSERT ts=%d tempc=%.4f", params[0], params[1])

    def write_reading(self, reading: Reading) -> None:
        self.write(reading.timestamp, reading.temperature_c)
