"""SQLite schema and connection helpers for the temps table."""
from __future__ import annotations

import logging
import pathlib
import sqlite3

LOGGER = logging.getLogger(__name__)

SCHEMA = """\
CREATE TABLE IF NOT EXISTS temps(
    id          INTEGER PRIMARY KEY ASC,
    timestamp   INTEGER NOT NULL, /* unix timestamp from time() call */
    tempc       REAL    NOT NULL  /* temperature in celsius */
    );
"""


def get_connection(db_path: str | pathlib.Path) -> sqlite3.Connection:
    return sqlite3.connect(pathlib.Path(db_path))


def get_readonly_connection(db_path: str | pathlib.Path) -> sqlite3.Connection:
    """Open an existing database read-only; never creates the file."""
    uri = pathlib.Path(db_path).resolve().as_uri() + "?mode=ro"
    return sqlite3.connect(uri, uri=True)


def init_db(db_path: str | pathlib.Path) -> None:
    """Create the database file (and parent dirs) and the temps table."""
    path_obj = pathlib.Path(db_path)
    if path_obj.parent and not path_obj.parent.exists():
        path_obj.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(path_obj)
    try:
        with conn:
            conn.executescript(SCHEMA)
    finally:
        conn.close()
    LOGGER.info("DB_INITIALIZED path=%s", path_obj)
