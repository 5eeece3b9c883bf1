from __future__ import annotations

import pathlib
import sqlite3

import pytest

from temperlog.storage.db import init_db


@pytest.fixture()
def test_db_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "temps.sqlite"


@pytest.fixture()
def initialized_db(test_db_path: pathlib.Path) -> pathlib.Path:
    init_db(test_db_path)
    return test_db_path


@pytest.fixture()
def insert_rows():
    def _insert(db_path: pathlib.Path, rows):
        conn = sqlite3.connect(db_path)
        try:
            with conn:
                conn.executemany("INSERT INTO temps (timestamp, tempc) VALUES (?, ?)", rows)
        finally:
            conn.close()

    return _insert
