from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlstratum.runner import Runner

from eventhub.config import Config
from eventhub.schema import SCHEMA_SQL

logger = logging.getLogger(__name__)


def _resolve_path(db_path: Optional[str]) -> Path:
    path = Path(db_path or Config.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(str(_resolve_path(db_path)), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_runner(db_path: Optional[str] = None) -> Runner:
    return Runner(connect(db_path))


@contextmanager
def runner_scope(db_path: Optional[str] = None) -> Iterator[Runner]:
    """Open a runner for the duration of a block and always close its connection."""
    runner = get_runner(db_path)
    try:
        yield runner
    finally:
        runner.connection.close()


def init_db(db_path: Optional[str] = None) -> None:
    conn = connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()
    logger.info("Database schema ready at %s", db_path or Config.DB_PATH)


def get_runner_dep():
    runner = get_runner()
    try:
        yield runner
    finally:
        runner.connection.close()
