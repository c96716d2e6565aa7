"""
Storage collaborator: SQLite key/value store for engine state.

Two JSON records are kept in the ``AppState`` table:

- ``paths``   : array of learning paths;
- ``progress``: map of path id to path progress.
"""

import json
import logging
import os
import sqlite3
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from learnpath.errors import StorageError
from learnpath.models import LearningPath, PathProgress

logger = logging.getLogger(__name__)

PATHS_KEY = "paths"
PROGRESS_KEY = "progress"

# =========================================================================
# Schema
# =========================================================================

_CREATE_APP_STATE = """\
CREATE TABLE IF NOT EXISTS AppState (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TIMESTAMP
);
"""


# =========================================================================
# Connection helper
# =========================================================================


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


def migrate_db(db_path: str) -> None:
    """Create (or verify) the ``AppState`` table."""
    conn = get_connection(db_path)
    try:
        conn.execute(_CREATE_APP_STATE)
        conn.commit()
        logger.info("State store migration OK at %s", os.path.abspath(db_path))
    finally:
        conn.close()


# =========================================================================
# Lock-retry helper
# =========================================================================

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    """Wrap *fn* with SQLite-lock retry."""
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d), retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


# =========================================================================
# Records
# =========================================================================


def read_record(conn: sqlite3.Connection, key: str) -> Optional[object]:
    """Return the decoded JSON record for *key*, or ``None``."""
    row = conn.execute("SELECT value FROM AppState WHERE key = ?", (key,)).fetchone()
    return json.loads(row["value"]) if row else None


def load_state(
    conn: sqlite3.Connection,
) -> Tuple[Optional[List[LearningPath]], Dict[str, PathProgress]]:
    """Load ``(paths, progress)``.

    ``paths`` is ``None`` when nothing has been saved yet, so callers can
    tell an empty catalog from a fresh store.

    Raises:
        StorageError: if a record cannot be read or decoded.
    """
    try:
        raw_paths = read_record(conn, PATHS_KEY)
        raw_progress = read_record(conn, PROGRESS_KEY) or {}
        paths = (
            [LearningPath.model_validate(p) for p in raw_paths]
            if raw_paths is not None else None
        )
        progress = {
            pid: PathProgress.model_validate(p) for pid, p in raw_progress.items()
        }
    except (sqlite3.Error, ValueError, ValidationError) as exc:
        raise StorageError("failed to load state", exc) from exc

    logger.info(
        "Loaded %s path(s) and %d progress record(s).",
        "no" if paths is None else len(paths), len(progress),
    )
    return paths, progress


def save_state(
    conn: sqlite3.Connection,
    paths: List[LearningPath],
    progress: Dict[str, PathProgress],
) -> None:
    """Write both records in a single transaction.

    Raises:
        StorageError: if the write fails.
    """
    now = datetime.now(timezone.utc).isoformat()
    records = {
        PATHS_KEY: json.dumps([p.model_dump(mode="json") for p in paths]),
        PROGRESS_KEY: json.dumps(
            {pid: p.model_dump(mode="json") for pid, p in progress.items()}
        ),
    }

    def _do_save() -> None:
        with conn:
            for key, value in records.items():
                conn.execute(
                    """
                    INSERT INTO AppState (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE
                        SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value, now),
                )

    try:
        _retry_on_lock(_do_save)
    except sqlite3.Error as exc:
        raise StorageError("failed to save state", exc) from exc
    logger.debug("Saved %d path(s), %d progress record(s).", len(paths), len(progress))
