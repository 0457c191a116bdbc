"""SQLite-backed entity store.

Each entity is persisted as a JSON document next to the columns the
store filters on (folder, state). Driver errors never escape: every
method turns :class:`sqlite3.Error` into ``Err(StoreError(UNAVAILABLE))``.
The connection is shared across threads; one re-entrant lock serializes
every transaction, including the read-then-write moves.

Usage::

    from jobdesk.core.store.sqlite import SqliteEntityStore

    store = SqliteEntityStore(":memory:")
    store.put_folder(JobFolder(name="Nightly"))
    store.list_folders().unwrap()
"""

from __future__ import annotations

import contextlib
import json
import sqlite3
import threading
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from jobdesk.core.enums import JobState
from jobdesk.core.errors import StoreError, StoreErrorKind, not_found
from jobdesk.core.logging import get_logger
from jobdesk.core.models import (
    UNCLASSIFIED_FOLDER,
    Job,
    JobFolder,
    OptimizingJob,
    VirtualFolder,
    folder_or_default,
)
from jobdesk.core.result import Err, Ok, Result
from jobdesk.core.store import codec

logger = get_logger(__name__)

T = TypeVar("T")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS jobdesk_folders (
        name TEXT PRIMARY KEY,
        data TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobdesk_jobs (
        job_id TEXT PRIMARY KEY,
        folder_name TEXT NOT NULL,
        state TEXT NOT NULL,
        data TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobdesk_optimizing_jobs (
        optimizing_job_id TEXT PRIMARY KEY,
        folder_name TEXT NOT NULL,
        data TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobdesk_virtual_folders (
        name TEXT PRIMARY KEY,
        data TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobdesk_job_classes (
        name TEXT PRIMARY KEY
    )
    """,
)


class SqliteEntityStore:
    """:class:`~jobdesk.core.protocols.EntityStore` over a single SQLite file."""

    def __init__(self, path: str = ":memory:") -> None:
        self._path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self.initialize()

    def initialize(self) -> None:
        for statement in SCHEMA:
            self._conn.execute(statement)
        self._conn.execute(
            "INSERT OR IGNORE INTO jobdesk_folders (name, data) VALUES (?, ?)",
            (UNCLASSIFIED_FOLDER, json.dumps(codec.folder_to_dict(JobFolder(name=UNCLASSIFIED_FOLDER)))),
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteEntityStore({self._path!r})"

    # ── helpers ──────────────────────────────────────────────────────────

    def _run(self, operation: str, fn: Callable[[sqlite3.Connection], Result[T]]) -> Result[T]:
        with self._lock:
            try:
                result = fn(self._conn)
            except sqlite3.Error as e:
                self._rollback()
                logger.warning("store_unavailable", operation=operation, error=str(e))
                return Err(StoreError(f"Store unavailable during {operation}: {e}", cause=e))
            except (TypeError, ValueError) as e:
                self._rollback()
                return Err(StoreError(f"Cannot {operation}: {e}", kind=StoreErrorKind.INVALID, cause=e))
            if result.is_ok():
                self._conn.commit()
            else:
                self._rollback()
            return result

    def _rollback(self) -> None:
        # A closed connection has nothing left to roll back.
        with contextlib.suppress(sqlite3.Error):
            self._conn.rollback()

    @staticmethod
    def _folder_exists(conn: sqlite3.Connection, folder_name: str | None) -> StoreError | None:
        name = folder_or_default(folder_name)
        row = conn.execute("SELECT 1 FROM jobdesk_folders WHERE name = ?", (name,)).fetchone()
        if row is None:
            return StoreError(f"Job folder {name!r} does not exist", kind=StoreErrorKind.INVALID)
        return None

    @staticmethod
    def _load(row: Any, decode: Callable[[dict[str, Any]], Any]) -> Any:
        return decode(json.loads(row["data"]))

    # ── Jobs ─────────────────────────────────────────────────────────────

    def get_job(self, job_id: str) -> Result[Job]:
        def op(conn: sqlite3.Connection) -> Result[Job]:
            row = conn.execute("SELECT data FROM jobdesk_jobs WHERE job_id = ?", (job_id,)).fetchone()
            if row is None:
                return Err(not_found("job", job_id))
            return Ok(self._load(row, codec.job_from_dict))

        return self._run("get_job", op)

    def put_job(self, job: Job) -> Result[Job]:
        def op(conn: sqlite3.Connection) -> Result[Job]:
            if (error := self._folder_exists(conn, job.folder_name)) is not None:
                return Err(error)
            conn.execute(
                "INSERT OR REPLACE INTO jobdesk_jobs (job_id, folder_name, state, data) VALUES (?, ?, ?, ?)",
                (job.job_id, job.folder, job.state.value, json.dumps(codec.job_to_dict(job))),
            )
            return Ok(job)

        return self._run("put_job", op)

    def remove_job(self, job_id: str) -> Result[None]:
        def op(conn: sqlite3.Connection) -> Result[None]:
            cursor = conn.execute("DELETE FROM jobdesk_jobs WHERE job_id = ?", (job_id,))
            if cursor.rowcount == 0:
                return Err(not_found("job", job_id))
            return Ok(None)

        return self._run("remove_job", op)

    def move_job(self, job_id: str, folder_name: str) -> Result[Job]:
        with self._lock:
            match self.get_job(job_id):
                case Err() as err:
                    return err
                case Ok(job):
                    job.folder_name = folder_name
                    return self.put_job(job)

    def list_jobs(
        self,
        folder_name: str | None = None,
        states: Sequence[JobState] | None = None,
    ) -> Result[list[Job]]:
        def op(conn: sqlite3.Connection) -> Result[list[Job]]:
            sql = "SELECT data FROM jobdesk_jobs"
            clauses: list[str] = []
            params: list[Any] = []
            if folder_name is not None:
                clauses.append("folder_name = ?")
                params.append(folder_or_default(folder_name))
            if states is not None:
                if not states:
                    return Ok([])
                clauses.append(f"state IN ({', '.join('?' for _ in states)})")
                params.extend(s.value for s in states)
            if clauses:
                sql += " WHERE " + " AND ".join(clauses)
            sql += " ORDER BY job_id"
            rows = conn.execute(sql, tuple(params)).fetchall()
            return Ok([self._load(r, codec.job_from_dict) for r in rows])

        return self._run("list_jobs", op)

    # ── Optimizing jobs ──────────────────────────────────────────────────

    def get_optimizing_job(self, optimizing_job_id: str) -> Result[OptimizingJob]:
        def op(conn: sqlite3.Connection) -> Result[OptimizingJob]:
            row = conn.execute(
                "SELECT data FROM jobdesk_optimizing_jobs WHERE optimizing_job_id = ?",
                (optimizing_job_id,),
            ).fetchone()
            if row is None:
                return Err(not_found("optimizing_job", optimizing_job_id))
            return Ok(self._load(row, codec.optimizing_job_from_dict))

        return self._run("get_optimizing_job", op)

    def put_optimizing_job(self, optimizing_job: OptimizingJob) -> Result[OptimizingJob]:
        def op(conn: sqlite3.Connection) -> Result[OptimizingJob]:
            if (error := self._folder_exists(conn, optimizing_job.folder_name)) is not None:
                return Err(error)
            conn.execute(
                "INSERT OR REPLACE INTO jobdesk_optimizing_jobs (optimizing_job_id, folder_name, data) "
                "VALUES (?, ?, ?)",
                (
                    optimizing_job.optimizing_job_id,
                    optimizing_job.folder,
                    json.dumps(codec.optimizing_job_to_dict(optimizing_job)),
                ),
            )
            return Ok(optimizing_job)

        return self._run("put_optimizing_job", op)

    def remove_optimizing_job(self, optimizing_job_id: str) -> Result[None]:
        def op(conn: sqlite3.Connection) -> Result[None]:
            cursor = conn.execute(
                "DELETE FROM jobdesk_optimizing_jobs WHERE optimizing_job_id = ?",
                (optimizing_job_id,),
            )
            if cursor.rowcount == 0:
                return Err(not_found("optimizing_job", optimizing_job_id))
            return Ok(None)

        return self._run("remove_optimizing_job", op)

    def move_optimizing_job(self, optimizing_job_id: str, folder_name: str) -> Result[OptimizingJob]:
        with self._lock:
            match self.get_optimizing_job(optimizing_job_id):
                case Err() as err:
                    return err
                case Ok(optimizing_job):
                    optimizing_job.folder_name = folder_name
                    return self.put_optimizing_job(optimizing_job)

    def list_optimizing_jobs(self, folder_name: str | None = None) -> Result[list[OptimizingJob]]:
        def op(conn: sqlite3.Connection) -> Result[list[OptimizingJob]]:
            if folder_name is None:
                rows = conn.execute(
                    "SELECT data FROM jobdesk_optimizing_jobs ORDER BY optimizing_job_id"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT data FROM jobdesk_optimizing_jobs WHERE folder_name = ? ORDER BY optimizing_job_id",
                    (folder_or_default(folder_name),),
                ).fetchall()
            return Ok([self._load(r, codec.optimizing_job_from_dict) for r in rows])

        return self._run("list_optimizing_jobs", op)

    # ── Real folders ─────────────────────────────────────────────────────

    def get_folder(self, name: str) -> Result[JobFolder]:
        def op(conn: sqlite3.Connection) -> Result[JobFolder]:
            row = conn.execute("SELECT data FROM jobdesk_folders WHERE name = ?", (name,)).fetchone()
            if row is None:
                return Err(not_found("folder", name))
            return Ok(self._load(row, codec.folder_from_dict))

        return self._run("get_folder", op)

    def put_folder(self, folder: JobFolder) -> Result[JobFolder]:
        def op(conn: sqlite3.Connection) -> Result[JobFolder]:
            conn.execute(
                "INSERT OR REPLACE INTO jobdesk_folders (name, data) VALUES (?, ?)",
                (folder.name, json.dumps(codec.folder_to_dict(folder))),
            )
            return Ok(folder)

        return self._run("put_folder", op)

    def remove_folder(self, name: str) -> Result[None]:
        def op(conn: sqlite3.Connection) -> Result[None]:
            cursor = conn.execute("DELETE FROM jobdesk_folders WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                return Err(not_found("folder", name))
            return Ok(None)

        return self._run("remove_folder", op)

    def list_folders(self) -> Result[list[JobFolder]]:
        def op(conn: sqlite3.Connection) -> Result[list[JobFolder]]:
            rows = conn.execute("SELECT data FROM jobdesk_folders ORDER BY name").fetchall()
            return Ok([self._load(r, codec.folder_from_dict) for r in rows])

        return self._run("list_folders", op)

    # ── Virtual folders ──────────────────────────────────────────────────

    def get_virtual_folder(self, name: str) -> Result[VirtualFolder]:
        def op(conn: sqlite3.Connection) -> Result[VirtualFolder]:
            row = conn.execute("SELECT data FROM jobdesk_virtual_folders WHERE name = ?", (name,)).fetchone()
            if row is None:
                return Err(not_found("virtual_folder", name))
            return Ok(self._load(row, codec.virtual_folder_from_dict))

        return self._run("get_virtual_folder", op)

    def put_virtual_folder(self, folder: VirtualFolder) -> Result[VirtualFolder]:
        def op(conn: sqlite3.Connection) -> Result[VirtualFolder]:
            conn.execute(
                "INSERT OR REPLACE INTO jobdesk_virtual_folders (name, data) VALUES (?, ?)",
                (folder.name, json.dumps(codec.virtual_folder_to_dict(folder))),
            )
            return Ok(folder)

        return self._run("put_virtual_folder", op)

    def remove_virtual_folder(self, name: str) -> Result[None]:
        def op(conn: sqlite3.Connection) -> Result[None]:
            cursor = conn.execute("DELETE FROM jobdesk_virtual_folders WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                return Err(not_found("virtual_folder", name))
            return Ok(None)

        return self._run("remove_virtual_folder", op)

    def list_virtual_folders(self) -> Result[list[VirtualFolder]]:
        def op(conn: sqlite3.Connection) -> Result[list[VirtualFolder]]:
            rows = conn.execute("SELECT data FROM jobdesk_virtual_folders ORDER BY name").fetchall()
            return Ok([self._load(r, codec.virtual_folder_from_dict) for r in rows])

        return self._run("list_virtual_folders", op)

    # ── Job classes ──────────────────────────────────────────────────────

    def list_job_classes(self) -> Result[list[str]]:
        def op(conn: sqlite3.Connection) -> Result[list[str]]:
            rows = conn.execute("SELECT name FROM jobdesk_job_classes ORDER BY name").fetchall()
            return Ok([r["name"] for r in rows])

        return self._run("list_job_classes", op)

    def add_job_class(self, class_name: str) -> Result[str]:
        def op(conn: sqlite3.Connection) -> Result[str]:
            try:
                conn.execute("INSERT INTO jobdesk_job_classes (name) VALUES (?)", (class_name,))
            except sqlite3.IntegrityError:
                return Err(
                    StoreError(f"Job class {class_name!r} is already defined", kind=StoreErrorKind.CONFLICT)
                )
            return Ok(class_name)

        return self._run("add_job_class", op)

    def remove_job_class(self, class_name: str) -> Result[None]:
        def op(conn: sqlite3.Connection) -> Result[None]:
            cursor = conn.execute("DELETE FROM jobdesk_job_classes WHERE name = ?", (class_name,))
            if cursor.rowcount == 0:
                return Err(not_found("job_class", class_name))
            return Ok(None)

        return self._run("remove_job_class", op)
