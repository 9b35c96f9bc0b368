# src/dayroute/storage/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StorageError, ValidationError
from ..core.models import NewTask, Schedule, ScheduleWithTasks, Task, TaskStatus, TaskType
from ..core.ports import LocationLookup
from ..core.timeutil import is_valid_hhmm, utc_now
from .fields import UPDATABLE_TASK_FIELDS, normalize_task_update

logger = logging.getLogger(__name__)


class SqliteScheduleStore:
    """
    SQLite schedule/task store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - read-modify-write runs inside BEGIN IMMEDIATE, which takes the write lock
      up front, so concurrent updates of the same task cannot interleave
    """

    def __init__(self, db_path: str | Path, graph: LocationLookup) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._graph = graph
        self._ensure_schema()
        logger.info("SqliteScheduleStore ready db=%s tasks=%s", self._db_path, self.count_tasks())

    @property
    def graph(self) -> LocationLookup:
        return self._graph

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        """One write transaction; rolled back on any error."""
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    @contextlib.contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schedules (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL UNIQUE,
                    operator_name TEXT NOT NULL,
                    generated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    schedule_id TEXT NOT NULL REFERENCES schedules(id) ON DELETE CASCADE,
                    seq INTEGER NOT NULL DEFAULT 0,
                    type TEXT NOT NULL,
                    location_id TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    confirmed_at TEXT,
                    description TEXT NOT NULL DEFAULT '',
                    planned_start_time TEXT,
                    planned_end_time TEXT
                )
                """
            )

            # Migrations (safe): databases created before planned windows were tracked.
            cols = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                conn.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteScheduleStore migration: added column %s", name)

            add_col("planned_start_time", "TEXT")
            add_col("planned_end_time", "TEXT")

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_schedule_start ON tasks(schedule_id, start_time, seq)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(schedule_id, status)")

    @staticmethod
    def _dt_to_str(value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.astimezone()
        return value.astimezone(UTC).isoformat()

    @staticmethod
    def _str_to_dt(raw: str | None) -> datetime | None:
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            logger.warning("Unparseable timestamp in DB: %r", raw)
            return None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        try:
            task_type = TaskType(row["type"])
        except ValueError:
            task_type = TaskType.WORK
        status = TaskStatus.from_db(row["status"])
        return Task(
            id=str(row["id"]),
            schedule_id=str(row["schedule_id"]),
            type=task_type,
            location_id=row["location_id"],
            start_time=str(row["start_time"]),
            end_time=str(row["end_time"]),
            status=status,
            description=str(row["description"] or ""),
            confirmed_at=self._str_to_dt(row["confirmed_at"]) if status == TaskStatus.CONFIRMED else None,
            planned_start_time=row["planned_start_time"] or "",
            planned_end_time=row["planned_end_time"] or "",
            location=self._graph.location_by_id(row["location_id"]),
        )

    def _row_to_schedule(self, row: sqlite3.Row) -> Schedule:
        return Schedule(
            id=str(row["id"]),
            date=str(row["date"]),
            operator_name=str(row["operator_name"]),
            generated_at=self._str_to_dt(row["generated_at"]) or utc_now(),
        )

    def _fetch_task(self, conn: sqlite3.Connection, task_id: str) -> Task | None:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def _write_task(self, conn: sqlite3.Connection, task: Task) -> None:
        conn.execute(
            """
            UPDATE tasks
            SET status = ?,
                confirmed_at = ?,
                start_time = ?,
                end_time = ?,
                planned_start_time = ?,
                planned_end_time = ?
            WHERE id = ?
            """,
            (
                task.status.value,
                self._dt_to_str(task.confirmed_at),
                task.start_time,
                task.end_time,
                task.planned_start_time,
                task.planned_end_time,
                task.id,
            ),
        )

    # ---- schedules ----

    def count_tasks(self) -> int:
        with self._read() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def get_schedule(self, schedule_id: str) -> Schedule | None:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM schedules WHERE id = ?", (schedule_id,)).fetchone()
            return self._row_to_schedule(row) if row else None

    def get_schedule_by_date(self, date: str) -> Schedule | None:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM schedules WHERE date = ?", (date,)).fetchone()
            return self._row_to_schedule(row) if row else None

    def create_schedule_with_tasks(
        self,
        *,
        date: str,
        operator_name: str,
        tasks: Iterable[NewTask],
    ) -> Schedule:
        new_tasks = list(tasks)
        for nt in new_tasks:
            if not is_valid_hhmm(nt.start_time) or not is_valid_hhmm(nt.end_time):
                raise ValidationError(f"invalid task window {nt.start_time}-{nt.end_time}")

        schedule = Schedule(
            id=str(uuid.uuid4()),
            date=date,
            operator_name=operator_name,
            generated_at=utc_now(),
        )

        try:
            with self._tx() as conn:
                conn.execute(
                    "INSERT INTO schedules(id, date, operator_name, generated_at) VALUES (?, ?, ?, ?)",
                    (schedule.id, date, operator_name, self._dt_to_str(schedule.generated_at)),
                )
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        id, schedule_id, seq, type, location_id,
                        start_time, end_time, status, confirmed_at, description,
                        planned_start_time, planned_end_time
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', NULL, ?, ?, ?)
                    """,
                    [
                        (
                            str(uuid.uuid4()),
                            schedule.id,
                            seq,
                            nt.type.value,
                            nt.location_id,
                            nt.start_time,
                            nt.end_time,
                            nt.description,
                            nt.start_time,
                            nt.end_time,
                        )
                        for seq, nt in enumerate(new_tasks)
                    ],
                )
        except StorageError as e:
            if "UNIQUE" in str(e):
                raise ValidationError(f"a schedule for {date} already exists") from e
            raise

        logger.debug("Schedule created id=%s date=%s tasks=%s", schedule.id, date, len(new_tasks))
        return schedule

    def delete_schedule(self, schedule_id: str) -> int:
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE schedule_id = ?", (schedule_id,))
            removed = int(cur.rowcount)
            cur = conn.execute("DELETE FROM schedules WHERE id = ?", (schedule_id,))
            if cur.rowcount == 0:
                return 0
        logger.info("Schedule deleted id=%s tasks=%s", schedule_id, removed)
        return removed

    # ---- tasks ----

    def get_task(self, task_id: str) -> Task | None:
        with self._read() as conn:
            return self._fetch_task(conn, task_id)

    def list_tasks(self, schedule_id: str) -> list[Task]:
        with self._read() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE schedule_id = ?
                ORDER BY start_time ASC, seq ASC
                """,
                (schedule_id,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def update_task(self, task_id: str, **fields: Any) -> Task | None:
        unknown = set(fields) - UPDATABLE_TASK_FIELDS
        if unknown:
            raise ValidationError(f"cannot update task fields: {', '.join(sorted(unknown))}")

        with self._tx() as conn:
            current = self._fetch_task(conn, task_id)
            if current is None:
                return None
            updated = replace(current, **normalize_task_update(current, fields))
            self._write_task(conn, updated)
        return updated

    def try_transition(
        self,
        task_id: str,
        *,
        expected: Iterable[TaskStatus],
        status: TaskStatus,
        confirmed_at: datetime | None = None,
    ) -> Task | None:
        """
        Best-effort claim, same idea as a conditional UPDATE:
          status IN expected -> status = <status>

        Returns the updated task if this caller moved it, else None.
        """
        exp = {TaskStatus(e) for e in expected}
        if not exp:
            return None

        with self._tx() as conn:
            current = self._fetch_task(conn, task_id)
            if current is None or current.status not in exp:
                return None
            updated = replace(
                current,
                **normalize_task_update(current, {"status": status, "confirmed_at": confirmed_at}),
            )
            self._write_task(conn, updated)
        return updated

    # ---- combined queries ----

    def get_schedule_with_tasks(self, schedule_id: str) -> ScheduleWithTasks | None:
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return None
        return ScheduleWithTasks(schedule=schedule, tasks=self.list_tasks(schedule_id))

    def get_schedule_with_tasks_by_date(self, date: str) -> ScheduleWithTasks | None:
        schedule = self.get_schedule_by_date(date)
        if schedule is None:
            return None
        return ScheduleWithTasks(schedule=schedule, tasks=self.list_tasks(schedule.id))
