import sqlite3
from pathlib import Path
from typing import Iterable

from .errors import NotFoundError, StartupError, StoreError
from .item import Priority, Status, Subtask, Task
from .shared import log_msg

CREDENTIAL_NAME = "gemini"

TASK_COLUMNS = "id, priority, topic, text, desc, date_added, due, status, owner, notes"


def _task_from_row(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        priority=Priority.from_store(row["priority"]),
        topic=row["topic"] or "",
        title=row["text"] or "",
        description=row["desc"] or "",
        created_on=row["date_added"],
        due=row["due"] or "",
        status=Status.from_store(row["status"]),
        owner=row["owner"],
        notes=row["notes"] or "",
    )


def _subtask_from_row(row: sqlite3.Row) -> Subtask:
    return Subtask(
        subtask_id=row["id"],
        task_id=row["task_id"],
        text=row["text"],
        status=Status.subtask_from_store(row["status"]),
    )


class DatabaseManager:
    """
    The durable store: tasks, their subtasks and the one-row credential table.

    Every write reports whether a matching row existed; sqlite failures are
    rolled back and re-raised as StoreError so callers never see a
    half-applied change.
    """

    def __init__(self, db_path: str | Path, reset: bool = False):
        self.db_path = Path(db_path)

        if reset and self.db_path.exists():
            self.db_path.unlink()

        try:
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StartupError(f"Cannot open database at {self.db_path}: {e}") from e
        try:
            self.setup_database()
        except StoreError as e:
            self.conn.close()
            raise StartupError(str(e)) from e

    def close(self):
        self.conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Run one statement in its own transaction."""
        try:
            with self.conn:
                return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            log_msg(f"store error: {e} while running {sql.split()[0]}")
            raise StoreError(str(e)) from e

    def setup_database(self):
        """
        Create (if missing) the tables. Safe on every startup: never drops or
        truncates, and adds the notes column to files created before it existed.
        """
        # ---------------- Credentials ----------------
        self._execute("""
            CREATE TABLE IF NOT EXISTS model (
                id     INTEGER PRIMARY KEY,
                name   TEXT NOT NULL,
                apikey TEXT NOT NULL
            )
        """)

        # ---------------- Tasks ----------------
        self._execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                priority   TEXT NOT NULL,               -- 'Low','Medium','High'
                topic      TEXT,
                text       TEXT,
                desc       TEXT,
                date_added TEXT NOT NULL,               -- 'YYYY-MM-DD'
                due        TEXT,                        -- 'YYYY-MM-DD' or 'none due'
                status     TEXT NOT NULL,               -- 'Pending','Ongoing','Done'
                owner      TEXT NOT NULL,
                notes      TEXT NOT NULL DEFAULT ''
            )
        """)
        columns = {
            row["name"] for row in self.conn.execute("PRAGMA table_info(tasks)")
        }
        if "notes" not in columns:
            log_msg("adding notes column to tasks")
            self._execute("ALTER TABLE tasks ADD COLUMN notes TEXT NOT NULL DEFAULT ''")

        # ---------------- Subtasks ----------------
        self._execute("""
            CREATE TABLE IF NOT EXISTS subtasks (
                id      INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL,
                text    TEXT NOT NULL,
                status  TEXT NOT NULL,                  -- 'Pending','Done'
                FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
            )
        """)
        self._execute("""
            CREATE INDEX IF NOT EXISTS idx_subtasks_task
            ON subtasks(task_id)
        """)

    # ---------------- Reads ----------------

    def _subtasks_for(self, task_id: int) -> list[Subtask]:
        cur = self.conn.execute(
            "SELECT id, task_id, text, status FROM subtasks WHERE task_id = ? ORDER BY id",
            (task_id,),
        )
        return [_subtask_from_row(row) for row in cur.fetchall()]

    def list_all(self) -> list[Task]:
        """All tasks in id order, each with its subtasks in insertion order."""
        try:
            cur = self.conn.execute(f"SELECT {TASK_COLUMNS} FROM tasks ORDER BY id")
            tasks = [_task_from_row(row) for row in cur.fetchall()]
            for task in tasks:
                task.subtasks = self._subtasks_for(task.id)
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return tasks

    def get_task(self, task_id: int) -> Task:
        try:
            row = self.conn.execute(
                f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"No todo found with id: {task_id}")
            task = _task_from_row(row)
            task.subtasks = self._subtasks_for(task_id)
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return task

    def count_tasks(self) -> int:
        return self._execute("SELECT COUNT(*) FROM tasks").fetchone()[0]

    def get_credential(self) -> str:
        row = self._execute(
            "SELECT apikey FROM model WHERE name = ? ORDER BY id LIMIT 1",
            (CREDENTIAL_NAME,),
        ).fetchone()
        if row is None:
            raise NotFoundError("No API key set. Use `voido apikey KEY` first.")
        return row["apikey"]

    # ---------------- Writes ----------------

    def _insert(self, task: Task) -> int:
        """INSERT one task and its subtasks; caller owns the transaction."""
        cur = self.conn.execute(
            """
            INSERT INTO tasks (
                priority, topic, text, desc, date_added, due, status, owner, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.priority.value,
                task.topic,
                task.title,
                task.description,
                task.created_on,
                task.due,
                task.status.value,
                task.owner,
                task.notes,
            ),
        )
        task_id = cur.lastrowid
        self.conn.executemany(
            "INSERT INTO subtasks (task_id, text, status) VALUES (?, ?, ?)",
            [(task_id, s.text, s.status.value) for s in task.subtasks],
        )
        return task_id

    def insert_task(self, task: Task) -> int:
        try:
            with self.conn:
                task_id = self._insert(task)
        except sqlite3.Error as e:
            log_msg(f"store error adding {task.title!r}: {e}")
            raise StoreError(str(e)) from e
        log_msg(f"added task {task_id} with {len(task.subtasks)} subtasks")
        return task_id

    def delete_task(self, task_id: int) -> bool:
        """Remove the task and its subtasks together."""
        try:
            with self.conn:
                self.conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
                changed = (
                    self.conn.execute(
                        "DELETE FROM tasks WHERE id = ?", (task_id,)
                    ).rowcount
                    > 0
                )
        except sqlite3.Error as e:
            log_msg(f"store error deleting {task_id}: {e}")
            raise StoreError(str(e)) from e
        log_msg(f"delete task {task_id}: {changed = }")
        return changed

    def update_status(self, task_id: int, status: Status) -> bool:
        cur = self._execute(
            "UPDATE tasks SET status = ? WHERE id = ?", (status.value, task_id)
        )
        log_msg(f"task {task_id} status -> {status.value}: {cur.rowcount}")
        return cur.rowcount > 0

    def update_priority(self, task_id: int, priority: Priority) -> bool:
        cur = self._execute(
            "UPDATE tasks SET priority = ? WHERE id = ?", (priority.value, task_id)
        )
        log_msg(f"task {task_id} priority -> {priority.value}: {cur.rowcount}")
        return cur.rowcount > 0

    def update_notes(self, task_id: int, notes: str) -> bool:
        cur = self._execute("UPDATE tasks SET notes = ? WHERE id = ?", (notes, task_id))
        log_msg(f"task {task_id} notes ({len(notes)} chars): {cur.rowcount}")
        return cur.rowcount > 0

    def append_subtask(self, task_id: int, text: str) -> int:
        """Add a Pending subtask; raises NotFoundError when the task is gone."""
        try:
            with self.conn:
                exists = self.conn.execute(
                    "SELECT 1 FROM tasks WHERE id = ?", (task_id,)
                ).fetchone()
                if exists is None:
                    raise NotFoundError(f"No todo found with id: {task_id}")
                cur = self.conn.execute(
                    "INSERT INTO subtasks (task_id, text, status) VALUES (?, ?, ?)",
                    (task_id, text, Status.PENDING.value),
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        log_msg(f"appended subtask {cur.lastrowid} to task {task_id}")
        return cur.lastrowid

    def set_subtask_status(self, task_id: int, subtask_id: int, status: Status) -> bool:
        cur = self._execute(
            "UPDATE subtasks SET status = ? WHERE task_id = ? AND id = ?",
            (status.value, task_id, subtask_id),
        )
        log_msg(
            f"subtask {subtask_id} of task {task_id} -> {status.value}: {cur.rowcount}"
        )
        return cur.rowcount > 0

    def delete_subtask(self, subtask_id: int) -> bool:
        cur = self._execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,))
        log_msg(f"delete subtask {subtask_id}: {cur.rowcount}")
        return cur.rowcount > 0

    def clear_all(self) -> int:
        """Delete every task and subtask; returns the number of tasks removed."""
        try:
            with self.conn:
                self.conn.execute("DELETE FROM subtasks")
                removed = self.conn.execute("DELETE FROM tasks").rowcount
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        log_msg(f"cleared {removed} tasks")
        return removed

    def replace_all(self, tasks: Iterable[Task]) -> int:
        """
        Bulk import: clear both tables and insert `tasks` in one transaction.
        On any failure the previous rows are left exactly as they were.
        """
        count = 0
        try:
            with self.conn:
                self.conn.execute("DELETE FROM subtasks")
                self.conn.execute("DELETE FROM tasks")
                for task in tasks:
                    self._insert(task)
                    count += 1
        except sqlite3.Error as e:
            log_msg(f"import rolled back: {e}")
            raise StoreError(f"Import failed, nothing was changed: {e}") from e
        log_msg(f"replaced all tasks with {count} imported tasks")
        return count

    def set_credential(self, key: str, name: str = CREDENTIAL_NAME):
        """Keep exactly one credential row."""
        try:
            with self.conn:
                self.conn.execute("DELETE FROM model")
                self.conn.execute(
                    "INSERT INTO model (name, apikey) VALUES (?, ?)", (name, key)
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        log_msg(f"stored credential for {name}")
