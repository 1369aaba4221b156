from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .errors import NotFoundError, ValidationError, VoidoError
from .item import Priority, Status, Task
from .model import DatabaseManager
from .modes import ModalState, Mode
from .search import SearchInput, match
from .selection import ListCursor
from .shared import log_msg
from .voido_env import VoidoEnvironment

STATUS_KEYS = {
    "d": Status.DONE,
    "o": Status.ONGOING,
    "p": Status.PENDING,
}

PRIORITY_KEYS = {
    "h": Priority.HIGH,
    "m": Priority.MEDIUM,
    "l": Priority.LOW,
}

MENU_KEYS = {"\\", "M"}

KEYBINDINGS = [
    ("Up/Down, k/j", "Navigate through the list of TODOs"),
    ("Enter, l", "Show detailed view of the selected TODO"),
    ("i, /", "Search (Enter keeps the filter, Esc clears it)"),
    ("Delete, x", "Delete the selected TODO"),
    ("d", "Mark the selected TODO as 'Done'"),
    ("p", "Mark the selected TODO as 'Pending'"),
    ("o", "Mark the selected TODO as 'Ongoing'"),
    ("P", "Change the priority of the selected TODO"),
    ("Space, d", "Details: toggle the highlighted subtask"),
    ("x", "Details: delete the highlighted subtask"),
    ("n", "Details: edit notes (Esc saves)"),
    ("\\, M", "Toggle this main menu"),
    ("Y / N", "Confirm or cancel a deletion"),
    ("q", "Quit the application"),
]


@dataclass(frozen=True)
class Stats:
    total: int
    done: int
    ongoing: int
    pending: int


class Controller:
    """
    Keeps the in-memory task list equal to the store.

    Every mutation writes through `db_manager` first and only touches
    `tasks` after the write succeeded:

    - patch in place (status, priority, notes): mutate the cached task by id
    - reload by id (subtask add, toggle or delete, new task): re-read the whole task
    - remove locally (task delete): drop it from the cache

    then re-runs the filter and re-bounds the cursors. Key events are routed
    by the single active mode in `modal`.
    """

    def __init__(
        self,
        database_path: str | Path,
        env: Optional[VoidoEnvironment] = None,
        reset: bool = False,
    ):
        self.db_manager = DatabaseManager(database_path, reset=reset)
        self.env = env

        self.tasks: list[Task] = []
        self.search = SearchInput("Search")
        self.filtered_indices: list[int] = []
        self.cursor = ListCursor(wrap=True)
        self.modal = ModalState()

        self.detail_task_id: Optional[int] = None
        self.subtask_cursor = ListCursor(wrap=False)
        self.notes_input = SearchInput("Notes", multiline=True)
        self.editing_notes = False

        self.messages: list[str] = []
        self.should_quit = False

        self.date_format = "%Y-%m-%d"
        self.columns: list[str] = []
        if self.env:
            self.date_format = self.env.config.ui.date_format
            self.columns = list(self.env.config.ui.columns)

        self.reload()
        self.cursor.reset(len(self.filtered_indices))

    # ---------------- cache and derived state ----------------

    def reload(self):
        """Replace the whole cache with the store's contents."""
        self.tasks = self.db_manager.list_all()
        log_msg(f"loaded {len(self.tasks)} tasks")
        self.refresh_filter()

    def refresh_filter(self):
        """Re-run the filter for the current query and re-bound both cursors."""
        self.filtered_indices = match(self.tasks, self.search.value)
        self.cursor.clamp(len(self.filtered_indices))
        if self.cursor.index is None and self.filtered_indices:
            self.cursor.reset(len(self.filtered_indices))
        task = self.detail_task
        if task is not None:
            self.subtask_cursor.clamp(len(task.subtasks))

    def index_of(self, task_id: int) -> Optional[int]:
        for idx, task in enumerate(self.tasks):
            if task.id == task_id:
                return idx
        return None

    def task_by_id(self, task_id: int) -> Optional[Task]:
        idx = self.index_of(task_id)
        return None if idx is None else self.tasks[idx]

    def visible_tasks(self) -> list[Task]:
        return [self.tasks[i] for i in self.filtered_indices]

    def selected_task(self) -> Optional[Task]:
        """The highlighted task, resolved through the filtered indices."""
        pos = self.cursor.index
        if pos is None or pos >= len(self.filtered_indices):
            return None
        original = self.filtered_indices[pos]
        if original >= len(self.tasks):
            return None
        return self.tasks[original]

    @property
    def detail_task(self) -> Optional[Task]:
        if self.detail_task_id is None:
            return None
        return self.task_by_id(self.detail_task_id)

    def selected_subtask(self):
        task = self.detail_task
        pos = self.subtask_cursor.index
        if task is None or pos is None or pos >= len(task.subtasks):
            return None
        return task.subtasks[pos]

    def stats(self) -> Stats:
        return Stats(
            total=len(self.tasks),
            done=sum(1 for t in self.tasks if t.status is Status.DONE),
            ongoing=sum(1 for t in self.tasks if t.status is Status.ONGOING),
            pending=sum(1 for t in self.tasks if t.status is Status.PENDING),
        )

    @property
    def last_message(self) -> str:
        return self.messages[-1] if self.messages else ""

    def notify(self, msg: str):
        self.messages.append(msg)
        log_msg(msg)

    # ---------------- patch in place ----------------

    def set_status(self, task_id: int, status: Status | str) -> Task:
        status = Status.parse(status)
        if not self.db_manager.update_status(task_id, status):
            raise NotFoundError(f"No todo found with id: {task_id}")
        task = self.task_by_id(task_id)
        if task is not None:
            task.status = status
        self.refresh_filter()
        return task

    def set_priority(self, task_id: int, priority: Priority | str) -> Task:
        priority = Priority.parse(priority)
        if not self.db_manager.update_priority(task_id, priority):
            raise NotFoundError(f"No todo found with id: {task_id}")
        task = self.task_by_id(task_id)
        if task is not None:
            task.priority = priority
        self.refresh_filter()
        return task

    def save_notes(self, task_id: int, notes: str) -> Task:
        if not self.db_manager.update_notes(task_id, notes):
            raise NotFoundError(f"No todo found with id: {task_id}")
        task = self.task_by_id(task_id)
        if task is not None:
            task.notes = notes
        self.refresh_filter()
        return task

    # ---------------- reload by id ----------------

    def _replace_from_store(self, task_id: int) -> Task:
        fresh = self.db_manager.get_task(task_id)
        idx = self.index_of(task_id)
        if idx is None:
            self.tasks.append(fresh)
        else:
            self.tasks[idx] = fresh
        self.refresh_filter()
        return fresh

    def add_task(self, task: Task) -> Task:
        task_id = self.db_manager.insert_task(task)
        return self._replace_from_store(task_id)

    def add_subtask(self, task_id: int, text: str) -> Task:
        text = text.strip()
        if not text:
            raise ValidationError("Subtask text may not be empty.")
        self.db_manager.append_subtask(task_id, text)
        return self._replace_from_store(task_id)

    def toggle_subtask(self, task_id: int, subtask_id: int) -> Task:
        task = self.task_by_id(task_id)
        subtask = task.subtask_by_id(subtask_id) if task else None
        if subtask is None:
            raise NotFoundError(
                f"No subtask found with id: {subtask_id} in todo {task_id}"
            )
        new_status = subtask.status.toggled()
        if not self.db_manager.set_subtask_status(task_id, subtask_id, new_status):
            raise NotFoundError(
                f"No subtask found with id: {subtask_id} in todo {task_id}"
            )
        return self._replace_from_store(task_id)

    # ---------------- remove locally ----------------

    def delete_task(self, task_id: int):
        if not self.db_manager.delete_task(task_id):
            raise NotFoundError(f"No todo found with id: {task_id}")
        idx = self.index_of(task_id)
        if idx is not None:
            del self.tasks[idx]
        self.filtered_indices = match(self.tasks, self.search.value)
        self.cursor.remove(len(self.filtered_indices))
        if self.detail_task_id == task_id:
            self.detail_task_id = None
            self.subtask_cursor.clear()

    def delete_subtask(self, task_id: int, subtask_id: int) -> Task:
        if not self.db_manager.delete_subtask(subtask_id):
            raise NotFoundError(f"No subtask found with id: {subtask_id}")
        task = self._replace_from_store(task_id)
        if task_id == self.detail_task_id:
            self.subtask_cursor.remove(len(task.subtasks))
        return task

    # ---------------- whole-store operations ----------------

    def import_tasks(self, tasks: list[Task]) -> int:
        count = self.db_manager.replace_all(tasks)
        self.reload()
        self.cursor.reset(len(self.filtered_indices))
        return count

    def clear_all(self) -> int:
        removed = self.db_manager.clear_all()
        self.reload()
        return removed

    def set_credential(self, key: str):
        self.db_manager.set_credential(key)

    def get_credential(self) -> str:
        return self.db_manager.get_credential()

    # ---------------- key routing ----------------

    def _attempt(self, label: str, fn: Callable, *args) -> bool:
        """Run a mutation for a key press; errors become status messages."""
        try:
            fn(*args)
        except VoidoError as e:
            self.notify(f"✘ {label}: {e}")
            return False
        return True

    def handle_key(self, key: str):
        """Route one key press to the handler for the active mode."""
        if key == " ":
            key = "space"
        mode = self.modal.mode
        if mode is Mode.SEARCHING:
            self._key_searching(key)
        elif mode is Mode.DETAIL_VIEW:
            self._key_detail(key)
        elif mode is Mode.DELETE_CONFIRM:
            self._key_delete_confirm(key)
        elif mode is Mode.PRIORITY_CHANGE:
            self._key_priority(key)
        elif mode is Mode.MAIN_MENU:
            self._key_menu(key)
        elif self.modal.is_browsing:
            self._key_browsing(key)

    def _key_browsing(self, key: str):
        if key in ("down", "j"):
            self.cursor.next()
        elif key in ("up", "k"):
            self.cursor.previous()
        elif key in ("enter", "l"):
            self.open_detail()
        elif key in ("i", "/"):
            self.start_search()
        elif key in STATUS_KEYS:
            task = self.selected_task()
            if task is not None:
                self._attempt(
                    "Error updating todo status",
                    self.set_status,
                    task.id,
                    STATUS_KEYS[key],
                )
        elif key == "P":
            if self.selected_task() is not None:
                self.modal.open(Mode.PRIORITY_CHANGE)
        elif key in ("x", "delete"):
            if self.selected_task() is not None:
                self.modal.open(Mode.DELETE_CONFIRM)
        elif key in MENU_KEYS:
            self.modal.open(Mode.MAIN_MENU)
        elif key == "q":
            self.should_quit = True

    def start_search(self):
        self.modal.open(Mode.SEARCHING)
        self.search.focus()

    def _key_searching(self, key: str):
        if key == "enter":
            self.search.unfocus()
            self.modal.close()
            self.open_detail()
        elif key == "escape":
            task = self.selected_task()
            self.search.unfocus()
            self.search.clear()
            self.modal.close()
            self.refresh_filter()
            if task is not None:
                # same task, now at its place in the full list
                self.cursor.select(self.index_of(task.id))
        elif key == "down":
            self.cursor.next()
        elif key == "up":
            self.cursor.previous()
        elif self.search.handle_key(key):
            self.refresh_filter()

    def open_detail(self):
        task = self.selected_task()
        if task is None:
            return
        self.modal.open(Mode.DETAIL_VIEW)
        self.detail_task_id = task.id
        self.subtask_cursor.reset(len(task.subtasks))
        self.editing_notes = False

    def close_overlay(self):
        """Back to browsing; a non-empty query is applied again."""
        closed = self.modal.close()
        if closed is Mode.DETAIL_VIEW:
            self.detail_task_id = None
            self.subtask_cursor.clear()
            self.editing_notes = False
            self.notes_input.unfocus()
        if self.search.value:
            self.refresh_filter()

    def _key_detail(self, key: str):
        task = self.detail_task
        if task is None:
            self.close_overlay()
            return

        if self.editing_notes:
            if key == "escape":
                self.editing_notes = False
                self.notes_input.unfocus()
                self._attempt(
                    "Error saving notes", self.save_notes, task.id, self.notes_input.value
                )
            else:
                self.notes_input.handle_key(key)
            return

        if key in ("down", "j"):
            self.subtask_cursor.length = len(task.subtasks)
            self.subtask_cursor.next()
        elif key in ("up", "k"):
            self.subtask_cursor.length = len(task.subtasks)
            self.subtask_cursor.previous()
        elif key in ("space", "d"):
            subtask = self.selected_subtask()
            if subtask is not None:
                self._attempt(
                    "Error updating subtask",
                    self.toggle_subtask,
                    task.id,
                    subtask.subtask_id,
                )
        elif key in ("x", "delete"):
            subtask = self.selected_subtask()
            if subtask is not None:
                self._attempt(
                    "Error deleting subtask",
                    self.delete_subtask,
                    task.id,
                    subtask.subtask_id,
                )
        elif key == "n":
            self.editing_notes = True
            self.notes_input.set_value(task.notes)
            self.notes_input.focus()
        elif key in ("escape", "h", "enter", "q"):
            self.close_overlay()

    def _key_delete_confirm(self, key: str):
        if key in ("y", "Y"):
            task = self.selected_task()
            self.close_overlay()
            if task is not None:
                self._attempt("Error deleting todo", self.delete_task, task.id)
        elif key in ("n", "N", "escape"):
            self.close_overlay()

    def _key_priority(self, key: str):
        if key.lower() in PRIORITY_KEYS and len(key) == 1:
            task = self.selected_task()
            self.close_overlay()
            if task is not None:
                self._attempt(
                    "Error updating priority",
                    self.set_priority,
                    task.id,
                    PRIORITY_KEYS[key.lower()],
                )
        elif key == "escape":
            self.close_overlay()

    def _key_menu(self, key: str):
        if key in MENU_KEYS or key in ("escape", "enter", "q"):
            self.close_overlay()
