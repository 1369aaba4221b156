from __future__ import annotations

from typing import Optional

from rich import box
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.css.query import NoMatches
from textual.widgets import Static

from .controller import KEYBINDINGS, Controller
from .item import Priority, Status, Task
from .modes import Mode
from .shared import ELLIPSIS_CHAR, format_date, log_msg, truncate_string

# Color hex values
KHAKI = "#F0E68C"
LIGHT_SKY_BLUE = "#87CEFA"
DARK_GRAY = "#A9A9A9"
LIME_GREEN = "#32CD32"
GOLD = "#FFD700"
TOMATO = "#FF6347"
CORNSILK = "#FFF8DC"

HEADER_COLOR = LIGHT_SKY_BLUE
TITLE_COLOR = CORNSILK
DIM_COLOR = DARK_GRAY
MATCH_COLOR = GOLD
SELECTED_COLOR = "bold yellow"
SELECTED_ROW = "reverse"

PRIORITY_COLOR = {
    Priority.HIGH: TOMATO,
    Priority.MEDIUM: GOLD,
    Priority.LOW: LIME_GREEN,
}

STATUS_COLOR = {
    Status.PENDING: KHAKI,
    Status.ONGOING: LIGHT_SKY_BLUE,
    Status.DONE: DIM_COLOR,
}

TITLE_WIDTH = 48

# Lines taken by everything except the table body: title, stats, search,
# status line and the table's own header and borders.
CHROME_LINES = 9


def key_name(event: events.Key) -> str:
    """
    Printable keys are passed on as the character itself ("P", "\\", " ");
    everything else by textual's key name ("enter", "escape", "down").
    """
    ch = event.character
    if ch and len(ch) == 1 and ch.isprintable():
        return ch
    return event.key


def cell_value(task: Task, column: str, date_format: str = "%Y-%m-%d") -> Text:
    column = column.upper()
    if column == "ID":
        return Text(str(task.id))
    if column == "PRIORITY":
        return Text(task.priority.value, style=PRIORITY_COLOR[task.priority])
    if column == "TOPIC":
        return Text(task.topic)
    if column == "TODO":
        return Text(truncate_string(task.title, TITLE_WIDTH))
    if column == "SUBS":
        if not task.subtasks:
            return Text("-", style=DIM_COLOR)
        return Text(f"{task.done_count()}/{len(task.subtasks)}")
    if column == "CREATED":
        return Text(format_date(task.created_on, date_format))
    if column == "DUE DATE":
        return Text(format_date(task.due, date_format))
    if column == "STATUS":
        return Text(task.status.value, style=STATUS_COLOR[task.status])
    if column == "OWNER":
        return Text(task.owner)
    if column == "DESCRIPTION":
        return Text(truncate_string(task.description, TITLE_WIDTH))
    return Text("")


def build_table(
    tasks: list[Task],
    columns: list[str],
    selected: Optional[int] = None,
    date_format: str = "%Y-%m-%d",
    title: Optional[str] = None,
) -> Table:
    table = Table(
        box=box.ROUNDED,
        expand=True,
        header_style=f"bold {HEADER_COLOR}",
        title=title,
    )
    for column in columns:
        table.add_column(column, no_wrap=column.upper() != "TODO")
    for idx, task in enumerate(tasks):
        table.add_row(
            *[cell_value(task, c, date_format) for c in columns],
            style=SELECTED_ROW if idx == selected else None,
        )
    return table


def visible_window(total: int, selected: Optional[int], height: int) -> tuple[int, int]:
    """Slice [start, end) of `total` rows that keeps `selected` on screen."""
    height = max(1, height)
    if total <= height:
        return 0, total
    sel = selected or 0
    start = max(0, min(sel - height // 2, total - height))
    return start, start + height


def with_cursor(value: str, position: int) -> Text:
    text = Text(value[:position])
    under = value[position : position + 1]
    if not under or under == "\n":
        text.append(" ", style="reverse")
        text.append(under)
    else:
        text.append(under, style="reverse")
    text.append(value[position + 1 :])
    return text


def detail_text(controller: Controller) -> Text:
    task = controller.detail_task
    if task is None:
        return Text("")
    fmt = controller.date_format
    text = Text()
    text.append(f"{task.title}\n", style=f"bold {TITLE_COLOR}")
    text.append("\n")
    rows = [
        ("ID", str(task.id)),
        ("Topic", task.topic),
        ("Priority", task.priority.value),
        ("Status", task.status.value),
        ("Owner", task.owner),
        ("Created", format_date(task.created_on, fmt)),
        ("Due", format_date(task.due, fmt)),
    ]
    for label, value in rows:
        text.append(f"{label:>9}: ", style=HEADER_COLOR)
        text.append(f"{value}\n")
    text.append("\nDescription\n", style=f"bold {HEADER_COLOR}")
    text.append(f"{task.description}\n")

    text.append(
        f"\nSubtasks {task.done_count()}/{len(task.subtasks)}\n",
        style=f"bold {HEADER_COLOR}",
    )
    if not task.subtasks:
        text.append("  none\n", style=DIM_COLOR)
    for idx, subtask in enumerate(task.subtasks):
        mark = "[x]" if subtask.done else "[ ]"
        style = SELECTED_COLOR if idx == controller.subtask_cursor.index else None
        if subtask.done and style is None:
            style = DIM_COLOR
        text.append(f"  {mark} {subtask.text}\n", style=style)

    text.append("\nNotes\n", style=f"bold {HEADER_COLOR}")
    if controller.editing_notes:
        notes = controller.notes_input
        text.append_text(with_cursor(notes.value, notes.cursor_position))
        text.append(
            f"\n\nline {notes.cursor_line + 1}, col {notes.cursor_col + 1}  Esc saves the notes",
            style=DIM_COLOR,
        )
    else:
        text.append(task.notes or "none", style=None if task.notes else DIM_COLOR)
        text.append(
            "\n\nj/k move, Space toggles, x deletes a subtask, n edits notes, Esc closes",
            style=DIM_COLOR,
        )
    return text


def menu_text(controller: Controller) -> Text:
    text = Text()
    text.append("Keybindings\n\n", style=f"bold {TITLE_COLOR}")
    for keys, desc in KEYBINDINGS:
        text.append(f"{keys:>14}  ", style=f"bold {HEADER_COLOR}")
        text.append(f"{desc}\n")
    text.append("\nSettings\n\n", style=f"bold {TITLE_COLOR}")
    text.append("       columns  ", style=f"bold {HEADER_COLOR}")
    text.append(", ".join(controller.columns) + "\n")
    text.append("   date format  ", style=f"bold {HEADER_COLOR}")
    text.append(controller.date_format + "\n")
    if controller.env:
        text.append("        config  ", style=f"bold {HEADER_COLOR}")
        text.append(f"{controller.env.config_path}\n")
    return text


class VoidoApp(App):
    """Draws the controller's state and forwards every key press to it."""

    TITLE = "voido"

    DEFAULT_CSS = """
    Screen {
        layers: base overlay;
    }
    #title {
        height: 1;
        text-style: bold;
    }
    #stats, #search, #status {
        height: 1;
    }
    #status {
        color: $warning;
    }
    #table {
        height: 1fr;
    }
    #overlay {
        layer: overlay;
        display: none;
        dock: top;
        height: auto;
        max-height: 90%;
        margin: 2 6;
        padding: 1 2;
        border: round $accent;
        background: $panel;
        overflow-y: auto;
    }
    #overlay.visible {
        display: block;
    }
    """

    def __init__(self, controller: Controller) -> None:
        super().__init__()
        self.controller = controller
        env = controller.env
        if env and env.config.ui.theme == "light":
            self.theme = "textual-light"

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("", id="title"),
            Static("", id="stats"),
            Static("", id="search"),
            Static("", id="table"),
            Static("", id="status"),
        )
        yield Static("", id="overlay")

    def on_mount(self) -> None:
        env = self.controller.env
        if env:
            for msg in env.config_messages:
                self.notify(msg, timeout=4)
        self.refresh_view()

    def on_key(self, event: events.Key) -> None:
        key = key_name(event)
        log_msg(f"{key = }, mode = {self.controller.modal.mode.name}")
        self.controller.handle_key(key)
        event.stop()
        if self.controller.should_quit:
            self.exit()
            return
        self.refresh_view()

    def on_resize(self, event: events.Resize) -> None:
        try:
            self.refresh_view()
        except NoMatches:
            # resized before compose finished
            return

    # ---------------- drawing ----------------

    def refresh_view(self) -> None:
        ctrl = self.controller
        self.query_one("#title", Static).update(
            Text(" voido  \\ for the menu", style=f"bold {TITLE_COLOR}")
        )
        self.query_one("#stats", Static).update(self._stats_line())
        self.query_one("#search", Static).update(self._search_line())
        self.query_one("#table", Static).update(self._table())
        self.query_one("#status", Static).update(Text(ctrl.last_message))

        overlay = self.query_one("#overlay", Static)
        body = self._overlay_body()
        if body is None:
            overlay.remove_class("visible")
        else:
            overlay.update(body)
            overlay.add_class("visible")

    def _stats_line(self) -> Text:
        stats = self.controller.stats()
        text = Text()
        text.append(f" Total: {stats.total}  ")
        text.append(f"Done: {stats.done}  ", style=STATUS_COLOR[Status.DONE])
        text.append(f"Ongoing: {stats.ongoing}  ", style=STATUS_COLOR[Status.ONGOING])
        text.append(f"Pending: {stats.pending}", style=STATUS_COLOR[Status.PENDING])
        return text

    def _search_line(self) -> Text:
        search = self.controller.search
        text = Text(" Search: ", style=HEADER_COLOR)
        if search.active:
            text.append_text(with_cursor(search.value, search.cursor_position))
        elif search.value:
            text.append(search.value, style=MATCH_COLOR)
        else:
            text.append("i to search", style=DIM_COLOR)
        return text

    def _table(self):
        ctrl = self.controller
        rows = ctrl.visible_tasks()
        if not rows:
            if ctrl.search.value:
                return Text(" No matching todos", style=DIM_COLOR)
            return Text(" No todos yet. Add one with `voido add`.", style=DIM_COLOR)
        height = self.size.height - CHROME_LINES
        start, end = visible_window(len(rows), ctrl.cursor.index, height)
        selected = None if ctrl.cursor.index is None else ctrl.cursor.index - start
        title = None
        if start or end < len(rows):
            title = f"{start + 1}-{end} of {len(rows)} {ELLIPSIS_CHAR}"
        return build_table(
            rows[start:end],
            ctrl.columns,
            selected=selected,
            date_format=ctrl.date_format,
            title=title,
        )

    def _overlay_body(self) -> Optional[Text]:
        ctrl = self.controller
        if not ctrl.modal.is_overlay:
            return None
        mode = ctrl.modal.mode
        task = ctrl.selected_task()
        if mode is Mode.DETAIL_VIEW:
            return detail_text(ctrl)
        if mode is Mode.DELETE_CONFIRM:
            subject = escape(task.title) if task else ""
            return Text.from_markup(
                f"[bold {TOMATO}]Delete this todo?[/bold {TOMATO}]\n\n"
                f"  {subject}\n\n"
                "y deletes, n or Esc cancels"
            )
        if mode is Mode.PRIORITY_CHANGE:
            current = task.priority.value if task else ""
            return Text.from_markup(
                f"[bold {TITLE_COLOR}]Set priority[/bold {TITLE_COLOR}] "
                f"(now {current})\n\n"
                f"  [bold {TOMATO}]H[/bold {TOMATO}]  High\n"
                f"  [bold {GOLD}]M[/bold {GOLD}]  Medium\n"
                f"  [bold {LIME_GREEN}]L[/bold {LIME_GREEN}]  Low\n\n"
                "Esc cancels"
            )
        if mode is Mode.MAIN_MENU:
            return menu_text(ctrl)
        return None
