from __future__ import annotations

import json
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .errors import ValidationError
from .item import Status, Task
from .shared import DATE_FMT, log_msg

XLSX_COLUMNS = [
    "ID",
    "PRIORITY",
    "TOPIC",
    "TODO",
    "DESCRIPTION",
    "CREATED",
    "DUE DATE",
    "STATUS",
    "OWNER",
    "NOTES",
]

# heading -> key used by Task.from_dict
XLSX_KEYS = {
    "ID": "id",
    "PRIORITY": "priority",
    "TOPIC": "topic",
    "TODO": "text",
    "DESCRIPTION": "desc",
    "CREATED": "date_added",
    "DUE DATE": "due",
    "STATUS": "status",
    "OWNER": "owner",
    "NOTES": "notes",
}

SUBTASK_HEADING = "SUBTASK"
DONE_MARK = "[x]"
OPEN_MARK = "[ ]"
SHEET_TITLE = "Todos"


# ---------------- JSON ----------------


def export_json(tasks: Iterable[Task], path: str | Path) -> int:
    """Write `tasks` as a JSON array; returns how many were written."""
    data = [task.to_dict() for task in tasks]
    Path(path).write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")
    log_msg(f"exported {len(data)} tasks to {path}")
    return len(data)


def import_json(path: str | Path) -> list[Task]:
    """
    Read and validate a JSON export. Nothing is written here; the caller
    decides whether to hand the result to `replace_all`.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValidationError(f"{path} should hold a list of todos.")
    tasks = []
    for n, entry in enumerate(data, start=1):
        try:
            tasks.append(Task.from_dict(entry))
        except ValidationError as e:
            raise ValidationError(f"Todo #{n} in {path}: {e}") from e
    log_msg(f"read {len(tasks)} tasks from {path}")
    return tasks


# ---------------- Spreadsheet ----------------


def _subtask_cell(text: str, done: bool) -> str:
    return f"{DONE_MARK if done else OPEN_MARK} {text}"


def _parse_subtask_cell(value: str) -> dict:
    value = value.strip()
    status = Status.PENDING
    if value.lower().startswith(DONE_MARK):
        status = Status.DONE
        value = value[len(DONE_MARK) :]
    elif value.startswith(OPEN_MARK):
        value = value[len(OPEN_MARK) :]
    return {"text": value.strip(), "status": status.value}


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FMT)
    return str(value).strip()


def export_xlsx(tasks: Iterable[Task], path: str | Path) -> int:
    """One row per task; subtasks spill into trailing SUBTASK n columns."""
    tasks = list(tasks)
    width = max((len(t.subtasks) for t in tasks), default=0)
    headings = XLSX_COLUMNS + [f"{SUBTASK_HEADING} {n}" for n in range(1, width + 1)]

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(headings)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for task in tasks:
        ws.append(
            [
                task.id,
                task.priority.value,
                task.topic,
                task.title,
                task.description,
                task.created_on,
                task.due,
                task.status.value,
                task.owner,
                task.notes,
            ]
            + [_subtask_cell(s.text, s.done) for s in task.subtasks]
        )

    for idx, heading in enumerate(headings, start=1):
        longest = max(
            [len(heading)] + [len(_cell_text(c.value)) for c in ws[get_column_letter(idx)]]
        )
        ws.column_dimensions[get_column_letter(idx)].width = min(longest + 2, 60)
    ws.freeze_panes = "A2"

    wb.save(path)
    log_msg(f"exported {len(tasks)} tasks to {path}")
    return len(tasks)


def import_xlsx(path: str | Path) -> list[Task]:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ValidationError(f"{path} is not a readable xlsx workbook: {e}") from e

    try:
        ws = wb[SHEET_TITLE] if SHEET_TITLE in wb.sheetnames else wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValidationError(f"{path} is empty.")
        headings = [_cell_text(h).upper() for h in header]
        if "TODO" not in headings:
            raise ValidationError(f"{path} has no TODO column.")

        tasks = []
        for n, row in enumerate(rows, start=2):
            if all(v is None or _cell_text(v) == "" for v in row):
                continue
            data: dict = {"subtasks": []}
            for heading, value in zip(headings, row):
                text = _cell_text(value)
                if heading in XLSX_KEYS:
                    data[XLSX_KEYS[heading]] = text
                elif heading.startswith(SUBTASK_HEADING) and text:
                    data["subtasks"].append(_parse_subtask_cell(text))
            try:
                data["id"] = int(data.get("id") or 0)
            except ValueError:
                data["id"] = 0
            try:
                tasks.append(Task.from_dict(data))
            except ValidationError as e:
                raise ValidationError(f"Row {n} in {path}: {e}") from e
    finally:
        wb.close()

    log_msg(f"read {len(tasks)} tasks from {path}")
    return tasks
