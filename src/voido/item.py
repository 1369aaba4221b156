from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from dateutil.parser import parse as parse_dt
from dateutil.parser import ParserError
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as ShapeError

from .errors import ValidationError
from .shared import (
    DATE_FMT,
    NONE_DUE,
    bug_msg,
    capitalize_first,
    today_str,
)

DEFAULT_TOPIC = "General"
DEFAULT_OWNER = "You"
DEFAULT_DESCRIPTION = "No description provided"


class Priority(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, text: str | None) -> "Priority":
        """Case-insensitive; None means the default, Medium."""
        if text is None:
            return cls.MEDIUM
        if isinstance(text, cls):
            return text
        key = str(text).strip().lower()
        for p in cls:
            if p.value.lower() == key:
                return p
        raise ValidationError("Priority must be 'medium', 'high', or 'low'.")

    @classmethod
    def from_store(cls, text: str) -> "Priority":
        try:
            return cls.parse(text)
        except ValidationError:
            bug_msg(f"unknown stored priority {text!r}, showing Medium")
            return cls.MEDIUM


class Status(Enum):
    PENDING = "Pending"
    ONGOING = "Ongoing"
    DONE = "Done"

    @classmethod
    def parse(cls, text: str | None) -> "Status":
        if text is None:
            return cls.PENDING
        if isinstance(text, cls):
            return text
        key = str(text).strip().lower()
        # "Completed" was used interchangeably with "Done"
        if key == "completed":
            return cls.DONE
        for s in cls:
            if s.value.lower() == key:
                return s
        raise ValidationError("Status must be 'pending', 'ongoing', or 'done'.")

    @classmethod
    def from_store(cls, text: str) -> "Status":
        try:
            return cls.parse(text)
        except ValidationError:
            bug_msg(f"unknown stored status {text!r}, showing Pending")
            return cls.PENDING

    @classmethod
    def parse_subtask(cls, text: str | None) -> "Status":
        """Subtasks are checkboxes: only Pending or Done (or Completed)."""
        try:
            status = cls.parse(text)
        except ValidationError:
            status = None
        if status not in (cls.PENDING, cls.DONE):
            raise ValidationError("Subtask status must be 'pending' or 'done'.")
        return status

    @classmethod
    def subtask_from_store(cls, text: str) -> "Status":
        try:
            return cls.parse_subtask(text)
        except ValidationError:
            bug_msg(f"unknown stored subtask status {text!r}, showing Pending")
            return cls.PENDING

    def toggled(self) -> "Status":
        """Subtask checkbox flip: Done <-> Pending."""
        return Status.PENDING if self is Status.DONE else Status.DONE


def _blank_is_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _shape_message(e: ShapeError) -> str:
    err = e.errors()[0]
    where = ".".join(str(part) for part in err["loc"])
    return f"{where}: {err['msg']}" if where else err["msg"]


class SubtaskRecord(BaseModel):
    """One subtask as it appears in a JSON or xlsx file."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    subtask_id: Optional[int] = None
    todo_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("todo_id", "task_id")
    )
    text: Optional[str] = None
    status: Optional[str] = None

    @field_validator("subtask_id", "todo_id", mode="before")
    @classmethod
    def blank_ids(cls, value):
        return _blank_is_none(value)


class TaskRecord(BaseModel):
    """One task as it appears in a JSON or xlsx file; subtasks are checked one by one."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[int] = None
    text: Optional[str] = Field(None, validation_alias=AliasChoices("text", "title"))
    priority: Optional[str] = None
    topic: Optional[str] = None
    desc: Optional[str] = None
    date_added: Optional[str] = None
    due: Optional[str] = None
    status: Optional[str] = None
    owner: Optional[str] = None
    notes: Optional[str] = None
    subtasks: Optional[list[dict]] = None

    @field_validator("id", mode="before")
    @classmethod
    def blank_id(cls, value):
        return _blank_is_none(value)


@dataclass
class Subtask:
    subtask_id: int
    task_id: int
    text: str
    status: Status = Status.PENDING

    @property
    def done(self) -> bool:
        return self.status is Status.DONE

    def to_dict(self) -> dict:
        return {
            "todo_id": self.task_id,
            "subtask_id": self.subtask_id,
            "text": self.text,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Subtask":
        try:
            record = SubtaskRecord.model_validate(data)
        except ShapeError as e:
            raise ValidationError(_shape_message(e)) from None
        text = (record.text or "").strip()
        if not text:
            raise ValidationError("Subtask text may not be empty.")
        return cls(
            subtask_id=record.subtask_id or 0,
            task_id=record.todo_id or 0,
            text=text,
            status=Status.parse_subtask(record.status),
        )


@dataclass
class Task:
    title: str
    priority: Priority = Priority.MEDIUM
    topic: str = DEFAULT_TOPIC
    description: str = DEFAULT_DESCRIPTION
    created_on: str = field(default_factory=today_str)
    due: str = NONE_DUE
    status: Status = Status.PENDING
    owner: str = DEFAULT_OWNER
    notes: str = ""
    subtasks: list[Subtask] = field(default_factory=list)
    id: int = 0

    def subtask_by_id(self, subtask_id: int) -> Subtask | None:
        for subtask in self.subtasks:
            if subtask.subtask_id == subtask_id:
                return subtask
        return None

    def done_count(self) -> int:
        return sum(1 for s in self.subtasks if s.done)

    def search_blob(self) -> str:
        """
        Everything a search query can hit, in one string:
        id, priority, topic, title, status, owner, notes, due, subtasks.
        """
        subtasks = " ".join(f"{s.text} {s.status.value}" for s in self.subtasks)
        return " ".join(
            [
                str(self.id),
                self.priority.value,
                self.topic,
                self.title,
                self.status.value,
                self.owner,
                self.notes,
                self.due,
                subtasks,
            ]
        )

    def to_dict(self) -> dict:
        """JSON interchange shape; the title is stored under "text", the description under "desc"."""
        return {
            "id": self.id,
            "priority": self.priority.value,
            "topic": self.topic,
            "text": self.title,
            "desc": self.description,
            "date_added": self.created_on,
            "status": self.status.value,
            "owner": self.owner,
            "due": self.due,
            "subtasks": [s.to_dict() for s in self.subtasks],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        if not isinstance(data, dict):
            raise ValidationError(f"Expected a task object, got {type(data).__name__}")
        try:
            record = TaskRecord.model_validate(data)
        except ShapeError as e:
            raise ValidationError(_shape_message(e)) from None
        title = (record.text or "").strip()
        if not title:
            raise ValidationError("Task text may not be empty.")

        subtasks = []
        for n, entry in enumerate(record.subtasks or [], start=1):
            try:
                subtasks.append(Subtask.from_dict(entry))
            except ValidationError as e:
                raise ValidationError(f"Subtask #{n}: {e}") from None

        return cls(
            id=record.id or 0,
            priority=Priority.parse(record.priority),
            topic=record.topic or DEFAULT_TOPIC,
            title=title,
            description=record.desc or DEFAULT_DESCRIPTION,
            created_on=record.date_added or today_str(),
            due=record.due or NONE_DUE,
            status=Status.parse(record.status),
            owner=record.owner or DEFAULT_OWNER,
            notes=record.notes or "",
            subtasks=subtasks,
        )


def normalize_due(due: str | None) -> str:
    """
    Parse a user supplied due date into ISO form.
    None, empty, "-" and "none" mean no due date.
    """
    if due is None:
        return NONE_DUE
    s = due.strip()
    if s.lower() in ("", "-", "none", NONE_DUE):
        return NONE_DUE
    try:
        return parse_dt(s).strftime(DATE_FMT)
    except (ParserError, ValueError, OverflowError):
        raise ValidationError(f"Could not understand due date {due!r}.") from None


def make_task(
    title: str,
    topic: str | None = None,
    priority: str | None = None,
    owner: str | None = None,
    due: str | None = None,
    description: str | None = None,
    subtasks: Iterable[str] = (),
) -> Task:
    """
    Validate and normalize user input into a new, unsaved Task.
    Raises ValidationError before anything touches the store.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("A task needs some text.")
    subtask_texts = [s.strip() for s in subtasks]
    if any(not s for s in subtask_texts):
        raise ValidationError("Subtask text may not be empty.")

    return Task(
        title=capitalize_first(title),
        priority=Priority.parse(priority),
        topic=capitalize_first(topic or DEFAULT_TOPIC) or DEFAULT_TOPIC,
        owner=capitalize_first(owner or DEFAULT_OWNER) or DEFAULT_OWNER,
        due=normalize_due(due),
        description=capitalize_first(description or DEFAULT_DESCRIPTION)
        or DEFAULT_DESCRIPTION,
        subtasks=[Subtask(subtask_id=0, task_id=0, text=s) for s in subtask_texts],
    )


def parse_subtask_spec(spec: str) -> tuple[int, str]:
    """
    "2:my task" -> (2, "my task"). Surrounding quotes on the text are dropped.
    """
    id_part, sep, text_part = spec.partition(":")
    if not sep:
        raise ValidationError("Expected format `ID:TEXT`")
    try:
        task_id = int(id_part.strip())
    except ValueError:
        raise ValidationError("ID must be a number") from None
    text = text_part.strip().strip('"').strip()
    if not text:
        raise ValidationError("Subtask text may not be empty.")
    return task_id, text
