import json

import pytest
from openpyxl import Workbook, load_workbook

from voido.errors import ValidationError
from voido.import_export import (
    XLSX_COLUMNS,
    export_json,
    export_xlsx,
    import_json,
    import_xlsx,
)
from voido.item import Priority, Status


@pytest.fixture
def stored(populated_controller):
    """The sample tasks with some state worth carrying across a file."""
    ctrl = populated_controller
    ctrl.set_status(2, Status.ONGOING)
    ctrl.toggle_subtask(1, ctrl.task_by_id(1).subtasks[1].subtask_id)
    ctrl.save_notes(3, "bring the spare key")
    return ctrl


@pytest.mark.unit
class TestJson:
    def test_file_shape(self, stored, tmp_path):
        path = tmp_path / "todos.json"
        assert export_json(stored.tasks, path) == 4

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [d["text"] for d in data] == [t.title for t in stored.tasks]
        first = data[0]
        assert first["priority"] == "High"
        assert first["subtasks"][1] == {
            "todo_id": 1,
            "subtask_id": stored.tasks[0].subtasks[1].subtask_id,
            "text": "draft",
            "status": "Done",
        }

    def test_round_trip_into_a_fresh_store(self, stored, tmp_path):
        path = tmp_path / "todos.json"
        export_json(stored.tasks, path)
        before = [
            (t.title, t.status, t.notes, [(s.text, s.status) for s in t.subtasks])
            for t in stored.tasks
        ]

        stored.import_tasks(import_json(path))

        after = [
            (t.title, t.status, t.notes, [(s.text, s.status) for s in t.subtasks])
            for t in stored.tasks
        ]
        assert after == before
        # ids in the file are not reused; the store hands out new ones
        assert all(t.id > 4 for t in stored.tasks)

    def test_completed_means_done(self, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(
            json.dumps([{"text": "Legacy", "status": "Completed", "priority": "low"}]),
            encoding="utf-8",
        )
        (task,) = import_json(path)
        assert task.status is Status.DONE
        assert task.priority is Priority.LOW
        assert task.topic == "General"

    def test_not_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(ValidationError):
            import_json(path)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "object.json"
        path.write_text('{"text": "one"}', encoding="utf-8")
        with pytest.raises(ValidationError):
            import_json(path)

    def test_bad_priority_names_the_entry(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(
            json.dumps([{"text": "ok"}, {"text": "bad", "priority": "normal"}]),
            encoding="utf-8",
        )
        with pytest.raises(ValidationError, match="#2"):
            import_json(path)


    @pytest.mark.parametrize(
        "entry, where",
        [
            ({"id": "abc", "text": "bad id"}, "id: Input"),
            ({"text": "groceries", "subtasks": ["milk"]}, "subtasks.0: Input"),
            (
                {"text": "groceries", "subtasks": [{"subtask_id": "zz", "text": "milk"}]},
                "Subtask #1: subtask_id",
            ),
            ({"text": ["not", "a", "title"]}, "text: Input"),
        ],
    )
    def test_wrong_shapes_are_validation_errors(self, tmp_path, entry, where):
        path = tmp_path / "odd.json"
        path.write_text(json.dumps([entry]), encoding="utf-8")
        with pytest.raises(ValidationError, match=where):
            import_json(path)

    def test_numeric_fields_are_read_as_text(self, tmp_path):
        path = tmp_path / "numbers.json"
        path.write_text(
            json.dumps([{"id": "7", "text": 2025, "subtasks": [{"text": 3}]}]),
            encoding="utf-8",
        )
        (task,) = import_json(path)
        assert task.id == 7
        assert task.title == "2025"
        assert task.subtasks[0].text == "3"

    def test_subtasks_are_only_pending_or_done(self, tmp_path):
        path = tmp_path / "ongoing.json"
        path.write_text(
            json.dumps([{"text": "t", "subtasks": [{"text": "s", "status": "Ongoing"}]}]),
            encoding="utf-8",
        )
        with pytest.raises(ValidationError, match="Subtask status"):
            import_json(path)

    def test_completed_subtask_is_done(self, tmp_path):
        path = tmp_path / "completed.json"
        path.write_text(
            json.dumps([{"text": "t", "subtasks": [{"text": "s", "status": "Completed"}]}]),
            encoding="utf-8",
        )
        (task,) = import_json(path)
        assert task.subtasks[0].status is Status.DONE


@pytest.mark.unit
class TestXlsx:
    def test_headings(self, stored, tmp_path):
        path = tmp_path / "todos.xlsx"
        export_xlsx(stored.tasks, path)

        ws = load_workbook(path).active
        headings = [c.value for c in ws[1]]
        assert headings == XLSX_COLUMNS + ["SUBTASK 1", "SUBTASK 2"]
        assert ws["D2"].value == "Write the report"
        assert ws["K2"].value == "[ ] outline"
        assert ws["L2"].value == "[x] draft"

    def test_round_trip(self, stored, tmp_path):
        path = tmp_path / "todos.xlsx"
        export_xlsx(stored.tasks, path)

        tasks = import_xlsx(path)

        assert [t.title for t in tasks] == [t.title for t in stored.tasks]
        assert [t.status for t in tasks] == [t.status for t in stored.tasks]
        assert [t.priority for t in tasks] == [t.priority for t in stored.tasks]
        assert [(s.text, s.status) for s in tasks[0].subtasks] == [
            ("outline", Status.PENDING),
            ("draft", Status.DONE),
        ]
        assert tasks[2].notes == "bring the spare key"
        assert tasks[2].due == "2025-01-10"

    def test_empty_export(self, tmp_path):
        path = tmp_path / "empty.xlsx"
        assert export_xlsx([], path) == 0
        assert import_xlsx(path) == []

    def test_missing_todo_column(self, tmp_path):
        path = tmp_path / "other.xlsx"
        wb = Workbook()
        wb.active.append(["NAME", "AGE"])
        wb.active.append(["x", 3])
        wb.save(path)

        with pytest.raises(ValidationError):
            import_xlsx(path)

    def test_not_a_workbook(self, tmp_path):
        path = tmp_path / "fake.xlsx"
        path.write_text("plain text", encoding="utf-8")
        with pytest.raises(ValidationError):
            import_xlsx(path)
