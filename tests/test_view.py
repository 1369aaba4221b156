import asyncio
from types import SimpleNamespace

import pytest

from voido.item import Status, Subtask, Task, make_task
from voido.modes import Mode
from voido.view import (
    VoidoApp,
    build_table,
    cell_value,
    detail_text,
    key_name,
    menu_text,
    visible_window,
)


def _key(key: str, character: str | None = None):
    return SimpleNamespace(key=key, character=character)


@pytest.mark.unit
class TestKeyName:
    def test_printable_keys_use_the_character(self):
        assert key_name(_key("P", "P")) == "P"
        assert key_name(_key("backslash", "\\")) == "\\"
        assert key_name(_key("space", " ")) == " "
        assert key_name(_key("slash", "/")) == "/"

    def test_other_keys_use_the_name(self):
        assert key_name(_key("enter", "\r")) == "enter"
        assert key_name(_key("escape", "\x1b")) == "escape"
        assert key_name(_key("backspace", "\x7f")) == "backspace"
        assert key_name(_key("down")) == "down"


@pytest.mark.unit
class TestVisibleWindow:
    def test_everything_fits(self):
        assert visible_window(3, 2, 10) == (0, 3)

    def test_keeps_selection_centered(self):
        assert visible_window(10, 5, 4) == (3, 7)

    def test_clamps_at_both_ends(self):
        assert visible_window(10, 0, 4) == (0, 4)
        assert visible_window(10, 9, 4) == (6, 10)
        assert visible_window(10, None, 4) == (0, 4)

    def test_tiny_terminal(self):
        start, end = visible_window(10, 4, -3)
        assert end - start == 1


@pytest.mark.unit
class TestCells:
    def test_subtask_progress(self):
        task = Task(
            title="t",
            subtasks=[
                Subtask(1, 1, "a", Status.DONE),
                Subtask(2, 1, "b"),
            ],
        )
        assert cell_value(task, "SUBs").plain == "1/2"
        assert cell_value(Task(title="t"), "SUBs").plain == "-"

    def test_dates_use_the_configured_format(self):
        task = Task(title="t", created_on="2025-01-02", due="2025-01-10")
        assert cell_value(task, "DUE DATE", "%d/%m/%Y").plain == "10/01/2025"
        assert cell_value(task, "CREATED", "%d/%m/%Y").plain == "02/01/2025"
        assert cell_value(Task(title="t"), "DUE DATE", "%d/%m/%Y").plain == "none due"

    def test_unknown_column_is_blank(self):
        assert cell_value(Task(title="t"), "COLOUR").plain == ""

    def test_table(self):
        tasks = [Task(title="one", id=1), Task(title="two", id=2)]
        table = build_table(tasks, ["ID", "TODO", "STATUS"], selected=1)
        assert table.row_count == 2
        assert [c.header for c in table.columns] == ["ID", "TODO", "STATUS"]


@pytest.mark.unit
class TestOverlayText:
    def test_detail(self, populated_controller, press):
        press(populated_controller, "enter", "space")
        text = detail_text(populated_controller).plain

        assert "Write the report" in text
        assert "[x] outline" in text
        assert "[ ] draft" in text
        assert "Subtasks 1/2" in text

    def test_detail_while_editing_notes(self, populated_controller, press):
        press(populated_controller, "enter", "n", "h", "i")
        text = detail_text(populated_controller).plain
        assert "hi" in text
        assert "Esc saves" in text
        assert "line 1, col 3" in text

    def test_menu_lists_keys_and_settings(self, populated_controller):
        text = menu_text(populated_controller).plain
        assert "Keybindings" in text
        assert "Delete the selected TODO" in text
        assert "columns" in text
        assert "PRIORITY" in text


@pytest.mark.unit
def test_app_routes_keys_to_the_controller(test_controller):
    ctrl = test_controller
    for title in ["first", "second", "third"]:
        ctrl.add_task(make_task(title))

    async def drive():
        app = VoidoApp(ctrl)
        async with app.run_test() as pilot:
            await pilot.press("j")
            assert ctrl.selected_task().title == "Second"
            await pilot.press("backslash")
            assert ctrl.modal.mode is Mode.MAIN_MENU
            await pilot.press("backslash")
            assert ctrl.modal.mode is Mode.BROWSING
            await pilot.press("q")

    asyncio.run(drive())
    assert ctrl.should_quit
