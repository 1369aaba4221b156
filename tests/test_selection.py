import pytest

from voido.modes import ModalError, ModalState, Mode
from voido.selection import ListCursor


@pytest.mark.unit
class TestListCursor:
    def test_reset(self):
        cursor = ListCursor()
        cursor.reset(3)
        assert cursor.index == 0
        cursor.reset(0)
        assert cursor.index is None

    def test_wraps_at_both_ends(self):
        cursor = ListCursor(wrap=True)
        cursor.reset(3)
        cursor.previous()
        assert cursor.index == 2
        cursor.next()
        assert cursor.index == 0

    def test_stops_at_both_ends_without_wrap(self):
        cursor = ListCursor(wrap=False)
        cursor.reset(3)
        cursor.previous()
        assert cursor.index == 0
        for _ in range(5):
            cursor.next()
        assert cursor.index == 2

    def test_moving_from_nothing(self):
        cursor = ListCursor()
        cursor.length = 4
        cursor.next()
        assert cursor.index == 0

        cursor.clear()
        cursor.previous()
        assert cursor.index == 3

    def test_empty_list_selects_nothing(self):
        cursor = ListCursor()
        cursor.reset(0)
        cursor.next()
        assert cursor.index is None
        cursor.previous()
        assert cursor.index is None

    def test_clamp_after_the_list_shrinks(self):
        cursor = ListCursor()
        cursor.reset(10)
        cursor.select(7)
        cursor.clamp(3)
        assert cursor.index == 2
        cursor.clamp(5)
        assert cursor.index == 2
        cursor.clamp(0)
        assert cursor.index is None

    def test_select_is_bounded(self):
        cursor = ListCursor()
        cursor.reset(3)
        cursor.select(9)
        assert cursor.index == 2
        cursor.select(-4)
        assert cursor.index == 0
        cursor.select(None)
        assert cursor.index is None

    def test_remove_keeps_position(self):
        cursor = ListCursor()
        cursor.reset(4)
        cursor.select(1)
        cursor.remove(3)
        assert cursor.index == 1

    def test_remove_last_moves_up(self):
        cursor = ListCursor()
        cursor.reset(3)
        cursor.select(2)
        cursor.remove(2)
        assert cursor.index == 1

    def test_remove_only_item(self):
        cursor = ListCursor()
        cursor.reset(1)
        cursor.remove(0)
        assert cursor.index is None


@pytest.mark.unit
class TestModalState:
    def test_starts_browsing(self):
        state = ModalState()
        assert state.mode is Mode.BROWSING
        assert state.is_browsing
        assert not state.is_overlay

    def test_one_overlay_at_a_time(self):
        state = ModalState()
        state.open(Mode.DETAIL_VIEW)
        assert state.is_overlay

        with pytest.raises(ModalError):
            state.open(Mode.DELETE_CONFIRM)
        assert state.mode is Mode.DETAIL_VIEW

    def test_searching_is_not_an_overlay(self):
        state = ModalState()
        state.open(Mode.SEARCHING)
        assert not state.is_overlay
        with pytest.raises(ModalError):
            state.open(Mode.MAIN_MENU)

    def test_close_then_open(self):
        state = ModalState()
        state.open(Mode.PRIORITY_CHANGE)
        assert state.close() is Mode.PRIORITY_CHANGE
        state.open(Mode.MAIN_MENU)
        assert state.mode is Mode.MAIN_MENU

    def test_opening_browsing_closes(self):
        state = ModalState()
        state.open(Mode.MAIN_MENU)
        state.open(Mode.BROWSING)
        assert state.is_browsing
