from __future__ import annotations

from enum import Enum


class Mode(Enum):
    BROWSING = "browsing"
    SEARCHING = "searching"
    DETAIL_VIEW = "detail"
    DELETE_CONFIRM = "delete"
    PRIORITY_CHANGE = "priority"
    MAIN_MENU = "menu"


OVERLAYS = {
    Mode.DETAIL_VIEW,
    Mode.DELETE_CONFIRM,
    Mode.PRIORITY_CHANGE,
    Mode.MAIN_MENU,
}


class ModalError(RuntimeError):
    """A mode was opened while another one was still active."""


class ModalState:
    """
    Which single interaction mode owns the keyboard.

    One value instead of a flag per overlay: two open overlays cannot be
    represented. Anything other than BROWSING must be closed before another
    mode is opened.
    """

    def __init__(self):
        self.mode = Mode.BROWSING

    def __repr__(self) -> str:
        return f"ModalState({self.mode.name})"

    @property
    def is_browsing(self) -> bool:
        return self.mode is Mode.BROWSING

    @property
    def is_overlay(self) -> bool:
        return self.mode in OVERLAYS

    def open(self, mode: Mode):
        if mode is Mode.BROWSING:
            self.close()
            return
        if self.mode is not Mode.BROWSING:
            raise ModalError(f"cannot open {mode.name} while {self.mode.name} is open")
        self.mode = mode

    def close(self) -> Mode:
        """Return to BROWSING; gives back the mode that was closed."""
        closed = self.mode
        self.mode = Mode.BROWSING
        return closed
