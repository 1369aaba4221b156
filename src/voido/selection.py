from __future__ import annotations

from typing import Optional


class ListCursor:
    """
    The highlighted row of a list whose length changes underneath it.

    `index` is always None or a valid index for the last length this cursor
    was told about. The task list cursor wraps at both ends; the subtask
    cursor stops at them.
    """

    def __init__(self, wrap: bool = True):
        self.wrap = wrap
        self.index: Optional[int] = None
        self.length = 0

    def __repr__(self) -> str:
        return f"ListCursor(index={self.index}, length={self.length}, wrap={self.wrap})"

    def reset(self, length: int):
        self.length = length
        self.index = 0 if length else None

    def clear(self):
        self.index = None

    def select(self, index: Optional[int]):
        if index is None or not self.length:
            self.index = None
        else:
            self.index = max(0, min(index, self.length - 1))

    def clamp(self, length: int):
        """Re-bound after the list changed; an empty list selects nothing."""
        self.length = length
        if not length:
            self.index = None
        elif self.index is not None and self.index >= length:
            self.index = length - 1

    def remove(self, length_after: int):
        """The highlighted row was deleted; stay at the row that moved up."""
        self.length = length_after
        if not length_after:
            self.index = None
        elif self.index is not None:
            self.index = min(self.index, length_after - 1)

    def next(self):
        if not self.length:
            self.index = None
        elif self.index is None:
            self.index = 0
        elif self.index >= self.length - 1:
            self.index = 0 if self.wrap else self.length - 1
        else:
            self.index += 1

    def previous(self):
        if not self.length:
            self.index = None
        elif self.index is None:
            self.index = self.length - 1 if self.wrap else 0
        elif self.index == 0:
            self.index = self.length - 1 if self.wrap else 0
        else:
            self.index -= 1
