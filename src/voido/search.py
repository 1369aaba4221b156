from __future__ import annotations

from typing import Optional, Sequence

from .item import Task

# Scoring weights for fuzzy_match. Only "is there a match" matters for
# filtering; the score is kept for callers that want to highlight.
SCORE_MATCH = 16
BONUS_CONSECUTIVE = 8
BONUS_WORD_START = 8
PENALTY_GAP = 1


def fuzzy_match(text: str, pattern: str) -> Optional[int]:
    """
    Subsequence match of `pattern` inside `text`.

    Smart case: an all-lowercase pattern matches case-insensitively, any
    uppercase character makes the whole match case-sensitive. Whitespace in
    the pattern is ignored. Returns a positive score or None.
    """
    chars = [c for c in pattern if not c.isspace()]
    if not chars:
        return 0
    case_sensitive = any(c.isupper() for c in chars)
    haystack = text if case_sensitive else text.lower()

    score = 0
    pos = 0
    prev = -2
    for c in chars:
        found = haystack.find(c, pos)
        if found == -1:
            return None
        score += SCORE_MATCH
        if found == prev + 1:
            score += BONUS_CONSECUTIVE
        else:
            score -= PENALTY_GAP * (found - pos)
        if found == 0 or not haystack[found - 1].isalnum():
            score += BONUS_WORD_START
        prev = found
        pos = found + 1
    return max(score, 1)


def match(tasks: Sequence[Task], query: str) -> list[int]:
    """
    Indices into `tasks` whose search blob fuzzy-matches `query`, in the
    original list order. An empty query keeps everything.
    """
    if not query.strip():
        return list(range(len(tasks)))
    return [
        idx
        for idx, task in enumerate(tasks)
        if fuzzy_match(task.search_blob(), query) is not None
    ]


class SearchInput:
    """
    An editable one-line (or multiline) text buffer with a cursor.

    Edit methods return True when they changed the value so the caller knows
    to re-run the filter.
    """

    def __init__(self, title: str = "Search", multiline: bool = False):
        self.title = title
        self.multiline = multiline
        self.value = ""
        self.cursor_position = 0
        self.active = False

    def __repr__(self) -> str:
        return f"SearchInput({self.title!r}, value={self.value!r}, active={self.active})"

    def focus(self):
        self.active = True
        self.cursor_position = len(self.value)

    def unfocus(self):
        self.active = False

    def set_value(self, value: str):
        self.value = value
        self.cursor_position = len(value)

    def clear(self) -> bool:
        changed = bool(self.value)
        self.value = ""
        self.cursor_position = 0
        return changed

    def insert(self, ch: str) -> bool:
        if not ch:
            return False
        self.value = (
            self.value[: self.cursor_position] + ch + self.value[self.cursor_position :]
        )
        self.cursor_position += len(ch)
        return True

    def backspace(self) -> bool:
        if self.cursor_position == 0:
            return False
        self.value = (
            self.value[: self.cursor_position - 1] + self.value[self.cursor_position :]
        )
        self.cursor_position -= 1
        return True

    def delete(self) -> bool:
        if self.cursor_position >= len(self.value):
            return False
        self.value = (
            self.value[: self.cursor_position] + self.value[self.cursor_position + 1 :]
        )
        return True

    def left(self):
        if self.cursor_position > 0:
            self.cursor_position -= 1

    def right(self):
        if self.cursor_position < len(self.value):
            self.cursor_position += 1

    def home(self):
        if self.multiline:
            self.cursor_position = self.value.rfind("\n", 0, self.cursor_position) + 1
        else:
            self.cursor_position = 0

    def end(self):
        if self.multiline:
            nl = self.value.find("\n", self.cursor_position)
            self.cursor_position = len(self.value) if nl == -1 else nl
        else:
            self.cursor_position = len(self.value)

    @property
    def cursor_line(self) -> int:
        return self.value.count("\n", 0, self.cursor_position)

    @property
    def cursor_col(self) -> int:
        return self.cursor_position - (
            self.value.rfind("\n", 0, self.cursor_position) + 1
        )

    def handle_key(self, key: str) -> bool:
        """
        Apply one key. Returns True when the value changed. Enter inserts a
        newline only in multiline mode.
        """
        if key == "backspace":
            return self.backspace()
        if key == "delete":
            return self.delete()
        if key == "left":
            self.left()
        elif key == "right":
            self.right()
        elif key == "home":
            self.home()
        elif key == "end":
            self.end()
        elif key == "enter":
            if self.multiline:
                return self.insert("\n")
        elif key == "space":
            return self.insert(" ")
        elif len(key) == 1 and key.isprintable():
            return self.insert(key)
        return False
