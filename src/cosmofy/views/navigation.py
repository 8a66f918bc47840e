"""
Clamped previous/next navigation over a group of events.
"""

from typing import Dict, Iterable, Optional, Sequence

ALL_GROUP = "all"


class NavigationCursor:
    """
    Index into one group of events.

    The index always lies in [0, length - 1], or is 0 when the group is empty.
    Moving past either end is a silent no-op, and reset() always returns to 0.
    """

    def __init__(self, group_key: str, length: int = 0):
        self.group_key = group_key
        self.length = max(0, int(length))
        self.index = 0

    def previous(self) -> int:
        self.index = max(0, self.index - 1)
        return self.index

    def next(self) -> int:
        if self.length == 0:
            return self.index
        self.index = min(self.length - 1, self.index + 1)
        return self.index

    def reset(self, new_length: int) -> int:
        # always back to 0, whatever the previous position
        self.length = max(0, int(new_length))
        self.index = 0
        return self.index

    @property
    def empty(self) -> bool:
        return self.length == 0

    @property
    def at_start(self) -> bool:
        return self.index == 0

    @property
    def at_end(self) -> bool:
        return self.length == 0 or self.index >= self.length - 1

    def position_label(self, noun: str = "Event") -> str:
        """Human-readable position, e.g. "Event 2 of 5"."""
        if self.length == 0:
            return f"No {noun.lower()}s"
        return f"{noun} {self.index + 1} of {self.length}"

    def to_dict(self) -> Dict:
        return {
            'group': self.group_key,
            'index': self.index,
            'length': self.length,
            'position': self.position_label(),
            'has_previous': not self.at_start,
            'has_next': not self.at_end,
        }

    def __repr__(self):
        return f"NavigationCursor({self.group_key!r}, index={self.index}, length={self.length})"


class CursorSet:
    """One cursor per group key, created on demand."""

    def __init__(self, group_keys: Iterable[str] = ()):
        self._cursors: Dict[str, NavigationCursor] = {}
        for key in group_keys:
            self.cursor(key)

    def cursor(self, group_key: str) -> NavigationCursor:
        if group_key not in self._cursors:
            self._cursors[group_key] = NavigationCursor(group_key)
        return self._cursors[group_key]

    def __contains__(self, group_key: str) -> bool:
        return group_key in self._cursors

    def __iter__(self):
        return iter(self._cursors.values())

    def keys(self):
        return list(self._cursors)

    def reset_all(self, lengths: Dict[str, int]) -> None:
        """Reset every cursor (and create missing ones) against fresh group lengths."""
        for key, length in lengths.items():
            self.cursor(key).reset(length)
        for key, cursor in self._cursors.items():
            if key not in lengths:
                cursor.reset(0)

    def current(self, group_key: str, events: Sequence) -> Optional[object]:
        """The item under a group's cursor, or None for an empty group."""
        cursor = self.cursor(group_key)
        if cursor.empty or cursor.index >= len(events):
            return None
        return events[cursor.index]
