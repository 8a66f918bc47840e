"""
Per-view state: the committed timeline, its cursors and the fetch-cycle guard.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from ..data.event_aggregator import EventAggregator, merge
from ..errors import InputValidationError
from ..models import AggregateResult, Event, FetchWindow, SourceResult, Timeline
from .navigation import ALL_GROUP, CursorSet, NavigationCursor

logger = logging.getLogger(__name__)


class ViewState:
    """
    Everything one view shows, changed only through begin_cycle/commit and
    the cursor moves.

    Fetch cycles are numbered in start order. Only the most recently started
    cycle may commit, so an older cycle that finishes late is dropped instead
    of overwriting newer data.
    """

    def __init__(self, name: str, group_keys: Sequence[str] = ()):
        self.name = name
        self.group_keys: List[str] = [ALL_GROUP] + [key for key in group_keys if key != ALL_GROUP]
        self.window: Optional[FetchWindow] = None
        self.results: Tuple[SourceResult, ...] = ()
        self.timeline = Timeline()
        self.cursors = CursorSet(self.group_keys)
        self.loading = False
        self.updated_at: Optional[datetime] = None
        self._started = 0
        self._committed = 0

    @property
    def latest_cycle(self) -> int:
        return self._started

    @property
    def committed_cycle(self) -> int:
        return self._committed

    def begin_cycle(self) -> int:
        """Start a fetch cycle and return its sequence number."""
        self._started += 1
        self.loading = True
        return self._started

    def commit(self, cycle: int, window: FetchWindow, aggregate: AggregateResult) -> bool:
        """
        Replace the visible state with a finished cycle's results.

        Returns:
            True if applied, False if a newer cycle has started since
        """
        if cycle != self._started:
            logger.info(f"Dropping stale cycle {cycle} for {self.name} (latest is {self._started})")
            return False

        self.window = window
        self.results = aggregate.results
        self.timeline = merge(aggregate.results)
        lengths = {ALL_GROUP: len(self.timeline.events)}
        lengths.update({key: len(events) for key, events in self.timeline.groups.items()})
        self.cursors.reset_all(lengths)
        for key in lengths:
            if key not in self.group_keys:
                self.group_keys.append(key)

        self._committed = cycle
        self.loading = False
        self.updated_at = datetime.now(timezone.utc)
        return True

    def abandon(self, cycle: int) -> None:
        """Clear the loading flag for a cycle that ended without results."""
        if cycle == self._started:
            self.loading = False

    def _cursor(self, group_key: str) -> NavigationCursor:
        if group_key not in self.cursors:
            raise InputValidationError(f"Unknown group {group_key!r} for view {self.name}")
        return self.cursors.cursor(group_key)

    def next(self, group_key: str = ALL_GROUP) -> NavigationCursor:
        cursor = self._cursor(group_key)
        cursor.next()
        return cursor

    def previous(self, group_key: str = ALL_GROUP) -> NavigationCursor:
        cursor = self._cursor(group_key)
        cursor.previous()
        return cursor

    def current(self, group_key: str = ALL_GROUP) -> Optional[Event]:
        self._cursor(group_key)
        return self.cursors.current(group_key, self.timeline.group(group_key))

    def banner(self) -> Optional[str]:
        return self.timeline.banner()

    def group_state(self, group_key: str) -> Dict:
        cursor = self._cursor(group_key)
        event = self.current(group_key)
        failed = next((result.error for result in self.results
                       if result.label == group_key and result.error is not None), None)
        return {
            **cursor.to_dict(),
            'current': event.to_dict() if event else None,
            'error': failed.to_dict() if failed else None,
        }

    def to_dict(self) -> Dict:
        return {
            'view': self.name,
            'window': self.window.to_dict() if self.window else None,
            'loading': self.loading,
            'cycle': self._committed,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'events': [event.to_dict() for event in self.timeline.events],
            'groups': {key: self.group_state(key) for key in self.group_keys},
            'errors': [error.to_dict() for error in self.timeline.errors],
            'banner': self.banner(),
        }


class EventView:
    """Binds an aggregator to a ViewState and runs refresh cycles."""

    def __init__(self, name: str, aggregator: EventAggregator, title: str = "", description: str = ""):
        self.name = name
        self.title = title or name
        self.description = description
        self.aggregator = aggregator
        self.state = ViewState(name, aggregator.labels)

    async def refresh(self, window: FetchWindow) -> bool:
        """
        Run one fetch cycle for a window and commit it if it is still the latest.

        Raises:
            InputValidationError: the window is unusable; nothing is fetched
        """
        self.aggregator.validate(window)
        cycle = self.state.begin_cycle()
        logger.info(f"Starting cycle {cycle} for {self.name}: {window.start}..{window.end}")
        try:
            aggregate = await self.aggregator.fetch_all(window)
        except BaseException:
            self.state.abandon(cycle)
            raise
        return self.state.commit(cycle, window, aggregate)

    async def close(self):
        await self.aggregator.close()
