"""
Aggregates events from multiple sources into one timeline.
"""

import asyncio
import logging
from typing import Dict, List, Sequence

from .base import SourceAdapter
from ..errors import InputValidationError, SourceError
from ..models import AggregateResult, ErrorDescriptor, FetchWindow, SourceResult, Timeline

logger = logging.getLogger(__name__)


def _failed(adapter: SourceAdapter, error: SourceError) -> SourceResult:
    return SourceResult(
        source_id=adapter.source_id,
        label=adapter.label,
        error=ErrorDescriptor.from_exception(error, adapter.label),
    )


async def _run_adapter(adapter: SourceAdapter, window: FetchWindow) -> SourceResult:
    """Run one adapter; any failure other than bad input becomes a failed SourceResult."""
    try:
        events = await adapter.fetch(window)
    except InputValidationError:
        raise
    except SourceError as e:
        logger.error(f"Error fetching {adapter.label}: {str(e)}")
        return _failed(adapter, e)
    except Exception as e:
        logger.exception(f"Unexpected error fetching {adapter.label}")
        return _failed(adapter, SourceError(adapter.source_id, f"unexpected error: {e}", adapter.label))
    return SourceResult(source_id=adapter.source_id, label=adapter.label, events=tuple(events))


async def fetch_all(window: FetchWindow, adapters: Sequence[SourceAdapter]) -> AggregateResult:
    """
    Fetch every source concurrently with per-source failure isolation.

    Args:
        window: Date range and optional observer
        adapters: Sources in registration order

    Returns:
        One SourceResult per adapter, in registration order

    Raises:
        InputValidationError: if any adapter rejects the window (before any I/O)
    """
    for adapter in adapters:
        adapter.validate(window)

    results = await asyncio.gather(*[_run_adapter(adapter, window) for adapter in adapters])
    aggregate = AggregateResult(results=tuple(results))

    failed = sum(1 for result in aggregate.results if result.error is not None)
    logger.info(f"Fetched {len(adapters)} sources for {window.start}..{window.end}, {failed} failed")
    return aggregate


def merge(results: Sequence[SourceResult]) -> Timeline:
    """
    Merge per-source results into a time-ascending timeline.

    Events are concatenated in registration order and stably sorted by time,
    so ties keep source order. Events reported by more than one source are not
    deduplicated.
    """
    events = [event for result in results for event in result.events]
    events.sort(key=lambda event: event.occurs_at)

    groups: Dict[str, tuple] = {}
    for result in results:
        groups[result.label] = groups.get(result.label, ()) + tuple(
            sorted(result.events, key=lambda event: event.occurs_at)
        )

    errors = tuple(result.error for result in results if result.error is not None)
    return Timeline(events=tuple(events), errors=errors, groups=groups)


class EventAggregator:
    """Owns a set of source adapters and runs fetch cycles over them."""

    def __init__(self, adapters: Sequence[SourceAdapter]):
        """Initialize data sources, in registration order."""
        self.adapters: List[SourceAdapter] = list(adapters)

    @property
    def labels(self) -> List[str]:
        return [adapter.label for adapter in self.adapters]

    def validate(self, window: FetchWindow) -> None:
        """Raise InputValidationError if any source rejects the window."""
        for adapter in self.adapters:
            adapter.validate(window)

    async def fetch_all(self, window: FetchWindow) -> AggregateResult:
        return await fetch_all(window, self.adapters)

    async def get_timeline(self, window: FetchWindow) -> Timeline:
        """Fetch every source and merge the results."""
        aggregate = await self.fetch_all(window)
        return merge(aggregate.results)

    async def close(self):
        """Close every adapter's HTTP session."""
        await asyncio.gather(*[adapter.disconnect() for adapter in self.adapters])

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
