"""
Open Astronomy Catalog client for transients (supernovae, TDEs, ...) by discovery date.
Documentation: https://github.com/astrocatalogs/OACAPI
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List

from .base import SourceAdapter
from .formatting import NA, parse_timestamp
from ..errors import InputValidationError
from ..models import Event, EventCategory, FetchWindow, SourceId

logger = logging.getLogger(__name__)

# One catalog query per day; keep windows to about a month
MAX_WINDOW_DAYS = 31


class TransientAdapter(SourceAdapter):
    """Transients discovered on each day of the window."""

    BASE_URL = "https://api.astrocats.space"
    source_id = SourceId.TRANSIENT_CATALOG
    label = "Transient Discoveries"

    def validate(self, window: FetchWindow) -> None:
        if window.days > MAX_WINDOW_DAYS:
            raise InputValidationError(
                f"transient searches are limited to {MAX_WINDOW_DAYS} days, got {window.days}"
            )

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        batches = await asyncio.gather(*[self._discovered_on(day) for day in window.dates()])
        return [event for batch in batches for event in batch]

    async def _discovered_on(self, day: date) -> List[Event]:
        # The catalog keys its dates with slashes
        params = {'discoverdate': day.strftime('%Y/%m/%d'), 'format': 'json'}
        data = await self._request_json(f"{self.BASE_URL}/all", params=params)
        return self._process_records(self._flatten(data))

    @staticmethod
    def _flatten(data: Any) -> List[Dict]:
        """The catalog answers {name: record-or-list-of-records}; flatten it."""
        if not isinstance(data, dict):
            return []
        records = []
        for value in data.values():
            if isinstance(value, list):
                records.extend(item for item in value if isinstance(item, dict))
            elif isinstance(value, dict):
                records.append(value)
        return records

    @staticmethod
    def _first_value(record: Dict, key: str):
        values = record.get(key) or []
        if isinstance(values, list) and values and isinstance(values[0], dict):
            return values[0].get('value')
        return None

    def _process_records(self, records: List[Dict]) -> List[Event]:
        events = []
        for record in records:
            name = record.get('name')
            occurs_at = parse_timestamp(self._first_value(record, 'discoverdate'))
            if not name or occurs_at is None:
                logger.debug(f"Skipping transient without name or discovery date: {name}")
                continue
            claimed = self._first_value(record, 'claimedtype')
            events.append(Event(
                occurs_at=occurs_at,
                title=name,
                category=EventCategory.OTHER,
                detail=f"Claimed type: {claimed or NA}",
                source_id=self.source_id,
                external_link=f"https://astrocats.space/event/{name}",
            ))
        return events
