"""
Built-in calendar of well-known sky events (meteor showers, eclipses).
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .base import SourceAdapter
from ..models import Event, EventCategory, FetchWindow, SourceId

logger = logging.getLogger(__name__)

CALENDAR: List[Dict] = [
    {
        'date': '2024-08-12',
        'time': 'Peak Night',
        'title': 'Perseids Meteor Shower',
        'category': EventCategory.METEOR_SHOWER,
        'location': 'Northern Hemisphere',
        'details': 'One of the most prolific meteor showers, known for bright meteors.',
    },
    {
        'date': '2024-10-02',
        'time': 'Visible Evening',
        'title': 'Annular Solar Eclipse',
        'category': EventCategory.ECLIPSE,
        'location': 'South America (Chile, Argentina)',
        'details': 'The Moon will cover the Sun\'s center, leaving a "ring of fire" visible.',
    },
    {
        'date': '2024-12-13',
        'time': 'Peak Night',
        'title': 'Geminids Meteor Shower',
        'category': EventCategory.METEOR_SHOWER,
        'location': 'Visible Globally',
        'details': 'Often the best meteor shower of the year, with many bright meteors.',
    },
    {
        'date': '2025-03-29',
        'time': 'Visible',
        'title': 'Partial Solar Eclipse',
        'category': EventCategory.ECLIPSE,
        'location': 'Europe, N. Africa, N. Asia',
        'details': 'A portion of the Sun will be obscured by the Moon.',
    },
]


class StaticEventSource(SourceAdapter):
    """Serves events from an in-memory calendar. Never touches the network."""

    source_id = SourceId.STATIC
    label = "Sky Calendar"

    def __init__(self, calendar: Optional[Sequence[Dict]] = None, label: Optional[str] = None):
        super().__init__(label=label)
        self.calendar = list(CALENDAR if calendar is None else calendar)

    async def connect(self):
        return

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        return [
            event for event in (self._to_event(item) for item in self.calendar)
            if window.contains(event.occurs_at)
        ]

    def _to_event(self, item: Dict) -> Event:
        day = datetime.strptime(item['date'], '%Y-%m-%d')
        return Event(
            occurs_at=day.replace(tzinfo=timezone.utc),
            title=item['title'],
            category=item.get('category', EventCategory.OTHER),
            detail=item.get('details', ''),
            source_id=self.source_id,
            location=item.get('location'),
            external_link=item.get('link'),
            time_label=item.get('time'),
        )

    def event_days(self) -> List[str]:
        """ISO dates that carry at least one calendar entry (for calendar markers)."""
        return sorted({item['date'] for item in self.calendar})
