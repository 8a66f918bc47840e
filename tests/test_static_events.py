import asyncio
from datetime import date

from cosmofy.data.static_events import StaticEventSource
from cosmofy.models import EventCategory, FetchWindow


def test_calendar_window_filtering():
    source = StaticEventSource()
    events = asyncio.run(source.fetch(FetchWindow(date(2024, 8, 1), date(2024, 10, 31))))
    assert [event.title for event in events] == ["Perseids Meteor Shower", "Annular Solar Eclipse"]
    assert events[1].category == EventCategory.ECLIPSE


def test_custom_calendar_and_marker_days():
    source = StaticEventSource(calendar=[
        {'date': '2025-01-03', 'title': 'Quadrantids', 'category': EventCategory.METEOR_SHOWER},
        {'date': '2025-01-03', 'title': 'Earth at Perihelion'},
    ], label="Custom")
    assert source.label == "Custom"
    assert source.event_days() == ['2025-01-03']

    events = asyncio.run(source.fetch(FetchWindow.single_day(date(2025, 1, 3))))
    assert events[1].category == EventCategory.OTHER
    assert events[1].detail == ""
