"""
The dashboard views and the sources each one aggregates.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from ..config import Settings
from ..data.astrocats_client import TransientAdapter
from ..data.astronomy_client import BodyPositionAdapter
from ..data.base import SourceAdapter
from ..data.event_aggregator import EventAggregator
from ..data.n2yo_client import LaunchAdapter, SatellitePassAdapter
from ..data.nasa_client import DonkiAdapter, NeoFeedAdapter
from ..data.static_events import StaticEventSource
from ..errors import InputValidationError
from ..models import FetchWindow, Observer
from .state import EventView


@dataclass(frozen=True)
class ViewPreset:
    name: str
    title: str
    description: str
    build_adapters: Callable[[Settings], List[SourceAdapter]]
    default_window: Callable[[date, Optional[Observer]], FetchWindow]


def _space_weather(settings: Settings) -> List[SourceAdapter]:
    kinds = ['GST', 'HSS', 'CME', 'FLR', 'SEP', 'MPC', 'RBE', 'IPS']
    return [DonkiAdapter(kind, settings.nasa_api_key, timeout=settings.request_timeout) for kind in kinds]


def _space_disaster(settings: Settings) -> List[SourceAdapter]:
    return [
        NeoFeedAdapter(settings.nasa_api_key, limit=10, latest_day_only=True,
                       label="Near-Earth Objects (Today)", timeout=settings.request_timeout),
        DonkiAdapter('GST', settings.nasa_api_key, limit=10, timeout=settings.request_timeout),
        DonkiAdapter('HSS', settings.nasa_api_key, limit=10, timeout=settings.request_timeout),
        DonkiAdapter('notifications', settings.nasa_api_key, limit=10, timeout=settings.request_timeout),
    ]


def _event_calendar(settings: Settings) -> List[SourceAdapter]:
    return [
        StaticEventSource(),
        SatellitePassAdapter(settings.n2yo_api_key, timeout=settings.request_timeout),
        LaunchAdapter(settings.n2yo_api_key, timeout=settings.request_timeout),
        BodyPositionAdapter(settings.astronomy_app_id, settings.astronomy_app_secret,
                            timeout=settings.request_timeout),
        TransientAdapter(timeout=settings.request_timeout),
    ]


PRESETS: Dict[str, ViewPreset] = {
    preset.name: preset for preset in (
        ViewPreset(
            name="space-weather",
            title="Space Weather Center",
            description="Solar flares, CMEs, geomagnetic storms and other solar phenomena.",
            build_adapters=_space_weather,
            default_window=lambda today, observer: FetchWindow.last_days(7, today, observer),
        ),
        ViewPreset(
            name="space-disaster",
            title="Space Disaster Watch",
            description="Near-Earth objects, high-speed solar wind streams and DONKI alerts.",
            build_adapters=_space_disaster,
            default_window=lambda today, observer: FetchWindow.last_days(7, today, observer),
        ),
        ViewPreset(
            name="event-calendar",
            title="Space Event Calendar",
            description="Meteor showers, eclipses, satellite passes and launches for a selected day.",
            build_adapters=_event_calendar,
            default_window=lambda today, observer: FetchWindow.single_day(today, observer),
        ),
    )
}


def get_preset(name: str) -> ViewPreset:
    if name not in PRESETS:
        raise InputValidationError(f"Unknown view {name!r}; expected one of {', '.join(PRESETS)}")
    return PRESETS[name]


def build_view(name: str, settings: Settings) -> EventView:
    """Create a fresh view (own adapters, own state) for a preset."""
    preset = get_preset(name)
    aggregator = EventAggregator(preset.build_adapters(settings))
    return EventView(preset.name, aggregator, title=preset.title, description=preset.description)
