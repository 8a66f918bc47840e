from datetime import date

import pytest

from cosmofy.config import Settings
from cosmofy.errors import InputValidationError
from cosmofy.views.presets import PRESETS, build_view, get_preset


def test_space_weather_covers_every_donki_kind():
    view = build_view('space-weather', Settings())
    assert view.state.group_keys == [
        'all', 'Geomagnetic Storms', 'High Speed Streams', 'Coronal Mass Ejections', 'Solar Flares',
        'Solar Energetic Particles', 'Magnetopause Crossings', 'Radiation Belt Enhancements',
        'Interplanetary Shocks',
    ]


def test_space_disaster_limits_neo_feed_to_today():
    view = build_view('space-disaster', Settings())
    neo = view.aggregator.adapters[0]
    assert neo.label == "Near-Earth Objects (Today)"
    assert neo.latest_day_only is True
    assert all(adapter.limit == 10 for adapter in view.aggregator.adapters)


def test_default_windows():
    today = date(2024, 12, 13)
    calendar = PRESETS['event-calendar'].default_window(today, None)
    weather = PRESETS['space-weather'].default_window(today, None)
    assert (calendar.start, calendar.end) == (today, today)
    assert (weather.start, weather.end) == (date(2024, 12, 6), today)


def test_unknown_preset():
    with pytest.raises(InputValidationError):
        get_preset('deep-space')
