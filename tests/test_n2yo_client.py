import asyncio
from datetime import date

import aiohttp
import pytest

from cosmofy.data.n2yo_client import LaunchAdapter, N2YOAdapter, SatellitePassAdapter, parse_norad_id
from cosmofy.errors import ConfigurationError, InputValidationError, SourceError
from cosmofy.models import EventCategory, FetchWindow, Observer

from conftest import FakeSession, utc

ISS_TLE = (
    "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991\r\n"
    "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"
)

OBSERVER = Observer(40.0, -74.0)
DAY = FetchWindow.single_day(date(2024, 12, 13), OBSERVER)


def test_parse_norad_id():
    assert parse_norad_id(" 25544 ") == 25544
    with pytest.raises(InputValidationError):
        parse_norad_id("ISS")


def test_tle_is_parsed_with_sgp4():
    session = FakeSession(lambda *args: {'info': {'satid': 25544, 'satname': 'SPACE STATION'}, 'tle': ISS_TLE})
    elements = asyncio.run(N2YOAdapter('key', session=session).get_tle("25544"))

    assert elements.name == "SPACE STATION"
    assert elements.line2.startswith("2 25544")
    assert elements.epoch.year == 2019
    assert elements.inclination_deg == pytest.approx(51.6439, abs=1e-4)
    assert elements.mean_motion == pytest.approx(15.50103472, abs=1e-6)
    assert elements.period_minutes == pytest.approx(92.9, abs=0.1)
    assert elements.to_dict()['inclination'] == "51.6439°"
    assert session.calls[0]['url'].endswith("/tle/25544")
    assert session.calls[0]['params'] == {'apiKey': 'key'}


def test_missing_tle_is_source_error():
    session = FakeSession(lambda *args: {'info': {'satid': 1}, 'tle': ''})
    with pytest.raises(SourceError):
        asyncio.run(N2YOAdapter('key', session=session).get_tle(1))


def test_non_numeric_id_makes_no_request():
    session = FakeSession(lambda *args: pytest.fail("no request expected"))
    with pytest.raises(InputValidationError):
        asyncio.run(N2YOAdapter('key', session=session).get_tle("hubble"))


def test_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        asyncio.run(N2YOAdapter(None).get_tle(25544))


def _passes_handler(method, url, params, body):
    if "/visualpasses/25544/" not in url:
        return {'info': {'satname': 'OTHER'}, 'passes': []}
    return {
        'info': {'satid': 25544, 'satname': 'SPACE STATION', 'passescount': 2},
        'passes': [
            {
                'startUTC': int(utc(2024, 12, 13, 21, 4).timestamp()),
                'startAzCompass': 'NW',
                'maxEl': 63.5,
                'mag': -3.2,
                'duration': 455,
            },
            {'startUTC': int(utc(2024, 12, 14, 1, 0).timestamp()), 'startAzCompass': 'W'},
        ],
    }


def test_passes_inside_window_become_events(monkeypatch):
    session = FakeSession(_passes_handler)
    adapter = SatellitePassAdapter('key', norad_ids=[25544, 20580], session=session)
    monkeypatch.setattr(adapter, "_today", lambda: date(2024, 12, 13))
    events = asyncio.run(adapter.fetch(DAY))

    assert len(events) == 1
    event = events[0]
    assert event.title == "SPACE STATION Visual Pass"
    assert event.category == EventCategory.SATELLITE_PASS
    assert event.time_label == "21:04 UTC"
    assert event.detail == "Max El: 63.5°, Mag: -3.2, Dur: 455s. Starts: NW at 21:04 UTC."
    assert event.external_link == "https://www.n2yo.com/satellite/?s=25544"

    urls = sorted(call['url'] for call in session.calls)
    assert urls[1].endswith("/visualpasses/25544/40.0/-74.0/0.0/1/30")


def test_passes_need_an_observer():
    session = FakeSession(lambda *args: pytest.fail("no request expected"))
    adapter = SatellitePassAdapter('key', session=session)
    assert asyncio.run(adapter.fetch(FetchWindow.single_day(date(2024, 12, 13)))) == []


def test_source_fails_when_every_satellite_fails(monkeypatch):
    session = FakeSession(lambda *args: {'info': {'error': 'Invalid API Key!'}})
    adapter = SatellitePassAdapter('bad', norad_ids=[25544, 20580], session=session)
    monkeypatch.setattr(adapter, "_today", lambda: date(2024, 12, 13))
    with pytest.raises(SourceError) as info:
        asyncio.run(adapter.fetch(DAY))
    assert "Invalid API Key!" in info.value.message
    assert info.value.label == "Satellite Passes"


def test_launches_are_filtered_to_window():
    payload = {'launches': [
        {'id': 7, 'name': 'Starlink Group 12-5', 'launch_date': '2024-12-13T18:30:00Z',
         'location': 'Cape Canaveral'},
        {'id': 8, 'name': 'Later', 'launch_date': '2024-12-20T10:00:00Z'},
        {'id': 9, 'name': 'Undated'},
    ]}
    session = FakeSession(lambda *args: payload)
    events = asyncio.run(LaunchAdapter(session=session).fetch(DAY))

    assert [event.title for event in events] == ["Starlink Group 12-5"]
    assert events[0].location == "Cape Canaveral"
    assert events[0].external_link == "https://www.n2yo.com/launches/?id=7"
    assert events[0].time_label == "18:30 UTC"


def test_future_day_requests_passes_from_today(monkeypatch):
    """N2YO predicts forward from now, so a day three days out needs four days of passes."""
    def handler(method, url, params, body):
        return {'info': {'satname': 'SPACE STATION'}, 'passes': [
            {'startUTC': int(utc(2024, 12, 11, 5, 0).timestamp())},
            {'startUTC': int(utc(2024, 12, 13, 21, 4).timestamp())},
        ]}

    session = FakeSession(handler)
    adapter = SatellitePassAdapter('key', norad_ids=[25544], session=session)
    monkeypatch.setattr(adapter, "_today", lambda: date(2024, 12, 10))
    events = asyncio.run(adapter.fetch(DAY))

    assert session.calls[0]['url'].endswith("/visualpasses/25544/40.0/-74.0/0.0/4/30")
    assert [event.time_label for event in events] == ["21:04 UTC"]


def test_horizon_is_capped_and_past_days_are_skipped(monkeypatch):
    session = FakeSession(lambda *args: pytest.fail("no request expected"))
    adapter = SatellitePassAdapter('key', session=session)
    monkeypatch.setattr(adapter, "_today", lambda: date(2024, 12, 14))

    assert asyncio.run(adapter.fetch(DAY)) == []
    assert adapter.horizon_days(FetchWindow(date(2024, 12, 14), date(2024, 12, 31))) == 10
    assert adapter.horizon_days(FetchWindow.single_day(date(2024, 12, 24))) == 0


def test_one_failing_satellite_keeps_the_others(monkeypatch):
    def handler(method, url, params, body):
        if "/visualpasses/20580/" in url:
            return {'info': {'error': 'Invalid satellite'}}
        return _passes_handler(method, url, params, body)

    adapter = SatellitePassAdapter('key', norad_ids=[25544, 20580], session=FakeSession(handler))
    monkeypatch.setattr(adapter, "_today", lambda: date(2024, 12, 13))
    events = asyncio.run(adapter.fetch(DAY))

    assert [event.title for event in events] == ["SPACE STATION Visual Pass"]


def test_positions_for_one_satellite():
    payload = {
        'info': {'satname': 'SPACE STATION', 'satid': 25544},
        'positions': [
            {'satlatitude': 12.5, 'satlongitude': -45.25, 'sataltitude': 418.3,
             'azimuth': 250.1, 'elevation': -20.4, 'timestamp': 1734123840},
            {'satlatitude': None, 'satlongitude': -45.0, 'timestamp': 1734123841},
        ],
    }
    session = FakeSession(lambda *args: payload)
    positions = asyncio.run(N2YOAdapter('key', session=session).get_positions("25544", OBSERVER, seconds=2))

    assert session.calls[0]['url'].endswith("/positions/25544/40.0/-74.0/0.0/2")
    assert len(positions) == 1
    assert positions[0].to_dict()['latitude'] == 12.5
    assert positions[0].altitude_km == 418.3
    assert positions[0].timestamp == utc(2024, 12, 13, 21, 4)


def test_positions_reject_bad_arguments():
    session = FakeSession(lambda *args: pytest.fail("no request expected"))
    adapter = N2YOAdapter('key', session=session)
    with pytest.raises(InputValidationError):
        asyncio.run(adapter.get_positions("ISS", OBSERVER))
    with pytest.raises(InputValidationError):
        asyncio.run(adapter.get_positions(25544, OBSERVER, seconds=301))


def test_passes_for_one_satellite():
    session = FakeSession(_passes_handler)
    events = asyncio.run(N2YOAdapter('key', session=session).get_passes(25544, OBSERVER, days=2))

    assert session.calls[0]['url'].endswith("/visualpasses/25544/40.0/-74.0/0.0/2/30")
    assert len(events) == 2
    with pytest.raises(InputValidationError):
        asyncio.run(N2YOAdapter('key', session=session).get_passes(25544, OBSERVER, days=11))


def test_lookup_network_error_is_source_error():
    session = FakeSession(lambda *args: aiohttp.ClientConnectionError("connection reset"))
    with pytest.raises(SourceError) as info:
        asyncio.run(N2YOAdapter('key', session=session).get_positions(25544, OBSERVER))
    assert info.value.message == "network error: connection reset"
