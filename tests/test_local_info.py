import asyncio

import httpx
import pytest

from cosmofy.api.local_info import TimeZoneClient, WeatherClient
from cosmofy.errors import ConfigurationError, SourceError
from cosmofy.models import Observer

LONDON = Observer(51.5, -0.12)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_weather_report():
    def handler(request):
        assert request.url.params['units'] == 'metric'
        assert request.url.params['appid'] == 'key'
        return httpx.Response(200, json={
            'name': 'London',
            'weather': [{'description': 'clear sky', 'icon': '01n'}],
            'main': {'temp': 3.4},
        })

    report = asyncio.run(WeatherClient('key', client=_client(handler)).current(LONDON))
    assert report.to_dict() == {'description': 'clear sky', 'icon': '01n', 'temperature': 3.4, 'city': 'London'}


def test_weather_without_city_uses_coordinates():
    handler = lambda request: httpx.Response(200, json={'weather': [{'description': 'mist'}], 'main': {'temp': 1}})
    report = asyncio.run(WeatherClient('key', client=_client(handler)).current(LONDON))
    assert report.city == "Lat: 51.50, Lon: -0.12"


def test_weather_missing_key():
    with pytest.raises(ConfigurationError):
        asyncio.run(WeatherClient(None).current(LONDON))


def test_weather_bad_payload_is_source_error():
    handler = lambda request: httpx.Response(200, json={'cod': 200})
    with pytest.raises(SourceError):
        asyncio.run(WeatherClient('key', client=_client(handler)).current(LONDON))


def test_timezone_lookup():
    def handler(request):
        assert request.url.params['by'] == 'position'
        return httpx.Response(200, json={
            'status': 'OK',
            'zoneName': 'Europe/London',
            'abbreviation': 'GMT',
            'formatted': '2024-12-13 21:04:00',
            'gmtOffset': 0,
        })

    info = asyncio.run(TimeZoneClient('key', client=_client(handler)).lookup(LONDON))
    assert info.zone_name == 'Europe/London'
    assert info.gmt_offset == 0


def test_timezone_failed_status_is_source_error():
    handler = lambda request: httpx.Response(200, json={'status': 'FAILED', 'message': 'Invalid API key.'})
    with pytest.raises(SourceError) as info:
        asyncio.run(TimeZoneClient('key', client=_client(handler)).lookup(LONDON))
    assert info.value.message == 'Invalid API key.'
