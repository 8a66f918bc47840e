"""
Current weather and local time for the observer (header info).
OpenWeather: https://openweathermap.org/current
TimeZoneDB: https://timezonedb.com/references/get-time-zone
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import httpx

from ..errors import ConfigurationError, SourceError
from ..models import Observer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeatherReport:
    description: str
    icon: str
    temperature: float  # Celsius
    city: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class TimeZoneInfo:
    zone_name: str
    abbreviation: str
    formatted: str  # local time, "YYYY-MM-DD HH:MM:SS"
    gmt_offset: int  # seconds

    def to_dict(self) -> Dict:
        return asdict(self)


class _LookupClient:
    """One GET, one JSON body. Shares an httpx client when given one."""

    name = "lookup"
    env_var = ""

    def __init__(self, api_key: Optional[str], client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 30.0):
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(self.name, f"{self.env_var} is not configured", self.name)
        return self.api_key

    async def _get_json(self, url: str, params: Dict) -> Dict:
        client = self.client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching {self.name} data: {str(e)}")
            raise SourceError(self.name, f"network error: {e}", self.name) from e
        finally:
            if self.client is None:
                await client.aclose()

        if response.status_code != 200:
            logger.error(f"{self.name} API error: {response.status_code} {response.text[:200]}")
            raise SourceError(self.name, f"HTTP {response.status_code}: {response.text[:200]}", self.name)
        try:
            data = response.json()
        except ValueError as e:
            raise SourceError(self.name, "response is not JSON", self.name) from e
        if not isinstance(data, dict):
            raise SourceError(self.name, f"expected an object, got {type(data).__name__}", self.name)
        return data


class WeatherClient(_LookupClient):
    """Client for OpenWeather current conditions."""

    URL = "https://api.openweathermap.org/data/2.5/weather"
    name = "Weather"
    env_var = "OPENWEATHER_API_KEY"

    async def current(self, observer: Observer) -> WeatherReport:
        data = await self._get_json(self.URL, {
            'lat': observer.latitude,
            'lon': observer.longitude,
            'appid': self._require_key(),
            'units': 'metric',
        })
        weather = data.get('weather') or []
        main = data.get('main') or {}
        if not weather or 'temp' not in main:
            raise SourceError(self.name, "Invalid weather data structure", self.name)
        return WeatherReport(
            description=weather[0].get('description') or '',
            icon=weather[0].get('icon') or '',
            temperature=float(main['temp']),
            city=data.get('name') or f"Lat: {observer.latitude:.2f}, Lon: {observer.longitude:.2f}",
        )


class TimeZoneClient(_LookupClient):
    """Client for TimeZoneDB lookups by position."""

    URL = "https://api.timezonedb.com/v2.1/get-time-zone"
    name = "Timezone"
    env_var = "TIMEZONEDB_API_KEY"

    async def lookup(self, observer: Observer) -> TimeZoneInfo:
        data = await self._get_json(self.URL, {
            'key': self._require_key(),
            'format': 'json',
            'by': 'position',
            'lat': observer.latitude,
            'lng': observer.longitude,
        })
        if data.get('status') != "OK":
            logger.error(f"TimeZoneDB API error (status {data.get('status')}): {data.get('message')}")
            raise SourceError(self.name, data.get('message') or 'Failed to fetch time zone data', self.name)
        return TimeZoneInfo(
            zone_name=data.get('zoneName') or '',
            abbreviation=data.get('abbreviation') or '',
            formatted=data.get('formatted') or '',
            gmt_offset=int(data.get('gmtOffset') or 0),
        )
