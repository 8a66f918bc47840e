"""
AstronomyAPI client for body positions as seen by an observer.
Documentation: https://docs.astronomyapi.com
"""

import base64
import logging
from datetime import datetime, time, timezone
from typing import Dict, List, Optional

from .base import SourceAdapter
from .formatting import format_number
from ..errors import ConfigurationError
from ..models import Event, EventCategory, FetchWindow, SourceId

logger = logging.getLogger(__name__)


class AstronomyAdapter(SourceAdapter):
    """Shared Basic-auth handling for api.astronomyapi.com."""

    BASE_URL = "https://api.astronomyapi.com/api/v2"
    source_id = SourceId.ASTRONOMY
    label = "Astronomy"

    def __init__(self, app_id: Optional[str], app_secret: Optional[str], **kwargs):
        super().__init__(**kwargs)
        self.app_id = app_id
        self.app_secret = app_secret

    def _auth_headers(self) -> Dict[str, str]:
        if not self.app_id or not self.app_secret:
            raise ConfigurationError(
                self.source_id,
                "ASTRONOMY_API_APP_ID and ASTRONOMY_API_SECRET are not configured",
                self.label
            )
        credentials = base64.b64encode(f"{self.app_id}:{self.app_secret}".encode()).decode()
        return {'Authorization': f'Basic {credentials}'}

    async def _call(self, endpoint: str, method: str = "GET", params: Optional[Dict] = None,
                    body: Optional[Dict] = None) -> Dict:
        headers = self._auth_headers()
        if params:
            params = {key: str(value) for key, value in params.items() if value is not None}
        data = await self._request_json(f"{self.BASE_URL}{endpoint}", params=params,
                                        method=method, headers=headers, body=body)
        if not isinstance(data, dict):
            raise self._error(f"expected an object, got {type(data).__name__}")
        return data

    async def get_moon_phase(self, window: FetchWindow, style: Optional[Dict] = None) -> Optional[str]:
        """Request a rendered moon phase image for the window start. Returns its URL."""
        observer = window.observer
        if observer is None:
            return None
        body = {
            'format': 'png',
            'observer': {
                'latitude': observer.latitude,
                'longitude': observer.longitude,
                'date': window.start.isoformat(),
            },
            'style': style or {'moonStyle': 'default', 'backgroundStyle': 'stars'},
            'view': {'type': 'landscape-simple'},
        }
        with self._source_errors():
            data = await self._call('/studio/moon-phase', method="POST", body=body)
            return (data.get('data') or {}).get('imageUrl')


class BodyPositionAdapter(AstronomyAdapter):
    """Altitude, azimuth and constellation of solar-system bodies for the observer."""

    label = "Planetary Positions"

    def __init__(self, app_id: Optional[str], app_secret: Optional[str],
                 observation_time: Optional[time] = None, **kwargs):
        super().__init__(app_id, app_secret, **kwargs)
        self.observation_time = observation_time

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        observer = window.observer
        if observer is None:
            logger.info("No observer location, skipping body positions")
            return []

        # One snapshot per window, at the requested (or current UTC) time of day
        clock = self.observation_time or datetime.now(timezone.utc).time().replace(microsecond=0)
        data = await self._call('/bodies/positions', params={
            'latitude': observer.latitude,
            'longitude': observer.longitude,
            'elevation': observer.altitude,
            'from_date': window.start.isoformat(),
            'to_date': window.start.isoformat(),
            'time': clock.strftime('%H:%M:%S'),
        })
        occurs_at = datetime.combine(window.start, clock, tzinfo=timezone.utc)
        return self._process_rows(data, occurs_at)

    def _process_rows(self, data: Dict, occurs_at: datetime) -> List[Event]:
        table = (data.get('data') or {}).get('table') or {}
        events = []
        for row in table.get('rows') or []:
            entry = row.get('entry') or {}
            cells = row.get('cells') or []
            cell = cells[0] if cells and isinstance(cells[0], dict) else {}
            name = entry.get('name') or cell.get('name') or entry.get('id')
            if not name:
                continue

            position = cell.get('position') or {}
            horizontal = position.get('horizontal') or position.get('horizonal') or {}
            altitude = (horizontal.get('altitude') or {}).get('degrees')
            azimuth = (horizontal.get('azimuth') or {}).get('degrees')
            constellation = (position.get('constellation') or {}).get('name')
            distance = (cell.get('distance') or {}).get('fromEarth') or cell.get('distance') or {}

            events.append(Event(
                occurs_at=occurs_at,
                title=f"{name} Position",
                category=EventCategory.OTHER,
                detail=(f"Altitude: {format_number(altitude, 2, '°')}, "
                        f"Azimuth: {format_number(azimuth, 2, '°')}, "
                        f"Distance: {format_number(distance.get('au'), 3, ' AU')}"),
                source_id=self.source_id,
                location=f"In {constellation}" if constellation else None,
                time_label=occurs_at.strftime('%H:%M UTC'),
            ))
        return events
