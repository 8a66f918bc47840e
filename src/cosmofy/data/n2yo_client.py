"""
N2YO satellite tracking client: visual passes, positions, two-line elements and launches.
Documentation: https://www.n2yo.com/api/
"""

import asyncio
import math
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from sgp4.api import Satrec
from sgp4.conveniences import sat_epoch_datetime

from .base import SourceAdapter
from .formatting import NA, format_number, parse_timestamp, to_float
from ..errors import ConfigurationError, InputValidationError
from ..models import Event, EventCategory, FetchWindow, Observer, SourceId

logger = logging.getLogger(__name__)

# ISS, Hubble, SWIFT and the 28654 object tracked by the calendar view
DEFAULT_SATELLITES = (25544, 20580, 25338, 28654)

# visualpasses predicts at most ten days ahead of the current time
MAX_PASS_DAYS = 10

# positions returns one sample per second, up to 300
MAX_POSITION_SECONDS = 300


def parse_norad_id(value) -> int:
    """Validate a NORAD catalog id. Raises InputValidationError for anything non-numeric."""
    text = str(value).strip()
    if not text.isdigit():
        raise InputValidationError(f"NORAD id must be numeric, got {value!r}")
    return int(text)


@dataclass(frozen=True)
class TwoLineElements:
    """Orbital element set for one satellite, as published by N2YO."""

    norad_id: int
    name: str
    line1: str
    line2: str
    epoch: datetime
    inclination_deg: float
    mean_motion: float  # revolutions per day

    @property
    def period_minutes(self) -> Optional[float]:
        return 1440.0 / self.mean_motion if self.mean_motion else None

    def to_dict(self) -> Dict:
        return {
            'norad_id': self.norad_id,
            'name': self.name,
            'line1': self.line1,
            'line2': self.line2,
            'epoch': self.epoch.isoformat(),
            'inclination': format_number(self.inclination_deg, 4, '°'),
            'mean_motion': format_number(self.mean_motion, 8),
            'period_minutes': format_number(self.period_minutes, 2),
        }


@dataclass(frozen=True)
class SatellitePosition:
    """Ground track sample, plus look angles from the observer."""

    timestamp: datetime
    latitude: float
    longitude: float
    altitude_km: Optional[float]
    azimuth: Optional[float]
    elevation: Optional[float]

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude_km': self.altitude_km,
            'azimuth': self.azimuth,
            'elevation': self.elevation,
        }


class N2YOAdapter(SourceAdapter):
    """Client for interacting with the N2YO REST API."""

    BASE_URL = "https://api.n2yo.com/rest/v1/satellite"
    source_id = SourceId.SATELLITE_TRACKING
    label = "Satellite Tracking"

    def __init__(self, api_key: Optional[str], **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    async def _call(self, path: str) -> Dict:
        if not self.api_key:
            raise ConfigurationError(self.source_id, "N2YO_API_KEY is not configured", self.label)

        data = await self._request_json(f"{self.BASE_URL}{path}", params={'apiKey': self.api_key})
        if not isinstance(data, dict):
            raise self._error(f"expected an object, got {type(data).__name__}")

        # N2YO reports request errors inside the info block with a 200 status
        info = data.get('info') or {}
        if info.get('error'):
            logger.error(f"N2YO API info error for {path}: {info['error']}")
            raise self._error(f"N2YO API Error: {info['error']}")
        if info.get('transactionscount') == 0:
            logger.warning(f"N2YO transaction count is 0 for {path}")
        return data

    async def get_tle(self, norad_id) -> TwoLineElements:
        """
        Fetch and parse the current two-line element set of a satellite.

        Raises:
            InputValidationError: non-numeric NORAD id (no request is made)
            SourceError: upstream failure or unparseable element set
        """
        satellite_id = parse_norad_id(norad_id)
        with self._source_errors():
            data = await self._call(f"/tle/{satellite_id}")

        lines = [line.strip() for line in re.split(r'[\r\n]+', data.get('tle') or '') if line.strip()]
        if len(lines) < 2:
            raise self._error(f"no element set published for {satellite_id}")
        try:
            satellite = Satrec.twoline2rv(lines[0], lines[1])
        except ValueError as e:
            raise self._error(f"unparseable element set for {satellite_id}: {e}") from e
        if satellite.error:
            raise self._error(f"invalid element set for {satellite_id} (sgp4 error {satellite.error})")

        return TwoLineElements(
            norad_id=satellite_id,
            name=(data.get('info') or {}).get('satname') or f"Satellite {satellite_id}",
            line1=lines[0],
            line2=lines[1],
            epoch=sat_epoch_datetime(satellite),
            inclination_deg=math.degrees(satellite.inclo),
            mean_motion=satellite.no_kozai * 1440.0 / (2 * math.pi),
        )

    async def get_positions(self, norad_id, observer: Observer, seconds: int = 1) -> List[SatellitePosition]:
        """
        Fetch the satellite's current position and the next `seconds - 1` one-second samples.

        Raises:
            InputValidationError: non-numeric NORAD id or seconds outside 1..300
            SourceError: upstream failure
        """
        satellite_id = parse_norad_id(norad_id)
        if not 1 <= seconds <= MAX_POSITION_SECONDS:
            raise InputValidationError(f"seconds must be between 1 and {MAX_POSITION_SECONDS}, got {seconds}")

        with self._source_errors():
            data = await self._call(
                f"/positions/{satellite_id}/{observer.latitude}/{observer.longitude}"
                f"/{observer.altitude}/{seconds}"
            )
            positions = []
            for item in data.get('positions') or []:
                moment = parse_timestamp(item.get('timestamp'))
                latitude = to_float(item.get('satlatitude'))
                longitude = to_float(item.get('satlongitude'))
                if moment is None or latitude is None or longitude is None:
                    logger.debug(f"Skipping incomplete position sample for {satellite_id}")
                    continue
                positions.append(SatellitePosition(
                    timestamp=moment,
                    latitude=latitude,
                    longitude=longitude,
                    altitude_km=to_float(item.get('sataltitude')),
                    azimuth=to_float(item.get('azimuth')),
                    elevation=to_float(item.get('elevation')),
                ))
        return positions

    async def get_passes(self, norad_id, observer: Observer, days: int = MAX_PASS_DAYS,
                         min_visibility: int = 30) -> List[Event]:
        """
        Visual passes of one satellite over the observer, starting now.

        Raises:
            InputValidationError: non-numeric NORAD id or days outside 1..10
            SourceError: upstream failure
        """
        satellite_id = parse_norad_id(norad_id)
        if not 1 <= days <= MAX_PASS_DAYS:
            raise InputValidationError(f"days must be between 1 and {MAX_PASS_DAYS}, got {days}")
        with self._source_errors():
            return await self._visual_passes(satellite_id, observer, days, min_visibility)

    async def _visual_passes(self, norad_id: int, observer: Observer, days: int,
                             min_visibility: int) -> List[Event]:
        data = await self._call(
            f"/visualpasses/{norad_id}/{observer.latitude}/{observer.longitude}"
            f"/{observer.altitude}/{days}/{min_visibility}"
        )
        satname = (data.get('info') or {}).get('satname') or f"Satellite {norad_id}"

        events = []
        for item in data.get('passes') or []:
            start = parse_timestamp(item.get('startUTC'))
            if start is None:
                continue
            clock = start.strftime('%H:%M UTC')
            duration = to_float(item.get('duration'))
            events.append(Event(
                occurs_at=start,
                title=f"{satname} Visual Pass",
                category=EventCategory.SATELLITE_PASS,
                detail=(f"Max El: {format_number(item.get('maxEl'), 1, '°')}, "
                        f"Mag: {format_number(item.get('mag'), 1)}, "
                        f"Dur: {format_number(duration, 0, 's')}. "
                        f"Starts: {item.get('startAzCompass') or NA} at {clock}."),
                source_id=self.source_id,
                location="Visible from your location",
                external_link=f"https://www.n2yo.com/satellite/?s={norad_id}",
                time_label=clock,
            ))
        return events


class SatellitePassAdapter(N2YOAdapter):
    """
    Visual pass predictions for a set of satellites over the observer.

    N2YO predicts forward from the current time, so each request covers
    today through the window end (at most ten days) and passes outside the
    window are dropped. A satellite whose lookup fails is skipped; the source
    only fails when every satellite does.
    """

    label = "Satellite Passes"

    def __init__(self, api_key: Optional[str], norad_ids: Iterable = DEFAULT_SATELLITES,
                 min_visibility: int = 30, **kwargs):
        super().__init__(api_key, **kwargs)
        self.norad_ids = [parse_norad_id(norad_id) for norad_id in norad_ids]
        self.min_visibility = min_visibility

    def _today(self) -> date:
        return datetime.now(timezone.utc).date()

    def horizon_days(self, window: FetchWindow) -> int:
        """Days of prediction needed to reach the window end, or 0 if out of reach."""
        today = self._today()
        if window.end < today or (window.start - today).days >= MAX_PASS_DAYS:
            return 0
        return min((window.end - today).days + 1, MAX_PASS_DAYS)

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        # Pass predictions only make sense for a known observer
        if window.observer is None:
            logger.info("No observer location, skipping satellite pass predictions")
            return []

        days = self.horizon_days(window)
        if days == 0:
            logger.info(f"Window {window.start}..{window.end} is outside the pass prediction horizon")
            return []

        outcomes = await asyncio.gather(*[
            self._visual_passes(norad_id, window.observer, days, self.min_visibility)
            for norad_id in self.norad_ids
        ], return_exceptions=True)

        events = []
        failures = []
        for norad_id, outcome in zip(self.norad_ids, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"Skipping passes for satellite {norad_id}: {outcome}")
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                events.extend(event for event in outcome if window.contains(event.occurs_at))

        if failures and len(failures) == len(self.norad_ids):
            raise failures[0]
        return events


class LaunchAdapter(N2YOAdapter):
    """Upcoming launches listed by N2YO."""

    LAUNCHES_URL = "https://api.n2yo.com/launches/upcoming"
    label = "Launches"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key, **kwargs)

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        data = await self._request_json(self.LAUNCHES_URL, headers={'Accept': 'application/json'})
        launches = (data or {}).get('launches') or []

        events = []
        for launch in launches:
            occurs_at = parse_timestamp(launch.get('launch_date'))
            if occurs_at is None:
                logger.warning(f"Skipping launch without a usable date: {launch.get('name')}")
                continue
            if not window.contains(occurs_at):
                continue
            events.append(Event(
                occurs_at=occurs_at,
                title=launch.get('name') or 'Space Launch',
                category=EventCategory.LAUNCH,
                detail=launch.get('description') or 'Space launch event',
                source_id=self.source_id,
                location=launch.get('location') or 'Launch Site',
                external_link=launch.get('url') or f"https://www.n2yo.com/launches/?id={launch.get('id')}",
                time_label=occurs_at.strftime('%H:%M UTC'),
            ))
        return events
