"""
NASA API clients: DONKI space-weather notifications and the NEO feed.
Documentation: https://api.nasa.gov
"""

import logging
from typing import Dict, List, Optional

from .base import SourceAdapter
from .formatting import NA, clean_note, first_present, format_number, parse_timestamp, to_float
from ..errors import ConfigurationError, InputValidationError
from ..models import Event, EventCategory, FetchWindow, SourceId

logger = logging.getLogger(__name__)

# Public explainer pages; kinds without one link to the DONKI home page
DONKI_HOME = "https://kauai.ccmc.gsfc.nasa.gov/DONKI/"
SWPC_PAGES = {
    'CME': "https://www.swpc.noaa.gov/phenomena/coronal-mass-ejections",
    'FLR': "https://www.swpc.noaa.gov/phenomena/solar-flares-radio-blackouts",
    'SEP': "https://www.swpc.noaa.gov/phenomena/solar-radiation-storm",
    'GST': "https://www.swpc.noaa.gov/phenomena/geomagnetic-storms",
}

DONKI_KINDS: Dict[str, Dict] = {
    'CME': {'name': 'Coronal Mass Ejections', 'category': EventCategory.CME},
    'FLR': {'name': 'Solar Flares', 'category': EventCategory.SOLAR_FLARE},
    'SEP': {'name': 'Solar Energetic Particles', 'category': EventCategory.OTHER},
    'MPC': {'name': 'Magnetopause Crossings', 'category': EventCategory.OTHER},
    'RBE': {'name': 'Radiation Belt Enhancements', 'category': EventCategory.OTHER},
    'IPS': {'name': 'Interplanetary Shocks', 'category': EventCategory.OTHER},
    'GST': {'name': 'Geomagnetic Storms', 'category': EventCategory.GEOMAGNETIC_STORM},
    'HSS': {'name': 'High Speed Streams', 'category': EventCategory.HIGH_SPEED_STREAM},
    'notifications': {'name': 'DONKI Notifications', 'category': EventCategory.NOTIFICATION},
}

# The NEO feed rejects ranges longer than seven days.
NEO_MAX_SPAN_DAYS = 7


class NasaAdapter(SourceAdapter):
    """Shared credential handling for api.nasa.gov endpoints."""

    BASE_URL = "https://api.nasa.gov"
    source_id = SourceId.SOLAR_WEATHER

    def __init__(self, api_key: Optional[str], limit: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.limit = limit

    def _params(self, window: FetchWindow, **extra) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError(self.source_id, "NASA_API_KEY is not configured", self.label)
        params = {
            'start_date': window.start.isoformat(),
            'end_date': window.end.isoformat(),
            'api_key': self.api_key,
        }
        params.update(extra)
        return params


class DonkiAdapter(NasaAdapter):
    """One DONKI event kind (CME, FLR, GST, ...) as a source."""

    def __init__(self, kind: str, api_key: Optional[str], limit: Optional[int] = None, **kwargs):
        if kind not in DONKI_KINDS:
            raise InputValidationError(f"Unknown DONKI event kind: {kind}")
        kwargs.setdefault('label', DONKI_KINDS[kind]['name'])
        super().__init__(api_key, limit=limit, **kwargs)
        self.kind = kind
        self.category = DONKI_KINDS[kind]['category']

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        extra = {'type': 'all'} if self.kind == 'notifications' else {}
        params = self._params(window, **extra)
        data = await self._request_json(f"{self.BASE_URL}/DONKI/{self.kind}", params=params)

        # DONKI answers an empty body (decoded as None) when nothing happened.
        if data is None:
            return []
        if not isinstance(data, list):
            raise self._error(f"expected a list of {self.kind} records, got {type(data).__name__}")
        if self.limit:
            data = data[-self.limit:]
        return self._process_records(data)

    def _process_records(self, records: List[Dict]) -> List[Event]:
        events = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object {self.kind} record: {record!r}")
                continue
            occurs_at = parse_timestamp(self._event_time(record))
            if occurs_at is None:
                logger.warning(f"Skipping {self.kind} record without a usable time: {self._record_id(record)}")
                continue
            events.append(Event(
                occurs_at=occurs_at,
                title=self._title(record),
                category=self.category,
                detail="\n".join(self._details(record)),
                source_id=self.source_id,
                location=first_present(record, 'sourceLocation', 'location'),
                external_link=self._link(record),
            ))
        return events

    @staticmethod
    def _first_analysis(record: Dict) -> Dict:
        analyses = record.get('cmeAnalyses') or []
        return analyses[0] if analyses and isinstance(analyses[0], dict) else {}

    def _event_time(self, record: Dict):
        return (first_present(record, 'startTime', 'beginTime', 'eventTime', 'messageIssueTime')
                or self._first_analysis(record).get('time21_5')
                or record.get('peakTime'))

    @staticmethod
    def _record_id(record: Dict) -> str:
        return first_present(record, 'activityID', 'flrID', 'sepID', 'mpcID', 'rbeID', 'ipsID',
                             'gstID', 'hssID', 'messageID', 'eventID') or NA

    def _title(self, record: Dict) -> str:
        if self.kind == 'CME':
            return f"CME: {record.get('activityID') or NA}"
        if self.kind == 'FLR':
            return f"Flare: {record.get('classType') or NA} ({record.get('flrID') or NA})"
        if self.kind == 'GST':
            max_kp = self._max_kp(record)
            if max_kp is not None:
                return f"Geomagnetic Storm: {record.get('gstID') or NA} (Max Kp: {format_number(max_kp, 2)})"
            return f"Geomagnetic Storm: {record.get('gstID') or NA}"
        if self.kind == 'HSS':
            instruments = self._instruments(record)
            if instruments:
                return f"High Speed Stream: {record.get('hssID') or NA} (Instruments: {instruments})"
            return f"High Speed Stream: {record.get('hssID') or NA}"
        if self.kind == 'IPS':
            return f"IPS: {first_present(record, 'ipsID', 'activityID') or NA} ({record.get('catalog') or NA})"
        if self.kind == 'notifications':
            message_id = str(record.get('messageID') or 'ID N/A')[:20]
            return f"Notification: {record.get('messageType') or 'General'} ({message_id}...)"
        return f"{self.kind}: {self._record_id(record)}"

    def _details(self, record: Dict) -> List[str]:
        lines = []
        if self.kind == 'CME':
            analysis = self._first_analysis(record)
            if analysis:
                lines.append(f"Speed: {format_number(analysis.get('speed'), 0, ' km/s')}")
                lines.append(f"Type: {analysis.get('type') or NA}")
                if analysis.get('latitude') is not None and analysis.get('longitude') is not None:
                    lines.append(f"Coordinates: Lat {format_number(analysis.get('latitude'), 1)}, "
                                 f"Lon {format_number(analysis.get('longitude'), 1)}")
                if analysis.get('halfAngle') is not None:
                    lines.append(f"Half Angle: {format_number(analysis.get('halfAngle'), 1, '°')}")
                if analysis.get('note'):
                    lines.append(f"Analysis Note: {clean_note(analysis['note'])}")
        elif self.kind == 'FLR':
            for key, name in (('beginTime', 'Begin'), ('peakTime', 'Peak'), ('endTime', 'End')):
                moment = parse_timestamp(record.get(key))
                lines.append(f"{name}: {moment.isoformat() if moment else NA}")
        elif self.kind == 'GST':
            lines.append(f"Max Kp: {format_number(self._max_kp(record), 2)}")
        elif self.kind in ('SEP', 'HSS'):
            instruments = self._instruments(record)
            if instruments:
                lines.append(f"Instruments: {instruments}")

        note = clean_note(first_present(record, 'messageBody', 'note', 'notes'))
        if note:
            lines.append(note)
        return lines

    @staticmethod
    def _max_kp(record: Dict) -> Optional[float]:
        values = [to_float(kp.get('kpIndex')) for kp in record.get('allKpIndex') or [] if isinstance(kp, dict)]
        values = [v for v in values if v is not None]
        return max(values) if values else None

    @staticmethod
    def _instruments(record: Dict) -> str:
        names = [inst.get('displayName') for inst in record.get('instruments') or [] if isinstance(inst, dict)]
        return ", ".join(name for name in names if name)

    def _link(self, record: Dict) -> str:
        links = record.get('links') or []
        link = (record.get('link')
                or self._first_analysis(record).get('link')
                or (links[0].get('url') if links and isinstance(links[0], dict) else None))
        return link or SWPC_PAGES.get(self.kind, DONKI_HOME)


class NeoFeedAdapter(NasaAdapter):
    """Near-Earth objects making close approaches inside the window."""

    label = "Near-Earth Objects"
    DEFAULT_LINK = "https://cneos.jpl.nasa.gov/"

    def __init__(self, api_key: Optional[str], limit: Optional[int] = None,
                 latest_day_only: bool = False, **kwargs):
        super().__init__(api_key, limit=limit, **kwargs)
        self.latest_day_only = latest_day_only

    def _query_window(self, window: FetchWindow) -> FetchWindow:
        if self.latest_day_only:
            return FetchWindow.single_day(window.end, window.observer)
        return window

    def validate(self, window: FetchWindow) -> None:
        window = self._query_window(window)
        if (window.end - window.start).days > NEO_MAX_SPAN_DAYS:
            raise InputValidationError(
                f"NEO feed windows are limited to {NEO_MAX_SPAN_DAYS} days, got {window.days}"
            )

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        window = self._query_window(window)
        data = await self._request_json(f"{self.BASE_URL}/neo/rest/v1/feed", params=self._params(window))
        if not isinstance(data, dict):
            raise self._error(f"expected an object, got {type(data).__name__}")
        by_date = data.get('near_earth_objects') or {}

        events = []
        for day in sorted(by_date):
            neos = by_date[day] or []
            if self.limit:
                neos = neos[:self.limit]
            for neo in neos:
                event = self._process_neo(neo, day)
                if event is not None:
                    events.append(event)
        return events

    def _process_neo(self, neo: Dict, day: str) -> Optional[Event]:
        approaches = neo.get('close_approach_data') or []
        approach = approaches[0] if approaches and isinstance(approaches[0], dict) else {}
        occurs_at = (parse_timestamp(approach.get('close_approach_date_full'))
                     or self._epoch_ms(approach.get('epoch_date_close_approach'))
                     or parse_timestamp(approach.get('close_approach_date'))
                     or parse_timestamp(day))
        if occurs_at is None:
            logger.warning(f"Skipping NEO {neo.get('id')} without a usable approach time")
            return None

        hazardous = neo.get('is_potentially_hazardous_asteroid')
        diameter = ((neo.get('estimated_diameter') or {}).get('kilometers') or {})
        lines = [
            "Potentially Hazardous" if hazardous else "Not Currently Hazardous",
            f"Est. Diameter: {format_number(diameter.get('estimated_diameter_min'), 2)} - "
            f"{format_number(diameter.get('estimated_diameter_max'), 2)} km",
            f"Miss Distance: {format_number((approach.get('miss_distance') or {}).get('kilometers'), 0, ' km', thousands=True)}",
            f"Velocity: {format_number((approach.get('relative_velocity') or {}).get('kilometers_per_second'), 2, ' km/s')}",
        ]
        return Event(
            occurs_at=occurs_at,
            title=neo.get('name') or f"NEO {neo.get('id') or NA}",
            category=EventCategory.NEAR_EARTH_OBJECT,
            detail="\n".join(lines),
            source_id=self.source_id,
            external_link=neo.get('nasa_jpl_url') or self.DEFAULT_LINK,
        )

    @staticmethod
    def _epoch_ms(value):
        number = to_float(value)
        return parse_timestamp(number / 1000.0) if number is not None else None
