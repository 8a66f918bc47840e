"""
Data model shared by the source adapters, the aggregator and the views.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import InputValidationError, SourceError


class EventCategory(str, Enum):
    METEOR_SHOWER = "MeteorShower"
    ECLIPSE = "Eclipse"
    SATELLITE_PASS = "SatellitePass"
    LAUNCH = "Launch"
    SOLAR_FLARE = "SolarFlare"
    CME = "CME"
    GEOMAGNETIC_STORM = "GeomagneticStorm"
    HIGH_SPEED_STREAM = "HighSpeedStream"
    NEAR_EARTH_OBJECT = "NearEarthObject"
    NOTIFICATION = "Notification"
    OTHER = "Other"


class SourceId(str, Enum):
    """Provenance of an event. Used for filtering and debugging only."""

    STATIC = "Static"
    SATELLITE_TRACKING = "SatelliteTrackingAPI"
    ASTRONOMY = "AstronomyAPI"
    TRANSIENT_CATALOG = "TransientCatalogAPI"
    SOLAR_WEATHER = "SolarWeatherAPI"


@dataclass(frozen=True)
class Event:
    """A single normalized event. Immutable once built."""

    occurs_at: datetime  # timezone-aware; sort/merge key
    title: str
    category: EventCategory
    detail: str
    source_id: SourceId
    location: Optional[str] = None
    external_link: Optional[str] = None
    time_label: Optional[str] = None  # "Peak Night", "21:04", ...

    def __post_init__(self):
        if not isinstance(self.occurs_at, datetime):
            raise ValueError(f"occurs_at must be a datetime, got {type(self.occurs_at).__name__}")
        if self.occurs_at.tzinfo is None or self.occurs_at.utcoffset() is None:
            raise ValueError(f"occurs_at must be timezone-aware: {self.occurs_at!r}")

    def to_dict(self) -> Dict:
        return {
            'occurs_at': self.occurs_at.isoformat(),
            'title': self.title,
            'category': self.category.value,
            'detail': self.detail,
            'source_id': self.source_id.value,
            'location': self.location,
            'external_link': self.external_link,
            'time_label': self.time_label,
        }


@dataclass(frozen=True)
class Observer:
    """Observer position on Earth. Altitude in metres."""

    latitude: float
    longitude: float
    altitude: float = 0.0

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise InputValidationError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise InputValidationError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> Dict:
        return {'latitude': self.latitude, 'longitude': self.longitude, 'altitude': self.altitude}


@dataclass(frozen=True)
class FetchWindow:
    """Date range, and optional observer, that parameterizes one fetch cycle."""

    start: date
    end: date
    observer: Optional[Observer] = None

    def __post_init__(self):
        if isinstance(self.start, datetime) or isinstance(self.end, datetime):
            raise InputValidationError("window bounds must be dates, not datetimes")
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise InputValidationError("window bounds must be dates")
        if self.start > self.end:
            raise InputValidationError(f"window start {self.start} is after end {self.end}")

    @classmethod
    def single_day(cls, day: date, observer: Optional[Observer] = None) -> "FetchWindow":
        return cls(day, day, observer)

    @classmethod
    def last_days(cls, days: int, today: date, observer: Optional[Observer] = None) -> "FetchWindow":
        """Window covering `days` days before `today` up to and including today."""
        if days < 0:
            raise InputValidationError(f"days must be non-negative, got {days}")
        return cls(today - timedelta(days=days), today, observer)

    @property
    def days(self) -> int:
        """Number of calendar days covered, inclusive."""
        return (self.end - self.start).days + 1

    def dates(self) -> List[date]:
        return [self.start + timedelta(days=i) for i in range(self.days)]

    def contains(self, moment: datetime) -> bool:
        """True if the moment's UTC calendar date falls inside the window."""
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return self.start <= moment.date() <= self.end

    def to_dict(self) -> Dict:
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'observer': self.observer.to_dict() if self.observer else None,
        }


@dataclass(frozen=True)
class ErrorDescriptor:
    """Serializable description of one failed source."""

    source_id: SourceId
    label: str
    kind: str  # "source" or "configuration"
    message: str

    @classmethod
    def from_exception(cls, error: SourceError, label: str) -> "ErrorDescriptor":
        return cls(
            source_id=error.source_id,
            label=error.label or label,
            kind=error.kind,
            message=error.message,
        )

    def banner_text(self) -> str:
        return f"Failed to load {self.label}: {self.message}"

    def to_dict(self) -> Dict:
        return {
            'source_id': getattr(self.source_id, 'value', self.source_id),
            'label': self.label,
            'kind': self.kind,
            'message': self.message,
        }


@dataclass(frozen=True)
class SourceResult:
    """Outcome of one adapter in one fetch cycle: events or an error."""

    source_id: SourceId
    label: str
    events: Tuple[Event, ...] = ()
    error: Optional[ErrorDescriptor] = None

    def __post_init__(self):
        if self.error is not None and self.events:
            raise ValueError("a failed source cannot carry events")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregateResult:
    """Per-source results of one fetch cycle, in adapter registration order."""

    results: Tuple[SourceResult, ...]

    @property
    def any_error(self) -> bool:
        return any(result.error is not None for result in self.results)


@dataclass(frozen=True)
class Timeline:
    """Time-ascending merge of every successful source plus the failures."""

    events: Tuple[Event, ...] = ()
    errors: Tuple[ErrorDescriptor, ...] = ()
    groups: Dict[str, Tuple[Event, ...]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.events)

    def group(self, key: str) -> Tuple[Event, ...]:
        """Events for one source label, or the whole timeline for "all"."""
        if key == "all":
            return self.events
        return self.groups.get(key, ())

    def banner(self) -> Optional[str]:
        """Single human-readable banner for every failed source, or None."""
        if not self.errors:
            return None
        return " | ".join(error.banner_text() for error in self.errors)
