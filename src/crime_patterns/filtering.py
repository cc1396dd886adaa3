"""
Filtering & grouping layer.

Resolves the caller's time-range tag, filters an incident snapshot, and builds
the per-run indices (by location, by crime type, by time bucket, resolved
coordinates) that the detectors read. Every container built here preserves the
order of the filtered sequence so tie-breaks downstream are deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from crime_patterns.models import Coordinates, Incident, as_aware
from crime_patterns.stats import centroid
from crime_patterns.utils.crime_taxonomy import normalize_crime_type
from crime_patterns.utils.exceptions import GeocodingError, MalformedIncidentError
from crime_patterns.utils.logger_config import setup_logger

if TYPE_CHECKING:
    from crime_patterns.data.geocoding import Geocoder

logger = setup_logger(__name__)

TIME_RANGE_DAYS: Dict[str, int] = {
    '7days': 7,
    '30days': 30,
    '90days': 90,
    '1year': 365,
}
DEFAULT_TIME_RANGE = '30days'
MIN_INCIDENTS_FOR_ANALYSIS = 3

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')
MONTH_NAMES = ('January', 'February', 'March', 'April', 'May', 'June',
               'July', 'August', 'September', 'October', 'November', 'December')

K = TypeVar('K')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_time_range(tag: Optional[str], now: Optional[datetime] = None) -> Tuple[str, datetime]:
    """
    Resolve a time-range tag to (effective tag, start of window).

    Unknown tags fall back to 30 days.
    """
    now = as_aware(now) if now else utcnow()
    if tag not in TIME_RANGE_DAYS:
        if tag is not None:
            logger.warning(f'Unknown time range {tag!r}; falling back to {DEFAULT_TIME_RANGE}')
        tag = DEFAULT_TIME_RANGE
    return tag, now - timedelta(days=TIME_RANGE_DAYS[tag])


def sort_newest_first(incidents: Iterable[Incident]) -> List[Incident]:
    return sorted(incidents, key=lambda inc: inc.timestamp, reverse=True)


def prepare_incidents(records: Iterable[Any]) -> List[Incident]:
    """
    Coerce raw store output into Incidents usable by the detectors.

    Records that cannot be converted (no timestamp, no location, unknown type)
    and repeated identifiers are dropped with a warning; the run continues.
    """
    incidents: List[Incident] = []
    seen = set()
    dropped = 0
    for record in records:
        if isinstance(record, Incident):
            incident = record
        else:
            try:
                incident = Incident.from_record(record)
            except MalformedIncidentError as e:
                logger.warning(f'Excluding malformed incident: {e}')
                dropped += 1
                continue
        if not incident.location_key:
            logger.warning(f'Excluding incident {incident.id} with blank location')
            dropped += 1
            continue
        if incident.id in seen:
            logger.warning(f'Excluding duplicate incident {incident.id}')
            dropped += 1
            continue
        seen.add(incident.id)
        incidents.append(incident)

    if dropped:
        logger.info(f'Excluded {dropped} of {dropped + len(incidents)} records before detection')
    return incidents


def filter_incidents(
    incidents: Iterable[Incident],
    time_range: Optional[str] = DEFAULT_TIME_RANGE,
    location: Optional[str] = None,
    crime_types: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
) -> List[Incident]:
    """
    Apply the store's query contract to an in-memory snapshot.

    Args:
        incidents: Candidate incidents
        time_range (str): 7days | 30days | 90days | 1year (unknown -> 30days)
        location (str | None): Case-insensitive substring of the location text
        crime_types: Optional set of crime types to keep
        now (datetime | None): Reference time; wall clock when omitted

    Returns:
        List[Incident]: Matching incidents, newest first
    """
    _, start = resolve_time_range(time_range, now)
    needle = location.lower().strip() if location and location.strip() else None
    types = None
    if crime_types:
        types = {normalize_crime_type(t) or str(t).strip().lower() for t in crime_types}

    selected = [
        inc for inc in incidents
        if inc.timestamp >= start
        and (needle is None or needle in inc.location.lower())
        and (types is None or inc.crime_type in types)
    ]
    return sort_newest_first(selected)


def _group(incidents: Iterable[Incident], key: Callable[[Incident], K]) -> Dict[K, Tuple[Incident, ...]]:
    groups: Dict[K, List[Incident]] = {}
    for incident in incidents:
        groups.setdefault(key(incident), []).append(incident)
    return {k: tuple(v) for k, v in groups.items()}


def group_by_location(incidents: Iterable[Incident]) -> Dict[str, Tuple[Incident, ...]]:
    """Normalized (lowercased, trimmed) location -> incidents, in input order."""
    return _group(incidents, lambda inc: inc.location_key)


def group_by_crime_type(incidents: Iterable[Incident]) -> Dict[str, Tuple[Incident, ...]]:
    return _group(incidents, lambda inc: inc.crime_type)


def hour_of_day(ts: datetime) -> int:
    return ts.hour


def day_of_week(ts: datetime) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (ts.weekday() + 1) % 7


def month_of_year(ts: datetime) -> int:
    return ts.month


def days_spanned(incidents: Sequence[Incident]) -> float:
    if len(incidents) < 2:
        return 0.0
    stamps = [inc.timestamp for inc in incidents]
    return (max(stamps) - min(stamps)) / timedelta(days=1)


def count_by(values: Iterable[K]) -> Dict[K, int]:
    """Occurrence counts, keyed in first-seen order."""
    counts: Dict[K, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


def crime_type_distribution(incidents: Iterable[Incident]) -> Dict[str, int]:
    return count_by(inc.crime_type for inc in incidents)


def severity_distribution(incidents: Iterable[Incident]) -> Dict[str, int]:
    return count_by(inc.severity.value for inc in incidents)


def average_severity(incidents: Sequence[Incident]) -> float:
    if not incidents:
        return 0.0
    return sum(inc.severity.score for inc in incidents) / len(incidents)


def dominant_crime_type(incidents: Sequence[Incident]) -> str:
    """Most frequent crime type; ties go to the type encountered first."""
    counts = crime_type_distribution(incidents)
    best_type, best_count = None, -1
    for crime_type, count in counts.items():
        if count > best_count:
            best_type, best_count = crime_type, count
    return best_type


def hourly_time_pattern(incidents: Sequence[Incident]) -> Dict[str, Any]:
    """Peak hour (earliest hour on ties) and the hour -> count distribution."""
    counts = count_by(hour_of_day(inc.timestamp) for inc in incidents)
    distribution = {hour: counts[hour] for hour in sorted(counts)}
    peak = max(distribution, key=lambda hour: (distribution[hour], -hour)) if distribution else None
    return {'peakHour': peak, 'distribution': distribution}


@dataclass(frozen=True)
class IncidentIndex:
    """
    Read-only indices over one filtered snapshot, shared by every detector of a run.

    Attributes:
        incidents: The filtered snapshot, newest first
        by_location: Normalized location key -> incidents
        by_crime_type: Crime type -> incidents
        by_hour / by_day_of_week / by_month: Time bucket -> incidents
        location_points: Location key -> representative point (or None)
        points: Incident id -> point (own coordinates, else its location's point)
    """

    incidents: Tuple[Incident, ...]
    by_location: Mapping[str, Tuple[Incident, ...]]
    by_crime_type: Mapping[str, Tuple[Incident, ...]]
    by_hour: Mapping[int, Tuple[Incident, ...]]
    by_day_of_week: Mapping[int, Tuple[Incident, ...]]
    by_month: Mapping[int, Tuple[Incident, ...]]
    location_points: Mapping[str, Optional[Coordinates]]
    points: Mapping[str, Optional[Coordinates]]

    @classmethod
    def build(cls, incidents: Sequence[Incident], geocoder: Optional[Geocoder] = None) -> 'IncidentIndex':
        incidents = tuple(incidents)
        by_location = group_by_location(incidents)

        location_points: Dict[str, Optional[Coordinates]] = {}
        for key, members in by_location.items():
            known = [inc.coordinates for inc in members if inc.coordinates is not None]
            if known:
                location_points[key] = Coordinates(*centroid(known))
            else:
                location_points[key] = _safe_locate(geocoder, members[0].location)

        points = {
            inc.id: inc.coordinates if inc.coordinates is not None else location_points[inc.location_key]
            for inc in incidents
        }

        return cls(
            incidents=incidents,
            by_location=by_location,
            by_crime_type=group_by_crime_type(incidents),
            by_hour=_group(incidents, lambda inc: hour_of_day(inc.timestamp)),
            by_day_of_week=_group(incidents, lambda inc: day_of_week(inc.timestamp)),
            by_month=_group(incidents, lambda inc: month_of_year(inc.timestamp)),
            location_points=location_points,
            points=points,
        )

    def point_of(self, incident: Incident) -> Optional[Coordinates]:
        return self.points.get(incident.id)


def _safe_locate(geocoder: Optional[Geocoder], location: str) -> Optional[Coordinates]:
    if geocoder is None:
        return None
    try:
        return geocoder.locate(location)
    except GeocodingError as e:
        logger.warning(f'Could not geocode {location!r}: {e}')
        return None
