"""
Data model of the pattern engine: incidents in, patterns out.

Incidents are owned by the external store and are treated as immutable for the
length of a run. Patterns are built by the detectors and validated on
construction so a broken pattern can never reach the ranking step.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import pandas as pd

from crime_patterns.utils.crime_taxonomy import normalize_crime_type
from crime_patterns.utils.exceptions import MalformedIncidentError, PatternValidationError


PATTERN_KINDS: Tuple[str, ...] = (
    "hotspot",
    "temporal-pattern",
    "crime-series",
    "geographic-cluster",
    "predictive-hotspot",
    "risk-assessment",
)

RISK_LEVELS: Tuple[str, ...] = ("low", "medium", "high")

MULTIPLE_LOCATIONS = "Multiple locations"


class Severity(Enum):
    """Ordinal incident severity; `.score` is the 1-4 scale used by every detector."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def score(self) -> int:
        return _SEVERITY_SCORES[self]

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        if value is None or _is_missing(value):
            return cls.MEDIUM
        if isinstance(value, Severity):
            return value
        key = str(value).strip().lower()
        if key in _SEVERITY_ALIASES:
            return _SEVERITY_ALIASES[key]
        raise ValueError(f'Unknown severity {value!r}')


_SEVERITY_SCORES = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

# Legacy labels used by older incident forms
_SEVERITY_ALIASES = {
    "low": Severity.LOW,
    "minor": Severity.LOW,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "high": Severity.HIGH,
    "serious": Severity.HIGH,
    "critical": Severity.CRITICAL,
}


class Coordinates(NamedTuple):
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": float(self.lat), "lng": float(self.lng)}


def _is_missing(value: Any) -> bool:
    # NaN / NaT / pd.NA coming from DataFrame rows; containers are never "missing"
    if isinstance(value, (str, bytes, Mapping, list, tuple)):
        return False
    return bool(pd.isna(value))


def as_aware(value: datetime) -> datetime:
    """Naive datetimes are read as UTC; aware ones keep their own offset."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accept datetime/pandas Timestamp, ISO8601 (with/without 'Z') or UNIX seconds/ms.
    Returns an aware datetime or None if invalid. Naive input is taken as UTC,
    aware input keeps its own offset.
    """
    if value is None or _is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return as_aware(value)

    if isinstance(value, (int, float)):
        # treat large numbers as ms
        ts = float(value) / 1000.0 if value > 1e12 else float(value)
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1]
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        return as_aware(dt)

    return None


def _parse_coordinates(raw: Any) -> Optional[Coordinates]:
    if raw is None:
        return None
    if isinstance(raw, Coordinates):
        return raw
    if isinstance(raw, Mapping):
        lat, lng = raw.get("lat"), raw.get("lng", raw.get("lon"))
    else:
        # GeoJSON order [lng, lat], as stored by the incident forms
        try:
            lng, lat = raw
        except (TypeError, ValueError):
            return None
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return Coordinates(lat, lng)


@dataclass(frozen=True)
class Incident:
    """
    A reported crime event as consumed by the detectors.

    Attributes:
        id (str): Opaque unique identifier
        crime_type (str): Member of CRIME_TYPES
        severity (Severity): Ordinal severity
        location (str): Free-text address key as reported
        timestamp (datetime): Aware point in time
        coordinates (Coordinates | None): Optional known position
    """

    id: str
    crime_type: str
    severity: Severity
    location: str
    timestamp: datetime
    coordinates: Optional[Coordinates] = None

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, 'timestamp', as_aware(self.timestamp))

    @property
    def location_key(self) -> str:
        return self.location.lower().strip()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Incident":
        """
        Build an Incident from a raw store record.

        Accepts `id`/`_id`, `type`/`incidentType`/`crime_type`, `dateTime`/`timestamp`,
        and `location` as text or as a mapping with `address` and `coordinates`.

        Raises:
            MalformedIncidentError: identifier, timestamp, location or crime type missing/invalid
        """
        identifier = record.get("id", record.get("_id"))
        if identifier is None or str(identifier).strip() == "":
            raise MalformedIncidentError(f"Incident without identifier: {record!r}")
        identifier = str(identifier)

        raw_type = record.get("crime_type", record.get("type", record.get("incidentType")))
        crime_type = normalize_crime_type(raw_type)
        if crime_type is None:
            raise MalformedIncidentError(f"Incident {identifier} has unknown crime type {raw_type!r}")

        try:
            severity = Severity.parse(record.get("severity"))
        except ValueError as e:
            raise MalformedIncidentError(f"Incident {identifier}: {e}")

        raw_location = record.get("location")
        coordinates = _parse_coordinates(record.get("coordinates"))
        if isinstance(raw_location, Mapping):
            coordinates = coordinates or _parse_coordinates(raw_location.get("coordinates"))
            raw_location = raw_location.get("address")
        if raw_location is None or _is_missing(raw_location):
            raise MalformedIncidentError(f"Incident {identifier} has no location")
        location = str(raw_location).strip()
        if not location:
            raise MalformedIncidentError(f"Incident {identifier} has no location")
        if coordinates is None and "latitude" in record and "longitude" in record:
            coordinates = _parse_coordinates({"lat": record["latitude"], "lng": record["longitude"]})

        timestamp = parse_timestamp(record.get("timestamp", record.get("dateTime")))
        if timestamp is None:
            raise MalformedIncidentError(f"Incident {identifier} has no valid timestamp")

        return cls(
            id=identifier,
            crime_type=crime_type,
            severity=severity,
            location=location,
            timestamp=timestamp,
            coordinates=coordinates,
        )


@dataclass
class Pattern:
    """
    A confidence-scored finding referencing the incidents that support it.

    Validated on construction: confidence must lie in [0, 1], related incidents
    must be non-empty and unique, kind and risk level must be known values.
    """

    kind: str
    subtype: Optional[str]
    description: str
    confidence: float
    location: str
    related_incidents: Tuple[str, ...]
    risk_level: str
    statistics: Dict[str, Any] = field(default_factory=dict)
    time_pattern: Dict[str, Any] = field(default_factory=dict)
    recommendations: Tuple[str, ...] = ()
    coordinates: Optional[Coordinates] = None
    detector: Optional[str] = None

    def __post_init__(self) -> None:
        self.related_incidents = tuple(self.related_incidents)
        self.recommendations = tuple(self.recommendations)
        self.confidence = float(self.confidence)

        if self.kind not in PATTERN_KINDS:
            raise PatternValidationError(f'Unknown pattern kind {self.kind!r}')
        if math.isnan(self.confidence) or not 0.0 <= self.confidence <= 1.0:
            raise PatternValidationError(
                f'{self.kind} pattern confidence {self.confidence} outside [0, 1]'
            )
        if not self.related_incidents:
            raise PatternValidationError(f'{self.kind} pattern has no related incidents')
        if len(set(self.related_incidents)) != len(self.related_incidents):
            raise PatternValidationError(f'{self.kind} pattern lists an incident twice')
        if self.risk_level not in RISK_LEVELS:
            raise PatternValidationError(f'Unknown risk level {self.risk_level!r}')

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "type": self.kind,
            "subtype": self.subtype,
            "description": self.description,
            "confidence": self.confidence,
            "location": self.location,
            "statistics": self.statistics,
            "timePattern": self.time_pattern,
            "relatedIncidents": list(self.related_incidents),
            "recommendations": list(self.recommendations),
            "riskLevel": self.risk_level,
        }
        if self.coordinates is not None:
            payload["coordinates"] = self.coordinates.to_dict()
        if self.detector:
            payload["detector"] = self.detector
        return payload


@dataclass(frozen=True)
class AnalysisOptions:
    """Caller options for one analysis run."""

    time_range: str = "30days"
    location: Optional[str] = None
    crime_types: Optional[Tuple[str, ...]] = None
    min_confidence: Optional[float] = None
    parallel: bool = False
    deadline_seconds: Optional[float] = None

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]]) -> "AnalysisOptions":
        """Accept the camelCase keys used by the web layer as well as snake_case."""
        options = options or {}

        def pick(*keys, default=None):
            for key in keys:
                if options.get(key) is not None:
                    return options[key]
            return default

        crime_types = pick("crimeTypes", "crime_types")
        if isinstance(crime_types, str):
            crime_types = (crime_types,)
        min_confidence = pick("minConfidence", "min_confidence")
        deadline_seconds = pick("deadlineSeconds", "deadline_seconds")
        return cls(
            time_range=pick("timeRange", "time_range", default="30days"),
            location=pick("location", "locationSubstring", "location_substring") or None,
            crime_types=tuple(crime_types) if crime_types else None,
            min_confidence=float(min_confidence) if min_confidence is not None else None,
            parallel=bool(pick("parallel", default=False)),
            deadline_seconds=float(deadline_seconds) if deadline_seconds is not None else None,
        )


@dataclass
class AnalysisResult:
    """Outcome of one run, handed back to the caller."""

    success: bool
    patterns: List[Pattern]
    statistics: Dict[str, Any]
    metadata: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": self.success,
            "patterns": [p.to_dict() for p in self.patterns],
            "statistics": self.statistics,
            "metadata": self.metadata,
        }
        if self.message:
            payload["message"] = self.message
        if self.error:
            payload["error"] = self.error
        return payload


def incident_ids(incidents: Iterable[Incident]) -> List[str]:
    return [inc.id for inc in incidents]


__all__ = [
    "PATTERN_KINDS",
    "RISK_LEVELS",
    "MULTIPLE_LOCATIONS",
    "Severity",
    "Coordinates",
    "Incident",
    "Pattern",
    "AnalysisOptions",
    "AnalysisResult",
    "as_aware",
    "parse_timestamp",
    "incident_ids",
]
