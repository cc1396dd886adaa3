import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

# Keep test runs from writing into ./logs
os.environ.setdefault('CRIME_PATTERNS_LOG_DIR', tempfile.mkdtemp(prefix='crime_patterns_logs_'))
os.environ.setdefault('CRIME_PATTERNS_LOG_LEVEL', 'WARNING')

from crime_patterns.config import AnalysisConfig
from crime_patterns.detectors import AnalysisContext
from crime_patterns.filtering import IncidentIndex
from crime_patterns.models import Coordinates, Incident, Severity

# Saturday
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config():
    return AnalysisConfig()


@pytest.fixture
def context(now, config):
    return AnalysisContext(now=now, config=config)


def at(days_ago, hour=None, minute=0):
    """Timestamp `days_ago` days before NOW, optionally pinned to an hour of that day."""
    ts = NOW - timedelta(days=days_ago)
    if hour is not None:
        ts = ts.replace(hour=hour, minute=minute)
    return ts


def make_incident(id, location='100 N State St', crime_type='theft', severity='medium',
                  timestamp=None, coordinates=None):
    return Incident(
        id=str(id),
        crime_type=crime_type,
        severity=Severity.parse(severity),
        location=location,
        timestamp=timestamp or at(1),
        coordinates=Coordinates(*coordinates) if coordinates else None,
    )


def build_index(incidents, geocoder=None):
    ordered = sorted(incidents, key=lambda inc: inc.timestamp, reverse=True)
    return IncidentIndex.build(ordered, geocoder)


@pytest.fixture
def hotspot_incidents():
    """10 incidents at one address: 9 within three days plus an older critical one."""
    incidents = [
        make_incident(f'hs-{i}', severity='medium' if i % 2 else 'high', timestamp=at(1 + (i % 3), hour=8 + i))
        for i in range(9)
    ]
    incidents.append(make_incident('hs-9', severity='critical', crime_type='robbery', timestamp=at(20, hour=23)))
    return incidents
