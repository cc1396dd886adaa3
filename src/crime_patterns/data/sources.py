"""
Incident sources: the query contract consumed by the analyzer plus the
adapters shipped with the package (memory, DataFrame, parquet/CSV snapshot).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, Union

import pandas as pd

from crime_patterns.filtering import filter_incidents, prepare_incidents
from crime_patterns.models import Incident
from crime_patterns.utils.exceptions import DataRetrievalError
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

# Column aliases of common city exports -> Incident.from_record field names
COLUMN_ALIASES = {
    'id': ['id', '_id', 'case_number', 'incident_id'],
    'crime_type': ['crime_type', 'type', 'incidentType', 'primary_type'],
    'severity': ['severity'],
    'location': ['location', 'address', 'block_address', 'block', 'street_norm'],
    'timestamp': ['timestamp', 'dateTime', 'datetime', 'date'],
    'latitude': ['latitude', 'lat'],
    'longitude': ['longitude', 'lng', 'lon'],
}


class IncidentSource(Protocol):
    """Queryable incident store. Results are sorted newest first."""

    def query(
        self,
        time_range: str,
        location: Optional[str] = None,
        crime_types: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> Sequence[Incident]:
        ...


class InMemoryIncidentSource:
    """Incidents (or raw record mappings) held in a list."""

    def __init__(self, incidents: Iterable[Union[Incident, Mapping[str, Any]]]) -> None:
        self.incidents: List[Incident] = prepare_incidents(incidents)
        logger.debug(f'In-memory source holds {len(self.incidents)} incidents')

    def query(self, time_range, location=None, crime_types=None, now=None) -> List[Incident]:
        return filter_incidents(self.incidents, time_range, location, crime_types, now)


def _first_existing(columns: Iterable[str], candidates: Sequence[str]) -> Optional[str]:
    columns = list(columns)
    for c in candidates:
        if c in columns:
            return c
    return None


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename the first matching alias of every known field to its canonical name."""
    renames = {}
    for canonical, candidates in COLUMN_ALIASES.items():
        if canonical in df.columns:
            continue
        found = _first_existing(df.columns, candidates)
        if found is not None:
            renames[found] = canonical
    return df.rename(columns=renames)


def incidents_from_frame(df: pd.DataFrame) -> List[Incident]:
    """Convert DataFrame rows to Incidents; malformed rows are dropped with a warning."""
    if df.empty:
        return []
    df = normalize_columns(df)
    missing = [c for c in ('id', 'crime_type', 'location', 'timestamp') if c not in df.columns]
    if missing:
        raise DataRetrievalError(f'Incident frame is missing required columns: {missing}')
    return prepare_incidents(df.to_dict(orient='records'))


class DataFrameIncidentSource:
    """
    Incident rows held in a pandas DataFrame.

    Rows are converted once at construction; queries filter the converted list.
    """

    def __init__(self, df: pd.DataFrame) -> None:
        self.incidents = incidents_from_frame(df)
        logger.info(f'Loaded {len(self.incidents)} incidents from {len(df)} rows')

    def query(self, time_range, location=None, crime_types=None, now=None) -> List[Incident]:
        return filter_incidents(self.incidents, time_range, location, crime_types, now)


class ParquetIncidentSource:
    """
    Incident snapshot on disk: a parquet file, a directory of parquet
    partitions, or a CSV file. The snapshot is read lazily on first query.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._incidents: Optional[List[Incident]] = None

    def _read(self) -> pd.DataFrame:
        path = self.path
        if not path.exists():
            raise DataRetrievalError(f'Incident snapshot not found: {path}')
        try:
            if path.is_dir():
                files = sorted(path.rglob('*.parquet'))
                if not files:
                    raise DataRetrievalError(f'No parquet files under {path}')
                return pd.concat([pd.read_parquet(f, engine='pyarrow') for f in files], ignore_index=True)
            if path.suffix.lower() == '.csv':
                return pd.read_csv(path, low_memory=False)
            return pd.read_parquet(path, engine='pyarrow')
        except DataRetrievalError:
            raise
        except Exception as e:
            raise DataRetrievalError(f'Failed reading incident snapshot {path}: {e}')

    @property
    def incidents(self) -> List[Incident]:
        if self._incidents is None:
            df = self._read()
            logger.info(f'Read {len(df)} rows from {self.path}')
            self._incidents = incidents_from_frame(df)
        return self._incidents

    def query(self, time_range, location=None, crime_types=None, now=None) -> List[Incident]:
        return filter_incidents(self.incidents, time_range, location, crime_types, now)
