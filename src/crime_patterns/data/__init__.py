"""Incident sources and geocoders."""

from .geocoding import Geocoder, StaticGeocoder, HashGeocoder, NominatimGeocoder
from .sources import (
    IncidentSource,
    InMemoryIncidentSource,
    DataFrameIncidentSource,
    ParquetIncidentSource,
    incidents_from_frame,
)

__all__ = [
    'Geocoder',
    'StaticGeocoder',
    'HashGeocoder',
    'NominatimGeocoder',
    'IncidentSource',
    'InMemoryIncidentSource',
    'DataFrameIncidentSource',
    'ParquetIncidentSource',
    'incidents_from_frame',
]
