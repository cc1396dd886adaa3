from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from crime_patterns.models import (
    AnalysisOptions,
    AnalysisResult,
    Coordinates,
    Incident,
    Pattern,
    Severity,
    parse_timestamp,
)
from crime_patterns.utils.exceptions import MalformedIncidentError, PatternValidationError


def _pattern(**overrides):
    fields = dict(
        kind='hotspot',
        subtype='theft',
        description='Crime hotspot detected at 100 n state st',
        confidence=0.6,
        location='100 n state st',
        related_incidents=['a', 'b', 'c'],
        risk_level='medium',
    )
    fields.update(overrides)
    return Pattern(**fields)


class TestSeverity:
    def test_scores(self):
        assert [s.score for s in Severity] == [1, 2, 3, 4]

    def test_parse_aliases(self):
        assert Severity.parse('Minor') is Severity.LOW
        assert Severity.parse('moderate') is Severity.MEDIUM
        assert Severity.parse('SERIOUS') is Severity.HIGH
        assert Severity.parse('critical') is Severity.CRITICAL

    def test_missing_defaults_to_medium(self):
        assert Severity.parse(None) is Severity.MEDIUM
        assert Severity.parse(np.nan) is Severity.MEDIUM

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            Severity.parse('catastrophic')


class TestParseTimestamp:
    def test_naive_is_utc(self):
        ts = parse_timestamp(datetime(2024, 1, 1, 12, 0))
        assert ts.tzinfo is not None
        assert ts.utcoffset().total_seconds() == 0

    def test_aware_keeps_offset(self):
        ts = parse_timestamp('2024-01-01T06:00:00-06:00')
        assert ts.utcoffset() == timedelta(hours=-6)
        assert ts == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_iso_with_z(self):
        assert parse_timestamp('2024-01-01T12:00:00Z') == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_epoch_seconds_and_ms(self):
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(1704067200) == expected
        assert parse_timestamp(1704067200000) == expected

    def test_pandas_timestamp(self):
        assert parse_timestamp(pd.Timestamp('2024-01-01 12:00')) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_invalid(self):
        assert parse_timestamp('not a date') is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(pd.NaT) is None


class TestIncidentFromRecord:
    def test_web_record(self):
        record = {
            '_id': 'abc123',
            'type': 'burglary',
            'severity': 'high',
            'location': {'address': '  200 W Madison St ', 'coordinates': [-87.634, 41.882]},
            'dateTime': '2024-06-01T22:15:00Z',
        }
        inc = Incident.from_record(record)
        assert inc.id == 'abc123'
        assert inc.crime_type == 'burglary'
        assert inc.severity is Severity.HIGH
        assert inc.location == '200 W Madison St'
        assert inc.location_key == '200 w madison st'
        assert inc.coordinates == Coordinates(41.882, -87.634)
        assert inc.timestamp == datetime(2024, 6, 1, 22, 15, tzinfo=timezone.utc)

    def test_flat_record_with_lat_lng(self):
        record = {
            'id': 7,
            'crime_type': 'Drug Offense',
            'location': '1 E Main',
            'timestamp': '2024-06-01 10:00:00',
            'latitude': 41.9,
            'longitude': -87.7,
        }
        inc = Incident.from_record(record)
        assert inc.id == '7'
        assert inc.crime_type == 'drug_offense'
        assert inc.severity is Severity.MEDIUM
        assert inc.coordinates == Coordinates(41.9, -87.7)

    def test_out_of_range_coordinates_ignored(self):
        record = {'id': 1, 'type': 'theft', 'location': 'x', 'dateTime': '2024-06-01',
                  'coordinates': {'lat': 123.0, 'lng': 0.0}}
        assert Incident.from_record(record).coordinates is None

    @pytest.mark.parametrize('record', [
        {'type': 'theft', 'location': 'x', 'dateTime': '2024-06-01'},
        {'id': 1, 'type': 'jaywalking', 'location': 'x', 'dateTime': '2024-06-01'},
        {'id': 1, 'type': 'theft', 'location': '   ', 'dateTime': '2024-06-01'},
        {'id': 1, 'type': 'theft', 'location': 'x', 'dateTime': 'yesterday'},
        {'id': 1, 'type': 'theft', 'location': 'x', 'dateTime': '2024-06-01', 'severity': 'extreme'},
    ])
    def test_malformed(self, record):
        with pytest.raises(MalformedIncidentError):
            Incident.from_record(record)


class TestPattern:
    def test_to_dict_keys(self):
        p = _pattern(coordinates=Coordinates(41.0, -87.0), detector='hotspot-density',
                     recommendations=['Increase patrol frequency in this area'])
        d = p.to_dict()
        assert d['type'] == 'hotspot'
        assert d['relatedIncidents'] == ['a', 'b', 'c']
        assert d['riskLevel'] == 'medium'
        assert d['timePattern'] == {}
        assert d['coordinates'] == {'lat': 41.0, 'lng': -87.0}
        assert d['detector'] == 'hotspot-density'

    @pytest.mark.parametrize('confidence', [-0.01, 1.01, float('nan')])
    def test_confidence_bounds(self, confidence):
        with pytest.raises(PatternValidationError):
            _pattern(confidence=confidence)

    def test_related_must_be_non_empty_and_unique(self):
        with pytest.raises(PatternValidationError):
            _pattern(related_incidents=[])
        with pytest.raises(PatternValidationError):
            _pattern(related_incidents=['a', 'a'])

    def test_unknown_kind_and_risk(self):
        with pytest.raises(PatternValidationError):
            _pattern(kind='anomaly')
        with pytest.raises(PatternValidationError):
            _pattern(risk_level='extreme')


class TestAnalysisOptions:
    def test_defaults(self):
        opts = AnalysisOptions.from_dict(None)
        assert opts.time_range == '30days'
        assert opts.location is None
        assert opts.crime_types is None
        assert opts.min_confidence is None

    def test_camel_case(self):
        opts = AnalysisOptions.from_dict({
            'timeRange': '7days', 'location': 'state', 'crimeTypes': ['theft'], 'minConfidence': 0.7,
        })
        assert opts == AnalysisOptions(time_range='7days', location='state', crime_types=('theft',),
                                       min_confidence=0.7)

    def test_empty_crime_types_means_all(self):
        assert AnalysisOptions.from_dict({'crimeTypes': []}).crime_types is None

    def test_single_crime_type_string(self):
        assert AnalysisOptions.from_dict({'crimeTypes': 'theft'}).crime_types == ('theft',)

    def test_numeric_strings_are_converted(self):
        opts = AnalysisOptions.from_dict({'minConfidence': '0.6', 'deadlineSeconds': '2'})
        assert opts.min_confidence == 0.6
        assert opts.deadline_seconds == 2.0


class TestIncident:
    def test_naive_timestamp_read_as_utc(self):
        incident = Incident(id='1', crime_type='theft', severity=Severity.LOW,
                            location='100 N State St', timestamp=datetime(2024, 6, 14, 10))
        assert incident.timestamp == datetime(2024, 6, 14, 10, tzinfo=timezone.utc)

    def test_aware_timestamp_keeps_offset(self):
        central = timezone(timedelta(hours=-5))
        ts = datetime(2024, 6, 14, 10, tzinfo=central)
        incident = Incident(id='1', crime_type='theft', severity=Severity.LOW,
                            location='100 N State St', timestamp=ts)
        assert incident.timestamp.utcoffset() == timedelta(hours=-5)


def test_result_to_dict_omits_empty_message():
    result = AnalysisResult(success=True, patterns=[_pattern()], statistics={'totalIncidents': 3})
    d = result.to_dict()
    assert 'message' not in d and 'error' not in d
    assert d['patterns'][0]['type'] == 'hotspot'
