import pytest

from crime_patterns.models import Pattern
from crime_patterns.scoring import (
    categorize_risk_level,
    confidence_distribution,
    filter_and_rank,
    patterns_detected,
    rank_patterns,
    risk_level_distribution,
    validate_patterns,
)
from crime_patterns.utils.exceptions import PatternValidationError


def _pattern(name, confidence, related, kind='hotspot', risk_level='low'):
    return Pattern(
        kind=kind,
        subtype=None,
        description=name,
        confidence=confidence,
        location=name,
        related_incidents=related,
        risk_level=risk_level,
    )


class TestCategorizeRiskLevel:
    @pytest.mark.parametrize('score,level', [
        (0.0, 'low'), (0.4999, 'low'), (0.5, 'medium'), (0.6999, 'medium'), (0.7, 'high'), (1.0, 'high'),
    ])
    def test_thresholds(self, score, level):
        assert categorize_risk_level(score) == level


class TestRanking:
    def test_confidence_then_related_count(self):
        patterns = [
            _pattern('a', 0.6, ['1']),
            _pattern('b', 0.8, ['1']),
            _pattern('c', 0.6, ['1', '2', '3']),
            _pattern('d', 0.6, ['2']),
        ]
        assert [p.description for p in rank_patterns(patterns)] == ['b', 'c', 'a', 'd']

    def test_filter_and_rank_drops_low_confidence(self):
        patterns = [_pattern('a', 0.49, ['1']), _pattern('b', 0.5, ['1']), _pattern('c', 0.9, ['1'])]
        ranked = filter_and_rank(patterns, 0.5)
        assert [p.description for p in ranked] == ['c', 'b']
        assert all(p.confidence >= 0.5 for p in ranked)


class TestValidation:
    def test_subset_passes(self):
        validate_patterns([_pattern('a', 0.6, ['1', '2'])], ['1', '2', '3'])

    def test_foreign_incident_raises(self):
        with pytest.raises(PatternValidationError):
            validate_patterns([_pattern('a', 0.6, ['1', '99'])], ['1', '2'])


class TestDistributions:
    @pytest.fixture
    def patterns(self):
        return [
            _pattern('a', 0.75, ['1'], risk_level='high'),
            _pattern('b', 0.55, ['1'], kind='temporal-pattern', risk_level='medium'),
            _pattern('c', 0.45, ['1'], kind='risk-assessment'),
            _pattern('d', 0.7, ['1'], kind='temporal-pattern', risk_level='high'),
        ]

    def test_patterns_detected(self, patterns):
        assert patterns_detected(patterns) == {
            'hotspots': 1,
            'temporalPatterns': 2,
            'crimeSeries': 0,
            'geographicClusters': 0,
            'predictiveHotspots': 0,
            'riskAssessments': 1,
        }

    def test_confidence_distribution(self, patterns):
        assert confidence_distribution(patterns) == {'high': 2, 'medium': 1, 'low': 1}

    def test_risk_level_distribution(self, patterns):
        assert risk_level_distribution(patterns) == {'high': 2, 'medium': 1, 'low': 1}
