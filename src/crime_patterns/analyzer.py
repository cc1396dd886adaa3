"""
Analysis orchestrator.

Queries the incident source once, builds the per-run index, runs every
detector over the same snapshot, then filters, validates and ranks the merged
patterns and attaches statistics and run metadata.

Usage:
    from crime_patterns import CrimePatternAnalyzer, InMemoryIncidentSource

    analyzer = CrimePatternAnalyzer(InMemoryIncidentSource(records))
    result = analyzer.run_analysis({'timeRange': '30days', 'minConfidence': 0.6})
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from crime_patterns.config import AnalysisConfig, load_config
from crime_patterns.data.geocoding import Geocoder, HashGeocoder
from crime_patterns.data.sources import IncidentSource
from crime_patterns.detectors import AnalysisContext, PatternDetector, default_detectors
from crime_patterns.filtering import (
    MIN_INCIDENTS_FOR_ANALYSIS,
    IncidentIndex,
    crime_type_distribution,
    prepare_incidents,
    resolve_time_range,
    severity_distribution,
    sort_newest_first,
    utcnow,
)
from crime_patterns.models import AnalysisOptions, AnalysisResult, Incident, Pattern, as_aware, incident_ids
from crime_patterns.scoring import (
    confidence_distribution,
    filter_and_rank,
    patterns_detected,
    risk_level_distribution,
    validate_patterns,
)
from crime_patterns.utils.exceptions import DataRetrievalError
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

INSUFFICIENT_DATA_MESSAGE = 'Insufficient data for meaningful analysis'


def basic_statistics(incidents: Sequence[Incident]) -> Dict[str, Any]:
    """Counts over the filtered snapshot (expected newest first)."""
    time_range = None
    if incidents:
        stamps = [inc.timestamp for inc in incidents]
        time_range = {'start': min(stamps).isoformat(), 'end': max(stamps).isoformat()}
    return {
        'totalIncidents': len(incidents),
        'timeRange': time_range,
        'crimeTypes': crime_type_distribution(incidents),
        'severityDistribution': severity_distribution(incidents),
    }


def advanced_statistics(incidents: Sequence[Incident], patterns: Sequence[Pattern]) -> Dict[str, Any]:
    """Basic statistics plus summaries of all detector output (before confidence filtering)."""
    stats = basic_statistics(incidents)
    stats['patternsDetected'] = patterns_detected(patterns)
    stats['confidenceDistribution'] = confidence_distribution(patterns)
    stats['riskLevelDistribution'] = risk_level_distribution(patterns)
    return stats


class CrimePatternAnalyzer:
    """
    Runs the full pattern analysis against one incident source.

    Attributes:
        source (IncidentSource): Store queried once per run
        config (AnalysisConfig): Tunables (defaults from load_config())
        geocoder (Geocoder): Resolves location keys without coordinates
        detectors (List[PatternDetector]): Executed and merged in this order
    """

    def __init__(
        self,
        source: IncidentSource,
        config: Optional[AnalysisConfig] = None,
        geocoder: Optional[Geocoder] = None,
        detectors: Optional[Sequence[PatternDetector]] = None,
    ) -> None:
        self.source = source
        self.config = config or load_config()
        self.geocoder = geocoder or HashGeocoder()
        self.detectors = list(detectors) if detectors is not None else default_detectors()

    def _fetch(self, options: AnalysisOptions, time_range: str, now: datetime) -> List[Any]:
        """
        Query the source with the configured timeout.

        Raises:
            DataRetrievalError: The source failed or did not answer in time
        """
        timeout = self.config.fetch_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(
                self.source.query,
                time_range,
                location=options.location,
                crime_types=options.crime_types,
                now=now,
            )
            return list(future.result(timeout=timeout))
        except FutureTimeoutError:
            raise DataRetrievalError(f'Incident source did not respond within {timeout}s')
        except DataRetrievalError:
            raise
        except Exception as e:
            raise DataRetrievalError(f'Incident source query failed: {str(e)}')
        finally:
            # a timed-out query is left to finish in the background
            executor.shutdown(wait=False)

    def _run_detectors(self, index: IncidentIndex, context: AnalysisContext, parallel: bool,
                       started: float, deadline: Optional[float]):
        def run_one(detector: PatternDetector) -> Optional[List[Pattern]]:
            if deadline is not None and time.monotonic() - started >= deadline:
                return None
            logger.debug(f'Running detector {detector.name}')
            found = detector.detect(index, context)
            logger.debug(f'{detector.name} emitted {len(found)} candidate patterns')
            return found

        if parallel and len(self.detectors) > 1:
            with ThreadPoolExecutor(max_workers=len(self.detectors)) as pool:
                futures = [pool.submit(run_one, d) for d in self.detectors]
                outputs = [f.result() for f in futures]
        else:
            outputs = [run_one(d) for d in self.detectors]

        executed, skipped, merged = [], [], []
        for detector, found in zip(self.detectors, outputs):
            if found is None:
                skipped.append(detector.name)
                continue
            executed.append(detector.name)
            merged.extend(found)
        if skipped:
            logger.warning(f'Deadline of {deadline}s reached; skipped detectors: {skipped}')
        return merged, executed, skipped

    def run_analysis(self, options: Union[AnalysisOptions, Mapping[str, Any], None] = None,
                     now: Optional[datetime] = None) -> AnalysisResult:
        """
        Run every detector over one filtered snapshot.

        Args:
            options: AnalysisOptions or a mapping (camelCase or snake_case keys)
            now (datetime | None): Reference time; wall clock when omitted

        Returns:
            AnalysisResult: Ranked patterns with statistics and metadata. A failed
                fetch or fewer than 3 incidents yield success=False.
        """
        if not isinstance(options, AnalysisOptions):
            options = AnalysisOptions.from_dict(options)
        started = time.monotonic()
        now = as_aware(now) if now else utcnow()
        time_range, _ = resolve_time_range(options.time_range, now)
        min_confidence = options.min_confidence if options.min_confidence is not None else self.config.min_confidence
        deadline = options.deadline_seconds if options.deadline_seconds is not None else self.config.deadline_seconds

        metadata: Dict[str, Any] = {
            'analysisDate': now.isoformat(),
            'totalIncidents': 0,
            'timeRange': time_range,
            'algorithmsUsed': [],
            'skippedDetectors': [],
            'minConfidence': min_confidence,
        }

        logger.info(f'Starting crime pattern analysis (timeRange={time_range}, location={options.location!r}, '
                    f'crimeTypes={options.crime_types})')
        try:
            raw = self._fetch(options, time_range, now)
        except DataRetrievalError as e:
            logger.error(f'Analysis aborted: {str(e)}')
            metadata['durationMs'] = int((time.monotonic() - started) * 1000)
            return AnalysisResult(
                success=False,
                patterns=[],
                statistics=basic_statistics([]),
                metadata=metadata,
                error=str(e),
            )

        incidents = sort_newest_first(prepare_incidents(raw))
        metadata['totalIncidents'] = len(incidents)

        if len(incidents) < MIN_INCIDENTS_FOR_ANALYSIS:
            logger.info(f'Only {len(incidents)} incidents match; skipping detection')
            metadata['durationMs'] = int((time.monotonic() - started) * 1000)
            return AnalysisResult(
                success=False,
                patterns=[],
                statistics=basic_statistics(incidents),
                metadata=metadata,
                message=INSUFFICIENT_DATA_MESSAGE,
            )

        index = IncidentIndex.build(incidents, self.geocoder)
        context = AnalysisContext(now=now, config=self.config)
        candidates, executed, skipped = self._run_detectors(index, context, options.parallel, started, deadline)

        validate_patterns(candidates, incident_ids(incidents))
        ranked = filter_and_rank(candidates, min_confidence)

        metadata['algorithmsUsed'] = executed
        metadata['skippedDetectors'] = skipped
        metadata['durationMs'] = int((time.monotonic() - started) * 1000)
        logger.info(f'Analysis complete. Found {len(ranked)} patterns '
                    f'({len(candidates)} candidates from {len(incidents)} incidents)')

        return AnalysisResult(
            success=True,
            patterns=ranked,
            statistics=advanced_statistics(incidents, candidates),
            metadata=metadata,
        )


def run_analysis(source: IncidentSource,
                 options: Union[AnalysisOptions, Mapping[str, Any], None] = None,
                 config: Optional[AnalysisConfig] = None,
                 geocoder: Optional[Geocoder] = None,
                 now: Optional[datetime] = None) -> AnalysisResult:
    """Convenience wrapper: one-off CrimePatternAnalyzer run."""
    return CrimePatternAnalyzer(source, config=config, geocoder=geocoder).run_analysis(options, now=now)
