"""Detector contract shared by every pattern detector."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from crime_patterns.config import AnalysisConfig
from crime_patterns.filtering import IncidentIndex
from crime_patterns.models import Pattern


@dataclass(frozen=True)
class AnalysisContext:
    """Per-run values every detector may read: the reference time and the tunables."""

    now: datetime
    config: AnalysisConfig


class PatternDetector:
    """
    A read-only pass over one IncidentIndex that emits candidate patterns.

    Subclasses set `name` (reported in metadata.algorithmsUsed) and implement
    `detect`. Detectors never mutate the index and never filter on the run's
    minimum confidence; they apply only their own gating thresholds.
    """

    name = 'base'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f'{type(self).__name__}(name={self.name!r})'
