#!/usr/bin/env python3
"""Run the pattern engine over an incident snapshot and write the result as JSON.

Usage:
    python scripts/run_pattern_analysis.py <snapshot.parquet|snapshot.csv|partition_dir> [time_range] [min_confidence]

Writes: reports/pattern_analysis.json
"""
from pathlib import Path
import json
import sys

from crime_patterns import CrimePatternAnalyzer, ParquetIncidentSource, load_config

ROOT = Path(__file__).resolve().parents[1]
OUT = ROOT / 'reports' / 'pattern_analysis.json'


def main():
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        return 2

    options = {'timeRange': sys.argv[2] if len(sys.argv) > 2 else '30days'}
    if len(sys.argv) > 3:
        options['minConfidence'] = float(sys.argv[3])

    analyzer = CrimePatternAnalyzer(ParquetIncidentSource(sys.argv[1]), config=load_config())
    result = analyzer.run_analysis(options)

    OUT.parent.mkdir(parents=True, exist_ok=True)
    with open(OUT, 'w') as f:
        json.dump(result.to_dict(), f, indent=2, default=str)
    print('Wrote', OUT, f'({len(result.patterns)} patterns)')
    return 0 if result.success else 1


if __name__ == '__main__':
    raise SystemExit(main())
