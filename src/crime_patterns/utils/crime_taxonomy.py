"""Utility helpers for the incident crime-type enumeration and its higher-level categories."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple


# Closed enumeration accepted by the incident store.
CRIME_TYPES: Tuple[str, ...] = (
    "theft", "burglary", "robbery", "assault", "battery", "homicide",
    "vandalism", "fraud", "cybercrime", "drug_offense", "traffic_violation",
    "domestic_violence", "public_disturbance", "weapon_offense", "arson",
    "kidnapping", "sexual_assault", "harassment", "trespassing", "other",
)

CRIME_CATEGORY_MAP: Dict[str, str] = {
    # Violent crime
    "homicide": "Violent",
    "assault": "Violent",
    "battery": "Violent",
    "robbery": "Violent",
    "kidnapping": "Violent",
    "sexual_assault": "Violent",
    "domestic_violence": "Violent",
    "arson": "Violent",

    # Property crime
    "theft": "Property",
    "burglary": "Property",
    "vandalism": "Property",
    "trespassing": "Property",
    "fraud": "Property",

    # Narcotics / weapons
    "drug_offense": "Narcotics",
    "weapon_offense": "Narcotics",  # contraband, grouped with narcotics

    # Quality-of-life / disorder
    "public_disturbance": "Disorder",
    "harassment": "Disorder",
    "traffic_violation": "Disorder",

    # Online
    "cybercrime": "Cyber",

    "other": "Other",
}


def normalize_crime_type(crime_type: Optional[str]) -> Optional[str]:
    """Canonical form of a crime type ("Drug Offense" -> "drug_offense"), or None if unknown."""
    if not crime_type:
        return None
    key = str(crime_type).strip().lower().replace("-", "_").replace(" ", "_")
    return key if key in CRIME_TYPES else None


def categorize_crime_type(crime_type: Optional[str]) -> str:
    """Map an incident crime type to a broader analytical category."""
    key = normalize_crime_type(crime_type)
    if key is None:
        return "Unclassified"
    return CRIME_CATEGORY_MAP.get(key, "Unclassified")


def category_distribution(crime_types: Iterable[str]) -> Mapping[str, int]:
    """Count crime types per category, keeping first-seen category order."""
    counts: Dict[str, int] = {}
    for t in crime_types:
        category = categorize_crime_type(t)
        counts[category] = counts.get(category, 0) + 1
    return counts


__all__ = [
    "CRIME_TYPES",
    "CRIME_CATEGORY_MAP",
    "normalize_crime_type",
    "categorize_crime_type",
    "category_distribution",
]
