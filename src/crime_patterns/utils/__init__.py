from .crime_taxonomy import (
    CRIME_TYPES,
    CRIME_CATEGORY_MAP,
    normalize_crime_type,
    categorize_crime_type,
    category_distribution,
)

__all__ = [
    "CRIME_TYPES",
    "CRIME_CATEGORY_MAP",
    "normalize_crime_type",
    "categorize_crime_type",
    "category_distribution",
]
