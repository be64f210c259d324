"""Utility helpers for matching free-text incident categories against dashboard filters."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple


# Categories offered by the dispatch dashboard filters.
AVAILABLE_CRIME_TYPES: Tuple[str, ...] = (
    "Assault",
    "Breaking and Entering",
    "Domestic Violence",
    "Drug Related",
    "Fraud",
    "Harassment",
    "Others",
    "Theft",
    "Vandalism",
    "Vehicle Theft",
)

# Filter label (lowercase) -> fragments that also count as a match.
# Mobile reporters type their own labels, so "Burglary" has to land under
# "Breaking and Entering" and "Car stolen" under "Vehicle Theft".
CATEGORY_ALIASES: Dict[str, Tuple[str, ...]] = {
    "breaking and entering": ("breaking", "burglary"),
    "vehicle theft": ("vehicle", "car"),
    "drug-related": ("drug",),
    "domestic violence": ("domestic", "violence"),
}


def matches_category(report_category: Optional[str], selected: Optional[str]) -> bool:
    """Loose category match used by the heat map filter.

    Exact (case-insensitive) first, then substring, then the alias table.
    An empty selection matches everything.
    """
    if not selected:
        return True
    reported = (report_category or "").lower()
    wanted = selected.lower()

    if reported == wanted:
        return True
    if wanted in reported:
        return True
    return any(fragment in reported for fragment in CATEGORY_ALIASES.get(wanted, ()))


def extract_crime_types(categories: Iterable[Optional[str]]) -> List[str]:
    """Distinct, trimmed, non-blank categories in sorted order."""
    return sorted({c.strip() for c in categories if c and c.strip()})


__all__ = ["AVAILABLE_CRIME_TYPES", "CATEGORY_ALIASES", "matches_category", "extract_crime_types"]
