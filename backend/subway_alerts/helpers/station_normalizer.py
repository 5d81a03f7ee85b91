"""
Station name normalization.

Alert text arrives with inconsistent station spellings: "St. George Station",
"Spadina stn", "VMC", "Bloor Yonge". These pure functions resolve such raw
names to a canonical catalog name through an ordered chain of rules; the first
rule that matches wins:

1. ``alias`` - case-insensitive lookup in the alias table
2. ``alias_without_periods`` - alias lookup with all periods removed
3. ``exact_name`` - case-insensitive match against canonical names
4. ``longest_contained_name`` - the longest canonical name contained in the input

Normalization never raises; an unresolvable name returns None and the caller
decides whether to pass the raw text through.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from subway_alerts.data.stations import DEFAULT_CATALOG, StationCatalog

# Trailing " Station" / " Stn" / " Stn." suffix, case-insensitive
_STATION_SUFFIX = re.compile(r"\s+(?:station|stn\.?)$", re.IGNORECASE)

NormalizationRule = Callable[[str, StationCatalog], str | None]


@dataclass(frozen=True)
class StationMatch:
    """A resolved station name and the rule that produced it."""

    name: str
    rule: str


def clean_station_name(raw: str) -> str:
    """
    Strip surrounding whitespace and a trailing "Station"/"Stn" suffix.

    Args:
        raw: Raw station name

    Returns:
        Cleaned name (may be empty)

    Examples:
        >>> clean_station_name("  St. George Station ")
        'St. George'
        >>> clean_station_name("Spadina stn")
        'Spadina'
    """
    return _STATION_SUFFIX.sub("", raw.strip()).strip()


def _lookup_alias(name: str, catalog: StationCatalog) -> str | None:
    folded = name.casefold()
    for raw, canonical in catalog.alias_table().items():
        if raw.casefold() == folded:
            return canonical
    return None


def match_alias(clean: str, catalog: StationCatalog) -> str | None:
    """Resolve through the alias table (case-insensitive)."""
    return _lookup_alias(clean, catalog)


def match_alias_without_periods(clean: str, catalog: StationCatalog) -> str | None:
    """Resolve through the alias table after removing periods ("St." vs "St")."""
    without_periods = clean.replace(".", "")
    if without_periods == clean:
        return None
    return _lookup_alias(without_periods, catalog)


def match_exact_name(clean: str, catalog: StationCatalog) -> str | None:
    """Resolve by case-insensitive equality with a canonical station name."""
    folded = clean.casefold()
    for name in catalog.ordered_canonical_names():
        if name.casefold() == folded:
            return name
    return None


def match_longest_contained_name(clean: str, catalog: StationCatalog) -> str | None:
    """
    Resolve to the longest canonical name contained in the input.

    Preferring the longest candidate keeps "Humber College" from being
    shadowed by "College", and "Queen's Park" from being read as "Queen".
    Equal-length candidates are broken by catalog order.

    Examples:
        >>> match_longest_contained_name("Humber College LRT stop", DEFAULT_CATALOG)
        'Humber College'
        >>> match_longest_contained_name("near Dundas West", DEFAULT_CATALOG)
        'Dundas West'
    """
    folded = clean.casefold()
    best: str | None = None
    for name in catalog.ordered_canonical_names():
        if name.casefold() in folded and (best is None or len(name) > len(best)):
            best = name
    return best


# Ordered priority chain: the first rule returning a name wins.
NORMALIZATION_RULES: tuple[tuple[str, NormalizationRule], ...] = (
    ("alias", match_alias),
    ("alias_without_periods", match_alias_without_periods),
    ("exact_name", match_exact_name),
    ("longest_contained_name", match_longest_contained_name),
)


def resolve_station(raw: str | None, catalog: StationCatalog = DEFAULT_CATALOG) -> StationMatch | None:
    """
    Resolve a raw station name, reporting which rule matched.

    Args:
        raw: Raw station name from alert text or extraction output
        catalog: Station catalog to resolve against

    Returns:
        StationMatch with canonical name and rule name, or None if unresolvable

    Examples:
        >>> resolve_station("St. George Station")
        StationMatch(name='St George', rule='alias')
        >>> resolve_station("queen's park")
        StationMatch(name="Queen's Park", rule='exact_name')
        >>> resolve_station("Somewhere else") is None
        True
    """
    if not raw:
        return None

    clean = clean_station_name(raw)
    if not clean:
        return None

    for rule_name, rule in NORMALIZATION_RULES:
        if (name := rule(clean, catalog)) is not None:
            return StationMatch(name=name, rule=rule_name)
    return None


def normalize_station(raw: str | None, catalog: StationCatalog = DEFAULT_CATALOG) -> str | None:
    """
    Normalize a raw station name to its canonical catalog name.

    Args:
        raw: Raw station name (may be None or empty)
        catalog: Station catalog to resolve against

    Returns:
        Canonical station name, or None if the name cannot be resolved

    Examples:
        >>> normalize_station("VMC")
        'Vaughan Metropolitan Centre'
        >>> normalize_station("Humber College")
        'Humber College'
        >>> normalize_station("") is None
        True
    """
    match = resolve_station(raw, catalog)
    return match.name if match else None
