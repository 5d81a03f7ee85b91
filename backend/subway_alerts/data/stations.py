"""
TTC rapid transit station catalog.

Static reference data for the lines this service tracks:

- ``LINE_SEQUENCES``: stations of each line in geographic order. Line 1 runs
  Vaughan Metropolitan Centre -> Union -> Finch (U-shaped), Line 2 and Line 4
  run west to east, Line 5 runs Mount Dennis -> Kennedy and Line 6 runs
  Humber College -> Finch West. Order is only used to compare station ranges.
- ``STATION_ALIASES``: colloquial spellings and abbreviations mapped to the
  canonical station name.

Interchange stations (e.g. Bloor-Yonge, St George, Kennedy) appear on more than
one line with an independent position on each.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

LINE_SEQUENCES: dict[str, tuple[str, ...]] = {
    # Line 1 Yonge-University
    "1": (
        "Vaughan Metropolitan Centre",
        "Highway 407",
        "Pioneer Village",
        "York University",
        "Finch West",
        "Downsview Park",
        "Sheppard West",
        "Wilson",
        "Yorkdale",
        "Lawrence West",
        "Glencairn",
        "Eglinton West",
        "St Clair West",
        "Dupont",
        "Spadina",
        "St George",
        "Museum",
        "Queen's Park",
        "St Patrick",
        "Osgoode",
        "St Andrew",
        "Union",
        "King",
        "Queen",
        "Dundas",
        "College",
        "Wellesley",
        "Bloor-Yonge",
        "Rosedale",
        "Summerhill",
        "St Clair",
        "Davisville",
        "Eglinton",
        "Lawrence",
        "York Mills",
        "Sheppard-Yonge",
        "North York Centre",
        "Finch",
    ),
    # Line 2 Bloor-Danforth
    "2": (
        "Kipling",
        "Islington",
        "Royal York",
        "Old Mill",
        "Jane",
        "Runnymede",
        "High Park",
        "Keele",
        "Dundas West",
        "Lansdowne",
        "Dufferin",
        "Ossington",
        "Christie",
        "Bathurst",
        "Spadina",
        "St George",
        "Bay",
        "Bloor-Yonge",
        "Sherbourne",
        "Castle Frank",
        "Broadview",
        "Chester",
        "Pape",
        "Donlands",
        "Greenwood",
        "Coxwell",
        "Woodbine",
        "Main Street",
        "Victoria Park",
        "Warden",
        "Kennedy",
    ),
    # Line 4 Sheppard
    "4": (
        "Sheppard-Yonge",
        "Bayview",
        "Bessarion",
        "Leslie",
        "Don Mills",
    ),
    # Line 5 Eglinton
    "5": (
        "Mount Dennis",
        "Keelesdale",
        "Caledonia",
        "Fairbank",
        "Oakwood",
        "Eglinton West",
        "Forest Hill",
        "Chaplin",
        "Avenue",
        "Eglinton",
        "Mount Pleasant",
        "Leaside",
        "Laird",
        "Sunnybrook Park",
        "Science Centre",
        "Aga Khan Park & Museum",
        "Wynford",
        "Sloane",
        "O'Connor",
        "Pharmacy",
        "Hakimi Lebovic",
        "Golden Mile",
        "Birchmount",
        "Ionview",
        "Kennedy",
    ),
    # Line 6 Finch West
    "6": (
        "Humber College",
        "Westmore",
        "Martin Grove",
        "Albion",
        "Stevenson",
        "Mount Olive",
        "Rowntree Mills",
        "Pearldale",
        "Duncanwoods",
        "Milvan Rumike",
        "Emery",
        "Signet Arrow",
        "Norfinch Oakdale",
        "Jane and Finch",
        "Driftwood",
        "Tobermory",
        "Sentinel",
        "Finch West",
    ),
}

# Keys are matched case-insensitively by the normalizer.
STATION_ALIASES: dict[str, str] = {
    "St. George": "St George",
    "St. Clair": "St Clair",
    "St. Clair West": "St Clair West",
    "St. Patrick": "St Patrick",
    "St. Andrew": "St Andrew",
    "Queens Park": "Queen's Park",
    "Bloor Yonge": "Bloor-Yonge",
    "Bloor": "Bloor-Yonge",
    "Sheppard Yonge": "Sheppard-Yonge",
    "North York Ctr": "North York Centre",
    "Vaughan": "Vaughan Metropolitan Centre",
    "Vaughan Metro": "Vaughan Metropolitan Centre",
    "Vaughan Metropolitan": "Vaughan Metropolitan Centre",
    "VMC": "Vaughan Metropolitan Centre",
    "Downsview": "Downsview Park",
    "Hwy 407": "Highway 407",
    "Cedarvale": "Eglinton West",
    "Don Valley": "Science Centre",
    "Bathurst St": "Bathurst",
    "Keele St": "Keele",
    "Broadview Stn": "Broadview",
    "Main": "Main Street",
    "Main St": "Main Street",
    "Vic Park": "Victoria Park",
    "Jane & Finch": "Jane and Finch",
    "Aga Khan Park and Museum": "Aga Khan Park & Museum",
    "Aga Khan": "Aga Khan Park & Museum",
    "OConnor": "O'Connor",
    "O Connor": "O'Connor",
}


@dataclass(frozen=True, eq=False)
class StationCatalog:
    """
    Read-only view over line sequences and aliases.

    Args:
        line_sequences: Line id -> ordered canonical station names
        aliases: Raw spelling -> canonical station name

    Example:
        >>> catalog = StationCatalog(LINE_SEQUENCES, STATION_ALIASES)
        >>> catalog.stations_of_line("4")
        ('Sheppard-Yonge', 'Bayview', 'Bessarion', 'Leslie', 'Don Mills')
        >>> catalog.lines_for_station("Kennedy")
        ['2', '5']
    """

    line_sequences: Mapping[str, tuple[str, ...]]
    aliases: Mapping[str, str] = field(default_factory=dict)
    _canonical_names: tuple[str, ...] = field(init=False, repr=False)
    _positions: Mapping[str, Mapping[str, int]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Canonical names in first-seen catalog order (line order, then position)
        names: dict[str, None] = {}
        positions: dict[str, dict[str, int]] = {}
        for line_id, stations in self.line_sequences.items():
            line_positions: dict[str, int] = {}
            for index, station in enumerate(stations):
                names.setdefault(station, None)
                line_positions.setdefault(station, index)
            positions[line_id] = line_positions

        object.__setattr__(self, "line_sequences", MappingProxyType(dict(self.line_sequences)))
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))
        object.__setattr__(self, "_canonical_names", tuple(names))
        object.__setattr__(self, "_positions", MappingProxyType(positions))

    def line_ids(self) -> list[str]:
        """Return the ids of all lines in the catalog."""
        return list(self.line_sequences)

    def stations_of_line(self, line_id: str) -> tuple[str, ...]:
        """Return the ordered stations of a line, or an empty tuple for unknown lines."""
        return self.line_sequences.get(line_id, ())

    def all_canonical_names(self) -> frozenset[str]:
        """Return every canonical station name in the catalog."""
        return frozenset(self._canonical_names)

    def ordered_canonical_names(self) -> tuple[str, ...]:
        """Return canonical names in catalog order (used for deterministic tie-breaks)."""
        return self._canonical_names

    def alias_table(self) -> Mapping[str, str]:
        """Return the raw-variant -> canonical-name mapping."""
        return self.aliases

    def position(self, line_id: str, station: str) -> int | None:
        """Return the index of a station within a line, or None if it is not on that line."""
        return self._positions.get(line_id, {}).get(station)

    def lines_for_station(self, station: str) -> list[str]:
        """Return the ids of every line serving a canonical station."""
        return [line_id for line_id, positions in self._positions.items() if station in positions]


def validate_catalog(catalog: StationCatalog) -> list[str]:
    """
    Check catalog data for internal consistency.

    Pure function - reports problems instead of raising so callers can list
    all of them at once.

    Args:
        catalog: Catalog to check

    Returns:
        Human readable problem descriptions (empty when the catalog is consistent)
    """
    problems: list[str] = []
    canonical = catalog.all_canonical_names()
    canonical_lower = {name.lower(): name for name in canonical}

    for line_id, stations in catalog.line_sequences.items():
        if not stations:
            problems.append(f"Line {line_id} has no stations")
        seen: set[str] = set()
        for station in stations:
            if station in seen:
                problems.append(f"Line {line_id} lists '{station}' more than once")
            seen.add(station)

    for raw, target in catalog.aliases.items():
        if target not in canonical:
            problems.append(f"Alias '{raw}' points at unknown station '{target}'")
        shadowed = canonical_lower.get(raw.lower())
        if shadowed is not None and shadowed != target:
            problems.append(f"Alias '{raw}' shadows canonical station '{shadowed}'")

    return problems


DEFAULT_CATALOG = StationCatalog(line_sequences=LINE_SEQUENCES, aliases=STATION_ALIASES)
