"""
Station range comparison on an ordered line.

A range is a pair of stations on one line, listed in either order. Comparisons
work on index intervals within the line's fixed sequence so that "Union to
Bloor-Yonge" and "Bloor-Yonge to Union" are the same range.

All functions fail closed: an unknown line or a station that is not on the
line makes the comparison False rather than raising.
"""

from subway_alerts.data.stations import DEFAULT_CATALOG, StationCatalog


def station_interval(
    line_id: str,
    start: str,
    end: str,
    catalog: StationCatalog = DEFAULT_CATALOG,
) -> tuple[int, int] | None:
    """
    Resolve a station range to its (low, high) index interval on a line.

    Args:
        line_id: Line identifier (e.g. "1")
        start: Canonical name of one end of the range
        end: Canonical name of the other end of the range

    Returns:
        Inclusive (low, high) indexes, or None if the line or a station is unknown

    Examples:
        >>> station_interval("1", "Bloor-Yonge", "Union")
        (21, 27)
        >>> station_interval("1", "Union", "Kipling") is None
        True
    """
    first = catalog.position(line_id, start)
    second = catalog.position(line_id, end)
    if first is None or second is None:
        return None
    return min(first, second), max(first, second)


def is_subset_range(
    line_id: str,
    start_a: str,
    end_a: str,
    start_b: str,
    end_b: str,
    catalog: StationCatalog = DEFAULT_CATALOG,
) -> bool:
    """
    Check whether range A lies entirely within range B on the same line.

    Bounds are inclusive, so equal ranges are subsets of each other. The order
    in which either pair is listed does not matter.

    Args:
        line_id: Line both ranges belong to
        start_a: First end of range A
        end_a: Second end of range A
        start_b: First end of range B
        end_b: Second end of range B
        catalog: Station catalog providing line sequences

    Returns:
        True if A is contained in B, False otherwise (including unknown input)

    Examples:
        >>> is_subset_range("1", "King", "Queen", "Union", "Bloor-Yonge")
        True
        >>> is_subset_range("1", "Queen", "King", "Bloor-Yonge", "Union")
        True
        >>> is_subset_range("1", "Union", "Bloor-Yonge", "King", "Queen")
        False
        >>> is_subset_range("9", "King", "Queen", "Union", "Bloor-Yonge")
        False
    """
    interval_a = station_interval(line_id, start_a, end_a, catalog)
    interval_b = station_interval(line_id, start_b, end_b, catalog)
    if interval_a is None or interval_b is None:
        return False

    min_a, max_a = interval_a
    min_b, max_b = interval_b
    return min_a >= min_b and max_a <= max_b


def ranges_share_endpoint(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """
    Check whether two ranges share a start or end station, in either position.

    This is a purely textual test and works for stations that are not in the
    catalog.

    Examples:
        >>> ranges_share_endpoint("Spadina", "Dupont", "St George", "Spadina")
        True
        >>> ranges_share_endpoint("Kipling", "Jane", "Keele", "Bathurst")
        False
    """
    return bool({a_start, a_end} & {b_start, b_end})


def ranges_overlap(
    line_id: str,
    a_start: str,
    a_end: str,
    b_start: str,
    b_end: str,
    catalog: StationCatalog = DEFAULT_CATALOG,
) -> bool:
    """
    Check whether two ranges on the same line have any station in common.

    When all four stations are on the line, the index intervals are compared,
    which also catches ranges that overlap without sharing an endpoint. When
    any station cannot be placed on the line, falls back to the shared-endpoint
    test so that raw station names still suppress their exact counterparts.

    Args:
        line_id: Line both ranges belong to
        a_start: First end of range A
        a_end: Second end of range A
        b_start: First end of range B
        b_end: Second end of range B
        catalog: Station catalog providing line sequences

    Returns:
        True if the ranges overlap

    Examples:
        >>> ranges_overlap("1", "King", "College", "Dundas", "Bloor-Yonge")
        True
        >>> ranges_overlap("2", "Kipling", "Jane", "Keele", "Bathurst")
        False
    """
    interval_a = station_interval(line_id, a_start, a_end, catalog)
    interval_b = station_interval(line_id, b_start, b_end, catalog)
    if interval_a is None or interval_b is None:
        return ranges_share_endpoint(a_start, a_end, b_start, b_end)

    return interval_a[0] <= interval_b[1] and interval_b[0] <= interval_a[1]
