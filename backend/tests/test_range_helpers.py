"""Tests for station range comparison helpers."""

import itertools

import pytest
from subway_alerts.data.stations import DEFAULT_CATALOG
from subway_alerts.helpers.range_helpers import (
    is_subset_range,
    ranges_overlap,
    ranges_share_endpoint,
    station_interval,
)


class TestStationInterval:
    """Tests for station_interval."""

    def test_orders_endpoints(self) -> None:
        assert station_interval("1", "Union", "Bloor-Yonge") == (21, 27)
        assert station_interval("1", "Bloor-Yonge", "Union") == (21, 27)

    def test_single_station(self) -> None:
        assert station_interval("2", "Keele", "Keele") == (7, 7)

    @pytest.mark.parametrize(
        ("line_id", "start", "end"),
        [
            ("9", "Union", "King"),
            ("1", "Union", "Kipling"),  # Kipling is on line 2 only
            ("1", "Atlantis", "King"),
        ],
    )
    def test_unknown_input_returns_none(self, line_id: str, start: str, end: str) -> None:
        assert station_interval(line_id, start, end) is None


class TestIsSubsetRange:
    """Tests for is_subset_range."""

    def test_inner_range_is_subset(self) -> None:
        assert is_subset_range("1", "King", "Queen", "Union", "Bloor-Yonge") is True

    def test_outer_range_is_not_subset(self) -> None:
        assert is_subset_range("1", "Union", "Bloor-Yonge", "King", "Queen") is False

    def test_partially_overlapping_range_is_not_subset(self) -> None:
        assert is_subset_range("2", "Keele", "Bathurst", "Kipling", "Dufferin") is False

    def test_shared_boundary_is_inclusive(self) -> None:
        assert is_subset_range("1", "Union", "King", "Union", "Bloor-Yonge") is True
        assert is_subset_range("1", "Bloor-Yonge", "Bloor-Yonge", "Union", "Bloor-Yonge") is True

    def test_interchange_uses_position_on_requested_line(self) -> None:
        """Test that Bloor-Yonge is placed on line 2 when comparing line 2 ranges."""
        assert is_subset_range("2", "Bay", "Bloor-Yonge", "St George", "Sherbourne") is True
        assert is_subset_range("1", "Bay", "Bloor-Yonge", "St George", "Sherbourne") is False

    @pytest.mark.parametrize(
        ("line_id", "a_start", "a_end", "b_start", "b_end"),
        [
            ("3", "King", "Queen", "Union", "Bloor-Yonge"),
            ("1", "King", "Atlantis", "Union", "Bloor-Yonge"),
            ("1", "King", "Queen", "Union", "Kipling"),
            ("1", "", "", "Union", "Bloor-Yonge"),
        ],
    )
    def test_fails_closed_on_unknown_input(
        self, line_id: str, a_start: str, a_end: str, b_start: str, b_end: str
    ) -> None:
        assert is_subset_range(line_id, a_start, a_end, b_start, b_end) is False

    def test_reflexive(self) -> None:
        for line_id in DEFAULT_CATALOG.line_ids():
            stations = DEFAULT_CATALOG.stations_of_line(line_id)
            for a, b in itertools.pairwise(stations):
                assert is_subset_range(line_id, a, b, a, b), (line_id, a, b)

    def test_direction_independent(self) -> None:
        stations = DEFAULT_CATALOG.stations_of_line("1")[14:30]
        for a, b, c, d in itertools.product(stations[::3], repeat=4):
            expected = is_subset_range("1", a, b, c, d)
            assert is_subset_range("1", b, a, c, d) == expected
            assert is_subset_range("1", a, b, d, c) == expected
            assert is_subset_range("1", b, a, d, c) == expected


class TestRangesShareEndpoint:
    """Tests for ranges_share_endpoint."""

    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            (("Spadina", "St George"), ("Spadina", "Dupont"), True),
            (("Spadina", "St George"), ("Dupont", "Spadina"), True),
            (("Spadina", "St George"), ("Museum", "St George"), True),
            (("Kipling", "Jane"), ("Keele", "Bathurst"), False),
            (("Somewhere", "Else"), ("Else", "Entirely"), True),
        ],
    )
    def test_shared_endpoint(self, a: tuple[str, str], b: tuple[str, str], expected: bool) -> None:
        assert ranges_share_endpoint(*a, *b) is expected


class TestRangesOverlap:
    """Tests for ranges_overlap."""

    def test_shared_endpoint_overlaps(self) -> None:
        assert ranges_overlap("1", "Spadina", "Dupont", "Spadina", "St George") is True

    def test_interior_overlap_without_shared_endpoint(self) -> None:
        assert ranges_overlap("1", "King", "College", "Queen", "Bloor-Yonge") is True

    def test_containment_overlaps(self) -> None:
        assert ranges_overlap("1", "King", "Queen", "Union", "Bloor-Yonge") is True

    def test_disjoint_ranges(self) -> None:
        assert ranges_overlap("2", "Kipling", "Jane", "Keele", "Bathurst") is False

    def test_adjacent_ranges_do_not_overlap(self) -> None:
        assert ranges_overlap("1", "Union", "King", "Queen", "Dundas") is False

    def test_falls_back_to_shared_endpoint_for_unknown_stations(self) -> None:
        assert ranges_overlap("1", "Spadina Stn Loop", "Union", "Union", "King") is True
        assert ranges_overlap("1", "Spadina Stn Loop", "Dupont", "Union", "King") is False

    def test_unknown_line_falls_back_to_shared_endpoint(self) -> None:
        assert ranges_overlap("3", "Kennedy", "Lawrence East", "Kennedy", "Ellesmere") is True
