"""Tests for the TTC station catalog."""

import pytest
from subway_alerts.data.stations import (
    DEFAULT_CATALOG,
    LINE_SEQUENCES,
    STATION_ALIASES,
    StationCatalog,
    validate_catalog,
)


class TestCatalogData:
    """Fixture tests pinning the catalog to the real network."""

    def test_default_catalog_is_consistent(self) -> None:
        assert validate_catalog(DEFAULT_CATALOG) == []

    def test_tracked_lines(self) -> None:
        assert DEFAULT_CATALOG.line_ids() == ["1", "2", "4", "5", "6"]

    @pytest.mark.parametrize(
        ("line_id", "first", "last", "count"),
        [
            ("1", "Vaughan Metropolitan Centre", "Finch", 38),
            ("2", "Kipling", "Kennedy", 31),
            ("4", "Sheppard-Yonge", "Don Mills", 5),
            ("5", "Mount Dennis", "Kennedy", 25),
            ("6", "Humber College", "Finch West", 18),
        ],
    )
    def test_line_termini(self, line_id: str, first: str, last: str, count: int) -> None:
        stations = DEFAULT_CATALOG.stations_of_line(line_id)

        assert stations[0] == first
        assert stations[-1] == last
        assert len(stations) == count

    def test_line_1_runs_through_union(self) -> None:
        """Test the U-shaped Line 1 order: University side, Union, then Yonge side."""
        stations = DEFAULT_CATALOG.stations_of_line("1")

        assert stations.index("St Andrew") + 1 == stations.index("Union")
        assert stations.index("Union") + 1 == stations.index("King")
        assert stations.index("King") < stations.index("Queen") < stations.index("Bloor-Yonge")

    @pytest.mark.parametrize(
        ("station", "lines"),
        [
            ("Bloor-Yonge", ["1", "2"]),
            ("St George", ["1", "2"]),
            ("Spadina", ["1", "2"]),
            ("Sheppard-Yonge", ["1", "4"]),
            ("Eglinton", ["1", "5"]),
            ("Eglinton West", ["1", "5"]),
            ("Kennedy", ["2", "5"]),
            ("Finch West", ["1", "6"]),
            ("Kipling", ["2"]),
            ("Atlantis", []),
        ],
    )
    def test_interchanges(self, station: str, lines: list[str]) -> None:
        assert DEFAULT_CATALOG.lines_for_station(station) == lines

    def test_interchange_has_independent_positions(self) -> None:
        assert DEFAULT_CATALOG.position("1", "Bloor-Yonge") == 27
        assert DEFAULT_CATALOG.position("2", "Bloor-Yonge") == 17
        assert DEFAULT_CATALOG.position("4", "Bloor-Yonge") is None

    def test_unknown_line_has_no_stations(self) -> None:
        assert DEFAULT_CATALOG.stations_of_line("3") == ()
        assert DEFAULT_CATALOG.position("3", "Kennedy") is None

    def test_canonical_names_are_unique_and_ordered(self) -> None:
        ordered = DEFAULT_CATALOG.ordered_canonical_names()

        assert len(ordered) == len(set(ordered))
        assert DEFAULT_CATALOG.all_canonical_names() == frozenset(ordered)
        assert ordered[0] == "Vaughan Metropolitan Centre"

    def test_every_alias_targets_a_canonical_name(self) -> None:
        names = DEFAULT_CATALOG.all_canonical_names()

        assert all(target in names for target in DEFAULT_CATALOG.alias_table().values())

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            DEFAULT_CATALOG.alias_table()["Nowhere"] = "Union"  # type: ignore[index]

    def test_catalog_copies_source_data(self) -> None:
        sequences = {"X": ("A", "B")}
        catalog = StationCatalog(sequences, {})
        sequences["X"] = ("C",)

        assert catalog.stations_of_line("X") == ("A", "B")


class TestValidateCatalog:
    """Tests for validate_catalog."""

    def test_reports_every_problem(self) -> None:
        catalog = StationCatalog(
            line_sequences={"A": ("North", "Middle", "North"), "B": ()},
            aliases={"Mid": "Middle", "Southe": "South", "north": "Middle"},
        )

        problems = validate_catalog(catalog)

        assert "Line A lists 'North' more than once" in problems
        assert "Line B has no stations" in problems
        assert "Alias 'Southe' points at unknown station 'South'" in problems
        assert "Alias 'north' shadows canonical station 'North'" in problems
        assert len(problems) == 4

    def test_module_data_matches_default_catalog(self) -> None:
        assert dict(DEFAULT_CATALOG.line_sequences) == LINE_SEQUENCES
        assert dict(DEFAULT_CATALOG.alias_table()) == STATION_ALIASES
