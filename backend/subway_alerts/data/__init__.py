"""Static transit reference data."""
