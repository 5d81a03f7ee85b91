"""Alert building, filtering and feed services."""
