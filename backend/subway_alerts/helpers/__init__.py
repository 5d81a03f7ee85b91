"""Pure helper functions for station and range handling."""
