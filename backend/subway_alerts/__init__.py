"""TTC subway alert normalization and redundancy filtering."""

__version__ = "0.1.0"
