"""Pydantic schemas for alert data."""
