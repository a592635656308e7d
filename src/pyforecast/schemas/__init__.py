"""Schemas for PyForecast API."""

from pyforecast.schemas import formula

__all__ = ["formula"]
