"""Core configuration and utilities for PyForecast."""

from pyforecast.core.config import settings
from pyforecast.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
