"""API package for PyForecast."""
