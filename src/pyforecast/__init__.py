"""
PyForecast - Formula engine for financial forecasting.

Lets users define a numeric field of a revenue stream, driver, expense or
personnel role as an arithmetic expression over other entities, validates
those formulas, detects circular references between entities and
evaluates everything to numbers.
"""

__version__ = "0.1.0"
__author__ = "PyForecast Team"
__license__ = "MIT"

__all__ = ["__version__"]
