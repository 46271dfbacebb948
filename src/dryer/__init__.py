"""Clothes dryer appliance control kernel."""

__version__ = "0.1.0"
