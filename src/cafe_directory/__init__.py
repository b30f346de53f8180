"""Cafe Directory: cafe listings with geographic search and spreadsheet import."""

__version__ = "2.0.0"
