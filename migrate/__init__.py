"""Versioned migrations: helpers and source drivers for up and down steps."""

__version__ = "4.15.2"