"""Submission intake API for the V Rise Techno Group site."""

__version__ = "1.0.0"
