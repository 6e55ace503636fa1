"""Marginalia - a read-it-later service with highlights and notes."""

__version__ = "0.1.0"
