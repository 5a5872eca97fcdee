"""Exceptions raised by spreadsheet-health."""

from __future__ import annotations


class ParseError(ValueError):
    """Input bytes could not be decoded as a supported spreadsheet format."""
