"""Tabular reader for CSV and workbook uploads."""

from .reader import ParseError, TabularData, parse_file, read_tabular

__all__ = ["ParseError", "TabularData", "parse_file", "read_tabular"]
