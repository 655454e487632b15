# services/__init__.py
from __future__ import annotations

from . import csv_parser, importer, watches, export


__all__ = [
    "csv_parser",
    "importer",
    "watches",
    "export",
]
