"""Export module for writing purchase requests to CSV."""

from .csv_export import CsvExporter

__all__ = ["CsvExporter"]
