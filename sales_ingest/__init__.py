"""Heterogeneous sales workbook ingestion and resilient aggregation."""

__version__ = "0.1.0"
