"""Command line entry point (``python -m sales_ingest.cli``)."""
