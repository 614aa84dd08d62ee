"""Domain models for the sales importer.

Configuration, the canonical sale record, import outcomes and the transient
aggregate views.
"""

from .aggregate_view import AggregateWindow, CountsView, SummaryView, TimeSeriesPoint, TopItem
from .config_models import (
    AggregationConfig,
    DatabaseConfig,
    ImportConfig,
    SerialDateBounds,
)
from .error_record import ErrorRecord
from .processing_result import ImportOutcome, SheetOutcome
from .sale_record import NormalizedSaleRecord, OrderStatus, PaymentMode, SaleCategory

__all__ = [
    # Configuration models
    "AggregationConfig",
    "DatabaseConfig",
    "ImportConfig",
    "SerialDateBounds",
    # Records
    "NormalizedSaleRecord",
    "OrderStatus",
    "PaymentMode",
    "SaleCategory",
    # Import results
    "ErrorRecord",
    "ImportOutcome",
    "SheetOutcome",
    # Aggregate views
    "AggregateWindow",
    "CountsView",
    "SummaryView",
    "TimeSeriesPoint",
    "TopItem",
]
