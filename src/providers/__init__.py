"""Raw cost record sources (cost exports, in-memory payloads)."""

# Import source implementations to register them with SourceFactory
from . import cost_export

# Make key classes available at package level
from .base import (
    CostRecord,
    CostReportError,
    InvalidSelectionError,
    RecordLoadError,
    RecordSource,
    SourceFactory,
)
from .cost_export import load_cost_records
