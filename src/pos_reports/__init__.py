"""POS Reports - venue sales export ingestion.

This package turns venue point-of-sale CSV exports into normalized fact
tables for sales reporting (combo attach rate, arcade redemptions, staff
leaderboards):

- **Bronze (raw)**: uploaded venue CSVs and the report_uploads registry
- **Silver (facts)**: metric_values and staff_metrics, one file per
  report and venue

Module Structure:
    pos_reports.ingest: segmentation, classification and fact emission
    pos_reports.rules: per-venue product rule catalog
    pos_reports.storage: blob stores, fact store, upload registry
    pos_reports.metadata: per report+venue ingestion metadata
    pos_reports.config: DataPaths and environment settings

Quick Start:
    >>> from pos_reports import DataPaths, parse_report_csvs
    >>> from pos_reports.storage import CsvFactStore
    >>>
    >>> paths = DataPaths.from_root("data", "utils/product_rules.json")
    >>> result = parse_report_csvs("2025-w02", paths)
    >>> result.success
    True
    >>> CsvFactStore(paths).load_metric_facts("2025-w02").head()

Grain Reference:
    metric_values: one row per matched product line (staff_name set for
        lines inside a staff block)
    staff_metrics: one row per staff product line counted for individual
        sales (arcade Spend offers, combo, non_combo)
"""

__version__ = "0.1.0"

from pos_reports.config import DataPaths
from pos_reports.exceptions import (
    ConfigError,
    DataQualityError,
    ETLError,
    ExtractionError,
    FactWriteError,
    ReportsAPIError,
    VenueSkipped,
)
from pos_reports.ingest.api import ParseResult, parse_report, parse_report_csvs

__all__ = [
    "ConfigError",
    "DataPaths",
    "DataQualityError",
    "ETLError",
    "ExtractionError",
    "FactWriteError",
    "ParseResult",
    "ReportsAPIError",
    "VenueSkipped",
    "__version__",
    "parse_report",
    "parse_report_csvs",
]
