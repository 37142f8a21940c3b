"""Smoke tests for the public package surface."""

from pathlib import Path

import pos_reports
from pos_reports import (
    ConfigError,
    DataPaths,
    DataQualityError,
    ETLError,
    ExtractionError,
    FactWriteError,
    ReportsAPIError,
    VenueSkipped,
)


def test_public_api() -> None:
    assert pos_reports.__version__
    assert callable(pos_reports.parse_report_csvs)
    assert callable(pos_reports.parse_report)


def test_exception_hierarchy() -> None:
    for exc in (ConfigError, DataQualityError, ETLError):
        assert issubclass(exc, ReportsAPIError)
    for exc in (ExtractionError, VenueSkipped, FactWriteError):
        assert issubclass(exc, ETLError)

    skipped = VenueSkipped("auckland", "no-rules")
    assert str(skipped) == "Venue auckland skipped: no-rules"


def test_data_paths_layout() -> None:
    paths = DataPaths.from_root("data", "utils/product_rules.json")
    assert paths.rules_json == Path("utils/product_rules.json")
    assert paths.raw_uploads == Path("data/a_raw/uploads")
    assert paths.report_uploads == Path("data/a_raw/report_uploads.csv")
    assert paths.metric_values == Path("data/b_clean/metric_values")
    assert paths.staff_metrics == Path("data/b_clean/staff_metrics")
    assert paths.ingest_meta == Path("data/b_clean/_meta")


def test_ensure_dirs(tmp_path) -> None:
    paths = DataPaths.from_root(tmp_path / "data", tmp_path / "rules.json")
    paths.ensure_dirs()
    assert paths.raw_uploads.is_dir()
    assert paths.ingest_meta.is_dir()
