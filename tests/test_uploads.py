"""Tests for the report_uploads registry."""

import pytest

from pos_reports.exceptions import ConfigError
from pos_reports.storage.uploads import ReportUpload, load_report_uploads, register_upload


def test_no_registry(paths) -> None:
    assert load_report_uploads(paths, "r1") == []


def test_register_and_load(paths) -> None:
    register_upload(paths, ReportUpload("r1", "auckland", "r1/auckland.csv"))
    register_upload(paths, ReportUpload("r2", "auckland", "r2/auckland.csv"))
    register_upload(paths, ReportUpload("r1", "wellington", "r1/wellington.csv"))

    assert load_report_uploads(paths, "r1") == [
        ReportUpload("r1", "auckland", "r1/auckland.csv"),
        ReportUpload("r1", "wellington", "r1/wellington.csv"),
    ]
    header = paths.report_uploads.read_text(encoding="utf-8").splitlines()[0]
    assert header == "report_id,location_id,storage_path"


def test_numeric_looking_ids_stay_text(paths) -> None:
    register_upload(paths, ReportUpload("0012", "007", "0012/007.csv"))
    assert load_report_uploads(paths, "0012")[0].location_id == "007"


def test_malformed_registry(paths) -> None:
    paths.report_uploads.parent.mkdir(parents=True, exist_ok=True)
    paths.report_uploads.write_text("report_id,location\nr1,auckland\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="storage_path"):
        load_report_uploads(paths, "r1")
