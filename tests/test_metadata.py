"""Tests for per report+venue ingestion metadata."""

from pos_reports.metadata import (
    INGEST_VERSION,
    IngestMetadata,
    read_metadata,
    should_ingest,
    write_metadata,
)


def _meta(status="ok", version=INGEST_VERSION, location_id="auckland"):
    return IngestMetadata(
        report_id="2025/w02",
        location_id=location_id,
        version=version,
        last_run="2025-01-13T09:00:00",
        status=status,
        counts={"product_rows": 7},
    )


def test_roundtrip(tmp_path) -> None:
    write_metadata(tmp_path, _meta())
    meta = read_metadata(tmp_path, "2025/w02", "auckland")
    assert meta == _meta()
    assert (tmp_path / "2025%2Fw02" / "auckland.json").exists()


def test_similar_ids_keep_separate_metadata(tmp_path) -> None:
    write_metadata(tmp_path, _meta(location_id="venue/1"))
    assert read_metadata(tmp_path, "2025/w02", "venue/1").status == "ok"
    assert read_metadata(tmp_path, "2025/w02", "venue_1") is None
    assert should_ingest(tmp_path, "2025/w02", "venue_1")


def test_should_ingest(tmp_path) -> None:
    assert should_ingest(tmp_path, "2025/w02", "auckland")
    write_metadata(tmp_path, _meta())
    assert not should_ingest(tmp_path, "2025/w02", "auckland")
    assert should_ingest(tmp_path, "2025/w02", "auckland", version="ingest_v2")


def test_failed_or_skipped_runs_are_retried(tmp_path) -> None:
    write_metadata(tmp_path, _meta(status="skipped", location_id="wellington"))
    write_metadata(tmp_path, _meta(status="failed", location_id="hamilton"))
    assert should_ingest(tmp_path, "2025/w02", "wellington")
    assert should_ingest(tmp_path, "2025/w02", "hamilton")


def test_corrupt_metadata_reads_as_missing(tmp_path) -> None:
    path = tmp_path / "r1" / "auckland.json"
    path.parent.mkdir()
    path.write_text("{not json", encoding="utf-8")
    assert read_metadata(tmp_path, "r1", "auckland") is None
    assert should_ingest(tmp_path, "r1", "auckland")
