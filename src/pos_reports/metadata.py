"""Metadata tracking for venue ingestion runs.

One JSON file per report and venue records how the last ingestion ended.
mode="missing" uses it to skip venues that already completed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from pos_reports.storage.facts import safe_component

logger = logging.getLogger(__name__)

INGEST_VERSION = "ingest_v1"


@dataclass
class IngestMetadata:
    """Metadata for one report+venue ingestion.

    Attributes:
        report_id: Report the venue file belongs to.
        location_id: Venue.
        version: Version string for the ingestion logic.
        last_run: ISO timestamp of when the venue was ingested.
        status: "ok", "skipped", or "failed".
        reason: Skip/failure reason, empty when ok.
        counts: Venue summary (facts written, discards, unmatched products).
    """

    report_id: str
    location_id: str
    version: str
    last_run: str
    status: str
    reason: str = ""
    counts: dict = field(default_factory=dict)


def _meta_path(meta_dir: Path, report_id: str, location_id: str) -> Path:
    return meta_dir / safe_component(report_id) / f"{safe_component(location_id)}.json"


def write_metadata(meta_dir: Path, metadata: IngestMetadata) -> None:
    """Write metadata file for a venue ingestion."""
    path = _meta_path(meta_dir, metadata.report_id, metadata.location_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(metadata), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Wrote metadata: %s", path)


def read_metadata(meta_dir: Path, report_id: str, location_id: str) -> Optional[IngestMetadata]:
    """Read metadata for a venue ingestion, if it exists."""
    path = _meta_path(meta_dir, report_id, location_id)
    if not path.exists():
        return None
    try:
        return IngestMetadata(**json.loads(path.read_text(encoding="utf-8")))
    except (ValueError, TypeError) as e:
        logger.warning("Error reading metadata %s: %s", path, e)
        return None


def should_ingest(
    meta_dir: Path,
    report_id: str,
    location_id: str,
    version: str = INGEST_VERSION,
) -> bool:
    """Check if a venue needs ingesting based on metadata.

    Returns True if:
    - No metadata exists for this report+venue
    - Metadata status is not "ok"
    - Metadata version doesn't match current version
    """
    meta = read_metadata(meta_dir, report_id, location_id)
    if meta is None:
        return True
    if meta.status != "ok":
        return True
    if meta.version != version:
        return True
    return False
