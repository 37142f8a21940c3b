"""Bronze layer: report_uploads registry.

One row per venue CSV uploaded for a report:

    report_id,location_id,storage_path
    2025-w02,auckland,2025-w02/auckland.csv
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

import pandas as pd

from pos_reports.exceptions import ConfigError

if TYPE_CHECKING:
    from pos_reports.config import DataPaths

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["report_id", "location_id", "storage_path"]


@dataclass(frozen=True)
class ReportUpload:
    """One uploaded venue CSV of a report."""

    report_id: str
    location_id: str
    storage_path: str


def load_report_uploads(paths: DataPaths, report_id: str) -> List[ReportUpload]:
    """Load the uploads registered for one report, in registry order.

    Args:
        paths: DataPaths configuration.
        report_id: Report to look up.

    Returns:
        Uploads for the report; empty if the registry has none (or does
        not exist yet).

    Raises:
        ConfigError: If the registry is missing required columns.
    """
    if not paths.report_uploads.exists():
        logger.debug("No upload registry at %s", paths.report_uploads)
        return []

    df = pd.read_csv(paths.report_uploads, dtype=str, keep_default_na=False, encoding="utf-8")
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ConfigError(
            f"Upload registry {paths.report_uploads} is missing columns: {missing}. "
            f"Required: {REQUIRED_COLUMNS}"
        )

    df = df[df["report_id"].str.strip() == str(report_id)]
    return [
        ReportUpload(
            report_id=str(report_id),
            location_id=rec["location_id"].strip(),
            storage_path=rec["storage_path"].strip(),
        )
        for rec in df.to_dict(orient="records")
    ]


def register_upload(paths: DataPaths, upload: ReportUpload) -> None:
    """Append one upload to the registry, creating it if needed."""
    paths.report_uploads.parent.mkdir(parents=True, exist_ok=True)
    row = pd.DataFrame(
        [[upload.report_id, upload.location_id, upload.storage_path]],
        columns=REQUIRED_COLUMNS,
    )
    write_header = not paths.report_uploads.exists()
    row.to_csv(paths.report_uploads, mode="a", header=write_header, index=False, encoding="utf-8")
