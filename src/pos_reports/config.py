"""Unified configuration for POS report ingestion.

This module provides the filesystem layout (DataPaths), the environment
settings for the HTTP blob store, and the staff arcade policy used when
deriving per-staff metrics.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pos_reports.exceptions import ConfigError


@dataclass
class DataPaths:
    """All filesystem paths used by the ingestion pipeline.

    Attributes:
        data_root: Root directory for all data layers.
        rules_json: Path to the product rules JSON file.

    Directory Structure:
        data_root/
        ├── a_raw/                    # Bronze: uploaded venue CSVs
        │   ├── uploads/              # blob store root (storage paths)
        │   └── report_uploads.csv    # report_id, location_id, storage_path
        └── b_clean/                  # Silver: normalized facts
            ├── metric_values/        # <report_id>/<location_id>.csv
            ├── staff_metrics/        # <report_id>/<location_id>.csv
            └── _meta/                # ingestion run metadata
    """

    data_root: Path
    rules_json: Path

    @classmethod
    def from_root(
        cls,
        data_root: str | Path,
        rules_json: str | Path,
    ) -> DataPaths:
        """Create DataPaths from root directory and product rules file.

        Args:
            data_root: Root directory for ingestion data.
            rules_json: Path to product_rules.json configuration.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root("data", "utils/product_rules.json")
            >>> paths.metric_values
            PosixPath('data/b_clean/metric_values')
        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        if isinstance(rules_json, str):
            rules_json = Path(rules_json)

        return cls(data_root=data_root, rules_json=rules_json)

    @property
    def raw_uploads(self) -> Path:
        """Bronze layer: uploaded venue CSVs, keyed by storage path."""
        return self.data_root / "a_raw" / "uploads"

    @property
    def report_uploads(self) -> Path:
        """Bronze layer: registry of uploads per report."""
        return self.data_root / "a_raw" / "report_uploads.csv"

    @property
    def metric_values(self) -> Path:
        """Silver layer: location-level metric facts."""
        return self.data_root / "b_clean" / "metric_values"

    @property
    def staff_metrics(self) -> Path:
        """Silver layer: staff-attributed metric facts."""
        return self.data_root / "b_clean" / "staff_metrics"

    @property
    def ingest_meta(self) -> Path:
        """Silver layer: per report+venue ingestion metadata."""
        return self.data_root / "b_clean" / "_meta"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [
            self.raw_uploads,
            self.metric_values,
            self.staff_metrics,
            self.ingest_meta,
        ]:
            path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class BlobSettings:
    """HTTP blob store settings read from the environment.

    Attributes:
        base_url: Base URL that storage paths are appended to.
        token: Optional bearer token sent with every download.
        timeout: Default request timeout in seconds.
        retries: Retry attempts for transient HTTP failures.
    """

    base_url: str | None
    token: str | None = None
    timeout: float = 60.0
    retries: int = 3

    @classmethod
    def from_env(cls) -> BlobSettings:
        """Build settings from REPORTS_BLOB_BASE, REPORTS_BLOB_TOKEN,
        REPORTS_TIMEOUT and REPORTS_RETRIES.

        Raises:
            ConfigError: If timeout or retries are not numbers.
        """
        base = os.environ.get("REPORTS_BLOB_BASE")
        token = os.environ.get("REPORTS_BLOB_TOKEN")
        try:
            timeout = float(os.environ.get("REPORTS_TIMEOUT", "60"))
            retries = int(os.environ.get("REPORTS_RETRIES", "3"))
        except ValueError as e:
            raise ConfigError(f"Invalid REPORTS_TIMEOUT/REPORTS_RETRIES: {e}") from e
        return cls(
            base_url=base.strip().rstrip("/") if base else None,
            token=token.strip() if token else None,
            timeout=timeout,
            retries=retries,
        )


@dataclass(frozen=True)
class StaffArcadePolicy:
    """Decides which arcade group labels count towards staff metrics.

    Only "Spend X Get X" offers are individual sales; plain top-up cards
    are excluded.

    Attributes:
        include_prefix: Labels must start with this prefix (case-sensitive).
        excluded_labels: Labels that never count, even with the prefix.
    """

    include_prefix: str = "Spend"
    excluded_labels: tuple[str, ...] = ("$10 Card", "$20 Card")

    def counts(self, arcade_group_label: str | None) -> bool:
        label = arcade_group_label or ""
        return label.startswith(self.include_prefix) and label not in self.excluded_labels


DEFAULT_STAFF_ARCADE_POLICY = StaffArcadePolicy()
