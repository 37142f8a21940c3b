"""Silver layer: metric_values and staff_metrics fact tables.

Facts are stored as one CSV per report and venue:

    b_clean/metric_values/<report_id>/<location_id>.csv
    b_clean/staff_metrics/<report_id>/<location_id>.csv

Grain:
    metric_values: one row per matched product line (location-level, with
        staff_name set when the line came from a staff block).
    staff_metrics: one row per matched staff product line whose category
        counts for individual sales.

Every insert call is all-or-nothing: the new CSV is written to a temporary
file and moved into place only when the whole batch has been written.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List
from urllib.parse import quote

import numpy as np
import pandas as pd

from pos_reports.exceptions import DataQualityError

if TYPE_CHECKING:
    from pos_reports.config import DataPaths

logger = logging.getLogger(__name__)

METRIC_COLUMNS = [
    "report_id",
    "location_id",
    "product_name",
    "category",
    "arcade_group_label",
    "value",
    "staff_name",
]

STAFF_COLUMNS = [
    "report_id",
    "location_id",
    "staff_name",
    "category",
    "value",
]

_DTYPES = {
    "report_id": str,
    "location_id": str,
    "product_name": str,
    "category": str,
    "arcade_group_label": str,
    "staff_name": str,
    "value": np.float64,
}


def safe_component(value: str) -> str:
    """Turn an id into a single safe path component.

    Percent-encoding keeps the mapping one-to-one, so two different ids
    never share a file. Ids made only of dots are encoded too.

    Raises:
        ValueError: If the id is empty.

    Examples:
        >>> safe_component("report/2025 01")
        'report%2F2025%2001'
        >>> safe_component("venue_1")
        'venue_1'
    """
    s = quote(str(value), safe="")
    if not s:
        raise ValueError("Empty id cannot be used as a path component")
    if not s.strip("."):
        s = s.replace(".", "%2E")
    return s


def validate_fact_frame(df: pd.DataFrame, columns: List[str], table: str) -> None:
    """Check a fact batch before it is written.

    Raises:
        DataQualityError: If required columns are missing, ids are blank,
            or any value is not a positive number.
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataQualityError(f"Missing required columns in {table}: {missing}")

    for col in ("report_id", "location_id"):
        blank = df[col].isna() | (df[col].astype(str).str.strip() == "")
        if blank.any():
            raise DataQualityError(f"{table}: {int(blank.sum())} rows with blank {col}")

    values = pd.to_numeric(df["value"], errors="coerce")
    bad = values.isna() | (values <= 0)
    if bad.any():
        raise DataQualityError(f"{table}: {int(bad.sum())} rows with non-positive value")


class CsvFactStore:
    """CSV-backed fact tables under DataPaths.

    Example:
        >>> store = CsvFactStore(paths)
        >>> store.insert_metric_facts([{"report_id": "r1", "location_id": "auckland", ...}])
        >>> store.load_metric_facts("r1")
    """

    def __init__(self, paths: DataPaths) -> None:
        self.paths = paths

    # ------------------------------------------------------------------ writes
    def insert_metric_facts(self, rows: Iterable[dict]) -> int:
        """Append location-level facts. Returns rows written (0 = no-op)."""
        return self._insert(self.paths.metric_values, rows, METRIC_COLUMNS, "metric_values")

    def insert_staff_metric_facts(self, rows: Iterable[dict]) -> int:
        """Append staff-attributed facts. Returns rows written (0 = no-op)."""
        return self._insert(self.paths.staff_metrics, rows, STAFF_COLUMNS, "staff_metrics")

    def _insert(
        self, table_dir: Path, rows: Iterable[dict], columns: List[str], table: str
    ) -> int:
        df = pd.DataFrame(list(rows), columns=columns)
        if df.empty:
            return 0
        validate_fact_frame(df, columns, table)

        # stage every venue file first, then move them all into place
        staged: Dict[Path, Path] = {}
        try:
            for (report_id, location_id), part in df.groupby(
                ["report_id", "location_id"], sort=False
            ):
                target = self._venue_file(table_dir, report_id, location_id)
                existing = self._read(target, columns)
                if existing.empty:
                    combined = part
                else:
                    combined = pd.concat([existing, part], ignore_index=True)
                staged[target] = self._write_temp(combined, target)
            for target, tmp in staged.items():
                os.replace(tmp, target)
        finally:
            for tmp in staged.values():
                if tmp.exists():
                    tmp.unlink()

        logger.debug("Inserted %d rows into %s", len(df), table)
        return len(df)

    @staticmethod
    def _write_temp(df: pd.DataFrame, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=".tmp_", suffix=".csv", dir=target.parent)
        os.close(fd)
        df.to_csv(name, index=False, encoding="utf-8")
        return Path(name)

    def delete_venue_facts(self, report_id: str, location_id: str) -> None:
        """Remove both fact files for one report+venue, if present."""
        for table_dir in (self.paths.metric_values, self.paths.staff_metrics):
            path = self._venue_file(table_dir, report_id, location_id)
            if path.exists():
                path.unlink()
                logger.debug("Deleted %s", path)

    def delete_report(self, report_id: str) -> None:
        """Remove every fact of a report, and its ingestion metadata."""
        for table_dir in (
            self.paths.metric_values,
            self.paths.staff_metrics,
            self.paths.ingest_meta,
        ):
            report_dir = table_dir / safe_component(report_id)
            if report_dir.exists():
                shutil.rmtree(report_dir)
        logger.info("Deleted facts for report %s", report_id)

    # ------------------------------------------------------------------- reads
    def load_metric_facts(self, report_id: str) -> pd.DataFrame:
        """All metric_values rows of a report."""
        return self._load_report(self.paths.metric_values, report_id, METRIC_COLUMNS)

    def load_staff_metric_facts(self, report_id: str) -> pd.DataFrame:
        """All staff_metrics rows of a report."""
        return self._load_report(self.paths.staff_metrics, report_id, STAFF_COLUMNS)

    def _load_report(self, table_dir: Path, report_id: str, columns: List[str]) -> pd.DataFrame:
        report_dir = table_dir / safe_component(report_id)
        files = sorted(report_dir.glob("*.csv")) if report_dir.exists() else []
        dfs = [self._read(f, columns) for f in files]
        dfs = [d for d in dfs if not d.empty]
        if not dfs:
            return pd.DataFrame(columns=columns)
        return pd.concat(dfs, ignore_index=True)

    @staticmethod
    def _read(path: Path, columns: List[str]) -> pd.DataFrame:
        if not path.exists():
            return pd.DataFrame(columns=columns)
        dtypes = {c: _DTYPES[c] for c in columns}
        df = pd.read_csv(
            path,
            encoding="utf-8",
            dtype=dtypes,
            keep_default_na=False,
            na_values={c: [""] for c in ("arcade_group_label", "staff_name") if c in columns},
        )
        # optional text columns come back as None, not NaN
        for col in ("arcade_group_label", "staff_name"):
            if col in df.columns:
                df[col] = df[col].astype(object).where(df[col].notna(), None)
        return df[columns]

    @staticmethod
    def _venue_file(table_dir: Path, report_id: str, location_id: str) -> Path:
        return table_dir / safe_component(report_id) / f"{safe_component(location_id)}.csv"
