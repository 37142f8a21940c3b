#!/usr/bin/env python3
"""Public API for parsing a report's venue CSVs into fact tables.

For every venue upload of a report, one venue at a time:

1. Download the raw CSV from the blob store
2. Snapshot the venue's active exact-match product rules
3. Segment the table into location and staff blocks
4. Classify each data row against the rule snapshot
5. Replace the venue's metric_values and staff_metrics with one batched
   write per table

A venue whose file cannot be used (download failure, no rules, no product
header, ...) is skipped and logged; the other venues still run. A failed
fact write aborts the run.

Examples:
    python -m pos_reports.ingest.api --report-id 2025-w02 \\
        --data-root ./data --rules ./utils/product_rules.json

    python -m pos_reports.ingest.api --report-id 2025-w02 \\
        --data-root ./data --rules ./utils/product_rules.json --mode missing -v
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from pos_reports.config import (
    DEFAULT_STAFF_ARCADE_POLICY,
    BlobSettings,
    DataPaths,
    StaffArcadePolicy,
)
from pos_reports.exceptions import (
    ConfigError,
    ETLError,
    ExtractionError,
    FactWriteError,
    ReportsAPIError,
    VenueSkipped,
)
from pos_reports.ingest.classifier import (
    Discarded,
    IngestDiagnostics,
    classify_segmented_row,
    staff_category,
)
from pos_reports.ingest.cleaning_utils import read_csv_rows
from pos_reports.ingest.emitter import FactBatch, emit_facts
from pos_reports.ingest.segmenter import segment_rows
from pos_reports.metadata import INGEST_VERSION, IngestMetadata, should_ingest, write_metadata
from pos_reports.rules import JsonRuleSource, RuleCatalog
from pos_reports.storage.blobs import HttpBlobStore, LocalBlobStore
from pos_reports.storage.facts import CsvFactStore
from pos_reports.storage.uploads import ReportUpload, load_report_uploads

logger = logging.getLogger(__name__)

MODES = ("replace", "missing")


@dataclass
class VenueParse:
    """In-memory result of parsing one venue file (nothing written yet)."""

    batch: FactBatch
    diagnostics: IngestDiagnostics


@dataclass
class VenueResult:
    """Outcome of one venue within a report run.

    Attributes:
        location_id: Venue.
        status: "ok", "skipped", or "cached" (mode="missing" and already done).
        reason: Skip reason, empty otherwise.
        metric_rows: metric_values rows written.
        staff_rows: staff_metrics rows written.
        diagnostics: Row-level discards for the venue, when it was parsed.
    """

    location_id: str
    status: str
    reason: str = ""
    metric_rows: int = 0
    staff_rows: int = 0
    diagnostics: Optional[IngestDiagnostics] = None


@dataclass
class ParseResult:
    """Result handed back to the caller that triggered the parse."""

    success: bool
    message: str
    report_id: str
    venues: List[VenueResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


def parse_venue_rows(
    rows: Sequence[Sequence[str]],
    report_id: str,
    location_id: str,
    catalog: RuleCatalog,
    policy: StaffArcadePolicy = DEFAULT_STAFF_ARCADE_POLICY,
) -> VenueParse:
    """Segment and classify a raw table into both fact streams.

    Every matched row yields a metric_values fact (with staff_name when it
    sits in a staff block). Rows in staff blocks whose category counts for
    individual sales also yield a staff_metrics fact.

    Raises:
        VenueSkipped: If the table has no usable product header.
    """
    diagnostics = IngestDiagnostics()
    batch = FactBatch(report_id=report_id, location_id=location_id)

    for row in segment_rows(rows, location_id, diagnostics.skipped_blocks):
        result = classify_segmented_row(row, catalog, diagnostics)
        if isinstance(result, Discarded):
            continue

        staff_name = row.context.staff_name
        batch.add_metric(result, staff_name)

        if row.context.is_staff:
            category = staff_category(result, policy)
            if category:
                batch.add_staff(staff_name, category, result.quantity)

    diagnostics.product_rows = len(batch.metric_rows)
    diagnostics.staff_rows = len(batch.staff_rows)
    return VenueParse(batch=batch, diagnostics=diagnostics)


def parse_venue_csv(
    content: bytes | str,
    report_id: str,
    location_id: str,
    catalog: RuleCatalog,
    policy: StaffArcadePolicy = DEFAULT_STAFF_ARCADE_POLICY,
) -> VenueParse:
    """parse_venue_rows() on raw CSV content.

    Raises:
        VenueSkipped: If the content is not UTF-8, is not valid CSV, is
            empty, or has no usable product header.
    """
    try:
        rows = read_csv_rows(content)
    except UnicodeDecodeError as e:
        raise VenueSkipped(
            location_id, "undecodable", f"CSV for {location_id} is not UTF-8: {e}"
        ) from e
    except csv.Error as e:
        raise VenueSkipped(
            location_id, "malformed-csv", f"Error parsing CSV for location {location_id}: {e}"
        ) from e

    if not rows:
        raise VenueSkipped(
            location_id, "empty-file", f"No data rows found in CSV for location {location_id}"
        )

    return parse_venue_rows(rows, report_id, location_id, catalog, policy)


def ingest_venue(
    upload: ReportUpload,
    blob_store,
    rule_source,
    fact_store,
    policy: StaffArcadePolicy = DEFAULT_STAFF_ARCADE_POLICY,
) -> VenueResult:
    """Download, parse and persist one venue file.

    Raises:
        VenueSkipped: If the venue cannot be ingested; nothing was written.
        FactWriteError: If persisting the facts failed.
    """
    location_id = upload.location_id

    try:
        content = blob_store.download(upload.storage_path)
    except ExtractionError as e:
        raise VenueSkipped(location_id, "download-failed", str(e)) from e

    try:
        rules = rule_source.fetch_rules(location_id)
    except (ConfigError, OSError) as e:
        raise VenueSkipped(
            location_id,
            "rules-unavailable",
            f"Failed to load product rules for location {location_id}: {e}",
        ) from e

    catalog = RuleCatalog(location_id, rules)
    if len(catalog) == 0:
        raise VenueSkipped(
            location_id, "no-rules", f"No product rules found for location {location_id}"
        )

    parsed = parse_venue_csv(content, upload.report_id, location_id, catalog, policy)
    written, staff_written = emit_facts(parsed.batch, fact_store)

    summary = parsed.diagnostics.summary()
    logger.info(
        "Venue %s summary: report=%s product_rows=%d staff_rows=%d "
        "skipped_invalid_quantity=%d skipped_missing_name=%d unmatched_products=%s",
        location_id,
        upload.report_id,
        written,
        staff_written,
        summary["rows_skipped_invalid_quantity"],
        summary["rows_skipped_missing_name"],
        summary["unmatched_products"],
    )
    if written == 0:
        logger.warning(
            "No valid metric rows created for location %s. Unmatched products: %s",
            location_id,
            ", ".join(summary["unmatched_products"]),
        )

    return VenueResult(
        location_id=location_id,
        status="ok",
        metric_rows=written,
        staff_rows=staff_written,
        diagnostics=parsed.diagnostics,
    )


def parse_report_csvs(
    report_id: str,
    paths: DataPaths,
    *,
    uploads: Optional[List[ReportUpload]] = None,
    blob_store=None,
    rule_source=None,
    fact_store=None,
    mode: str = "replace",
    policy: StaffArcadePolicy = DEFAULT_STAFF_ARCADE_POLICY,
) -> ParseResult:
    """Parse every venue CSV of a report into metric_values and staff_metrics.

    Args:
        report_id: Report to ingest.
        paths: DataPaths configuration.
        uploads: Venue uploads; loaded from the report_uploads registry if None.
        blob_store: Object with download(storage_path) -> bytes. Defaults to
            LocalBlobStore(paths.raw_uploads).
        rule_source: Object with fetch_rules(location_id) -> list[Rule].
            Defaults to JsonRuleSource(paths.rules_json).
        fact_store: Fact store. Defaults to CsvFactStore(paths).
        mode: "replace" (default) re-ingests every venue, replacing its facts;
            "missing" skips venues whose last ingestion finished ok.
        policy: Which arcade labels count towards staff metrics.

    Returns:
        ParseResult with success=True and one VenueResult per upload.
        Skipped venues do not make the run fail.

    Raises:
        ValueError: If mode is not "replace" or "missing".
        ETLError: If the report has no uploads.
        FactWriteError: If a fact write fails; later venues are not run.
    """
    if mode not in MODES:
        raise ValueError(f"Invalid mode '{mode}'. Must be 'replace' or 'missing'.")

    paths.ensure_dirs()

    if uploads is None:
        uploads = load_report_uploads(paths, report_id)
    if not uploads:
        raise ETLError("No CSV uploads found for this report")

    blob_store = blob_store or LocalBlobStore(paths.raw_uploads)
    rule_source = rule_source or JsonRuleSource(paths.rules_json)
    fact_store = fact_store or CsvFactStore(paths)

    logger.info("Parsing %d venue CSV(s) for report %s", len(uploads), report_id)
    venues: List[VenueResult] = []

    for upload in uploads:
        location_id = upload.location_id

        if mode == "missing" and not should_ingest(paths.ingest_meta, report_id, location_id):
            logger.info("Venue %s already ingested for report %s, skipping", location_id, report_id)
            venues.append(VenueResult(location_id=location_id, status="cached"))
            continue

        try:
            result = ingest_venue(upload, blob_store, rule_source, fact_store, policy)
        except VenueSkipped as e:
            logger.warning("Skipping location %s (%s): %s", location_id, e.reason, e)
            _record(paths, report_id, location_id, "skipped", e.reason)
            venues.append(VenueResult(location_id=location_id, status="skipped", reason=e.reason))
            continue
        except FactWriteError as e:
            _record(paths, report_id, location_id, "failed", f"write-{e.table}")
            raise

        _record(
            paths,
            report_id,
            location_id,
            "ok",
            counts=result.diagnostics.summary() if result.diagnostics else {},
        )
        venues.append(result)

    return ParseResult(
        success=True,
        message="CSVs parsed successfully",
        report_id=report_id,
        venues=venues,
    )


def parse_report(report_id: str, paths: DataPaths, **kwargs) -> ParseResult:
    """parse_report_csvs() for callers that want a result, not an exception.

    Any ingestion error (no uploads, write failure, bad configuration) is
    logged and returned as success=False with the error message.
    """
    try:
        return parse_report_csvs(report_id, paths, **kwargs)
    except (ReportsAPIError, ValueError) as e:
        logger.error("Error parsing report CSVs for %s: %s", report_id, e)
        return ParseResult(
            success=False, message=str(e) or "Failed to parse CSVs", report_id=report_id
        )


def _record(
    paths: DataPaths,
    report_id: str,
    location_id: str,
    status: str,
    reason: str = "",
    counts: Optional[dict] = None,
) -> None:
    write_metadata(
        paths.ingest_meta,
        IngestMetadata(
            report_id=report_id,
            location_id=location_id,
            version=INGEST_VERSION,
            last_run=datetime.now().isoformat(),
            status=status,
            reason=reason,
            counts=counts or {},
        ),
    )


# --------------------------- CLI ---------------------------
@dataclass
class Args:
    report_id: str
    data_root: Path
    rules: Path
    mode: str
    blob_base: Optional[str]
    verbose: bool
    quiet: bool


def parse_args(argv: Optional[Sequence[str]] = None) -> Args:
    p = argparse.ArgumentParser(description="Parse a report's venue CSVs into fact tables")
    p.add_argument("--report-id", required=True, help="Report to parse")
    p.add_argument("--data-root", type=Path, default=Path("data"), help="Root data directory")
    p.add_argument(
        "--rules",
        type=Path,
        default=Path("utils/product_rules.json"),
        help="Product rules JSON (start from utils/product_rules.example.json)",
    )
    p.add_argument(
        "--mode", choices=MODES, default="replace", help="Re-ingest or only missing venues"
    )
    p.add_argument(
        "--blob-base",
        default=None,
        help="Fetch uploads over HTTP from this base URL (default: local a_raw/uploads)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--quiet", action="store_true", help="Less logging")
    a = p.parse_args(argv)
    return Args(
        report_id=a.report_id,
        data_root=a.data_root,
        rules=a.rules,
        mode=a.mode,
        blob_base=a.blob_base,
        verbose=a.verbose,
        quiet=a.quiet,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    paths = DataPaths.from_root(args.data_root, args.rules)
    if not paths.rules_json.exists():
        print(
            f"FAILED: product rules file not found: {paths.rules_json} "
            "(copy utils/product_rules.example.json or pass --rules)",
            file=sys.stderr,
        )
        return 1

    try:
        settings = BlobSettings.from_env()
    except ConfigError as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return 1

    base_url = args.blob_base or settings.base_url
    if base_url:
        blob_store = HttpBlobStore(
            base_url,
            token=settings.token,
            timeout=settings.timeout,
            retries=settings.retries,
        )
    else:
        blob_store = LocalBlobStore(paths.raw_uploads)

    result = parse_report(args.report_id, paths, blob_store=blob_store, mode=args.mode)
    if not result.success:
        print(f"FAILED: {result.message}", file=sys.stderr)
        return 1

    for venue in result.venues:
        extra = f" ({venue.reason})" if venue.reason else ""
        print(
            f"{venue.location_id}: {venue.status}{extra} "
            f"metric_rows={venue.metric_rows} staff_rows={venue.staff_rows}"
        )
    print(result.message)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
