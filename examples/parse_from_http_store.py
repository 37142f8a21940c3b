"""Example: parse a report whose CSVs live in an HTTP blob store

Prerequisites:
- Set REPORTS_BLOB_BASE (and REPORTS_BLOB_TOKEN if the bucket is private)
- data/a_raw/report_uploads.csv lists the report's uploads
- utils/product_rules.json holds the product rules
"""

from pathlib import Path

from pos_reports import DataPaths, parse_report
from pos_reports.storage import HttpBlobStore

report_id = "2025-w02"  # MODIFY AS NEEDED

paths = DataPaths.from_root(Path("data"), Path("utils/product_rules.json"))
blob_store = HttpBlobStore.from_env()

# Only venues that did not finish last time are re-ingested
result = parse_report(report_id, paths, blob_store=blob_store, mode="missing")
print(result.to_dict())

for venue in result.venues:
    print(f"{venue.location_id}: {venue.status} metric_rows={venue.metric_rows}")
