"""Example: parse one weekly report's venue CSVs into fact tables

This example registers the venue exports of a report, parses them and
prints the resulting metric_values and staff_metrics.

Prerequisites:
- Copy utils/product_rules.example.json to utils/product_rules.json and
  adjust the rules per venue
- Put the venue exports under data/a_raw/uploads/<report_id>/<venue>.csv
"""

from pathlib import Path

from pos_reports import DataPaths, parse_report_csvs
from pos_reports.storage import CsvFactStore, ReportUpload
from pos_reports.storage.uploads import load_report_uploads, register_upload

report_id = "2025-w02"  # MODIFY AS NEEDED
venues = ["auckland", "wellington"]  # MODIFY AS NEEDED

data_root = Path("data")
rules_json = Path("utils/product_rules.json")

paths = DataPaths.from_root(data_root, rules_json)
paths.ensure_dirs()

# Register the uploads that are not in the registry yet
registered = {u.location_id for u in load_report_uploads(paths, report_id)}
for venue in venues:
    if venue not in registered:
        register_upload(paths, ReportUpload(report_id, venue, f"{report_id}/{venue}.csv"))

print(f"Parsing report {report_id}...")
result = parse_report_csvs(report_id, paths, mode="replace")

for venue in result.venues:
    line = f"  {venue.location_id}: {venue.status}"
    if venue.reason:
        line += f" ({venue.reason})"
    print(line)
    if venue.diagnostics:
        unmatched = venue.diagnostics.summary()["unmatched_products"]
        if unmatched:
            print(f"    unmatched products: {', '.join(unmatched)}")

store = CsvFactStore(paths)
metrics = store.load_metric_facts(report_id)
staff = store.load_staff_metric_facts(report_id)

print(f"\nmetric_values: {len(metrics)} rows")
print(metrics.groupby(["location_id", "category"])["value"].sum())

print(f"\nstaff_metrics: {len(staff)} rows")
leaderboard = (
    staff.pivot_table(index="staff_name", columns="category", values="value", aggfunc="sum")
    .fillna(0)
    .assign(total=lambda d: d.sum(axis=1))
    .sort_values("total", ascending=False)
)
print(leaderboard)
