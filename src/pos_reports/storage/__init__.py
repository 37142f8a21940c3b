"""Storage collaborators for ingestion.

- blobs: raw venue CSV download (local directory or HTTP blob store)
- facts: CSV-backed metric_values / staff_metrics tables
- uploads: report_uploads registry
"""

from pos_reports.storage.blobs import HttpBlobStore, LocalBlobStore
from pos_reports.storage.facts import CsvFactStore
from pos_reports.storage.uploads import ReportUpload, load_report_uploads

__all__ = [
    "CsvFactStore",
    "HttpBlobStore",
    "LocalBlobStore",
    "ReportUpload",
    "load_report_uploads",
]
