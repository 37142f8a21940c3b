"""Fact assembly and batched persistence for one venue file.

FactBatch accumulates both fact streams for the whole venue; emit_facts()
then replaces whatever the venue had for the report with exactly one
batched write per fact type. If either write fails the venue is rolled back
to no facts and FactWriteError is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pos_reports.exceptions import DataQualityError, FactWriteError
from pos_reports.ingest.classifier import Classified

logger = logging.getLogger(__name__)


@dataclass
class FactBatch:
    """Both fact streams of one report+venue.

    Attributes:
        report_id: Report being ingested.
        location_id: Venue of the file.
        metric_rows: metric_values rows (location-level, staff_name optional).
        staff_rows: staff_metrics rows.
    """

    report_id: str
    location_id: str
    metric_rows: List[dict] = field(default_factory=list)
    staff_rows: List[dict] = field(default_factory=list)

    def add_metric(self, result: Classified, staff_name: Optional[str] = None) -> None:
        self.metric_rows.append(
            {
                "report_id": self.report_id,
                "location_id": self.location_id,
                "product_name": result.product_name,
                "category": result.category,
                "arcade_group_label": result.arcade_group_label,
                "value": result.quantity,
                "staff_name": staff_name,
            }
        )

    def add_staff(self, staff_name: str, category: str, quantity: float) -> None:
        self.staff_rows.append(
            {
                "report_id": self.report_id,
                "location_id": self.location_id,
                "staff_name": staff_name,
                "category": category,
                "value": quantity,
            }
        )

    @property
    def is_empty(self) -> bool:
        return not self.metric_rows and not self.staff_rows


def emit_facts(batch: FactBatch, store) -> tuple[int, int]:
    """Write a venue's facts, replacing any earlier ingestion of it.

    Args:
        batch: Accumulated facts for one report+venue.
        store: Fact store exposing delete_venue_facts(), insert_metric_facts()
            and insert_staff_metric_facts().

    Returns:
        (metric rows written, staff rows written).

    Raises:
        FactWriteError: If deleting or inserting fails. The venue is left
            with no facts.
    """
    table = "metric_values"
    try:
        store.delete_venue_facts(batch.report_id, batch.location_id)
        written = store.insert_metric_facts(batch.metric_rows) if batch.metric_rows else 0
        table = "staff_metrics"
        staff_written = store.insert_staff_metric_facts(batch.staff_rows) if batch.staff_rows else 0
    except (OSError, ValueError, DataQualityError) as e:
        logger.error(
            "Failed to insert %s for location %s: %s", table, batch.location_id, e
        )
        _rollback(batch, store)
        raise FactWriteError(
            batch.location_id, table, f"Failed to insert {table}: {e}"
        ) from e

    return written, staff_written


def _rollback(batch: FactBatch, store) -> None:
    try:
        store.delete_venue_facts(batch.report_id, batch.location_id)
    except OSError as e:
        logger.error(
            "Rollback failed for report %s location %s: %s",
            batch.report_id,
            batch.location_id,
            e,
        )
