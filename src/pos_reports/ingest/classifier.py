"""Row classification against a venue's product rules.

Each data row coming out of the segmenter is either discarded with a reason
or resolved to (product name, category, arcade group label, quantity).
Exclusions are checked in a fixed order and the first one wins:

    non-numeric-volume -> invalid-quantity -> missing-name
    -> excluded-row -> unmatched-product

Classification is a pure function of the row, its column map and the rule
catalog; nothing carries over from previous rows.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Set

from pos_reports.config import DEFAULT_STAFF_ARCADE_POLICY, StaffArcadePolicy
from pos_reports.ingest.cleaning_utils import cell_at, parse_volume
from pos_reports.ingest.segmenter import ColumnMap, SegmentedRow, SkippedBlock
from pos_reports.rules import ARCADE, COMBO, NON_COMBO, RuleCatalog

NON_NUMERIC_VOLUME = "non-numeric-volume"
INVALID_QUANTITY = "invalid-quantity"
MISSING_NAME = "missing-name"
EXCLUDED_ROW = "excluded-row"
UNMATCHED_PRODUCT = "unmatched-product"

DISCARD_REASONS = (
    NON_NUMERIC_VOLUME,
    INVALID_QUANTITY,
    MISSING_NAME,
    EXCLUDED_ROW,
    UNMATCHED_PRODUCT,
)

_SELF_SERVE_RE = re.compile(r"^self-serve$", re.IGNORECASE)
_TOTAL_RE = re.compile(r"^(total|grand total)", re.IGNORECASE)


@dataclass(frozen=True)
class Classified:
    """A row that resolved to a product rule."""

    product_name: str
    category: str
    arcade_group_label: Optional[str]
    quantity: float


@dataclass(frozen=True)
class Discarded:
    """A row that was dropped, with the reason."""

    reason: str
    product_name: str = ""


@dataclass
class IngestDiagnostics:
    """Run-level accumulator for discarded rows and skipped blocks.

    Attributes:
        discards: Count of discarded rows per reason.
        unmatched_products: Product names with a valid quantity but no rule.
        skipped_blocks: Staff blocks that had no usable product header.
        product_rows: MetricFacts produced.
        staff_rows: StaffMetricFacts produced.
    """

    discards: Counter = field(default_factory=Counter)
    unmatched_products: Set[str] = field(default_factory=set)
    skipped_blocks: List[SkippedBlock] = field(default_factory=list)
    product_rows: int = 0
    staff_rows: int = 0

    def record(self, result: Discarded) -> None:
        self.discards[result.reason] += 1
        if result.reason == UNMATCHED_PRODUCT:
            self.unmatched_products.add(result.product_name)

    def summary(self) -> dict:
        """Flat dict for the venue summary log line and run metadata."""
        return {
            "product_rows": self.product_rows,
            "staff_rows": self.staff_rows,
            "rows_skipped_invalid_quantity": self.discards[INVALID_QUANTITY],
            "rows_skipped_missing_name": self.discards[MISSING_NAME],
            "rows_skipped_non_numeric": self.discards[NON_NUMERIC_VOLUME],
            "rows_excluded": self.discards[EXCLUDED_ROW],
            "unmatched_products": sorted(self.unmatched_products),
            "skipped_staff_blocks": [b.staff_name for b in self.skipped_blocks],
        }


def is_excluded_name(name: str) -> bool:
    """Self-serve lines and total/grand total lines are never products.

    Examples:
        >>> is_excluded_name("Self-Serve")
        True
        >>> is_excluded_name("Grand Total (incl GST)")
        True
        >>> is_excluded_name("Subtotal")
        False
    """
    return bool(_SELF_SERVE_RE.match(name) or _TOTAL_RE.match(name))


def classify_row(
    cells,
    columns: ColumnMap,
    catalog: RuleCatalog,
) -> Classified | Discarded:
    """Resolve one data row against the catalog.

    Args:
        cells: The raw row.
        columns: Column map of the row's segment.
        catalog: Rule snapshot for the venue.

    Returns:
        Classified on a rule match, otherwise Discarded with the first
        matching reason.
    """
    name = cell_at(cells, columns.name_index)
    volume_raw = cell_at(cells, columns.volume_index)

    quantity = parse_volume(volume_raw)
    if quantity is None:
        return Discarded(NON_NUMERIC_VOLUME, name)
    if quantity <= 0:
        return Discarded(INVALID_QUANTITY, name)

    if not name:
        return Discarded(MISSING_NAME)

    if is_excluded_name(name):
        return Discarded(EXCLUDED_ROW, name)

    rule = catalog.lookup(name)
    if rule is None:
        return Discarded(UNMATCHED_PRODUCT, name)

    return Classified(
        product_name=name,
        category=rule.category,
        arcade_group_label=rule.arcade_group_label,
        quantity=quantity,
    )


def staff_category(
    result: Classified,
    policy: StaffArcadePolicy = DEFAULT_STAFF_ARCADE_POLICY,
) -> Optional[str]:
    """Category to record for a staff member, or None for no staff fact.

    Arcade only counts for "Spend X" offers (never the $10/$20 cards);
    combo and non_combo pass through; other never counts.
    """
    if result.category == ARCADE:
        return ARCADE if policy.counts(result.arcade_group_label) else None
    if result.category in (COMBO, NON_COMBO):
        return result.category
    return None


def classify_segmented_row(
    row: SegmentedRow,
    catalog: RuleCatalog,
    diagnostics: Optional[IngestDiagnostics] = None,
) -> Classified | Discarded:
    """classify_row() for a segmented row, recording discards."""
    result = classify_row(row.cells, row.columns, catalog)
    if diagnostics is not None and isinstance(result, Discarded):
        diagnostics.record(result)
    return result
