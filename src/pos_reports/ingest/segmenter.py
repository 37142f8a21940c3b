"""Table segmentation for multi-section POS sales exports.

A venue export is not a single table. It starts with location-level product
totals and is followed by one subsection per staff member:

    Name,Category,Volume In-Store,Volume Online      <- product header
    Go Kart,,3,0                                     <- location rows
    Soda,,2,0
    Alice,,,                                         <- staff header
    Name,Category,Volume In-Store,Volume Online      <- local product header
    Go Kart,,1,0                                     <- Alice's rows
                                                     <- blank row ends block
    Bob,,,
    ...

Segmentation runs in two passes:

1. index_structure() scans once and records every staff header (cell 0
   non-empty, every other cell empty) and every product header (a cell
   matching "volume in-store").
2. segment_rows() walks the index: the first product header governs the
   location segment up to the first staff header; each staff header takes
   the next product header as its own column map and ends at the next staff
   header, the first blank row after its header, or end of table.

The staff-header shape check only looks at which cells are populated, so it
always runs before any volume parsing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from pos_reports.exceptions import VenueSkipped
from pos_reports.ingest.cleaning_utils import clean_cell, is_blank_row

logger = logging.getLogger(__name__)

PRODUCT_HEADER_RE = re.compile(r"volume\s*in-?store", re.IGNORECASE)

LOCATION = "location"
STAFF = "staff"


@dataclass(frozen=True)
class ColumnMap:
    """Column positions resolved from one product header row.

    Attributes:
        name_index: Column whose header is "Name".
        volume_index: Column whose header mentions volume and store but not online.
    """

    name_index: int
    volume_index: int


@dataclass(frozen=True)
class SegmentContext:
    """Attribution of a segment: the location itself or one staff member."""

    kind: str
    staff_name: Optional[str] = None

    @classmethod
    def location(cls) -> SegmentContext:
        return cls(kind=LOCATION)

    @classmethod
    def staff(cls, name: str) -> SegmentContext:
        return cls(kind=STAFF, staff_name=name)

    @property
    def is_staff(self) -> bool:
        return self.kind == STAFF

    def __str__(self) -> str:
        return f"staff:{self.staff_name}" if self.is_staff else "location"


@dataclass(frozen=True)
class StaffHeader:
    """A staff-label row: its position and the trimmed staff name."""

    index: int
    staff_name: str


@dataclass
class StructureIndex:
    """Pass-one result: positions of every structural row in the table."""

    staff_headers: List[StaffHeader] = field(default_factory=list)
    product_headers: List[int] = field(default_factory=list)

    def next_product_header(self, after: int, before: int) -> Optional[int]:
        """First product header strictly between after and before."""
        for idx in self.product_headers:
            if after < idx < before:
                return idx
        return None


@dataclass
class Segment:
    """A contiguous run of rows governed by one header and one context.

    Attributes:
        context: Location or Staff(name).
        header_index: Row index of the governing product header.
        columns: Column map resolved from that header.
        start: First candidate data row (inclusive).
        end: End boundary (exclusive).
    """

    context: SegmentContext
    header_index: int
    columns: ColumnMap
    start: int
    end: int


@dataclass(frozen=True)
class SegmentedRow:
    """One data row with the segment context it belongs to."""

    row_number: int
    cells: Sequence[str]
    context: SegmentContext
    columns: ColumnMap


@dataclass
class SkippedBlock:
    """A staff block that could not be used, kept for diagnostics."""

    staff_name: str
    row_number: int
    reason: str


def is_staff_header_row(row: Sequence[str]) -> bool:
    """True when cell 0 is non-empty and every other cell is empty.

    Examples:
        >>> is_staff_header_row(["Jordan", "", "", ""])
        True
        >>> is_staff_header_row(["Product X", "", "5", ""])
        False
    """
    if not row or not clean_cell(row[0]):
        return False
    return all(not clean_cell(c) for c in row[1:])


def is_product_header_row(row: Sequence[str]) -> bool:
    """True when any cell reads like "Volume In-Store"."""
    return any(PRODUCT_HEADER_RE.search(clean_cell(c)) for c in row)


def resolve_columns(header_row: Sequence[str]) -> Optional[ColumnMap]:
    """Locate the name and in-store volume columns of a product header.

    Args:
        header_row: A product header row.

    Returns:
        ColumnMap, or None if either column is missing.

    Examples:
        >>> resolve_columns(["Name", "Other", "Volume In-Store"])
        ColumnMap(name_index=0, volume_index=2)
        >>> resolve_columns(["Product", "Volume Online", "Volume In-Store"])
    """
    name_index = -1
    volume_index = -1
    for i, cell in enumerate(header_row):
        lower = clean_cell(cell).lower()
        if name_index == -1 and lower == "name":
            name_index = i
        if (
            volume_index == -1
            and "volume" in lower
            and "store" in lower
            and "online" not in lower
        ):
            volume_index = i

    if name_index == -1 or volume_index == -1:
        return None
    return ColumnMap(name_index=name_index, volume_index=volume_index)


def index_structure(rows: Sequence[Sequence[str]]) -> StructureIndex:
    """Pass one: record every staff header and product header, in order."""
    index = StructureIndex()
    for i, row in enumerate(rows):
        if is_staff_header_row(row):
            index.staff_headers.append(StaffHeader(index=i, staff_name=clean_cell(row[0])))
        if is_product_header_row(row):
            index.product_headers.append(i)
    return index


def build_segments(
    rows: Sequence[Sequence[str]],
    location_id: str = "",
    skipped: Optional[List[SkippedBlock]] = None,
) -> List[Segment]:
    """Pass two: turn the structure index into segments.

    Args:
        rows: The full raw table, nothing skipped.
        location_id: Venue id, used in log messages and errors.
        skipped: Optional list that receives staff blocks that were dropped.

    Returns:
        Segments in document order: the location segment first, then one
        per usable staff block.

    Raises:
        VenueSkipped: If the table has no product header, or the first one
            does not resolve both the name and volume columns.
    """
    index = index_structure(rows)
    total = len(rows)

    if not index.product_headers:
        raise VenueSkipped(
            location_id,
            "no-product-header",
            f'Could not find product header row with "Volume In-Store" for location {location_id}',
        )

    first_header = index.product_headers[0]
    first_columns = resolve_columns(rows[first_header])
    if first_columns is None:
        raise VenueSkipped(
            location_id,
            "unresolved-columns",
            f"Product header at row {first_header} has no Name/Volume In-Store "
            f"columns for location {location_id}",
        )

    first_staff = index.staff_headers[0].index if index.staff_headers else total
    segments = [
        Segment(
            context=SegmentContext.location(),
            header_index=first_header,
            columns=first_columns,
            start=first_header + 1,
            end=max(first_header + 1, first_staff),
        )
    ]

    for pos, staff in enumerate(index.staff_headers):
        next_staff = (
            index.staff_headers[pos + 1].index if pos + 1 < len(index.staff_headers) else total
        )
        header_idx = index.next_product_header(staff.index, next_staff)
        if header_idx is None:
            logger.warning(
                'Could not find product header after staff header "%s" at row %d',
                staff.staff_name,
                staff.index,
            )
            if skipped is not None:
                skipped.append(SkippedBlock(staff.staff_name, staff.index, "no-product-header"))
            continue

        columns = resolve_columns(rows[header_idx])
        if columns is None:
            logger.warning(
                'Product header for staff "%s" at row %d lacks Name/Volume In-Store columns',
                staff.staff_name,
                header_idx,
            )
            if skipped is not None:
                skipped.append(SkippedBlock(staff.staff_name, staff.index, "unresolved-columns"))
            continue

        end = next_staff
        for i in range(header_idx + 1, next_staff):
            if is_blank_row(rows[i]):
                end = i
                break

        segments.append(
            Segment(
                context=SegmentContext.staff(staff.staff_name),
                header_index=header_idx,
                columns=columns,
                start=header_idx + 1,
                end=end,
            )
        )

    return segments


def iter_segment_rows(
    rows: Sequence[Sequence[str]], segment: Segment
) -> Iterator[SegmentedRow]:
    """Yield the data rows of one segment.

    Blank rows and staff-label rows are never yielded. A repeated product
    header inside the segment is not yielded either; when it resolves both
    columns it replaces the column map for the rows after it.
    """
    columns = segment.columns
    for i in range(segment.start, segment.end):
        row = rows[i]
        if is_blank_row(row) or is_staff_header_row(row):
            continue
        if is_product_header_row(row):
            columns = resolve_columns(row) or columns
            continue
        yield SegmentedRow(row_number=i, cells=row, context=segment.context, columns=columns)


def segment_rows(
    rows: Sequence[Sequence[str]],
    location_id: str = "",
    skipped: Optional[List[SkippedBlock]] = None,
) -> List[SegmentedRow]:
    """Segment a raw table into attributed data rows.

    Args:
        rows: The full raw table.
        location_id: Venue id, used in log messages and errors.
        skipped: Optional list that receives dropped staff blocks.

    Returns:
        Every non-structural, non-blank row in segment order, each tagged
        with its context and column map.

    Raises:
        VenueSkipped: If the table has no usable product header.
    """
    out: List[SegmentedRow] = []
    for segment in build_segments(rows, location_id, skipped):
        out.extend(iter_segment_rows(rows, segment))
    return out
