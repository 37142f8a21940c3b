"""Shared utilities for cleaning POS CSV exports.

This module provides the cell-level helpers used by the segmenter and the
classifier: reading raw bytes into rows, trimming cells, recognizing blank
rows, normalizing product names for rule matching, and parsing the
"Volume In-Store" column.

Examples:
    >>> from pos_reports.ingest.cleaning_utils import (
    ...     clean_cell,
    ...     normalize_product_name,
    ...     parse_volume,
    ... )
    >>> parse_volume("$1,234.50")
    1234.5
    >>> clean_cell("\\u00a0Go Kart ")
    'Go Kart'
    >>> normalize_product_name("  SODA ")
    'soda'
"""

from __future__ import annotations

import csv
import io
import math
import re
from typing import Any, List, Optional, Sequence

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

_ZW_RE = re.compile(r"[%s]" % re.escape(ZW))

# Everything that is not part of a plain decimal number
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")


def clean_cell(x: Any) -> str:
    """Trim a cell and drop invisible characters.

    Non-breaking spaces become plain spaces and zero-width characters are
    removed. Inner whitespace is kept as is, so product names still match
    their rules exactly.

    Args:
        x: Cell value (string or None).

    Returns:
        Cleaned string, "" for None.

    Examples:
        >>> clean_cell("  Soda\\u200b ")
        'Soda'
        >>> clean_cell(None)
        ''
    """
    if x is None:
        return ""
    s = str(x).replace("\r", "").replace(NBSP, " ").replace(NNBSP, " ")
    s = _ZW_RE.sub("", s)
    return s.strip()


def cell_at(row: Sequence[str], index: int) -> str:
    """Return the cleaned cell at index, or "" if the row is shorter."""
    if index < 0 or index >= len(row):
        return ""
    return clean_cell(row[index])


def is_blank_row(row: Sequence[str]) -> bool:
    """True when every cell is empty after trimming (an empty row counts)."""
    return all(not clean_cell(c) for c in row)


def normalize_product_name(s: Optional[str]) -> str:
    """Normalize a product name for rule matching.

    Examples:
        >>> normalize_product_name(" Go KART ")
        'go kart'
    """
    return clean_cell(s).lower()


def parse_volume(raw: Any) -> Optional[float]:
    """Parse an in-store volume cell.

    Every character outside [0-9.-] is stripped first, so currency symbols
    and thousands separators are ignored. The sign is kept, so callers must
    still reject non-positive results.

    Args:
        raw: Cell value.

    Returns:
        Parsed float, or None if nothing numeric is left.

    Examples:
        >>> parse_volume("$1,234.50")
        1234.5
        >>> parse_volume("-3")
        -3.0
        >>> parse_volume("abc") is None
        True
        >>> parse_volume("1.2.3") is None
        True
    """
    s = _NON_NUMERIC_RE.sub("", clean_cell(raw))
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def read_csv_rows(content: bytes | str) -> List[List[str]]:
    """Split raw CSV content into rows of string cells.

    The file has no fixed schema, so rows are kept ragged and blank lines are
    kept (as empty lists) because they end staff blocks. A UTF-8 BOM is
    dropped.

    Args:
        content: Raw file bytes (UTF-8) or already decoded text.

    Returns:
        List of rows in document order.

    Raises:
        UnicodeDecodeError: If bytes are not UTF-8.
        csv.Error: If the content is not valid CSV (for example an
            unbalanced quote swallowing the rest of the file).
    """
    text = content.decode("utf-8-sig") if isinstance(content, bytes) else content.lstrip("\ufeff")
    return [list(row) for row in csv.reader(io.StringIO(text, newline=""))]
