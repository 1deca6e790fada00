import logging
from typing import Any, Optional

from openpyxl.worksheet.worksheet import Worksheet

from column_locator import normalize_header
from layout_constants import (
    AGGREGATE_COLUMN,
    AGGREGATE_HEADER,
    AGGREGATE_ROW,
    FIRST_DATA_ROW,
    HEADER_ROW,
)

logger = logging.getLogger(__name__)


def as_number(value: Any) -> Optional[float]:
    """Return the numeric value of a cell, or None for text, blanks and booleans."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def find_header_column(ws: Worksheet, label: str) -> Optional[int]:
    """First column, left to right, whose normalized header equals ``label``."""
    for cell in next(ws.iter_rows(min_row=HEADER_ROW, max_row=HEADER_ROW), ()):
        if normalize_header(cell.value) == label:
            return cell.column
    return None


def compute_aggregate(source_ws: Worksheet, last_row: int) -> Optional[float]:
    """
    Compute the CECL aggregate of a pool worksheet.

    Multi-row pools carry a non-zero value below the first data row and are
    summed. Single summary-row pools only have the first data row, which is
    passed through unchanged.

    Args:
        source_ws: Source worksheet
        last_row: Last populated row

    Returns:
        The aggregate, or None when there is no ``cecl`` column or nothing numeric to use
    """
    column = find_header_column(source_ws, AGGREGATE_HEADER)
    if column is None:
        logger.debug("No CECL column found")
        return None

    def value_at(row: int) -> Optional[float]:
        return as_number(source_ws.cell(row=row, column=column).value)

    has_non_zero = any(
        (value_at(row) or 0.0) != 0.0 for row in range(FIRST_DATA_ROW + 1, last_row + 1)
    )
    if has_non_zero:
        return sum(value_at(row) or 0.0 for row in range(FIRST_DATA_ROW, last_row + 1))

    return value_at(FIRST_DATA_ROW)


def write_aggregate(dest_ws: Worksheet, value: float) -> None:
    dest_ws.cell(row=AGGREGATE_ROW, column=AGGREGATE_COLUMN, value=value)
