import logging
import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd
from openpyxl.worksheet.worksheet import Worksheet

from layout_constants import (
    DATE_HEADER_LABELS,
    DATE_SEARCH_FIRST_COLUMN,
    DATE_SEARCH_LAST_COLUMN,
    EXPECTED_DATE_COLUMN,
    FIRST_DATA_ROW,
    HEADER_ROW,
)

logger = logging.getLogger(__name__)


def normalize_header(value: Any) -> str:
    """Trim and lowercase a header cell; blanks become an empty string."""
    if value is None:
        return ""
    return str(value).strip().lower()


# Day, month and year must all be present; "2024" or "2024-03" alone is not a date
_DATE_PARTS = re.compile(r"\d+|[A-Za-z]+")
_MIN_DATE_PARTS = 3


def is_date_value(value: Any) -> bool:
    """
    Check whether a cell value reads as a date.

    Date and datetime cells qualify, as do strings with day, month and year
    parts that pandas can parse as a timestamp. Numbers and booleans never do.
    """
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    text = value.strip()
    if len(_DATE_PARTS.findall(text)) < _MIN_DATE_PARTS:
        return False
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def locate_date_column(ws: Worksheet) -> Optional[int]:
    """
    Find the file date column of a pool worksheet.

    The expected column is tried first using the first data row. Otherwise the
    header cells of the search window are matched against the accepted labels
    and the match closest to the expected column wins, the lower index on a tie.

    Args:
        ws: Source worksheet

    Returns:
        1-based column index, or None when no date column can be found
    """
    if is_date_value(ws.cell(row=FIRST_DATA_ROW, column=EXPECTED_DATE_COLUMN).value):
        return EXPECTED_DATE_COLUMN

    best_column = None
    best_distance = None
    for column in range(DATE_SEARCH_FIRST_COLUMN, DATE_SEARCH_LAST_COLUMN + 1):
        header = normalize_header(ws.cell(row=HEADER_ROW, column=column).value)
        if header not in DATE_HEADER_LABELS:
            continue
        distance = abs(column - EXPECTED_DATE_COLUMN)
        if best_distance is None or distance < best_distance:
            best_column = column
            best_distance = distance

    if best_column is None:
        logger.debug(
            f"No date header in columns {DATE_SEARCH_FIRST_COLUMN}-{DATE_SEARCH_LAST_COLUMN}"
        )
    return best_column
