import logging
from typing import Any, Callable, Optional

from openpyxl.cell.cell import Cell
from openpyxl.worksheet.worksheet import Worksheet

from aggregate import as_number
from layout_constants import FIRST_DATA_ROW, ZERO_TOLERANCE

logger = logging.getLogger(__name__)

Evaluate = Callable[[Cell], Any]


def is_formula_cell(cell: Cell) -> bool:
    return cell.data_type == "f"


def is_near_zero(value: Any, tolerance: float = ZERO_TOLERANCE) -> bool:
    if isinstance(value, str):
        return False
    number = as_number(value)
    return number is not None and abs(number) < tolerance


def find_zeroed_formula_column(
    ws: Worksheet,
    evaluate: Evaluate,
    tolerance: float = ZERO_TOLERANCE,
) -> Optional[int]:
    """
    Find the check column of a transformed worksheet.

    A check column holds formulas only, and every one of them evaluates to
    (near) zero when the pool reconciles. Columns are scanned left to right
    over the used range and the first match is returned.

    Args:
        ws: Transformed worksheet, loaded with formulas
        evaluate: Returns the evaluated value of a formula cell
        tolerance: Absolute value below which a result counts as zero

    Returns:
        1-based column index, or None when no column reconciles
    """
    last_row = ws.max_row
    if last_row < FIRST_DATA_ROW:
        return None

    for column_cells in ws.iter_cols(min_row=FIRST_DATA_ROW, max_row=last_row, max_col=ws.max_column):
        f_count = 0
        z_count = 0
        for cell in column_cells:
            if not is_formula_cell(cell):
                continue
            f_count += 1
            if is_near_zero(evaluate(cell), tolerance):
                z_count += 1

        if f_count > 0 and f_count == z_count:
            column = column_cells[0].column
            logger.debug(f"Column {column} reconciles to zero across {f_count} formulas")
            return column

    return None
