import logging
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional

from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.worksheet.worksheet import Worksheet

from layout_constants import LOG_TIMESTAMP_FORMAT, OUTPUT_EXTENSION
from spreadsheet_engine import SpreadsheetEngine
from validator import is_formula_cell

logger = logging.getLogger(__name__)


def ready_path_for(ready_dir: Path, short_id: str) -> Path:
    return Path(ready_dir) / f"{short_id}{OUTPUT_EXTENSION}"


def _storable(value: Any) -> Any:
    # Calculation errors such as #DIV/0! come back as objects openpyxl cannot store
    if value is None or isinstance(value, (bool, int, float, str, date, datetime)):
        return value
    text = str(value)
    return None if text.lower() == "empty" else text


def freeze_formulas(ws: Worksheet, evaluate: Callable[[Cell], Any]) -> int:
    """
    Replace every formula in ``ws`` with its evaluated value.

    openpyxl writes formulas without cached results, so a ready file saved
    with formulas would read back as blanks in anything that does not
    recalculate. Coordinates must still match the workbook ``evaluate`` was
    built from.

    Returns:
        Number of cells frozen
    """
    frozen = 0
    for row in ws.iter_rows():
        for cell in row:
            if is_formula_cell(cell):
                cell.value = _storable(evaluate(cell))
                frozen += 1
    return frozen


def accept(
    engine: SpreadsheetEngine,
    wb: Workbook,
    check_column: int,
    ready_dir: Path,
    short_id: str,
    evaluate: Optional[Callable[[Cell], Any]] = None,
) -> Path:
    """
    Drop the check column and save the workbook as the ready file.

    When ``evaluate`` is given, formulas are frozen to their evaluated values
    before the column is dropped. An existing ready file for the same pool is
    overwritten.

    Returns:
        Path of the ready file
    """
    ws = wb.active
    if evaluate is not None:
        frozen = freeze_formulas(ws, evaluate)
        logger.debug(f"Froze {frozen} formula cell(s) for {short_id}")
    ws.delete_cols(check_column)
    destination = ready_path_for(ready_dir, short_id)
    engine.save(wb, destination)
    logger.info(f"Accepted {short_id}: {destination}")
    return destination


def append_reject_log(log_path: Path, rejected_path: Path, when: Optional[datetime] = None) -> str:
    line = f"{(when or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)} - Rejected: {rejected_path}"
    with open(log_path, "a", encoding="utf-8") as log_file:
        log_file.write(line + "\n")
    return line


def reject(processed_path: Path, rejects_dir: Path, log_path: Path) -> Path:
    """
    Copy the processed file, unmodified, into the rejects directory and log it.

    Returns:
        Path of the reject copy
    """
    processed_path = Path(processed_path)
    destination = Path(rejects_dir) / processed_path.name
    shutil.copy2(processed_path, destination)
    line = append_reject_log(log_path, processed_path)
    logger.warning(f"Rejected {processed_path.name}: {line}")
    return destination
