import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import formulas
import numpy as np
from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import Cell

from errors import EvaluationError

logger = logging.getLogger(__name__)

# Solution keys look like "'[book.xlsx]SHEET1'!D2"
_SOLUTION_CELL = re.compile(
    r"^'?\[[^\]]*\](?P<sheet>.*?)'?!\$?(?P<column>[A-Z]{1,3})\$?(?P<row>\d+)$",
    re.IGNORECASE,
)


def _scalar(value: Any) -> Any:
    value = getattr(value, "value", value)
    if isinstance(value, np.ndarray):
        if value.size == 0:
            return None
        value = value.ravel()[0]
    if isinstance(value, np.generic):
        value = value.item()
    return value


class FormulaEvaluator:
    """
    Evaluated values of the formulas in a saved workbook.

    The workbook is compiled and calculated once, on the first lookup.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._values: Optional[Dict[Tuple[str, str], Any]] = None

    def _calculate(self) -> Dict[Tuple[str, str], Any]:
        logger.debug(f"Calculating formulas of {self.path.name}")
        try:
            model = formulas.ExcelModel().loads(str(self.path)).finish()
            solution = model.calculate()
        except Exception as e:
            raise EvaluationError(f"Cannot evaluate formulas of {self.path.name}: {str(e)}") from e

        values: Dict[Tuple[str, str], Any] = {}
        for key, result in solution.items():
            match = _SOLUTION_CELL.match(str(key))
            if match is None:
                continue
            coordinate = f"{match.group('column')}{match.group('row')}".upper()
            values[(match.group("sheet").upper(), coordinate)] = _scalar(result)
        return values

    def value(self, cell: Cell) -> Any:
        """Evaluated value of ``cell``; None when the calculation produced nothing for it."""
        if self._values is None:
            self._values = self._calculate()
        key = (cell.parent.title.upper(), cell.coordinate.upper())
        if key not in self._values:
            logger.warning(f"No evaluated value for {cell.parent.title}!{cell.coordinate} in {self.path.name}")
            return None
        return self._values[key]

    __call__ = value


class SpreadsheetEngine:
    """
    Spreadsheet session shared by every file of a run.

    Workbooks are only handed out through ``open_workbook``, which closes them
    when the block exits, so nothing opened for one file outlives it.
    """

    def __init__(self):
        self._open: List[Workbook] = []
        self.running = False

    def start(self) -> "SpreadsheetEngine":
        logger.info("Starting spreadsheet engine")
        self.running = True
        return self

    def shutdown(self) -> None:
        if self._open:
            logger.warning(f"Closing {len(self._open)} workbook(s) left open")
        for wb in list(self._open):
            self._close(wb)
        self.running = False
        logger.info("Spreadsheet engine shut down")

    def __enter__(self) -> "SpreadsheetEngine":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    @property
    def open_count(self) -> int:
        return len(self._open)

    def _require_running(self) -> None:
        if not self.running:
            raise RuntimeError("Spreadsheet engine is not running")

    def _close(self, wb: Workbook) -> None:
        try:
            wb.close()
        finally:
            if wb in self._open:
                self._open.remove(wb)

    @contextmanager
    def open_workbook(self, path: Union[str, Path], data_only: bool = False) -> Iterator[Workbook]:
        """
        Open a workbook for the duration of a ``with`` block.

        Args:
            path: Workbook path
            data_only: Read cached values instead of formulas

        Yields:
            The openpyxl workbook
        """
        self._require_running()
        wb = load_workbook(str(path), data_only=data_only)
        self._open.append(wb)
        try:
            yield wb
        finally:
            self._close(wb)

    def save(self, wb: Workbook, path: Union[str, Path]) -> Path:
        self._require_running()
        path = Path(path)
        wb.save(str(path))
        logger.debug(f"Saved workbook {path}")
        return path

    def evaluator(self, path: Union[str, Path]) -> FormulaEvaluator:
        self._require_running()
        return FormulaEvaluator(path)
