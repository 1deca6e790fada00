import pytest
from openpyxl import Workbook

from errors import EvaluationError
from spreadsheet_engine import FormulaEvaluator, SpreadsheetEngine


@pytest.fixture
def formula_workbook(tmp_path):
    """
    Fixture providing a saved workbook with constants and formulas.

    Returns:
        Path of the workbook
    """
    path = tmp_path / "calc.xlsx"
    wb = Workbook()
    ws = wb.active
    ws.title = "Pool"
    ws.append(["Balance", "Scheduled", "Check"])
    ws.append([100, 100, "=A2-B2"])
    ws.append([250.5, 200, "=A3-B3"])
    wb.save(path)
    return path


class TestSpreadsheetEngine:
    """
    Tests for the SpreadsheetEngine session.
    """

    def test_workbook_is_closed_when_block_exits(self, formula_workbook):
        with SpreadsheetEngine() as engine:
            with engine.open_workbook(formula_workbook) as wb:
                assert engine.open_count == 1
                assert wb.active["C2"].value == "=A2-B2"
            assert engine.open_count == 0

    def test_workbook_is_closed_when_block_raises(self, formula_workbook):
        with SpreadsheetEngine() as engine:
            with pytest.raises(RuntimeError):
                with engine.open_workbook(formula_workbook):
                    raise RuntimeError("stage failed")
            assert engine.open_count == 0

    def test_engine_must_be_running(self, formula_workbook):
        engine = SpreadsheetEngine()

        with pytest.raises(RuntimeError):
            with engine.open_workbook(formula_workbook):
                pass

    def test_shutdown_on_exit(self):
        with SpreadsheetEngine() as engine:
            assert engine.running
        assert not engine.running

    def test_save_writes_file(self, tmp_path):
        with SpreadsheetEngine() as engine:
            path = engine.save(Workbook(), tmp_path / "out.xlsx")

        assert path.exists()


class TestFormulaEvaluator:
    """
    Tests for FormulaEvaluator against saved workbooks.
    """

    def test_formula_values_are_calculated(self, formula_workbook):
        with SpreadsheetEngine() as engine:
            with engine.open_workbook(formula_workbook) as wb:
                evaluate = engine.evaluator(formula_workbook)
                ws = wb.active

                assert float(evaluate(ws["C2"])) == pytest.approx(0.0)
                assert float(evaluate(ws["C3"])) == pytest.approx(50.5)

    def test_unreadable_workbook_raises_evaluation_error(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_text("not a workbook")
        ws = Workbook().active

        with pytest.raises(EvaluationError):
            FormulaEvaluator(path).value(ws["A1"])
