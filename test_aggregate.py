import pytest
from openpyxl import Workbook

from aggregate import as_number, compute_aggregate, find_header_column, write_aggregate


def _cecl_sheet(values, header="CECL", column=3):
    """
    Build a worksheet whose ``column`` holds ``values`` from row 2 down.

    Column 1 carries loan ids so the sheet looks like a pool file.
    """
    ws = Workbook().active
    ws.cell(row=1, column=1, value="Loan ID")
    ws.cell(row=1, column=column, value=header)
    for offset, value in enumerate(values):
        ws.cell(row=2 + offset, column=1, value=f"LN{offset}")
        ws.cell(row=2 + offset, column=column, value=value)
    return ws


class TestComputeAggregate:
    """
    Tests for the compute_aggregate function.
    """

    def test_sums_when_later_rows_hold_non_zero(self):
        ws = _cecl_sheet([0, 0, 5, 0])

        assert compute_aggregate(ws, last_row=5) == 5

    def test_passes_single_row_through(self):
        ws = _cecl_sheet([7])

        assert compute_aggregate(ws, last_row=2) == 7

    def test_passes_first_row_through_when_rest_is_zero(self):
        ws = _cecl_sheet([12.5, 0, 0])

        assert compute_aggregate(ws, last_row=4) == 12.5

    def test_non_numeric_cells_count_as_zero_in_sum(self):
        ws = _cecl_sheet([10, "n/a", 20.5, None, 90])

        assert compute_aggregate(ws, last_row=6) == pytest.approx(120.5)

    def test_numeric_text_is_summed(self):
        ws = _cecl_sheet(["1,000.25", "2"])

        assert compute_aggregate(ws, last_row=3) == pytest.approx(1002.25)

    def test_header_match_ignores_case_and_spaces(self):
        ws = _cecl_sheet([3, 4], header="  cEcL ")

        assert compute_aggregate(ws, last_row=3) == 7

    def test_no_cecl_column_returns_none(self):
        ws = _cecl_sheet([3, 4], header="Allowance")

        assert compute_aggregate(ws, last_row=3) is None

    def test_non_numeric_single_row_returns_none(self):
        ws = _cecl_sheet(["pending"])

        assert compute_aggregate(ws, last_row=2) is None

    def test_rows_past_last_row_are_ignored(self):
        ws = _cecl_sheet([1, 2, 100])

        assert compute_aggregate(ws, last_row=3) == 3


def test_find_header_column_returns_first_match():
    ws = Workbook().active
    ws.cell(row=1, column=4, value="cecl")
    ws.cell(row=1, column=9, value="CECL")

    assert find_header_column(ws, "cecl") == 4


def test_write_aggregate_targets_ah2():
    ws = Workbook().active

    write_aggregate(ws, 120.5)

    assert ws["AH2"].value == 120.5


@pytest.mark.parametrize(
    "value, expected",
    [(5, 5.0), (2.5, 2.5), (" 3 ", 3.0), ("abc", None), ("", None), (None, None), (False, None)],
    ids=["int", "float", "padded-text", "text", "empty", "none", "bool"]
)
def test_as_number(value, expected):
    assert as_number(value) == expected
