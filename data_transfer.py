from openpyxl.worksheet.worksheet import Worksheet

from layout_constants import FIRST_DATA_ROW, TRANSFER_COLUMN_SPAN


def last_populated_row(ws: Worksheet, column: int = 1) -> int:
    """Return the last row with a value in ``column``, or 1 when only the header is there."""
    for row in range(ws.max_row, FIRST_DATA_ROW - 1, -1):
        value = ws.cell(row=row, column=column).value
        if value is not None and str(value).strip() != "":
            return row
    return 1


def clear_block(ws: Worksheet, last_row: int, width: int = TRANSFER_COLUMN_SPAN) -> None:
    for row in ws.iter_rows(min_row=FIRST_DATA_ROW, max_row=last_row, max_col=width):
        for cell in row:
            cell.value = None


def transfer(source_ws: Worksheet, dest_ws: Worksheet, last_row: int, width: int) -> None:
    """
    Copy the source data block into the template.

    The template's fixed column span is blanked first, down to whichever is
    further of ``last_row`` and the template's own last used row, so nothing
    from an earlier file survives. Then rows 2..last_row of columns 1..width are
    copied to the same coordinates.

    Args:
        source_ws: Worksheet read from the incoming file
        dest_ws: Template worksheet
        last_row: Last populated source row, must be greater than 1
        width: Number of columns to copy (the located date column)
    """
    if last_row <= 1:
        raise ValueError(f"Nothing to transfer: last_row={last_row}")

    clear_block(dest_ws, max(last_row, dest_ws.max_row))

    for row in source_ws.iter_rows(min_row=FIRST_DATA_ROW, max_row=last_row, max_col=width):
        for cell in row:
            dest_ws.cell(row=cell.row, column=cell.column, value=cell.value)
