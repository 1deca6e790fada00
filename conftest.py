"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and it provides the
workbook, rule table and directory fixtures shared by the test modules.
"""
import os
import sys
import sqlite3
from datetime import datetime

import pytest
from openpyxl import Workbook

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from app_config import IntakeSettings  # noqa: E402
from transformations import TransformationRegistry  # noqa: E402

CHECK_COLUMN = 35


def write_workbook(path, headers, rows):
    """
    Save a single-sheet workbook.

    Args:
        path: Target path
        headers: Mapping of column index to header text (row 1)
        rows: List of mappings of column index to value, starting at row 2

    Returns:
        The path
    """
    wb = Workbook()
    ws = wb.active
    for column, label in headers.items():
        ws.cell(row=1, column=column, value=label)
    for offset, row in enumerate(rows):
        for column, value in row.items():
            ws.cell(row=2 + offset, column=column, value=value)
    wb.save(str(path))
    return path


def pool_headers(date_label="File Date", date_column=33, cecl_column=10):
    headers = {column: f"Field {column}" for column in range(1, 34)}
    headers[1] = "Loan ID"
    headers[2] = "Balance"
    headers[3] = "Scheduled Balance"
    headers[cecl_column] = "CECL"
    headers[date_column] = date_label
    return headers


def pool_rows(cecl_values, date_column=33, cecl_column=10, mismatch_row=None):
    """
    Data rows of a pool file: loan id, two equal balances, CECL and file date.

    ``mismatch_row`` (0-based) makes the scheduled balance differ on that row.
    """
    rows = []
    for index, cecl in enumerate(cecl_values):
        balance = 1000.0 + index * 100
        rows.append({
            1: f"LN{index + 1:04d}",
            2: balance,
            3: balance + (1.0 if index == mismatch_row else 0.0),
            cecl_column: cecl,
            date_column: datetime(2024, 3, 31),
        })
    return rows


def balance_check(ws):
    """Transformation used in tests: adds a check column of balance differences."""
    ws.cell(row=1, column=CHECK_COLUMN, value="Check")
    for row in range(2, ws.max_row + 1):
        if ws.cell(row=row, column=1).value is None:
            continue
        ws.cell(row=row, column=CHECK_COLUMN, value=f"=B{row}-C{row}")


@pytest.fixture
def pipeline_dirs(tmp_path):
    """Create the six pipeline directories under tmp_path."""
    dirs = {}
    for role in ("incoming", "templates", "processed", "archive", "ready", "rejects"):
        path = tmp_path / role
        path.mkdir()
        dirs[role] = path
    return dirs


@pytest.fixture
def rule_db(tmp_path):
    """SQLite rule table mapping LP_0001 and LP_0002 to the test template."""
    db_path = tmp_path / "rules.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE PoolMacroMap (PoolID TEXT PRIMARY KEY, MacroFile TEXT, MacroName TEXT)")
    conn.executemany(
        "INSERT INTO PoolMacroMap (PoolID, MacroFile, MacroName) VALUES (?, ?, ?)",
        [
            ("LP_0001", "LP_Template.xlsx", "balance_check"),
            ("LP_0002", "LP_Template.xlsx", "balance_check"),
        ],
    )
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture
def settings(pipeline_dirs, rule_db):
    return IntakeSettings(
        incoming_dir=pipeline_dirs["incoming"],
        templates_dir=pipeline_dirs["templates"],
        processed_dir=pipeline_dirs["processed"],
        archive_dir=pipeline_dirs["archive"],
        ready_dir=pipeline_dirs["ready"],
        rejects_dir=pipeline_dirs["rejects"],
        rule_table_path=rule_db,
    )


@pytest.fixture
def template(pipeline_dirs):
    """Pool template with headers and stale rows left over from an earlier pool."""
    stale = [{column: f"stale {column}" for column in range(1, 34)} for _ in range(15)]
    return write_workbook(pipeline_dirs["templates"] / "LP_Template.xlsx", pool_headers(), stale)


@pytest.fixture
def registry():
    test_registry = TransformationRegistry()
    test_registry.add("balance_check", balance_check)
    return test_registry
