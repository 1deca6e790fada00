import os
import re
import sqlite3
import logging
from pathlib import Path
from typing import Optional, Dict, Union

import pandas as pd
from pydantic import BaseModel

from errors import RuleTableError
from layout_constants import DEFAULT_RULE_TABLE

logger = logging.getLogger(__name__)

RULE_COLUMNS = ("PoolID", "MacroFile", "MacroName")
SQLITE_SUFFIXES = {".db", ".sqlite", ".sqlite3"}
FRAME_SUFFIXES = {".xlsx", ".xlsm", ".xls", ".csv"}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class TransformationRule(BaseModel):
    """
    Mapping of a loan pool to its template and transformation routine.

    Attributes:
        pool_id: Pool identifier (file name without extension)
        template_file: Template workbook inside the templates directory (MacroFile)
        routine_name: Name of the transformation routine to run (MacroName)
    """
    pool_id: str
    template_file: str
    routine_name: str


class SqliteRuleTable:
    """Rule table stored in a SQLite database, queried with bound parameters."""

    def __init__(self, db_path: Union[str, Path], table: str = DEFAULT_RULE_TABLE):
        if not _IDENTIFIER.match(table):
            raise RuleTableError(f"Invalid rule table name: {table!r}")
        if not os.path.exists(db_path):
            raise RuleTableError(f"Rule database not found: {db_path}")
        self.db_path = str(db_path)
        self.table = table

    def lookup(self, pool_id: str) -> Optional[TransformationRule]:
        """
        Look up the rule for a pool.

        Args:
            pool_id: Pool identifier

        Returns:
            The rule, or None when the pool is not mapped
        """
        query = f"SELECT MacroFile, MacroName FROM {self.table} WHERE PoolID = ?"
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                row = conn.execute(query, (pool_id,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RuleTableError(f"Rule lookup failed for {pool_id}: {str(e)}") from e

        if row is None:
            logger.debug(f"No rule found for pool {pool_id}")
            return None
        return TransformationRule(pool_id=pool_id, template_file=row[0], routine_name=row[1])


class FrameRuleTable:
    """Rule table maintained as a spreadsheet or CSV, loaded once with pandas."""

    def __init__(self, rules: Dict[str, TransformationRule]):
        self._rules = rules

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "FrameRuleTable":
        missing = [col for col in RULE_COLUMNS if col not in df.columns]
        if missing:
            raise RuleTableError(f"Rule table is missing columns: {', '.join(missing)}")

        rules: Dict[str, TransformationRule] = {}
        for _, row in df.iterrows():
            if any(pd.isna(row[col]) for col in RULE_COLUMNS):
                continue
            pool_id = str(row["PoolID"]).strip()
            if pool_id in rules:
                logger.warning(f"Duplicate rule for pool {pool_id}; keeping the first one")
                continue
            rules[pool_id] = TransformationRule(
                pool_id=pool_id,
                template_file=str(row["MacroFile"]).strip(),
                routine_name=str(row["MacroName"]).strip(),
            )
        logger.info(f"Loaded {len(rules)} pool rules")
        return cls(rules)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FrameRuleTable":
        path = Path(path)
        if not path.exists():
            raise RuleTableError(f"Rule table not found: {path}")
        try:
            if path.suffix.lower() == ".csv":
                df = pd.read_csv(path, dtype=str)
            else:
                df = pd.read_excel(path, dtype=str)
        except Exception as e:
            raise RuleTableError(f"Failed to read rule table {path}: {str(e)}") from e
        return cls.from_dataframe(df)

    def lookup(self, pool_id: str) -> Optional[TransformationRule]:
        return self._rules.get(pool_id)


def load_rule_table(path: Union[str, Path], table: str = DEFAULT_RULE_TABLE):
    """
    Open the rule table backend matching the file suffix.

    Args:
        path: SQLite database, spreadsheet or CSV
        table: Table name used by the SQLite backend

    Returns:
        An object with a ``lookup(pool_id)`` method
    """
    suffix = Path(path).suffix.lower()
    if suffix in SQLITE_SUFFIXES:
        return SqliteRuleTable(path, table)
    if suffix in FRAME_SUFFIXES:
        return FrameRuleTable.from_file(path)
    raise RuleTableError(f"Unsupported rule table format: {path}")
