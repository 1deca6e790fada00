"""
Fixed worksheet layout shared by every loan pool template.

Column and row numbers are 1-based, as in openpyxl.
"""

HEADER_ROW = 1
FIRST_DATA_ROW = 2

# File date column (AG) and the header search window around it
EXPECTED_DATE_COLUMN = 33
DATE_SEARCH_FIRST_COLUMN = 30
DATE_SEARCH_LAST_COLUMN = 35
DATE_HEADER_LABELS = frozenset({"file date", "date", "extractdate"})

# Template columns A..AG are cleared before each transfer
TRANSFER_COLUMN_SPAN = 33

AGGREGATE_HEADER = "cecl"
AGGREGATE_CELL = "AH2"
AGGREGATE_ROW = 2
AGGREGATE_COLUMN = 34

ZERO_TOLERANCE = 0.0001

SHORT_ID_PREFIX = "LP_"

INPUT_EXTENSIONS = (".xlsx", ".xlsm")
PROCESSED_SUFFIX = "_Processed_"
OUTPUT_EXTENSION = ".xlsx"
FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_RULE_TABLE = "PoolMacroMap"
REJECT_LOG_NAME = "reject_log.txt"
