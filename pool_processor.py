import logging
import shutil
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from openpyxl.worksheet.worksheet import Worksheet
from pydantic import BaseModel, Field

from aggregate import compute_aggregate, write_aggregate
from app_config import IntakeSettings
from column_locator import locate_date_column
from data_transfer import last_populated_row, transfer
from errors import EvaluationError, PoolIntakeError, TemplateNotFoundError
from layout_constants import (
    FILE_TIMESTAMP_FORMAT,
    INPUT_EXTENSIONS,
    OUTPUT_EXTENSION,
    PROCESSED_SUFFIX,
)
from log_context import LogContext
from router import accept, reject
from rule_lookup import TransformationRule, load_rule_table
from spreadsheet_engine import SpreadsheetEngine
from transformations import TransformationRegistry, invoke_transformation, registry as default_registry
from utils.result import Result
from validator import find_zeroed_formula_column

logger = logging.getLogger(__name__)


class FileStage(str, Enum):
    """Last stage a file reached before it stopped or finished."""
    START = "start"
    TRANSFERRED = "transferred"
    AGGREGATE_APPLIED = "aggregate_applied"
    TRANSFORMED = "transformed"
    VALIDATED = "validated"


class FileStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    NO_RULE = "no_rule"
    NO_DATE_COLUMN = "no_date_column"
    INSUFFICIENT_ROWS = "insufficient_rows"


class FileRecord(BaseModel):
    """
    Everything the pipeline learned about one incoming file.

    Attributes:
        source_file: Path of the file in the incoming directory
        pool_id: File name without extension
        short_id: Pool identifier without the configured prefix
        rule: Rule resolved for the pool
        stage: Last stage reached
        status: Terminal status, None while the file is in flight
        reason: Skip reason code, or the error type of a failure
        error: Error or skip message
        date_column: Located file date column
        last_row: Last populated source row
        aggregate: CECL aggregate written to the template
        check_column: Column that reconciled to zero
        processed_path: Transformed workbook in the processed directory
        destination: Ready file or reject copy
    """
    source_file: str
    pool_id: str
    short_id: str
    rule: Optional[TransformationRule] = None
    stage: FileStage = FileStage.START
    status: Optional[FileStatus] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    date_column: Optional[int] = None
    last_row: Optional[int] = None
    aggregate: Optional[float] = None
    check_column: Optional[int] = None
    processed_path: Optional[str] = None
    destination: Optional[str] = None

    @classmethod
    def for_source(cls, source_path: Path, short_id_prefix: str) -> "FileRecord":
        pool_id = source_path.stem
        return cls(
            source_file=str(source_path),
            pool_id=pool_id,
            short_id=short_pool_id(pool_id, short_id_prefix),
        )


class RunReport(BaseModel):
    """
    Outcome of one pipeline run.

    ``success`` is False when the run aborted or any file failed; rejects and
    skips are ordinary outcomes.
    """
    success: bool = False
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    files: List[FileRecord] = Field(default_factory=list)
    error: Optional[str] = None
    aborted_on: Optional[str] = None

    def count(self, status: FileStatus) -> int:
        return sum(1 for record in self.files if record.status == status)

    def summary(self) -> dict:
        return {status.value: self.count(status) for status in FileStatus}


def short_pool_id(pool_id: str, prefix: str) -> str:
    if prefix and pool_id.startswith(prefix):
        return pool_id[len(prefix):]
    return pool_id


def list_incoming_files(incoming_dir: Path) -> List[Path]:
    """Spreadsheets waiting in the incoming directory, in lexicographic order."""
    files = [
        path for path in Path(incoming_dir).iterdir()
        if path.is_file()
        and path.suffix.lower() in INPUT_EXTENSIONS
        and not path.name.startswith(("~$", "."))
    ]
    return sorted(files, key=lambda path: path.name)


def processed_name(pool_id: str, when: datetime) -> str:
    return f"{pool_id}{PROCESSED_SUFFIX}{when.strftime(FILE_TIMESTAMP_FORMAT)}{OUTPUT_EXTENSION}"


def locate_structure(source_ws: Worksheet) -> Result[Tuple[int, int]]:
    """
    Find the date column and last data row, or say why the file must be skipped.

    Returns:
        Result holding ``(date_column, last_row)``
    """
    date_column = locate_date_column(source_ws)
    if date_column is None:
        return Result.skip(SkipReason.NO_DATE_COLUMN.value, "File date column not found")

    last_row = last_populated_row(source_ws)
    if last_row <= 1:
        return Result.skip(SkipReason.INSUFFICIENT_ROWS.value, "No data rows below the header")

    return Result.ok((date_column, last_row))


class PoolFileProcessor:
    """
    Runs the intake stages for one file at a time.

    Stages: rule lookup, date column location, data transfer, aggregate,
    transformation, archive, validation and routing.
    """

    def __init__(
        self,
        settings: IntakeSettings,
        rules,
        engine: SpreadsheetEngine,
        registry: Optional[TransformationRegistry] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self.rules = rules
        self.engine = engine
        self.registry = registry or default_registry
        self.clock = clock

    def process_file(self, source_path: Path) -> FileRecord:
        """
        Process one incoming file.

        Per-file failures (``PoolIntakeError``) are recorded on the returned
        record. Anything else propagates and aborts the run.

        Args:
            source_path: File in the incoming directory

        Returns:
            FileRecord with a terminal status
        """
        source_path = Path(source_path)
        record = FileRecord.for_source(source_path, self.settings.short_id_prefix)
        log_context = {
            "request_id": str(uuid.uuid4())[:8],
            "pool_id": record.pool_id,
            "source_file": source_path.name,
        }
        logger.info(f"Processing pool file {source_path.name}", extra=log_context)

        try:
            self._run_stages(record, source_path, log_context)
        except PoolIntakeError as e:
            logger.exception(f"Failed to process {source_path.name} at stage {record.stage.value}", extra=log_context)
            record.status = FileStatus.FAILED
            record.reason = type(e).__name__
            record.error = str(e)

        return record

    def _skip(self, record: FileRecord, reason: str, message: str, log_context: dict) -> None:
        record.status = FileStatus.SKIPPED
        record.reason = reason
        record.error = message
        logger.info(f"Skipped {record.pool_id}: {message}", extra={**log_context, "reason": reason})

    def _run_stages(self, record: FileRecord, source_path: Path, log_context: dict) -> None:
        rule = self.rules.lookup(record.pool_id)
        if rule is None:
            self._skip(record, SkipReason.NO_RULE.value, "No transformation rule for pool", log_context)
            return
        record.rule = rule

        template_path = Path(self.settings.templates_dir) / rule.template_file
        if not template_path.is_file():
            raise TemplateNotFoundError(f"Template not found: {template_path}")

        with self.engine.open_workbook(source_path, data_only=True) as source_wb:
            source_ws = source_wb.active

            structure = locate_structure(source_ws)
            if not structure.is_success():
                self._skip(record, structure.reason, structure.error, log_context)
                return
            record.date_column, record.last_row = structure.unwrap()
            record.aggregate = compute_aggregate(source_ws, record.last_row)

            with self.engine.open_workbook(template_path) as template_wb:
                dest_ws = template_wb.active

                with LogContext("data transfer", **log_context):
                    transfer(source_ws, dest_ws, record.last_row, record.date_column)
                record.stage = FileStage.TRANSFERRED

                if record.aggregate is not None:
                    write_aggregate(dest_ws, record.aggregate)
                record.stage = FileStage.AGGREGATE_APPLIED

                routine = self.registry.resolve(rule.routine_name, template_path)
                with LogContext(f"transformation {rule.routine_name}", **log_context):
                    invoke_transformation(rule.routine_name, routine, dest_ws)
                record.stage = FileStage.TRANSFORMED

                processed_path = Path(self.settings.processed_dir) / processed_name(record.pool_id, self.clock())
                self.engine.save(template_wb, processed_path)
                record.processed_path = str(processed_path)

        self._archive(source_path, log_context)

        with self.engine.open_workbook(processed_path) as output_wb:
            evaluator = self.engine.evaluator(processed_path)
            with LogContext("validation", **log_context):
                try:
                    check_column = find_zeroed_formula_column(
                        output_wb.active, evaluator, self.settings.zero_tolerance
                    )
                except EvaluationError as e:
                    logger.warning(
                        f"Formulas of {processed_path.name} could not be evaluated: {str(e)}",
                        extra=log_context,
                    )
                    record.error = str(e)
                    check_column = None
            record.stage = FileStage.VALIDATED

            if check_column is not None:
                record.check_column = check_column
                destination = accept(
                    self.engine, output_wb, check_column, self.settings.ready_dir, record.short_id, evaluator
                )
                record.status = FileStatus.ACCEPTED
            else:
                destination = reject(processed_path, self.settings.rejects_dir, self.settings.reject_log)
                record.status = FileStatus.REJECTED
            record.destination = str(destination)

    def _archive(self, source_path: Path, log_context: dict) -> Path:
        destination = Path(self.settings.archive_dir) / source_path.name
        if destination.exists():
            destination.unlink()
        shutil.move(str(source_path), str(destination))
        logger.info(f"Archived {source_path.name}", extra=log_context)
        return destination


def run_pipeline(
    settings: IntakeSettings,
    rules=None,
    registry: Optional[TransformationRegistry] = None,
    engine: Optional[SpreadsheetEngine] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> RunReport:
    """
    Process every file in the incoming directory, one after the other.

    Args:
        settings: Run settings
        rules: Rule table, loaded from ``settings.rule_table_path`` when omitted
        registry: Transformation routines, the module registry when omitted
        engine: Spreadsheet session, a new one when omitted
        clock: Source of the processed file timestamps

    Returns:
        RunReport with one FileRecord per file handled
    """
    report = RunReport()
    logger.info(f"Starting intake run on {settings.incoming_dir}")

    try:
        settings.ensure_directories()
        if rules is None:
            rules = load_rule_table(settings.rule_table_path, settings.rule_table)
    except PoolIntakeError as e:
        logger.error(f"Intake run cannot start: {str(e)}")
        report.error = str(e)
        report.finished_at = datetime.now()
        return report

    with (engine or SpreadsheetEngine()) as session:
        processor = PoolFileProcessor(settings, rules, session, registry=registry, clock=clock)
        current: Optional[Path] = None
        try:
            for current in list_incoming_files(settings.incoming_dir):
                report.files.append(processor.process_file(current))
        except Exception as e:
            logger.exception(f"Intake run aborted on {current.name if current else 'startup'}")
            report.error = f"{type(e).__name__}: {str(e)}"
            report.aborted_on = current.name if current else None

    report.finished_at = datetime.now()
    report.success = report.error is None and report.count(FileStatus.FAILED) == 0
    logger.info(f"Intake run finished: {report.summary()} success={report.success}")
    return report
