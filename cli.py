"""
Command line entry point for the loan pool intake pipeline.

Usage:
    pool-intake run [--incoming DIR] [--templates DIR] ... [--rules PATH]
    pool-intake lookup POOL_ID [--rules PATH]
"""
import argparse
import logging
import sys
from typing import List, Optional

from app_config import get_settings
from errors import PoolIntakeError
from log_context import configure_logging
from pool_processor import run_pipeline
from rule_lookup import load_rule_table

logger = logging.getLogger(__name__)

DIRECTORY_OPTIONS = {
    "incoming": "incoming_dir",
    "templates": "templates_dir",
    "processed": "processed_dir",
    "archive": "archive_dir",
    "ready": "ready_dir",
    "rejects": "rejects_dir",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pool-intake", description="Loan pool intake pipeline")
    parser.add_argument("--rules", help="Rule table (SQLite database, spreadsheet or CSV)")
    parser.add_argument("--rule-table", help="Table name inside a SQLite rule database")
    parser.add_argument("--log-dir", help="Directory for log files")
    parser.add_argument("--log-level", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Process every file in the incoming directory")
    for option in DIRECTORY_OPTIONS:
        run.add_argument(f"--{option}", help=f"{option.capitalize()} directory")
    run.add_argument("--reject-log", help="Reject log file")

    lookup = sub.add_parser("lookup", help="Show the rule configured for a pool")
    lookup.add_argument("pool_id")
    return parser


def settings_from_args(args: argparse.Namespace):
    overrides = {
        "rule_table_path": args.rules,
        "rule_table": args.rule_table,
        "log_dir": args.log_dir,
        "log_level": args.log_level,
    }
    for option, field in DIRECTORY_OPTIONS.items():
        overrides[field] = getattr(args, option, None)
    overrides["reject_log_path"] = getattr(args, "reject_log", None)
    return get_settings(**overrides)


def _run(settings) -> int:
    report = run_pipeline(settings)
    for record in report.files:
        detail = record.destination or record.error or ""
        print(f"{record.status.value if record.status else 'unknown':<9} {record.pool_id:<24} {detail}")
    print(f"Summary: {report.summary()}")
    if report.error:
        print(f"Run failed: {report.error}", file=sys.stderr)
    return 0 if report.success else 1


def _lookup(settings, pool_id: str) -> int:
    try:
        rule = load_rule_table(settings.rule_table_path, settings.rule_table).lookup(pool_id)
    except PoolIntakeError as e:
        print(str(e), file=sys.stderr)
        return 1
    if rule is None:
        print(f"No rule configured for pool {pool_id}", file=sys.stderr)
        return 1
    print(f"{rule.pool_id}: template={rule.template_file} routine={rule.routine_name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    configure_logging(str(settings.log_dir) if settings.log_dir else None, settings.log_level)

    if args.command == "run":
        return _run(settings)
    return _lookup(settings, args.pool_id)


if __name__ == "__main__":
    sys.exit(main())
