from pathlib import Path
from typing import Optional, List

from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import ConfigurationError
from layout_constants import DEFAULT_RULE_TABLE, REJECT_LOG_NAME, SHORT_ID_PREFIX, ZERO_TOLERANCE


class IntakeSettings(BaseSettings):
    """
    Settings for a pipeline run, read from ``POOL_INTAKE_*`` environment variables or ``.env``.

    Attributes:
        incoming_dir: Directory polled for new pool files
        templates_dir: Directory holding the pool templates named in the rule table
        processed_dir: Directory receiving ``{pool_id}_Processed_{timestamp}.xlsx``
        archive_dir: Directory incoming files are moved to after transformation
        ready_dir: Directory receiving validated ``{short_id}.xlsx`` files
        rejects_dir: Directory receiving copies of rejected processed files
        rule_table_path: SQLite database, spreadsheet or CSV holding the rule table
        rule_table: Table name inside a SQLite rule database
        reject_log_path: Append-only reject log, defaults to ``rejects_dir/reject_log.txt``
        log_dir: Directory for application log files, disabled when unset
        log_level: Logging level name
        zero_tolerance: Absolute tolerance of the check column
        short_id_prefix: Prefix stripped from pool identifiers for ready file names
    """
    incoming_dir: Path = Path("data/incoming")
    templates_dir: Path = Path("data/templates")
    processed_dir: Path = Path("data/processed")
    archive_dir: Path = Path("data/archive")
    ready_dir: Path = Path("data/ready")
    rejects_dir: Path = Path("data/rejects")

    rule_table_path: Path = Path("data/rules.db")
    rule_table: str = DEFAULT_RULE_TABLE
    reject_log_path: Optional[Path] = None

    log_dir: Optional[Path] = None
    log_level: str = "INFO"

    zero_tolerance: float = ZERO_TOLERANCE
    short_id_prefix: str = SHORT_ID_PREFIX

    model_config = SettingsConfigDict(env_prefix="POOL_INTAKE_", env_file=".env", extra="ignore")

    @property
    def reject_log(self) -> Path:
        if self.reject_log_path is not None:
            return self.reject_log_path
        return self.rejects_dir / REJECT_LOG_NAME

    def pipeline_directories(self) -> dict:
        return {
            "incoming": self.incoming_dir,
            "templates": self.templates_dir,
            "processed": self.processed_dir,
            "archive": self.archive_dir,
            "ready": self.ready_dir,
            "rejects": self.rejects_dir,
        }

    def ensure_directories(self) -> None:
        """
        Check that every pipeline directory exists. Directories are never created here.

        Raises:
            ConfigurationError: Listing each missing directory role and path
        """
        missing: List[str] = [
            f"{role}={path}"
            for role, path in self.pipeline_directories().items()
            if not Path(path).is_dir()
        ]
        if missing:
            raise ConfigurationError(f"Missing pipeline directories: {', '.join(missing)}")


def get_settings(**overrides) -> IntakeSettings:
    """Build settings from the environment, letting explicit keyword values win."""
    cleaned = {key: value for key, value in overrides.items() if value is not None}
    return IntakeSettings(**cleaned)
