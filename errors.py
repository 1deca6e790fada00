"""Exception types raised by the loan pool intake pipeline."""


class PoolIntakeError(Exception):
    """
    Base class for expected intake errors.

    Raised while a file is being processed, it fails that file and the run
    moves on. Raised while the run starts up, it ends the run before any file
    is touched.
    """


class ConfigurationError(PoolIntakeError):
    """Settings are unusable, e.g. a configured directory does not exist. Ends the run at startup."""


class RuleTableError(PoolIntakeError):
    """The rule table cannot be opened or does not have the expected shape."""


class TemplateNotFoundError(PoolIntakeError):
    """The template named by a rule is not present in the templates directory."""


class TransformationError(PoolIntakeError):
    """A pool transformation routine is missing or raised while running."""

    def __init__(self, routine_name: str, message: str):
        super().__init__(f"Transformation '{routine_name}' failed: {message}")
        self.routine_name = routine_name


class EvaluationError(PoolIntakeError):
    """Formulas of a processed workbook could not be evaluated."""
