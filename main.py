from fastapi import FastAPI, status
import logging
from fastapi.responses import JSONResponse

from app_config import get_settings
from errors import RuleTableError
from log_context import configure_logging
from pool_processor import run_pipeline
from rule_lookup import load_rule_table
from utils.result import Result

settings = get_settings()

# Configure logging
configure_logging(str(settings.log_dir) if settings.log_dir else None, settings.log_level)
logger = logging.getLogger(__name__)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Loan Pool Intake API",
    description="API for running and inspecting the loan pool intake pipeline",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)


def find_rule(pool_id: str) -> Result[dict]:
    """
    Resolve the transformation rule of a pool.

    Args:
        pool_id: Pool identifier

    Returns:
        Result with the rule as a dictionary, skipped with ``no_rule`` when unmapped
    """
    try:
        rules = load_rule_table(settings.rule_table_path, settings.rule_table)
        rule = rules.lookup(pool_id)
    except RuleTableError as e:
        logger.error(f"Rule lookup failed: {str(e)}")
        return Result.fail(str(e), reason="rule_table_error")

    if rule is None:
        return Result.skip("no_rule", f"No rule configured for pool {pool_id}")
    return Result.ok(rule.model_dump())


# API Endpoints
@app.get("/health", tags=["Service"])
async def health():
    return {"status": "ok"}


@app.get("/rules/{pool_id}", tags=["Rules"])
async def get_rule(pool_id: str):
    """
    Get the transformation rule for a pool.

    Returns:
        The rule, 404 when the pool is not mapped, 500 when the rule table is unusable
    """
    result = find_rule(pool_id)
    if result.is_success():
        return result.data
    status_code = status.HTTP_404_NOT_FOUND if result.is_skipped() else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=result.to_dict())


@app.post("/runs", tags=["Pipeline"])
def start_run():
    """
    Run the intake pipeline once over the incoming directory.

    Returns:
        The run report; HTTP 500 when the run aborted or a file failed
    """
    logger.info("Intake run requested over HTTP")
    report = run_pipeline(settings)
    content = report.model_dump(mode="json")
    if not report.success:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
    return content


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Loan Pool Intake API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
