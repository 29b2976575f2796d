import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from runledger.core.config import get_settings
from runledger.core.errors import (
    LedgerError,
    PathTraversalError,
    JobNotFoundError,
    InvalidRunStatusError,
    InvalidInputError,
)
from runledger.core.logging import setup_logging
from runledger.ledger import create_ledger
from runledger.modules import load_modules
from runledger.services import SchedulerService

# Import Routers
from runledger.routers import core, jobs, runs, websocket

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manages the ledger host's lifecycle.

    On Startup:
    - Opens the ledger for the configured workspace (creating the store).
    - Fails runs left 'running' by a previous process.
    - Loads enabled modules, which register their jobs.
    - Starts the retention scheduler.

    On Shutdown:
    - Stops the scheduler and shuts the ledger down.
    """
    settings = get_settings()
    setup_logging()
    logger.info(f"{settings.APP_NAME} starting up...")

    ledger = create_ledger(settings.WORKSPACE_ROOT, db_path=settings.DB_PATH, tokens_path=settings.TOKENS_PATH)
    ledger.history.fail_orphaned_runs()
    load_modules(ledger, settings.ENABLED_MODULES)

    scheduler = SchedulerService(
        ledger.history,
        retention_days=settings.RETENTION_DAYS,
        max_runs=settings.MAX_RUNS,
        interval_minutes=settings.RETENTION_INTERVAL_MINUTES,
    )
    scheduler.start()

    app.state.ledger = ledger
    logger.info(f"{settings.APP_NAME} started successfully.")

    yield
    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down...")
    scheduler.shutdown()
    ledger.shutdown()
    app.state.ledger = None


app = FastAPI(
    title=get_settings().APP_NAME,
    version=get_settings().VERSION,
    lifespan=lifespan
)

# Global Exception Handlers
ERROR_STATUS = {
    PathTraversalError: 400,
    JobNotFoundError: 404,
    InvalidRunStatusError: 422,
    InvalidInputError: 422,
}

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Maps caller errors raised by the ledger to JSON error responses."""
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catches unhandled exceptions and returns clean error responses."""
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

# Include Routers
app.include_router(core.router)
app.include_router(jobs.router)
app.include_router(runs.router)
app.include_router(websocket.router)
