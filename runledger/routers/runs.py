from fastapi import APIRouter, Depends, HTTPException, Response
from typing import Optional
import logging
from runledger.dependencies import get_ledger, get_history_service
from runledger.ledger import Ledger
from runledger.models import Run, LogEntry, Artifact
from runledger.services import HistoryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

@router.get("/runs")
async def list_runs(status: Optional[str] = None, ledger: Ledger = Depends(get_ledger)) -> list[Run]:
    """Lists runs newest first, optionally filtered by exact status."""
    return ledger.runs.list_runs(status=status)

@router.get("/runs/{run_id}")
async def get_run(run_id: str, ledger: Ledger = Depends(get_ledger)) -> Run:
    run = ledger.runs.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return run

@router.delete("/runs/{run_id}")
async def delete_run(run_id: str, service: HistoryService = Depends(get_history_service)) -> Response:
    """Permanently deletes a terminal run, its logs and its artifacts.

    Args:
        run_id: The run to delete.
        service: Maintenance service of the current ledger.

    Returns:
        204 on success; 409 when the run is unknown or still running.
    """
    logger.info(f"Deleting run {run_id}")
    if not service.delete_run(run_id):
        raise HTTPException(status_code=409, detail=f"Run {run_id} is unknown or still running")
    return Response(status_code=204)

@router.get("/logs/{run_id}")
async def list_logs(run_id: str, ledger: Ledger = Depends(get_ledger)) -> list[LogEntry]:
    return ledger.logs.list_logs(run_id)

@router.get("/artifacts/{run_id}")
async def get_artifacts(run_id: str, path: Optional[str] = None, ledger: Ledger = Depends(get_ledger)):
    """Lists a run's artifacts, or returns one artifact's text when ``path`` is given."""
    if path is not None:
        try:
            content = ledger.artifacts.read_artifact(run_id, path)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail=f"Artifact {path} not found")
        return Response(content=content, media_type="text/plain")
    artifacts: list[Artifact] = ledger.artifacts.list_artifacts(run_id)
    return artifacts
