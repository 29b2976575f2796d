from fastapi import APIRouter, Depends, Response, status
import logging
from runledger.dependencies import get_ledger
from runledger.ledger import Ledger
from runledger.schemas.job import RunJobRequest, CancelJobRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/job")

@router.get("/registered")
async def list_registered_jobs(ledger: Ledger = Depends(get_ledger)) -> list[str]:
    return ledger.jobs.list_registered()

@router.post("/run")
async def run_job(body: RunJobRequest, ledger: Ledger = Depends(get_ledger)) -> dict[str, str]:
    """Starts a job run and returns its id immediately.

    Why: This handler is async so the run is spawned on the server's event
    loop; the body keeps running after the response is sent and is observed
    through the runs/logs/artifacts endpoints or the log WebSocket.

    Args:
        body: Job key, optional input and optional trace id.
        ledger: The workspace ledger.

    Returns:
        ``{"runId": ...}``. Unknown job keys yield 404 with no run created.
    """
    run_id = ledger.jobs.run(body.job_key, body.input, trace_id=body.trace_id)
    return {"runId": run_id}

@router.post("/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_job(body: CancelJobRequest, ledger: Ledger = Depends(get_ledger)) -> Response:
    if not ledger.jobs.cancel(body.run_id):
        logger.debug(f"Cancel ignored for run {body.run_id}: not live")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
