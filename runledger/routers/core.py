from fastapi import APIRouter, Depends
from runledger.core.config import get_settings
from runledger.dependencies import get_ledger
from runledger.ledger import Ledger

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring.

    Returns:
        Status and version information.
    """
    return {"status": "ok", "version": get_settings().VERSION}

@router.get("/api/workspace/current")
async def get_current_workspace(ledger: Ledger = Depends(get_ledger)):
    return {"path": str(ledger.workspace.root)}
