from typing import Optional
from fastapi import HTTPException, Request, WebSocket
from runledger.ledger import Ledger
from runledger.services import HistoryService

NO_WORKSPACE = "No workspace selected"

def get_ledger(request: Request) -> Ledger:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None or ledger.is_shut_down:
        raise HTTPException(status_code=503, detail=NO_WORKSPACE)
    return ledger

def get_ws_ledger(websocket: WebSocket) -> Optional[Ledger]:
    ledger = getattr(websocket.app.state, "ledger", None)
    if ledger is None or ledger.is_shut_down:
        return None
    return ledger

def get_history_service(request: Request) -> HistoryService:
    return get_ledger(request).history
