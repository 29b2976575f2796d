from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from typing import Optional
import asyncio
import json
import logging
import uuid
from runledger.dependencies import get_ws_ledger, NO_WORKSPACE
from runledger.models import LogEntry

logger = logging.getLogger(__name__)
router = APIRouter()

@router.websocket("/ws/logs")
async def stream_run_logs(websocket: WebSocket, run_id: Optional[str] = Query(default=None, alias="runId")):
    """Streams a run's new log entries over a WebSocket.

    Why: Subscribers are called synchronously by whichever thread appended the
    entry (the event loop for async jobs, a worker thread for plain ones), so
    entries are handed to this connection's loop through a queue instead of
    being sent from the subscriber directly.

    Protocol:
        -> {"type": "subscribed", "subscriptionId": "..."} once connected.
        -> {"runId": "...", "entry": {...}} for every entry appended afterwards.
        <- {"type": "unsubscribe", "subscriptionId": "..."} stops delivery.
    """
    await websocket.accept()
    if not run_id:
        await websocket.close(code=4000, reason="runId required")
        return
    ledger = get_ws_ledger(websocket)
    if ledger is None:
        await websocket.close(code=4001, reason=NO_WORKSPACE)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    subscription_id = f"logs:{run_id}:{uuid.uuid4().hex}"

    def on_entry(entry: LogEntry) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, entry.model_dump(mode="json"))

    unsubscribe = ledger.logs.subscribe(run_id, on_entry)
    await websocket.send_json({"type": "subscribed", "subscriptionId": subscription_id})

    async def forward() -> None:
        while True:
            payload = await queue.get()
            await websocket.send_json({"runId": run_id, "entry": payload})

    sender = asyncio.create_task(forward())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "unsubscribe" and msg.get("subscriptionId") == subscription_id:
                unsubscribe()
    except WebSocketDisconnect:
        logger.debug(f"Log stream for run {run_id} disconnected")
    finally:
        unsubscribe()
        sender.cancel()
