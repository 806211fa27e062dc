"""
Gateway simulator routes: build, register, status and SSE stream endpoints
"""

import asyncio
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from txwatch.models.transaction import TxRegisterRequest
from txwatch.simulator.store import SimulatorStore
from txwatch.transactions.catalog import TRANSACTION_CATALOG
from txwatch.utils.cardano import is_tx_hash

router = APIRouter()

ENDPOINT_TYPES = {config.endpoint: config.gateway_tx_type for config in TRANSACTION_CATALOG.values()}

def get_store(request: Request) -> SimulatorStore:
    return request.app.state.store

@router.post("/tx/register")
async def register_transaction(payload: TxRegisterRequest, request: Request):
    if not is_tx_hash(payload.tx_hash):
        raise HTTPException(status_code=400, detail="Invalid tx hash")
    store = get_store(request)
    store.register(payload.tx_hash, payload.tx_type, payload.metadata)
    return {"success": True, "tx_hash": payload.tx_hash}

@router.get("/tx/status/{tx_hash}")
async def get_transaction_status(tx_hash: str, request: Request):
    status = get_store(request).next_status(tx_hash)
    if status is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return status

@router.get("/tx/stream/{tx_hash}")
async def stream_transaction(tx_hash: str, request: Request):
    store = get_store(request)
    doc = store.transactions.get(tx_hash)
    if doc is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if doc["stream_status"] is not None:
        return JSONResponse(status_code=doc["stream_status"], content={"error": "stream unavailable"})

    frames = store.stream_frames(tx_hash)
    delay = store.stream_delay

    async def event_source():
        yield ": connected\n\n"
        for frame in frames:
            if delay:
                await asyncio.sleep(delay)
            yield frame

    logger.debug(f"📡 Streaming {len(frames)} events for {tx_hash[:16]}")
    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )

@router.post("/tx/{path:path}")
async def build_transaction(path: str, request: Request):
    """Build endpoint for every catalog path"""
    store = get_store(request)
    endpoint = f"/tx/{path}"
    tx_type = ENDPOINT_TYPES.get(endpoint)
    if tx_type is None:
        return JSONResponse(status_code=404, content={"error": "unknown kind"})

    if endpoint in store.build_failures:
        status_code, body = store.build_failures[endpoint]
        if isinstance(body, str):
            return JSONResponse(status_code=status_code, content={"error": body})
        return JSONResponse(status_code=status_code, content=body)

    params = await request.json()
    return store.build(endpoint, tx_type, params)
