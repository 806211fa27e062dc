"""
Per-transaction connection to the gateway.

Opens the SSE stream for one transaction hash, folds the server events into a
canonical TxStatus and hands every update to the owner through callbacks.
When the stream cannot be opened, breaks, or ends before a terminal event,
the same task falls back to polling the status endpoint.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional
from loguru import logger

from txwatch.config import settings
from txwatch.gateway.client import GatewayClient
from txwatch.models.stream import TxCompleteEvent, TxStateChangeEvent, TxStateEvent
from txwatch.models.transaction import TxStatus
from txwatch.streaming.polling import poll_until_terminal
from txwatch.streaming.sse import SSEDecoder, StreamEvent, decode_stream_event

class ConnectionPhase(str, Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    POLLING = "polling"
    DONE = "done"
    CLOSED = "closed"

class TxConnection:
    def __init__(
        self,
        tx_hash: str,
        gateway: GatewayClient,
        on_status: Callable[[TxStatus], None],
        on_complete: Callable[[TxStatus], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        self.tx_hash = tx_hash
        self.gateway = gateway
        self.on_status = on_status
        self.on_complete = on_complete
        self.on_error = on_error
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.max_polls = max_polls if max_polls is not None else settings.poll_max_attempts
        self.phase = ConnectionPhase.CONNECTING
        self.status: Optional[TxStatus] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._completed = False

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def completed(self) -> bool:
        return self._completed

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"txwatch-{self.tx_hash[:16]}")
        return self._task

    def stop(self) -> None:
        """Abort the stream read or poll timer. No callbacks fire afterwards."""
        self._closed = True
        self.phase = ConnectionPhase.CLOSED
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def join(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            await self._stream()
        except Exception as e:
            logger.warning(f"⚠️ SSE failed for {self.tx_hash[:16]}, falling back to polling: {e}")
        else:
            if not self._completed and not self._closed:
                logger.warning(f"⚠️ SSE stream ended without terminal event for {self.tx_hash[:16]}, falling back to polling")

        if self._completed or self._closed:
            self._finish()
            return

        self.phase = ConnectionPhase.POLLING
        await poll_until_terminal(
            self.tx_hash,
            self.gateway.get_status,
            on_status=self._apply,
            on_error=self._report_error,
            interval=self.poll_interval,
            max_polls=self.max_polls,
        )
        self._finish()

    def _finish(self) -> None:
        if not self._closed:
            self.phase = ConnectionPhase.DONE

    async def _stream(self) -> None:
        async with self.gateway.open_stream(self.tx_hash) as chunks:
            self.phase = ConnectionPhase.STREAMING
            decoder = SSEDecoder()
            async for chunk in chunks:
                if self._handle_frames(decoder.feed(chunk)):
                    return
            # Final frame without a trailing blank line
            self._handle_frames(decoder.flush())

    def _handle_frames(self, sse_events) -> bool:
        """Handle decoded frames, True once the connection needs no more input"""
        for sse_event in sse_events:
            payload = decode_stream_event(sse_event)
            if payload is None:
                continue
            self._handle_event(payload)
            if self._completed or self._closed:
                return True
        return False

    def _handle_event(self, payload: StreamEvent) -> None:
        if isinstance(payload, TxStateEvent):
            self._apply(TxStatus(
                tx_hash=self.tx_hash,
                tx_type=payload.tx_type,
                state=payload.state,
                retry_count=payload.retry_count,
                confirmed_at=payload.confirmed_at,
                last_error=payload.last_error,
                updated_at=payload.updated_at,
            ))
        elif isinstance(payload, TxStateChangeEvent):
            # Re-base on the latest stored status instead of re-fetching
            base = self.status or TxStatus(tx_hash=self.tx_hash, state=payload.new_state)
            update = {"state": payload.new_state}
            if payload.timestamp is not None:
                update["updated_at"] = payload.timestamp
            if payload.retry_count is not None:
                update["retry_count"] = payload.retry_count
            if payload.last_error is not None:
                update["last_error"] = payload.last_error
            self._apply(base.model_copy(update=update))
        elif isinstance(payload, TxCompleteEvent):
            previous = self.status
            self._apply(TxStatus(
                tx_hash=self.tx_hash,
                tx_type=payload.tx_type or (previous.tx_type if previous else ""),
                state=payload.final_state,
                retry_count=payload.retry_count or (previous.retry_count if previous else 0),
                confirmed_at=payload.confirmed_at or (previous.confirmed_at if previous else None),
                last_error=payload.last_error,
                updated_at=payload.timestamp,
            ), complete=True)

    def _apply(self, status: TxStatus, complete: bool = False) -> None:
        if self._closed or self._completed:
            return

        if not complete and _is_older(status, self.status):
            logger.debug(f"Dropping stale status for {self.tx_hash[:16]} ({status.state.value})")
            return

        self.status = status
        self.on_status(status)

        if complete or status.state.is_terminal:
            self._completed = True
            self.on_complete(status)

    def _report_error(self, error: Exception) -> None:
        if self._closed:
            return
        if self.on_error:
            self.on_error(error)

def _is_older(status: TxStatus, current: Optional[TxStatus]) -> bool:
    if current is None or current.updated_at is None or status.updated_at is None:
        return False
    try:
        return status.updated_at < current.updated_at
    except TypeError:
        # naive vs aware timestamps, no ordering possible
        return False
