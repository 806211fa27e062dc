"""
Transaction Polling Fallback

Polls the gateway status endpoint until the transaction reaches a terminal
state. Used when the event stream is unavailable or ends early.
"""

import asyncio
from typing import Awaitable, Callable, Optional
from loguru import logger

from txwatch.errors import PollingTimeoutError
from txwatch.models.transaction import TxStatus

StatusFetcher = Callable[[str], Awaitable[Optional[TxStatus]]]

async def poll_until_terminal(
    tx_hash: str,
    fetch_status: StatusFetcher,
    on_status: Optional[Callable[[TxStatus], None]] = None,
    on_complete: Optional[Callable[[TxStatus], None]] = None,
    on_error: Optional[Callable[[Exception], None]] = None,
    interval: float = 15.0,
    max_polls: Optional[int] = None,
) -> Optional[TxStatus]:
    """
    Poll `fetch_status` until a terminal state is reached.

    The first check is immediate; later ones wait `interval` seconds.
    `fetch_status` returning None means the gateway does not know the
    transaction yet and is not an error. Errors go to `on_error` and polling
    carries on. Cancel the surrounding task to stop.

    Returns the terminal TxStatus, or None when `max_polls` ran out.
    """
    attempt = 0
    while max_polls is None or attempt < max_polls:
        if attempt > 0:
            await asyncio.sleep(interval)
        attempt += 1

        try:
            status = await fetch_status(tx_hash)
        except Exception as e:
            logger.warning(f"⚠️ Poll {attempt} for {tx_hash[:16]} failed: {e}")
            if on_error:
                on_error(e)
            continue

        if status is None:
            # Not registered yet, expected briefly after submit
            continue

        if on_status:
            on_status(status)

        if status.state.is_terminal:
            logger.info(f"✅ Poll reached terminal state '{status.state.value}' for {tx_hash[:16]}")
            if on_complete:
                on_complete(status)
            return status

    error = PollingTimeoutError(f"TX polling timed out after {max_polls} attempts for {tx_hash}")
    logger.error(f"❌ {error.message}")
    if on_error:
        on_error(error)
    return None
