"""
Global transaction watch registry.

Owns one TxConnection per watched transaction hash and the canonical
TransactionRecord it feeds. Connections live here rather than in the
observers, so tracking continues after every observer has gone away (the user
navigated elsewhere while the chain was still confirming).

Subscriber-aware notifications: observers bump `subscriber_count` while they
are attached. When a transaction reaches its outcome:
- subscriber_count > 0: an attached observer renders the outcome itself
- subscriber_count == 0: the registry emits the notification
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set
from loguru import logger

from txwatch.config import settings
from txwatch.errors import PollingTimeoutError
from txwatch.gateway.client import GatewayClient
from txwatch.models.transaction import (
    TransactionRecord, TxNotificationConfig, TxState, TxStatus
)
from txwatch.notifications import LogNotifier, Notifier
from txwatch.streaming.connection import TxConnection
from txwatch.transactions.catalog import get_transaction_config
from txwatch.utils.cardano import short_hash

Listener = Callable[[TransactionRecord], None]
ErrorListener = Callable[[Exception], None]

CONFIRMED_DESCRIPTION = "Confirmed on blockchain. Updating database..."
STALLED_TITLE = "Transaction confirmed, database update delayed"
UNKNOWN_STATUS_TITLE = "Transaction status unknown"
UNKNOWN_STATUS_DESCRIPTION = "Stopped checking for confirmation. Check the blockchain explorer for the final result."

def default_notification(kind: str) -> TxNotificationConfig:
    try:
        config = get_transaction_config(kind)
    except (KeyError, ValueError):
        return TxNotificationConfig()
    return TxNotificationConfig(success_title=config.success_info)

class TxWatchRegistry:
    def __init__(
        self,
        gateway: GatewayClient,
        notifier: Optional[Notifier] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        owns_gateway: bool = False,
    ):
        self.gateway = gateway
        self.notifier = notifier or LogNotifier()
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        # Close the gateway on shutdown when the registry created it
        self.owns_gateway = owns_gateway
        self.transactions: Dict[str, TransactionRecord] = {}
        self._connections: Dict[str, TxConnection] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._error_listeners: Dict[str, List[ErrorListener]] = {}
        # Hashes whose outcome (terminal or stalled) has been surfaced once
        self._surfaced: Set[str] = set()

    # Watching

    def watch(
        self,
        tx_hash: str,
        kind: str = "",
        metadata: Optional[Dict[str, str]] = None,
        notification: Optional[TxNotificationConfig] = None,
    ) -> TransactionRecord:
        """
        Start tracking a transaction.

        Idempotent: a repeat call merges metadata into the existing record. An
        unfinished record whose connection has ended (polling gave up) gets a
        fresh connection.
        """
        record = self.transactions.get(tx_hash)
        if record is not None:
            if metadata:
                record.metadata.update(metadata)
            if notification is not None:
                record.notification = notification
            if kind and not record.kind:
                record.kind = kind
            connection = self._connections.get(tx_hash)
            if not record.is_terminal and (connection is None or not connection.is_active):
                logger.info(f"🔁 Resuming watch for transaction {short_hash(tx_hash)}")
                self._start_connection(tx_hash)
            return record.model_copy(deep=True)

        record = TransactionRecord(
            tx_hash=tx_hash,
            kind=kind,
            metadata=dict(metadata or {}),
            notification=notification or default_notification(kind),
        )
        self.transactions[tx_hash] = record
        self._start_connection(tx_hash)

        logger.info(f"👀 Watching transaction {short_hash(tx_hash)} ({kind or 'unknown type'})")
        return record.model_copy(deep=True)

    def unwatch(self, tx_hash: str) -> None:
        """Stop tracking a transaction and forget it"""
        if tx_hash not in self.transactions:
            return
        self._stop_connection(tx_hash)
        self.notifier.dismiss(tx_hash)
        self._forget(tx_hash)

    def is_watching(self, tx_hash: str) -> bool:
        return tx_hash in self.transactions

    def connection_for(self, tx_hash: str) -> Optional[TxConnection]:
        return self._connections.get(tx_hash)

    # Subscribers

    def increment_subscriber(self, tx_hash: str) -> None:
        record = self.transactions.get(tx_hash)
        if record is None:
            return
        record.subscriber_count += 1

    def decrement_subscriber(self, tx_hash: str) -> None:
        record = self.transactions.get(tx_hash)
        if record is None:
            return
        record.subscriber_count = max(0, record.subscriber_count - 1)

    def subscribe(
        self,
        tx_hash: str,
        listener: Listener,
        on_error: Optional[ErrorListener] = None,
    ) -> Callable[[], None]:
        """Receive a record snapshot after every update. Returns the unsubscribe function."""
        self._listeners.setdefault(tx_hash, []).append(listener)
        if on_error is not None:
            self._error_listeners.setdefault(tx_hash, []).append(on_error)

        def unsubscribe() -> None:
            listeners = self._listeners.get(tx_hash, [])
            if listener in listeners:
                listeners.remove(listener)
            error_listeners = self._error_listeners.get(tx_hash, [])
            if on_error is not None and on_error in error_listeners:
                error_listeners.remove(on_error)

        return unsubscribe

    # Queries

    def get_watched_tx(self, tx_hash: str) -> Optional[TransactionRecord]:
        record = self.transactions.get(tx_hash)
        return record.model_copy(deep=True) if record is not None else None

    def pending_transactions(self) -> List[TransactionRecord]:
        """Watched transactions that have not reached an outcome yet, oldest first"""
        pending = [r for r in self.transactions.values() if not r.is_terminal]
        pending.sort(key=lambda r: r.registered_at)
        return [r.model_copy(deep=True) for r in pending]

    async def wait_until_terminal(self, tx_hash: str, timeout: Optional[float] = None) -> Optional[TransactionRecord]:
        """Wait until a watched transaction is terminal (or stalled)"""
        record = self.transactions.get(tx_hash)
        if record is None:
            return None
        if record.is_terminal:
            return record.model_copy(deep=True)

        reached = asyncio.Event()
        unsubscribe = self.subscribe(tx_hash, lambda snapshot: reached.set() if snapshot.is_terminal else None)
        try:
            await asyncio.wait_for(reached.wait(), timeout)
        finally:
            unsubscribe()
        return self.get_watched_tx(tx_hash)

    # Housekeeping

    def update_jwt(self, jwt: Optional[str]) -> None:
        self.gateway.update_jwt(jwt)

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Drop finished entries past the retention window and anything older than the max watch age"""
        now = now or datetime.utcnow()
        retention = timedelta(seconds=settings.completed_retention_seconds)
        max_age = timedelta(seconds=settings.max_watch_age_seconds)

        expired = [
            tx_hash for tx_hash, record in self.transactions.items()
            if (record.completed_at is not None and now - record.completed_at > retention)
            or now - record.registered_at > max_age
        ]
        for tx_hash in expired:
            self._stop_connection(tx_hash)
            self._forget(tx_hash)

        if expired:
            logger.info(f"🧹 Cleaned up {len(expired)} watched transactions")
        return len(expired)

    def clear_all(self) -> None:
        """Abort every connection and forget all transactions (e.g. on logout)"""
        for tx_hash in list(self.transactions):
            self._stop_connection(tx_hash)
            self.notifier.dismiss(tx_hash)
        self.transactions.clear()
        self._listeners.clear()
        self._error_listeners.clear()
        self._surfaced.clear()

    async def shutdown(self) -> None:
        connections = list(self._connections.values())
        self.clear_all()
        for connection in connections:
            await connection.join()
        if self.owns_gateway:
            await self.gateway.aclose()
        logger.info("🛑 Transaction watch registry stopped")

    # Connection callbacks

    def _apply_status(self, tx_hash: str, status: TxStatus) -> None:
        record = self.transactions.get(tx_hash)
        if record is None:
            return

        previous_state = record.status.state if record.status else None
        record.status = status
        record.version += 1

        if status.state == TxState.CONFIRMED and previous_state != TxState.CONFIRMED and not status.is_stalled:
            self.notifier.pending(tx_hash, record.notification.success_title, CONFIRMED_DESCRIPTION)

        if status.is_stalled and tx_hash not in self._surfaced:
            logger.warning(f"⚠️ Transaction {short_hash(tx_hash)} confirmed but DB update stalled: {status.last_error}")
            self._surface(record)

        self._broadcast(record)

    def _handle_complete(self, tx_hash: str, status: TxStatus) -> None:
        record = self.transactions.get(tx_hash)
        if record is None:
            return

        record.completed_at = datetime.utcnow()
        self._connections.pop(tx_hash, None)
        logger.info(f"🏁 Transaction {short_hash(tx_hash)} finished in state '{status.state.value}'")

        if tx_hash not in self._surfaced:
            self._surface(record)
            return

        # A stall was already surfaced and the observers' completion has fired,
        # so the final outcome is reported here regardless of subscribers.
        if status.state.is_failure:
            self.notifier.dismiss(tx_hash)
            self._notify_failure(record)
        elif status.state == TxState.UPDATED and record.subscriber_count == 0:
            self._notify_success(record)

    def _report_error(self, tx_hash: str, error: Exception) -> None:
        for listener in list(self._error_listeners.get(tx_hash, [])):
            try:
                listener(error)
            except Exception as e:
                logger.warning(f"Error listener for {short_hash(tx_hash)} failed: {e}")

        if isinstance(error, PollingTimeoutError):
            self._handle_poll_timeout(tx_hash)

    def _handle_poll_timeout(self, tx_hash: str) -> None:
        # The connection is finished; a later watch() starts a new one
        self._connections.pop(tx_hash, None)
        record = self.transactions.get(tx_hash)
        if record is None:
            return

        logger.warning(f"⚠️ Gave up tracking {short_hash(tx_hash)} in state '{record.state.value}'")
        self.notifier.dismiss(tx_hash)
        if record.subscriber_count == 0:
            self.notifier.warning(UNKNOWN_STATUS_TITLE, UNKNOWN_STATUS_DESCRIPTION)

    # Internals

    def _start_connection(self, tx_hash: str) -> TxConnection:
        connection = TxConnection(
            tx_hash,
            self.gateway,
            on_status=lambda status: self._apply_status(tx_hash, status),
            on_complete=lambda status: self._handle_complete(tx_hash, status),
            on_error=lambda error: self._report_error(tx_hash, error),
            poll_interval=self.poll_interval,
            max_polls=self.max_polls,
        )
        self._connections[tx_hash] = connection
        connection.start()
        return connection

    def _surface(self, record: TransactionRecord) -> None:
        tx_hash = record.tx_hash
        self._surfaced.add(tx_hash)
        # Always drop the provisional "pending" notification first
        self.notifier.dismiss(tx_hash)

        if record.subscriber_count > 0:
            logger.debug(f"{record.subscriber_count} observer(s) render the outcome of {short_hash(tx_hash)}")
            return

        status = record.status
        if status is None:
            return
        if status.state == TxState.UPDATED:
            self._notify_success(record)
        elif status.is_stalled:
            self.notifier.warning(STALLED_TITLE, status.last_error or "")
        elif status.state.is_failure:
            self._notify_failure(record)

    def _notify_success(self, record: TransactionRecord) -> None:
        self.notifier.success(record.notification.success_title, record.notification.success_description)

    def _notify_failure(self, record: TransactionRecord) -> None:
        description = (
            record.notification.error_description
            or record.last_error
            or "Please try again or contact support."
        )
        self.notifier.error(record.notification.error_title, description)

    def _broadcast(self, record: TransactionRecord) -> None:
        snapshot = record.model_copy(deep=True)
        for listener in list(self._listeners.get(record.tx_hash, [])):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Listener for {short_hash(record.tx_hash)} failed: {e}")

    def _stop_connection(self, tx_hash: str) -> None:
        connection = self._connections.pop(tx_hash, None)
        if connection is not None:
            connection.stop()

    def _forget(self, tx_hash: str) -> None:
        self.transactions.pop(tx_hash, None)
        self._listeners.pop(tx_hash, None)
        self._error_listeners.pop(tx_hash, None)
        self._surfaced.discard(tx_hash)

_default_registry: Optional[TxWatchRegistry] = None

def get_watch_registry() -> TxWatchRegistry:
    """Process-wide registry, created on first use with the configured gateway"""
    global _default_registry
    if _default_registry is None:
        _default_registry = TxWatchRegistry(GatewayClient(), owns_gateway=True)
    return _default_registry

def set_watch_registry(registry: Optional[TxWatchRegistry]) -> None:
    global _default_registry
    _default_registry = registry
