"""
Per-consumer view over the watch registry
"""

from typing import Callable, Optional
from loguru import logger

from txwatch.models.transaction import TransactionRecord, TxObservation, TxStatus
from txwatch.watcher.registry import TxWatchRegistry, get_watch_registry

class TxObserver:
    """
    Follows one watched transaction at a time.

    `on_complete` fires at most once per attached hash, when the transaction
    becomes terminal or stalled. Re-attaching the same hash keeps the latch;
    attaching a different hash resets it.
    """

    def __init__(
        self,
        registry: Optional[TxWatchRegistry] = None,
        on_complete: Optional[Callable[[TxStatus], None]] = None,
        on_update: Optional[Callable[[TxObservation], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.registry = registry or get_watch_registry()
        self.on_complete = on_complete
        self.on_update = on_update
        self.on_error = on_error
        self.tx_hash: Optional[str] = None
        self.status: Optional[TxStatus] = None
        self.error: Optional[Exception] = None
        self._completed = False
        self._attached = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, tx_hash: str, kind: str = "") -> TxObservation:
        if self._attached and tx_hash == self.tx_hash:
            return self.observation

        self.detach()
        if tx_hash != self.tx_hash:
            self._completed = False
            self.status = None
            self.error = None
        self.tx_hash = tx_hash

        # Attaching to an unknown hash starts tracking it
        if not self.registry.is_watching(tx_hash):
            self.registry.watch(tx_hash, kind)

        self.registry.increment_subscriber(tx_hash)
        self._attached = True

        record = self.registry.get_watched_tx(tx_hash)
        if record is not None and record.status is not None:
            self._on_record(record)

        self._unsubscribe = self.registry.subscribe(tx_hash, self._on_record, on_error=self._on_error)
        return self.observation

    def detach(self) -> None:
        """Stop observing. Safe to call more than once."""
        if not self._attached:
            return
        self._attached = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.registry.decrement_subscriber(self.tx_hash)

    def __enter__(self) -> "TxObserver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.detach()

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def observation(self) -> TxObservation:
        return TxObservation.from_status(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.observation.is_terminal

    @property
    def is_success(self) -> bool:
        return self.observation.is_success

    @property
    def is_failed(self) -> bool:
        return self.observation.is_failed

    @property
    def is_stalled(self) -> bool:
        return self.observation.is_stalled

    def _on_record(self, record: TransactionRecord) -> None:
        if not self._attached or record.tx_hash != self.tx_hash:
            return
        self.status = record.status
        observation = self.observation

        # Completion latches before on_update runs
        if observation.is_terminal and not self._completed:
            self._completed = True
            logger.debug(f"Observer completion for {record.tx_hash[:16]} ({record.state.value})")
            if self.on_complete:
                self.on_complete(record.status)

        if self.on_update:
            self.on_update(observation)

    def _on_error(self, error: Exception) -> None:
        self.error = error
        if self.on_error:
            self.on_error(error)
