"""
Transaction Data Models
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

class TxState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"  # on-chain only, DB updates still running
    UPDATED = "updated"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_failure(self) -> bool:
        return self in (TxState.FAILED, TxState.EXPIRED)

TERMINAL_STATES = frozenset({TxState.UPDATED, TxState.FAILED, TxState.EXPIRED})

class ExecutionState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SIGNING = "signing"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"

class TxStatus(BaseModel):
    """Canonical status of a tracked transaction, as reported by the gateway"""
    tx_hash: str
    tx_type: str = ""
    state: TxState
    retry_count: int = 0
    confirmed_at: Optional[str] = None
    last_error: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_stalled(self) -> bool:
        return self.state == TxState.CONFIRMED and bool(self.last_error)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal or self.is_stalled

class TxRegisterRequest(BaseModel):
    tx_hash: str
    tx_type: str
    metadata: Optional[Dict[str, str]] = None

class TxNotificationConfig(BaseModel):
    success_title: str = "Transaction Complete"
    success_description: str = "Transaction confirmed and database updated."
    error_title: str = "Transaction Failed"
    error_description: Optional[str] = None

class TransactionRecord(BaseModel):
    """One watched transaction. Owned by the watch registry."""
    tx_hash: str
    kind: str = ""
    status: Optional[TxStatus] = None
    subscriber_count: int = 0
    metadata: Dict[str, str] = Field(default_factory=dict)
    notification: TxNotificationConfig = Field(default_factory=TxNotificationConfig)
    registered_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    version: int = 0

    @property
    def state(self) -> TxState:
        return self.status.state if self.status else TxState.PENDING

    @property
    def last_error(self) -> Optional[str]:
        return self.status.last_error if self.status else None

    @property
    def retry_count(self) -> int:
        return self.status.retry_count if self.status else 0

    @property
    def is_stalled(self) -> bool:
        return bool(self.status and self.status.is_stalled)

    @property
    def is_terminal(self) -> bool:
        return bool(self.status and self.status.is_terminal)

class TxObservation(BaseModel):
    """Read view handed to an observer"""
    status: Optional[TxStatus] = None
    is_terminal: bool = False
    is_success: bool = False
    is_failed: bool = False
    is_stalled: bool = False

    @classmethod
    def from_status(cls, status: Optional[TxStatus]) -> "TxObservation":
        if status is None:
            return cls()
        return cls(
            status=status,
            is_terminal=status.is_terminal,
            is_success=status.state == TxState.UPDATED or status.is_stalled,
            is_failed=status.state.is_failure,
            is_stalled=status.is_stalled,
        )

class TransactionResult(BaseModel):
    tx_hash: str
    success: bool = True
    explorer_url: Optional[str] = None
    api_response: Dict[str, Any] = Field(default_factory=dict)
    requires_db_update: bool
    requires_onchain_confirmation: bool
