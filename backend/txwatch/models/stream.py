"""
Typed payloads of the gateway transaction event stream
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from txwatch.models.transaction import TxState

class TxStateEvent(BaseModel):
    """Full snapshot, sent once on connect"""
    tx_hash: str = ""
    tx_type: str = ""
    state: TxState
    retry_count: int = 0
    confirmed_at: Optional[str] = None
    last_error: Optional[str] = None
    updated_at: Optional[datetime] = None

class TxStateChangeEvent(BaseModel):
    tx_hash: str = ""
    previous_state: Optional[TxState] = None
    new_state: TxState
    retry_count: Optional[int] = None
    last_error: Optional[str] = None
    timestamp: Optional[datetime] = None

class TxCompleteEvent(BaseModel):
    tx_hash: str = ""
    tx_type: str = ""
    final_state: TxState
    retry_count: int = 0
    confirmed_at: Optional[str] = None
    last_error: Optional[str] = None
    timestamp: Optional[datetime] = None
