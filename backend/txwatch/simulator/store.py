"""
In-memory transaction store behind the gateway simulator.

Each known transaction carries a scripted timeline of statuses. Every status
poll returns the current step and advances by one, so a client that polls
walks through the timeline and then keeps seeing the last step. Streams can
be scripted separately, or fail with a fixed HTTP status.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union
import hashlib
import json
from loguru import logger

from txwatch.models.transaction import TxState

TimelineStep = Union[str, Dict[str, Any]]

DEFAULT_TIMELINE: List[TimelineStep] = ["pending", "confirmed", "updated"]

def _normalize_step(step: TimelineStep) -> Dict[str, Any]:
    if isinstance(step, str):
        step = {"state": step}
    step = dict(step)
    step["state"] = TxState(step["state"]).value
    return step

class SimulatorStore:
    def __init__(self):
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.builds: List[Dict[str, Any]] = []
        self.build_failures: Dict[str, Tuple[int, Any]] = {}
        self.registrations: List[Dict[str, Any]] = []
        # "unsigned_tx" or the legacy "unsignedTxCBOR" key
        self.envelope_key = "unsigned_tx"
        self.stream_delay = 0.0

    def reset(self) -> None:
        self.transactions.clear()
        self.builds.clear()
        self.build_failures.clear()
        self.registrations.clear()
        self.envelope_key = "unsigned_tx"
        self.stream_delay = 0.0

    # Scripting

    def script(
        self,
        tx_hash: str,
        timeline: Optional[List[TimelineStep]] = None,
        stream_events: Optional[List[Union[str, Dict[str, Any]]]] = None,
        stream_status: Optional[int] = None,
        tx_type: str = "",
    ) -> Dict[str, Any]:
        """
        Script the behaviour of one transaction.

        `stream_events` items are either raw SSE text or {"event", "data"}
        dicts. When unset the stream replays the timeline. `stream_status`
        makes the stream endpoint answer with that HTTP status instead.
        """
        doc = self.transactions.get(tx_hash) or self._new_doc(tx_hash, tx_type)
        if timeline is not None:
            doc["timeline"] = [_normalize_step(step) for step in timeline]
            doc["position"] = 0
        doc["stream_events"] = stream_events
        doc["stream_status"] = stream_status
        self.transactions[tx_hash] = doc
        return doc

    def fail_build(self, endpoint: str, status_code: int, body: Any) -> None:
        self.build_failures[endpoint] = (status_code, body)

    # Gateway behaviour

    def build(self, endpoint: str, tx_type: str, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = json.dumps({"endpoint": endpoint, "params": params}, sort_keys=True, default=str)
        unsigned_tx = "84a4" + hashlib.sha256(payload.encode("utf-8")).hexdigest()
        self.builds.append({"endpoint": endpoint, "tx_type": tx_type, "params": params})
        logger.debug(f"🧱 Built {tx_type} at {endpoint}")
        return {self.envelope_key: unsigned_tx, "tx_type": tx_type, "built_at": datetime.utcnow().isoformat()}

    def register(self, tx_hash: str, tx_type: str, metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        doc = self.transactions.get(tx_hash)
        if doc is None:
            doc = self._new_doc(tx_hash, tx_type)
            self.transactions[tx_hash] = doc
        doc["tx_type"] = tx_type or doc["tx_type"]
        doc["metadata"] = metadata or {}
        doc["registered"] = True
        self.registrations.append({"tx_hash": tx_hash, "tx_type": tx_type, "metadata": metadata})
        logger.info(f"📝 Registered {tx_type} transaction {tx_hash[:16]}")
        return doc

    def next_status(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Current status of a transaction; advances its timeline by one step"""
        doc = self.transactions.get(tx_hash)
        if doc is None:
            return None
        position = doc["position"]
        doc["position"] = min(position + 1, len(doc["timeline"]) - 1)
        return self.status_at(doc, position)

    def status_at(self, doc: Dict[str, Any], position: int) -> Dict[str, Any]:
        step = doc["timeline"][position]
        state = step["state"]
        confirmed_at = None
        if state in (TxState.CONFIRMED.value, TxState.UPDATED.value):
            confirmed_at = (doc["created_at"] + timedelta(seconds=position)).isoformat()
        return {
            "tx_hash": doc["tx_hash"],
            "tx_type": doc["tx_type"],
            "state": state,
            "retry_count": step.get("retry_count", 0),
            "confirmed_at": step.get("confirmed_at", confirmed_at),
            "last_error": step.get("last_error"),
            "updated_at": (doc["created_at"] + timedelta(seconds=position)).isoformat(),
        }

    def stream_frames(self, tx_hash: str) -> List[str]:
        """SSE frames for a stream request"""
        doc = self.transactions[tx_hash]
        if doc["stream_events"] is not None:
            return [_render(event) for event in doc["stream_events"]]

        # Replay the whole timeline: snapshot, changes, then completion
        statuses = [self.status_at(doc, i) for i in range(len(doc["timeline"]))]
        frames = [format_sse("state", statuses[0])]
        for previous, current in zip(statuses, statuses[1:]):
            frames.append(format_sse("state_change", {
                "tx_hash": tx_hash,
                "previous_state": previous["state"],
                "new_state": current["state"],
                "retry_count": current["retry_count"],
                "last_error": current["last_error"],
                "timestamp": current["updated_at"],
            }))
        final = statuses[-1]
        if TxState(final["state"]).is_terminal:
            frames.append(format_sse("complete", {
                "tx_hash": tx_hash,
                "tx_type": final["tx_type"],
                "final_state": final["state"],
                "retry_count": final["retry_count"],
                "confirmed_at": final["confirmed_at"],
                "last_error": final["last_error"],
                "timestamp": final["updated_at"],
            }))
        return frames

    def _new_doc(self, tx_hash: str, tx_type: str) -> Dict[str, Any]:
        return {
            "tx_hash": tx_hash,
            "tx_type": tx_type,
            "metadata": {},
            "registered": False,
            "timeline": [_normalize_step(step) for step in DEFAULT_TIMELINE],
            "position": 0,
            "stream_events": None,
            "stream_status": None,
            "created_at": datetime.utcnow(),
        }

def format_sse(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"

def _render(event: Union[str, Dict[str, Any]]) -> str:
    if isinstance(event, str):
        return event
    return format_sse(event["event"], event.get("data", {}))
