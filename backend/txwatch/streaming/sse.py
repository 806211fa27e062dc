"""
Server-Sent Events codec for the gateway transaction stream.

Wire format (blank-line delimited blocks):

    event: state
    data: {"tx_hash":"abc","state":"pending",...}

    event: state_change
    data: {"tx_hash":"abc","previous_state":"pending","new_state":"confirmed",...}

`parse_sse_chunk` turns complete text into raw events, `SSEDecoder` buffers
frames split across network chunks, and `decode_stream_event` maps a raw event
onto its typed payload.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Union
import json
from loguru import logger
from pydantic import ValidationError

from txwatch.models.stream import TxStateEvent, TxStateChangeEvent, TxCompleteEvent

StreamEvent = Union[TxStateEvent, TxStateChangeEvent, TxCompleteEvent]

EVENT_TYPES = {
    "state": TxStateEvent,
    "state_change": TxStateChangeEvent,
    "complete": TxCompleteEvent,
}

@dataclass
class SSEEvent:
    event: Optional[str]
    data: str

def _field_value(line: str, prefix: str) -> str:
    value = line[len(prefix):]
    return value[1:] if value.startswith(" ") else value

def parse_sse_chunk(chunk: str) -> Iterator[SSEEvent]:
    """Yield one SSEEvent per block that carries a data field"""
    chunk = chunk.replace("\r\n", "\n")
    for block in chunk.split("\n\n"):
        if not block.strip():
            continue

        event = None
        data_lines = []
        for line in block.split("\n"):
            if line.startswith(":"):
                continue  # comment
            if line.startswith("event:"):
                event = _field_value(line, "event:").strip()
            elif line.startswith("data:"):
                data_lines.append(_field_value(line, "data:"))

        if data_lines:
            yield SSEEvent(event=event, data="\n".join(data_lines).strip())

class SSEDecoder:
    """Incremental decoder that holds back the incomplete trailing frame"""

    def __init__(self):
        self.buffer = ""

    def feed(self, chunk: str) -> List[SSEEvent]:
        self.buffer = (self.buffer + chunk).replace("\r\n", "\n")
        boundary = self.buffer.rfind("\n\n")
        if boundary == -1:
            return []

        complete = self.buffer[:boundary + 2]
        self.buffer = self.buffer[boundary + 2:]
        return list(parse_sse_chunk(complete))

    def flush(self) -> List[SSEEvent]:
        """Parse whatever is left once the stream has closed"""
        remaining, self.buffer = self.buffer, ""
        return list(parse_sse_chunk(remaining))

def decode_stream_event(sse_event: SSEEvent) -> Optional[StreamEvent]:
    """
    Map a raw event onto its typed payload.

    Unknown event names are heartbeats and return None. Malformed payloads are
    logged and skipped.
    """
    model = EVENT_TYPES.get(sse_event.event or "")
    if model is None or not sse_event.data:
        return None

    try:
        return model.model_validate(json.loads(sse_event.data))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"⚠️ Failed to parse SSE '{sse_event.event}' event data: {e}")
        return None
