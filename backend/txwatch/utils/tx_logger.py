"""
Transaction Logger

Development logging for the build, submit and failure steps of a transaction.
Every record is bound with `tx_type` so sinks can filter on it.
"""

import json
from typing import Any, Optional
from loguru import logger

def _format_json(obj: Any) -> str:
    try:
        return json.dumps(obj, indent=2, default=str)
    except (TypeError, ValueError):
        return str(obj)

class TxLogger:
    def build_request(self, tx_type: str, endpoint: str, params: Any) -> None:
        logger.bind(tx_type=tx_type).debug(
            f"📦 BUILD TX: {tx_type}\nEndpoint: POST {endpoint}\nParams:\n{_format_json(params)}"
        )

    def build_result(self, tx_type: str, success: bool, response: Any) -> None:
        log = logger.bind(tx_type=tx_type)
        if success:
            unsigned = response.get("unsigned_tx", "") if isinstance(response, dict) else ""
            log.debug(f"✅ BUILD RESULT: {tx_type} - unsigned CBOR received: {unsigned[:80]}...")
        else:
            log.warning(f"❌ BUILD RESULT: {tx_type}\nError:\n{_format_json(response)}")

    def tx_submitted(self, tx_type: str, tx_hash: str, explorer_url: Optional[str] = None) -> None:
        message = f"🚀 TX SUBMITTED: {tx_type} - {tx_hash}"
        if explorer_url:
            message += f"\nExplorer: {explorer_url}"
        logger.bind(tx_type=tx_type).info(message)

    def tx_error(self, tx_type: str, error: BaseException) -> None:
        logger.bind(tx_type=tx_type).error(f"❌ TX FAILED: {tx_type} - {type(error).__name__}: {error}")

tx_logger = TxLogger()
