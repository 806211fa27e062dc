"""
Async HTTP client for the gateway transaction API
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import json
import httpx
from loguru import logger

from txwatch.config import settings
from txwatch.errors import BuildFailedError, PollingError, RegistrationError, StreamError
from txwatch.models.transaction import TxRegisterRequest, TxStatus

def _error_detail(response: httpx.Response) -> str:
    """Best error message in a failed response: details, message, error, then raw text"""
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        return text
    if isinstance(body, dict):
        for key in ("details", "message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return text

class GatewayClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        jwt: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.gateway_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.gateway_api_key
        self.jwt = jwt
        self.timeout = timeout or settings.request_timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    def update_jwt(self, jwt: Optional[str]) -> None:
        self.jwt = jwt

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        if self.jwt:
            headers["Authorization"] = f"Bearer {self.jwt}"
        return headers

    async def build_transaction(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST params to a build endpoint and return the response body with the
        unsigned transaction normalized under `unsigned_tx`.
        """
        try:
            response = await self.client.post(endpoint, json=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise BuildFailedError(f"Transaction API unreachable: {e}") from e

        if not response.is_success:
            detail = _error_detail(response)
            raise BuildFailedError(
                f"Transaction API error: {response.status_code} - {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise BuildFailedError("Transaction API returned a non-JSON body") from e

        if not isinstance(body, dict):
            raise BuildFailedError("No unsigned transaction returned from API")
        snake_case = body.pop("unsigned_tx", None)
        camel_case = body.pop("unsignedTxCBOR", None)
        unsigned_tx = snake_case or camel_case
        if not unsigned_tx:
            raise BuildFailedError("No unsigned transaction returned from API")

        body["unsigned_tx"] = unsigned_tx
        return body

    async def register_transaction(
        self, tx_hash: str, tx_type: str, metadata: Optional[Dict[str, str]] = None
    ) -> None:
        request = TxRegisterRequest(tx_hash=tx_hash, tx_type=tx_type, metadata=metadata or None)
        try:
            response = await self.client.post(
                "/tx/register",
                json=request.model_dump(exclude_none=True),
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise RegistrationError(f"Failed to register TX: {e}") from e

        if not response.is_success:
            raise RegistrationError(
                f"Failed to register TX: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

    async def get_status(self, tx_hash: str) -> Optional[TxStatus]:
        """One status snapshot, or None while the gateway has not registered the TX"""
        try:
            response = await self.client.get(f"/tx/status/{tx_hash}", headers=self._headers())
        except httpx.HTTPError as e:
            raise PollingError(f"Failed to get TX status: {e}") from e
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise PollingError(
                f"Failed to get TX status: {response.status_code}",
                status_code=response.status_code,
            )
        return TxStatus.model_validate(response.json())

    @asynccontextmanager
    async def open_stream(self, tx_hash: str) -> AsyncIterator[AsyncIterator[str]]:
        """Open the SSE stream for a transaction and yield its text chunks"""
        headers = self._headers()
        headers.update({"Accept": "text/event-stream", "Cache-Control": "no-cache"})
        timeout = httpx.Timeout(self.timeout, read=None)

        async with self.client.stream("GET", f"/tx/stream/{tx_hash}", headers=headers, timeout=timeout) as response:
            if not response.is_success:
                raise StreamError(
                    f"SSE connection failed: {response.status_code}",
                    status_code=response.status_code,
                )
            logger.debug(f"📡 SSE stream open for {tx_hash[:16]}")
            yield response.aiter_text()

    async def aclose(self) -> None:
        await self.client.aclose()
