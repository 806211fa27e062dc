import httpx
import pytest

from txwatch.errors import BuildFailedError, PollingError, RegistrationError, StreamError
from txwatch.gateway.client import GatewayClient
from txwatch.models.transaction import TxState

TX = "77" * 32


def mock_gateway(handler, **kwargs):
    return GatewayClient(base_url="http://gateway.test/api/v2", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_requests_carry_api_key_and_jwt():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"unsigned_tx": "84a4"})

    gateway = mock_gateway(handler, api_key="key-1", jwt="jwt-1")
    await gateway.build_transaction("/tx/instance/owner/course/create", {"alias": "a"})
    gateway.update_jwt(None)
    await gateway.build_transaction("/tx/instance/owner/course/create", {"alias": "a"})
    await gateway.aclose()

    assert seen[0].url.path == "/api/v2/tx/instance/owner/course/create"
    assert seen[0].headers["X-API-Key"] == "key-1"
    assert seen[0].headers["Authorization"] == "Bearer jwt-1"
    assert "Authorization" not in seen[1].headers


@pytest.mark.asyncio
async def test_build_passes_extra_fields_through():
    gateway = mock_gateway(lambda request: httpx.Response(200, json={"unsignedTxCBOR": "84a4ff", "course_id": "c1"}))

    body = await gateway.build_transaction("/tx/instance/owner/course/create", {})
    await gateway.aclose()

    assert body == {"unsigned_tx": "84a4ff", "course_id": "c1"}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, detail", [
    ({"details": "d", "message": "m", "error": "e"}, "d"),
    ({"message": "m", "error": "e"}, "m"),
    ({"error": "unknown kind"}, "unknown kind"),
    ({"detail": "Not Found"}, "Not Found"),
])
async def test_build_error_detail_priority(payload, detail):
    gateway = mock_gateway(lambda request: httpx.Response(422, json=payload))

    with pytest.raises(BuildFailedError) as exc_info:
        await gateway.build_transaction("/tx/x", {})
    await gateway.aclose()

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail == detail


@pytest.mark.asyncio
async def test_build_error_with_plain_text_body():
    gateway = mock_gateway(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(BuildFailedError) as exc_info:
        await gateway.build_transaction("/tx/x", {})
    await gateway.aclose()

    assert exc_info.value.message == "Transaction API error: 502 - Bad Gateway"


@pytest.mark.asyncio
async def test_build_without_unsigned_tx():
    gateway = mock_gateway(lambda request: httpx.Response(200, json={"course_id": "c1"}))

    with pytest.raises(BuildFailedError, match="No unsigned transaction returned from API"):
        await gateway.build_transaction("/tx/x", {})
    await gateway.aclose()


@pytest.mark.asyncio
async def test_build_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    gateway = mock_gateway(handler)
    with pytest.raises(BuildFailedError, match="unreachable"):
        await gateway.build_transaction("/tx/x", {})
    await gateway.aclose()


@pytest.mark.asyncio
async def test_register_failure_raises_registration_error():
    gateway = mock_gateway(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(RegistrationError) as exc_info:
        await gateway.register_transaction(TX, "course_create")
    await gateway.aclose()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_status_not_found_is_none():
    gateway = mock_gateway(lambda request: httpx.Response(404, json={"detail": "Transaction not found"}))
    assert await gateway.get_status(TX) is None
    await gateway.aclose()


@pytest.mark.asyncio
async def test_status_parses_payload():
    gateway = mock_gateway(lambda request: httpx.Response(200, json={
        "tx_hash": TX, "tx_type": "course_create", "state": "confirmed", "retry_count": 2,
    }))
    status = await gateway.get_status(TX)
    await gateway.aclose()

    assert status.state == TxState.CONFIRMED
    assert status.retry_count == 2


@pytest.mark.asyncio
async def test_status_server_error():
    gateway = mock_gateway(lambda request: httpx.Response(500))

    with pytest.raises(PollingError) as exc_info:
        await gateway.get_status(TX)
    await gateway.aclose()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_stream_rejected():
    gateway = mock_gateway(lambda request: httpx.Response(401))

    with pytest.raises(StreamError) as exc_info:
        async with gateway.open_stream(TX):
            pass
    await gateway.aclose()

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_stream_yields_text_chunks():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text='event: state\ndata: {"state":"pending"}\n\n')

    gateway = mock_gateway(handler)
    async with gateway.open_stream(TX) as chunks:
        text = "".join([chunk async for chunk in chunks])
    await gateway.aclose()

    assert "event: state" in text
    assert seen[0].headers["Accept"] == "text/event-stream"
