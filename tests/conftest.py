"""Shared test helpers."""

import json
from unittest.mock import AsyncMock, MagicMock

from waha_pairing.gateway.client import GatewayResult, SessionStatus
from waha_pairing.gateway.qr import QrImage, QrSource

PIXEL_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def make_response(status: int = 200, body=None):
    """Fake aiohttp response with a text body."""
    if body is None:
        text = ""
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)

    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.text = AsyncMock(return_value=text)
    return mock_response


def mock_http(client, *responses):
    """Attach a fake HTTP session whose request() yields `responses` in order."""
    contexts = []
    for response in responses:
        if isinstance(response, BaseException):
            contexts.append(AsyncMock(__aenter__=AsyncMock(side_effect=response)))
        else:
            contexts.append(AsyncMock(__aenter__=AsyncMock(return_value=response)))

    mock_session = MagicMock()
    mock_session.request = MagicMock(side_effect=contexts)
    mock_session.close = AsyncMock()
    client._http_session = mock_session
    return mock_session


def qr_image(tag: str = "1") -> QrImage:
    return QrImage(source=QrSource.DATA_URI, data_uri=f"{PIXEL_DATA_URI}#{tag}")


def status_result(status: str, **kwargs) -> GatewayResult:
    return GatewayResult.ok(SessionStatus(status=status, **kwargs))


def make_gateway(qr_results=None, status_results=None):
    """Gateway double whose operations return envelopes."""
    gateway = MagicMock()
    gateway.create_session = AsyncMock(return_value=GatewayResult.ok({"name": "s", "status": "STARTING"}))
    gateway.start_session = AsyncMock(return_value=GatewayResult.ok({}))
    gateway.stop_session = AsyncMock(return_value=GatewayResult.ok({}))
    gateway.get_qr_code = AsyncMock(
        side_effect=qr_results if qr_results is not None else None,
        return_value=GatewayResult.ok(qr_image("1")),
    )
    gateway.regenerate_qr_code = AsyncMock(return_value=GatewayResult.ok(qr_image("2")))
    gateway.get_status = AsyncMock(
        side_effect=status_results if status_results is not None else None,
        return_value=status_result("SCAN_QR_CODE"),
    )
    return gateway

