import pytest
from fastapi.testclient import TestClient
from mcp import types

from mcp_servers.fi_mock.server import app

HEADERS = {"Mcp-Session-Id": "1111111111"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _call(client: TestClient, params, headers=HEADERS) -> dict:
    body = {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": params}
    response = client.post("/mcp/stream", json=body, headers=headers)
    assert response.status_code == 200
    return response.json()


def test_known_tool_returns_text_content(client: TestClient) -> None:
    body = _call(client, {"name": "fetch_credit_report", "arguments": {}})
    assert body["id"] == 3
    content = body["result"]["content"]
    assert content[0]["type"] == "text"
    assert "bureauScore" in content[0]["text"]


@pytest.mark.parametrize("params", [["fetch_net_worth"], "fetch_net_worth", 5])
def test_non_object_params_is_invalid_params(client: TestClient, params) -> None:
    body = _call(client, params)
    assert body["error"]["code"] == types.INVALID_PARAMS
    assert "result" not in body


def test_unknown_tool_is_invalid_params(client: TestClient) -> None:
    body = _call(client, {"name": "fetch_lottery_numbers", "arguments": {}})
    assert body["error"]["code"] == types.INVALID_PARAMS


def test_missing_session_header(client: TestClient) -> None:
    body = _call(client, {"name": "fetch_net_worth", "arguments": {}}, headers={})
    assert body["error"]["code"] == types.INVALID_REQUEST
