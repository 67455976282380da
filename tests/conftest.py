import sys
from pathlib import Path


_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))
# mcp_servers/ (the Fi tool-service mock) is imported from the repo root.
if str(_root) not in sys.path:
    sys.path.insert(1, str(_root))

import json
from typing import Any, Callable, Dict

import httpx
import pytest

from agentfi.services.tool_relay import ToolRelayClient

TOOL_BASE_URL = "http://fi-tools.test"


def tool_response(request_id: Any, payload: Any) -> Dict[str, Any]:
    """JSON-RPC body the Fi service sends back for a tools/call."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "result": {"content": [{"type": "text", "text": json.dumps(payload)}]},
    }


def make_relay(handler: Callable[[httpx.Request], httpx.Response]) -> ToolRelayClient:
    """ToolRelayClient whose HTTP traffic is answered by handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=TOOL_BASE_URL)
    return ToolRelayClient(TOOL_BASE_URL, client=client)


@pytest.fixture
def fi_mock_relay() -> ToolRelayClient:
    """ToolRelayClient wired in-process to the Fi mock server app."""
    from mcp_servers.fi_mock.server import app as fi_mock_app

    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=fi_mock_app),
        base_url=TOOL_BASE_URL,
    )
    return ToolRelayClient(TOOL_BASE_URL, client=client)
