"""Fi Money tool service mock (POST /mcp/stream, JSON-RPC tools/call).

Serves canned tool results from data/<tool_name>.json so the backend can be run
and tested without the real Fi MCP server:

    uvicorn mcp_servers.fi_mock.server:app --port 8080
"""

import json
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from mcp import types

_DATA_DIR = Path(__file__).resolve().parent / "data"

TOOL_NAMES = (
    "fetch_net_worth",
    "fetch_credit_report",
    "fetch_epf_details",
    "fetch_mf_transactions",
    "fetch_bank_transactions",
    "fetch_stock_transactions",
)


def _load_tool_data(name: str) -> str:
    with open(_DATA_DIR / f"{name}.json", encoding="utf-8") as f:
        return json.dumps(json.load(f))


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    # Built by hand: JSON-RPC allows a null id here, mcp.types.JSONRPCError does not.
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": types.ErrorData(code=code, message=message).model_dump(exclude_none=True),
    }


def _result(request_id: Any, text: str) -> dict[str, Any]:
    result = types.CallToolResult(content=[types.TextContent(type="text", text=text)])
    return types.JSONRPCResponse(
        jsonrpc="2.0",
        id=request_id,
        result=result.model_dump(by_alias=True, exclude_none=True),
    ).model_dump(by_alias=True, exclude_none=True)


app = FastAPI(title="Fi MCP mock")


@app.post("/mcp/stream")
async def mcp_stream(request: Request) -> dict[str, Any]:
    """Answer a single JSON-RPC tools/call request."""
    try:
        body = await request.json()
    except ValueError:
        return _error(None, types.PARSE_ERROR, "Invalid JSON")

    request_id = body.get("id") if isinstance(body, dict) else None
    if not isinstance(body, dict) or body.get("jsonrpc") != "2.0":
        return _error(request_id, types.INVALID_REQUEST, "Not a JSON-RPC 2.0 request")
    if not request.headers.get("Mcp-Session-Id"):
        return _error(request_id, types.INVALID_REQUEST, "Missing Mcp-Session-Id header")
    if body.get("method") != "tools/call":
        return _error(request_id, types.METHOD_NOT_FOUND, f"Unknown method: {body.get('method')}")

    params = body.get("params") or {}
    if not isinstance(params, dict):
        return _error(request_id, types.INVALID_PARAMS, "params must be an object")
    name = params.get("name")
    if name not in TOOL_NAMES:
        return _error(request_id, types.INVALID_PARAMS, f"Unknown tool: {name}")

    return _result(request_id, _load_tool_data(name))
