import asyncio
import itertools
import json
import logging
from typing import Any, Dict, List, Sequence, Tuple

import httpx
from mcp import types
from pydantic import ValidationError

from ..errors import ToolBatchError, ToolRelayError, ToolResultError
from ..models import ToolInvocation

logger = logging.getLogger(__name__)

MCP_STREAM_PATH = "/mcp/stream"
SESSION_HEADER = "Mcp-Session-Id"


class ToolRelayClient:
    """Forwards tool invocations to the remote Fi tool service over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a relay for base_url (e.g. http://localhost:8080).

        Pass `client` to reuse or stub the underlying httpx client; it must
        already be configured with base_url.
        """
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._request_ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _build_request(self, invocation: ToolInvocation) -> Dict[str, Any]:
        request = types.JSONRPCRequest(
            jsonrpc="2.0",
            id=next(self._request_ids),
            method="tools/call",
            params={"name": invocation.name, "arguments": invocation.arguments},
        )
        return request.model_dump(by_alias=True, exclude_none=True)

    async def call_tool(self, invocation: ToolInvocation, session_id: str) -> Dict[str, Any]:
        """Call one tool and return the decoded JSON-RPC response body.

        Args:
            invocation: Tool name and arguments.
            session_id: Correlation id sent as the Mcp-Session-Id header.

        Returns:
            Dict[str, Any]: Response body exactly as the tool service sent it.
        """
        logger.info("Calling tool service for tool: %s", invocation.name)
        try:
            response = await self._client.post(
                MCP_STREAM_PATH,
                json=self._build_request(invocation),
                headers={SESSION_HEADER: session_id},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Tool %s returned HTTP %s: %s",
                invocation.name,
                e.response.status_code,
                e.response.text[:500],
            )
            raise ToolRelayError(invocation.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Tool %s request failed: %s", invocation.name, e)
            raise ToolRelayError(invocation.name, str(e) or type(e).__name__) from e

        try:
            return response.json()
        except ValueError as e:
            logger.error("Tool %s returned a non-JSON body", invocation.name)
            raise ToolRelayError(invocation.name, "response is not JSON") from e

    async def call_tools(
        self, invocations: Sequence[ToolInvocation], session_id: str
    ) -> List[Dict[str, Any]]:
        """Call all tools concurrently; results come back in invocation order.

        Raises:
            ToolBatchError: if any call failed. Lists every failed tool.
        """
        results = await asyncio.gather(
            *(self.call_tool(inv, session_id) for inv in invocations),
            return_exceptions=True,
        )

        failures: List[Tuple[ToolInvocation, BaseException]] = []
        for inv, result in zip(invocations, results):
            if isinstance(result, Exception):
                failures.append((inv, result))
            elif isinstance(result, BaseException):
                raise result
        if failures:
            raise ToolBatchError(failures)

        logger.info("Received all data from tool service (%d call(s))", len(results))
        return list(results)


def unwrap_tool_result(tool_name: str, body: Any) -> Any:
    """Decode the JSON document a tool returns in result.content[0].text."""
    if not isinstance(body, dict):
        raise ToolResultError(tool_name, "response body is not a JSON object")
    if "result" not in body:
        error = body.get("error")
        raise ToolResultError(tool_name, f"no result in response (error={error!r})")

    try:
        result = types.CallToolResult.model_validate(body["result"])
    except ValidationError as e:
        raise ToolResultError(tool_name, f"malformed tool result: {e}") from e

    if not result.content:
        raise ToolResultError(tool_name, "tool result has no content")
    first = result.content[0]
    if not isinstance(first, types.TextContent):
        raise ToolResultError(tool_name, f"expected text content, got {first.type}")

    try:
        return json.loads(first.text)
    except json.JSONDecodeError as e:
        raise ToolResultError(tool_name, f"tool text is not JSON: {e}") from e
