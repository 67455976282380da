import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from agentfi.agent import AgentFiService, ChatModel, strip_code_fences
from agentfi.errors import AgentLoopError, ToolBatchError
from agentfi.models import ModelTurn, ToolInvocation
from agentfi.services.tool_relay import ToolRelayClient

from conftest import make_relay, tool_response

SYSTEM_PROMPT = "You are Fi Agent."


def _model(*turns: ModelTurn) -> MagicMock:
    model = MagicMock(spec=ChatModel)
    model.complete = AsyncMock(side_effect=list(turns))
    return model


def _service(model: MagicMock, relay: ToolRelayClient | None = None, **kwargs) -> AgentFiService:
    if relay is None:
        relay = MagicMock(spec=ToolRelayClient)
        relay.call_tools = AsyncMock()
    return AgentFiService(model=model, relay=relay, system_prompt=SYSTEM_PROMPT, **kwargs)


def _tools(*names: str) -> ModelTurn:
    return ModelTurn(
        tool_calls=[ToolInvocation(name=n, id=f"call_{i}") for i, n in enumerate(names)]
    )


def test_strip_code_fences() -> None:
    fenced = '```json\n{"type": "chart", "title": "Assets"}\n```'
    assert strip_code_fences(fenced) == '{"type": "chart", "title": "Assets"}'
    assert strip_code_fences("  plain analysis  ") == "plain analysis"
    assert strip_code_fences("see ```code``` here") == "see code here"


@pytest.mark.asyncio
async def test_text_reply_needs_one_model_call() -> None:
    """No tool calls: one model call, fence-stripped text returned, no relay."""
    model = _model(ModelTurn(text="```json\n{\"type\": \"chart\"}\n```"))
    service = _service(model)

    reply = await service.run_chat("s1", "chart my assets")

    assert reply == '{"type": "chart"}'
    assert model.complete.await_count == 1
    service._relay.call_tools.assert_not_called()
    sent = model.complete.call_args.args[0]
    assert sent[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert sent[-1] == {"role": "user", "content": "chart my assets"}


@pytest.mark.asyncio
async def test_tool_calls_relayed_then_fed_back() -> None:
    """N tool calls: N relay requests with one session header, results go back in one model call."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append((body["params"]["name"], request.headers["Mcp-Session-Id"]))
        return httpx.Response(200, json=tool_response(body["id"], {"tool": body["params"]["name"]}))

    model = _model(
        _tools("fetch_net_worth", "fetch_credit_report", "fetch_epf_details"),
        ModelTurn(text="All good."),
    )
    service = _service(model, relay=make_relay(handler))

    reply = await service.run_chat("sess-7", "how am I doing?")

    assert reply == "All good."
    assert sorted(seen) == [
        ("fetch_credit_report", "sess-7"),
        ("fetch_epf_details", "sess-7"),
        ("fetch_net_worth", "sess-7"),
    ]
    assert model.complete.await_count == 2

    second_call = model.complete.call_args_list[1].args[0]
    assistant = second_call[-4]
    assert assistant["role"] == "assistant"
    assert [tc["id"] for tc in assistant["tool_calls"]] == ["call_0", "call_1", "call_2"]
    tool_messages = second_call[-3:]
    assert [m["role"] for m in tool_messages] == ["tool", "tool", "tool"]
    assert [m["tool_call_id"] for m in tool_messages] == ["call_0", "call_1", "call_2"]
    first_result = json.loads(tool_messages[0]["content"])
    assert json.loads(first_result["result"]["content"][0]["text"]) == {"tool": "fetch_net_worth"}

    assert service.get_session("sess-7").tool_calls_count == 3


@pytest.mark.asyncio
async def test_multi_step_tool_rounds() -> None:
    model = _model(
        _tools("fetch_net_worth"),
        _tools("fetch_mf_transactions"),
        ModelTurn(text="Done."),
    )
    relay = MagicMock(spec=ToolRelayClient)
    relay.call_tools = AsyncMock(side_effect=[[{"a": 1}], [{"b": 2}]])
    service = _service(model, relay=relay)

    assert await service.run_chat("s1", "analyse my funds") == "Done."
    assert model.complete.await_count == 3
    assert relay.call_tools.await_count == 2
    for call in relay.call_tools.call_args_list:
        assert call.kwargs["session_id"] == "s1"


@pytest.mark.asyncio
async def test_same_session_carries_history() -> None:
    """The second turn's model context includes the first exchange."""
    model = _model(ModelTurn(text="First answer."), ModelTurn(text="Second answer."))
    service = _service(model)

    await service.run_chat("s1", "first question")
    await service.run_chat("s1", "second question")

    second = model.complete.call_args_list[1].args[0]
    assert [m["role"] for m in second] == ["system", "user", "assistant", "user"]
    assert second[1]["content"] == "first question"
    assert second[2]["content"] == "First answer."
    assert second[3]["content"] == "second question"


@pytest.mark.asyncio
async def test_sessions_are_isolated() -> None:
    model = _model(ModelTurn(text="a"), ModelTurn(text="b"))
    service = _service(model)

    await service.run_chat("s1", "hello from s1")
    await service.run_chat("s2", "hello from s2")

    second = model.complete.call_args_list[1].args[0]
    assert [m["role"] for m in second] == ["system", "user"]


@pytest.mark.asyncio
async def test_failed_turn_leaves_history_untouched() -> None:
    model = _model(_tools("fetch_net_worth"))
    relay = MagicMock(spec=ToolRelayClient)
    failure = (ToolInvocation(name="fetch_net_worth"), RuntimeError("down"))
    relay.call_tools = AsyncMock(side_effect=ToolBatchError([failure]))
    service = _service(model, relay=relay)

    with pytest.raises(ToolBatchError):
        await service.run_chat("s1", "net worth?")

    session = service.get_session("s1")
    assert session.messages == [{"role": "system", "content": SYSTEM_PROMPT}]
    assert session.tool_calls_count == 0


@pytest.mark.asyncio
async def test_loop_guard() -> None:
    """A model that never stops asking for tools hits the iteration limit."""
    model = MagicMock(spec=ChatModel)
    model.complete = AsyncMock(return_value=_tools("fetch_net_worth"))
    relay = MagicMock(spec=ToolRelayClient)
    relay.call_tools = AsyncMock(return_value=[{}])
    service = _service(model, relay=relay, max_iterations=3)

    with pytest.raises(AgentLoopError):
        await service.run_chat("s1", "loop forever")
    assert relay.call_tools.await_count == 3
