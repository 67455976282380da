import json
import logging
import re
from typing import Any, Dict, List

from ..errors import AgentLoopError
from ..models import ModelTurn, SessionState, ToolInvocation
from ..services.session_store import SessionRegistry
from ..services.tool_relay import ToolRelayClient
from ..settings import Settings
from .model import ChatModel

logger = logging.getLogger(__name__)


_FENCE_RE = re.compile(r"```json\n|```")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model wraps around JSON answers."""
    return _FENCE_RE.sub("", text).strip()


def tool_result_message(invocation: ToolInvocation, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "role": "tool",
        "tool_call_id": invocation.id,
        "name": invocation.name,
        "content": json.dumps(body),
    }


class AgentFiService:
    """Runs the chat tool-calling loop: model, tool relay, model, ... until text."""

    def __init__(
        self,
        model: ChatModel,
        relay: ToolRelayClient,
        system_prompt: str,
        max_iterations: int = 25,
        max_sessions: int = 1000,
        session_ttl_seconds: int = 86400,
    ) -> None:
        self._model = model
        self._relay = relay
        self._system_prompt = system_prompt
        self._max_iterations = max_iterations
        self.sessions = SessionRegistry(
            factory=self._new_session,
            max_entries=max_sessions,
            ttl_seconds=session_ttl_seconds,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, model: ChatModel, relay: ToolRelayClient
    ) -> "AgentFiService":
        return cls(
            model=model,
            relay=relay,
            system_prompt=settings.agent_system_prompt,
            max_iterations=settings.max_iterations,
            max_sessions=settings.session_max_entries,
            session_ttl_seconds=settings.session_ttl_seconds,
        )

    def _new_session(self, session_id: str) -> SessionState:
        return SessionState(
            session_id=session_id,
            messages=[{"role": "system", "content": self._system_prompt}],
        )

    def get_session(self, session_id: str) -> SessionState:
        """Return or create the SessionState for the given session_id."""
        return self.sessions.get_or_create(session_id)

    async def run_chat(self, session_id: str, user_message: str) -> str:
        """Answer one user message, relaying every tool call the model makes.

        The turn's messages are committed to the session only once the model
        has produced its final answer, so a failed turn leaves the history as
        it was.

        Args:
            session_id: Session identifier, also sent to the tool service.
            user_message: User query text.

        Returns:
            str: Final model text with code fences removed.
        """
        session = self.get_session(session_id)
        turn_messages: List[Dict[str, Any]] = [{"role": "user", "content": user_message}]
        tool_calls_made = 0

        reply: ModelTurn = await self._model.complete(session.messages + turn_messages)

        iterations = 0
        while reply.wants_tools:
            iterations += 1
            if iterations > self._max_iterations:
                raise AgentLoopError(
                    f"model still requesting tools after {self._max_iterations} rounds"
                )

            logger.info(
                "Session %s: model wants to call %d tool(s): %s",
                session_id,
                len(reply.tool_calls),
                ", ".join(tc.name for tc in reply.tool_calls),
            )
            bodies = await self._relay.call_tools(reply.tool_calls, session_id=session_id)
            tool_calls_made += len(bodies)

            turn_messages.append(reply.to_assistant_message())
            turn_messages.extend(
                tool_result_message(tc, body) for tc, body in zip(reply.tool_calls, bodies)
            )
            reply = await self._model.complete(session.messages + turn_messages)

        turn_messages.append({"role": "assistant", "content": reply.text})
        session.messages.extend(turn_messages)
        session.tool_calls_count += tool_calls_made

        return strip_code_fences(reply.text)
