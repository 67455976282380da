import json
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SessionState:
    """Per-session conversation state (model message history, tool call count)."""

    session_id: str
    messages: List[Dict[str, Any]] = field(default_factory=list)
    tool_calls_count: int = 0


@dataclass
class ToolInvocation:
    """A tool the model asked for, or one the dashboard requests directly."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: str = ""

    def to_message_entry(self) -> Dict[str, Any]:
        """Render as an entry of an assistant message's `tool_calls` list."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": json.dumps(self.arguments),
            },
        }


@dataclass
class ModelTurn:
    """One model response: final text, or the tools it wants called first."""

    text: str = ""
    tool_calls: List[ToolInvocation] = field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    def to_assistant_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": self.text or None}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_message_entry() for tc in self.tool_calls]
        return message
