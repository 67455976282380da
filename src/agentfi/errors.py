"""Error types raised by the AgentFi backend.

Everything raised on purpose derives from AgentFiError so the HTTP layer can
turn it into a generic 500 while the detail goes to the server log.
"""

from typing import List, Sequence, Tuple

from .models import ToolInvocation


class AgentFiError(Exception):
    """Base class for upstream and internal failures."""


class ToolRelayError(AgentFiError):
    """A single call to the remote tool service failed."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class ToolBatchError(AgentFiError):
    """One or more calls of a concurrent tool batch failed."""

    def __init__(self, failures: Sequence[Tuple[ToolInvocation, BaseException]]) -> None:
        self.failures = list(failures)
        details = "; ".join(f"{inv.name} ({exc})" for inv, exc in self.failures)
        super().__init__(f"{len(failures)} tool call(s) failed: {details}")

    @property
    def failed_tools(self) -> List[str]:
        return [inv.name for inv, _ in self.failures]


class ToolResultError(AgentFiError):
    """A tool response did not carry a JSON document in result.content[0].text."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class ModelError(AgentFiError):
    """The model API failed or returned something unusable."""


class AgentLoopError(AgentFiError):
    """The model kept requesting tools past the configured iteration limit."""


class DashboardDataError(AgentFiError):
    """A dashboard tool payload did not match the expected structure."""

    def __init__(self, tool_name: str, problems: List[str]) -> None:
        super().__init__(f"{tool_name}: " + "; ".join(problems))
        self.tool_name = tool_name
        self.problems = problems
