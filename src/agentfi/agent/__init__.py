"""Agent package for the AgentFi chat backend.

Exposes the tool-calling loop service and the model adapter it drives; the
tool catalogue lives in `tools`.
"""

from .agent import AgentFiService, strip_code_fences
from .model import ChatModel

__all__ = [
    "AgentFiService",
    "ChatModel",
    "strip_code_fences",
]
