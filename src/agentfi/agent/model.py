import json
import logging
from typing import Any, Dict, List

from openai import AsyncOpenAI, OpenAIError

from ..errors import ModelError
from ..models import ModelTurn, ToolInvocation
from ..settings import Settings
from .tools import get_tool_schemas

logger = logging.getLogger(__name__)


class ChatModel:
    """Chat-completions adapter returning either final text or tool requests."""

    def __init__(
        self,
        model: str,
        api_key: str | None,
        base_url: str | None,
        temperature: float | None = None,
        tools: List[Dict[str, Any]] | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._temperature = temperature
        self._tools = tools if tools is not None else get_tool_schemas()
        self._client: AsyncOpenAI | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatModel":
        return cls(
            model=settings.model,
            api_key=settings.gemini_api_key,
            base_url=settings.model_base_url,
            temperature=settings.temperature,
        )

    def _get_client(self) -> AsyncOpenAI:
        # Built lazily so the app can start without a credential configured.
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def complete(self, messages: List[Dict[str, Any]]) -> ModelTurn:
        """Send the conversation so far and return the model's next turn.

        Args:
            messages: Full message list, system instruction first.

        Returns:
            ModelTurn: text when the model is done, tool_calls otherwise.
        """
        kwargs: Dict[str, Any] = {"model": self._model, "messages": messages}
        if self._tools:
            kwargs["tools"] = self._tools
            kwargs["tool_choice"] = "auto"
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature

        try:
            response = await self._get_client().chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error("Model request failed: %s", e)
            raise ModelError(f"model request failed: {e}") from e

        if not response.choices:
            raise ModelError("model response has no choices")
        message = response.choices[0].message

        tool_calls: List[ToolInvocation] = []
        for index, tc in enumerate(message.tool_calls or []):
            function = getattr(tc, "function", None)
            if function is None or not function.name:
                raise ModelError(f"tool call #{index} has no function name")
            try:
                arguments = json.loads(function.arguments) if function.arguments else {}
            except json.JSONDecodeError as e:
                raise ModelError(f"invalid arguments for tool {function.name}: {e}") from e
            if not isinstance(arguments, dict):
                raise ModelError(f"arguments for tool {function.name} are not an object")
            tool_calls.append(
                ToolInvocation(
                    name=function.name,
                    arguments=arguments,
                    id=tc.id or f"call_{index}",
                )
            )

        return ModelTurn(text=message.content or "", tool_calls=tool_calls)
