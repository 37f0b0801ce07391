"""``LLMClient`` implementation on top of pydantic-ai agents."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

from pydantic_ai import Agent, StructuredDict, ToolOutput
from pydantic_ai.models import Model
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    ToolCallPart,
    UserPromptPart,
)
from pydantic_ai.settings import ModelSettings

from .llm import ChatMessage, ToolCallResult, ToolDefinition
from .models import DEFAULT_MODEL, LLMUsage

logger = logging.getLogger(__name__)


def _history(messages: Sequence[ChatMessage]) -> List[ModelMessage]:
    history: List[ModelMessage] = []
    for message in messages:
        if message.role == "user":
            history.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))
        else:
            history.append(ModelResponse(parts=[TextPart(content=message.content)]))
    return history


class PydanticAIClient:
    """Runs each call through a pydantic-ai ``Agent``.

    Every tool's JSON schema becomes a ``StructuredDict`` tool output, so
    the model has to answer by calling one of the tools.
    """

    def __init__(
        self,
        default_model: Union[str, Model] = DEFAULT_MODEL,
        api_key: Optional[str] = None,
    ):
        self.default_model = default_model
        self.api_key = api_key

    def _model(self, name: Union[str, Model]) -> Any:
        if isinstance(name, Model):
            return name
        if ":" in name:
            return name
        if self.api_key:
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            return AnthropicModel(name, provider=AnthropicProvider(api_key=self.api_key))
        return f"anthropic:{name}"

    async def chat_with_tools(
        self,
        system: str,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0,
        tool_choice: Optional[str] = None,
    ) -> ToolCallResult:
        if not messages or messages[-1].role != "user":
            raise ValueError("chat_with_tools requires a trailing user message")

        offered = [t for t in tools if tool_choice is None or t.name == tool_choice]
        if not offered:
            raise ValueError(f"Unknown tool choice: {tool_choice}")

        outputs = [
            ToolOutput(
                StructuredDict(t.input_schema, name=t.name, description=t.description),
                name=t.name,
                description=t.description,
            )
            for t in offered
        ]
        agent = Agent(
            self._model(model or self.default_model),
            output_type=outputs,
            system_prompt=system,
        )

        result = await agent.run(
            messages[-1].content,
            message_history=_history(messages[:-1]) or None,
            model_settings=ModelSettings(max_tokens=max_tokens, temperature=temperature),
        )

        tool_name = offered[0].name
        for message in reversed(result.new_messages()):
            calls = [p for p in message.parts if isinstance(p, ToolCallPart)]
            if calls:
                tool_name = calls[-1].tool_name
                break

        usage = result.usage()
        logger.debug(
            f"LLM tool call {tool_name}: {usage.input_tokens} in / {usage.output_tokens} out"
        )
        return ToolCallResult(
            tool_name=tool_name,
            input=result.output,
            usage=LLMUsage(input_tokens=usage.input_tokens, output_tokens=usage.output_tokens),
        )
