"""LLM client contract consumed by the page extractor."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from .models import LLMUsage


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ToolDefinition(BaseModel):
    name: str
    description: str
    input_schema: Dict[str, Any]


class ToolCallResult(BaseModel):
    tool_name: str
    input: Any
    usage: LLMUsage = Field(default_factory=LLMUsage)


class LLMClient(Protocol):
    """Anything able to answer a conversation with a single tool call."""

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
        """Return the tool the model called and its raw input."""
