"""OpenAI chat-completions model endpoint."""

import json
import logging
from typing import Any

from openai import AsyncOpenAI, BadRequestError

from .config import Config
from .driver import InvalidSequenceError
from .types import ModelReply, ToolRequest

LOG = logging.getLogger("meeting_agent.llm")

# Fragment of the provider error for tool messages without a matching call.
_INVALID_SEQUENCE_MARKER = "messages with role 'tool'"


def _decode_arguments(raw: str | None) -> dict[str, Any] | str:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    return decoded if isinstance(decoded, dict) else raw


def reply_from_message(message: Any) -> ModelReply:
    """Build a ModelReply from a chat completion message."""
    requests = [
        ToolRequest(
            id=call.id,
            name=call.function.name,
            arguments=_decode_arguments(call.function.arguments),
        )
        for call in (message.tool_calls or [])
    ]
    return ModelReply(text=message.content or "", tool_requests=requests)


class OpenAIModel:
    """Chat-completions endpoint with automatic tool choice."""

    def __init__(
        self, client: AsyncOpenAI, *, model: str, temperature: float = 0.7
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_config(cls, config: Config) -> "OpenAIModel":
        return cls(
            AsyncOpenAI(api_key=config.openai_api_key),
            model=config.llm_model,
            temperature=config.temperature,
        )

    async def complete(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelReply:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        try:
            resp = await self.client.chat.completions.create(**kwargs)
        except BadRequestError as e:
            if _INVALID_SEQUENCE_MARKER in str(e):
                raise InvalidSequenceError(str(e)) from e
            raise
        if not resp.choices:
            raise RuntimeError("LLM returned no choices")
        return reply_from_message(resp.choices[0].message)
