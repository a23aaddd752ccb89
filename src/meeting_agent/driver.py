"""Bounded tool-calling loop for one model cycle.

One cycle submits the conversation to the model, executes whatever tools
the reply asks for, feeds the results back and asks again, until the
model answers without tool requests or the step budget runs out::

    AwaitingModel -> Final                      (no tool requests)
    AwaitingModel -> ExecutingTools -> AwaitingModel
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .conversation import ConversationStore
from .types import AssistantTurn, ModelReply, ToolRequest, ToolResultTurn

LOG = logging.getLogger("meeting_agent.driver")

SPEAK_TOOL = "speak_text"
TOOL_FAILED = "Tool execution failed"


class InvalidSequenceError(Exception):
    """The model endpoint rejected the role sequence of the submitted log."""


class ModelEndpoint(Protocol):
    async def complete(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelReply: ...


class ToolGateway(Protocol):
    @property
    def catalog(self) -> list[dict[str, Any]]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str: ...


class CycleStatus(str, Enum):
    FINAL = "final"
    TRUNCATED = "truncated"


@dataclass
class CycleResult:
    """Outcome of one model cycle."""

    status: CycleStatus
    text: str
    steps: int
    notice: str | None = None


def error_payload(detail: str | None = None) -> str:
    payload = {"error": TOOL_FAILED}
    if detail:
        payload["detail"] = detail
    return json.dumps(payload)


class ToolCallDriver:
    def __init__(
        self,
        store: ConversationStore,
        model: ModelEndpoint,
        gateway: ToolGateway,
        *,
        max_steps: int = 10,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.store = store
        self.model = model
        self.gateway = gateway
        self.max_steps = max_steps

    async def run_cycle(self) -> CycleResult:
        """Drive the model until it produces speech or the budget is spent.

        Transport and model errors propagate to the caller; tool failures
        never do, they are recorded as tool results instead.
        """
        last_text = ""
        for step in range(1, self.max_steps + 1):
            reply = await self.model.complete(
                self.store.prepare(), self.gateway.catalog
            )
            if reply.text.strip():
                last_text = reply.text

            if not reply.tool_requests:
                self.store.append(AssistantTurn(content=reply.text))
                LOG.info("Assistant: %s", reply.text)
                await self.speak(reply.text)
                return CycleResult(CycleStatus.FINAL, reply.text, step)

            self.store.append(
                AssistantTurn(content=reply.text, tool_requests=reply.tool_requests)
            )
            for request in reply.tool_requests:
                content = await self.execute(request)
                self.store.append(
                    ToolResultTurn(request_id=request.id, content=content)
                )

        notice = f"Stopped after {self.max_steps} model steps with tool calls pending"
        LOG.warning(notice)
        await self.speak(last_text)
        return CycleResult(CycleStatus.TRUNCATED, last_text, self.max_steps, notice)

    async def execute(self, request: ToolRequest) -> str:
        """Run one tool request, always returning result content."""
        LOG.info("Executing: %s", request.name)
        if not isinstance(request.arguments, dict):
            LOG.error(
                "Invalid arguments for tool %s: %r", request.name, request.arguments
            )
            return error_payload("Arguments must be a JSON object")
        try:
            return await self.gateway.call_tool(request.name, request.arguments)
        except Exception as e:
            LOG.error("Error executing tool %s: %s", request.name, e)
            return error_payload(str(e))

    async def speak(self, text: str) -> None:
        if not text.strip():
            return
        await self.gateway.call_tool(SPEAK_TOOL, {"text": text})
