"""Data models for transcripts and the model-facing conversation."""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_SPEAKER = "Unknown"


class Segment(BaseModel):
    """One utterance from the live transcript."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: float
    end: float
    speaker: str | None = None

    def format_line(self) -> str:
        return f"{self.speaker or UNKNOWN_SPEAKER}: {self.text}"


class Transcript(BaseModel):
    """Payload of the live transcript resource."""

    segments: list[Segment] = []


class ToolRequest(BaseModel):
    """A single tool invocation requested by the model.

    ``arguments`` holds the decoded JSON object. When the model sends
    something that does not decode to an object, the raw string is kept
    so the request can still be replayed to the model verbatim.
    """

    id: str
    name: str
    arguments: dict[str, Any] | str = {}

    def encoded_arguments(self) -> str:
        if isinstance(self.arguments, str):
            return self.arguments
        return json.dumps(self.arguments)


class SystemTurn(BaseModel):
    role: Literal["system"] = "system"
    content: str

    def to_message(self) -> dict[str, Any]:
        return {"role": "system", "content": self.content}


class UserTurn(BaseModel):
    role: Literal["user"] = "user"
    content: str

    def to_message(self) -> dict[str, Any]:
        return {"role": "user", "content": self.content}


class AssistantTurn(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_requests: list[ToolRequest] = []

    @property
    def request_ids(self) -> list[str]:
        return [req.id for req in self.tool_requests]

    def to_message(self) -> dict[str, Any]:
        # content may only be null when tool_calls is present
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_requests:
            message["content"] = self.content or None
            message["tool_calls"] = [
                {
                    "id": req.id,
                    "type": "function",
                    "function": {
                        "name": req.name,
                        "arguments": req.encoded_arguments(),
                    },
                }
                for req in self.tool_requests
            ]
        return message


class ToolResultTurn(BaseModel):
    role: Literal["tool"] = "tool"
    request_id: str
    content: str

    def to_message(self) -> dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": self.request_id,
            "content": self.content,
        }


Turn = Annotated[
    Union[SystemTurn, UserTurn, AssistantTurn, ToolResultTurn],
    Field(discriminator="role"),
]


class ModelReply(BaseModel):
    """What the model endpoint produced for one round-trip."""

    text: str = ""
    tool_requests: list[ToolRequest] = []
