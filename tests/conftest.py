"""Shared fixtures for tests."""

import asyncio
import json
from typing import Any

import pytest
from fastmcp import FastMCP

from meeting_agent.config import Config
from meeting_agent.types import ModelReply, ToolRequest

# A transcript as served by the meeting server's live resource: segments
# ordered by end time, speaker may be null.
SAMPLE_SEGMENTS: list[dict] = [
    {"text": "Good morning everyone.", "start": 0.0, "end": 1.5, "speaker": "Alice"},
    {"text": "Morning!", "start": 1.6, "end": 2.1, "speaker": "Bob"},
    {"text": "   ", "start": 2.2, "end": 2.4, "speaker": "Bob"},
    {"text": "Is the bot here?", "start": 2.5, "end": 3.9, "speaker": None},
]


class FakeMeeting:
    """In-memory stand-in for the meeting MCP server."""

    def __init__(self) -> None:
        self.segments: list[dict] = []
        self.payload: str | None = None
        self.join_latency = 0.0
        self.spoken: list[str] = []
        self.calls: list[tuple[str, dict]] = []
        self.server = self._build()

    def say(self, speaker: str | None, text: str) -> None:
        start = self.segments[-1]["end"] + 0.1 if self.segments else 0.0
        self.segments.append(
            {"text": text, "start": start, "end": start + 1.0, "speaker": speaker}
        )

    def tool_names_called(self) -> list[str]:
        return [name for name, _args in self.calls]

    def _build(self) -> FastMCP:
        server = FastMCP("fake-meeting")

        @server.tool()
        async def join_meeting(meeting_url: str, participant_name: str) -> str:
            """Join a meeting."""
            if self.join_latency:
                await asyncio.sleep(self.join_latency)
            self.calls.append(
                (
                    "join_meeting",
                    {"meeting_url": meeting_url, "participant_name": participant_name},
                )
            )
            return f"Joined {meeting_url}"

        @server.tool()
        def speak_text(text: str) -> str:
            """Speak text into the meeting."""
            self.calls.append(("speak_text", {"text": text}))
            self.spoken.append(text)
            return "Finished speaking"

        @server.tool()
        def leave_meeting() -> str:
            """Leave the meeting."""
            self.calls.append(("leave_meeting", {}))
            return "Left the meeting"

        @server.tool()
        def get_time() -> str:
            """Current time."""
            self.calls.append(("get_time", {}))
            return "12:00"

        @server.tool()
        def explode() -> str:
            """Always fails."""
            self.calls.append(("explode", {}))
            raise ValueError("kaboom")

        @server.resource("transcript://live", mime_type="application/json")
        def live_transcript() -> str:
            if self.payload is not None:
                return self.payload
            return json.dumps({"segments": self.segments})

        return server


class ScriptedModel:
    """Model endpoint that replays prepared replies in order."""

    def __init__(self, replies: list[ModelReply | Exception]) -> None:
        self.replies = list(replies)
        self.requests: list[list[dict[str, Any]]] = []

    async def complete(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelReply:
        self.requests.append(messages)
        if not self.replies:
            return ModelReply(text="")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingGateway:
    """Tool gateway that records calls and answers from a table."""

    def __init__(self, results: dict[str, str | Exception] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, dict]] = []

    @property
    def catalog(self) -> list[dict[str, Any]]:
        return [
            {"type": "function", "function": {"name": name, "parameters": {}}}
            for name in ["speak_text", *self.results]
        ]

    @property
    def spoken(self) -> list[str]:
        return [args["text"] for name, args in self.calls if name == "speak_text"]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        self.calls.append((name, arguments))
        result = self.results.get(name, "ok")
        if isinstance(result, Exception):
            raise result
        return result


def tool_reply(*names: str, text: str = "", prefix: str = "t") -> ModelReply:
    return ModelReply(
        text=text,
        tool_requests=[
            ToolRequest(id=f"{prefix}{i}", name=name, arguments={})
            for i, name in enumerate(names, start=1)
        ],
    )


@pytest.fixture
def sample_payload() -> str:
    return json.dumps({"segments": SAMPLE_SEGMENTS})


@pytest.fixture
def meeting() -> FakeMeeting:
    return FakeMeeting()


@pytest.fixture
def scripted_model():
    return ScriptedModel


@pytest.fixture
def recording_gateway():
    return RecordingGateway


@pytest.fixture
def reply_with_tools():
    return tool_reply


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        meeting_url="https://meet.example.com/abc-defg-hij",
        openai_api_key="sk-test",
        agent_name="Nova",
        poll_interval=0.01,
        debounce_delay=0.05,
        history_size=14,
    )


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 3.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.01)

    return _wait
