"""MCP tool gateway: tool catalog, tool calls and the transcript resource."""

import json
import logging
from contextlib import AsyncExitStack
from typing import Any

from fastmcp import Client
from fastmcp.client.transports import StreamableHttpTransport

from .config import Config

LOG = logging.getLogger("meeting_agent.gateway")

NO_CONTENT_RESULT = "Tool executed successfully"


def to_function_tool(tool: Any) -> dict[str, Any]:
    """Convert an MCP tool description to an OpenAI function tool."""
    schema = getattr(tool, "input_schema", None) or getattr(tool, "inputSchema", None)
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or "",
            "parameters": schema or {"type": "object"},
        },
    }


def stringify_result(result: Any) -> str:
    blocks = [
        block.model_dump(mode="json", exclude_none=True)
        for block in (getattr(result, "content", None) or [])
    ]
    return json.dumps(blocks or NO_CONTENT_RESULT)


class McpToolGateway:
    """Routes tool calls to the MCP servers that advertised them.

    The first client is the meeting server; it also serves the transcript
    resource and wins when two servers advertise the same tool name.
    """

    def __init__(self, primary: Client, extra: list[Client] | None = None) -> None:
        self.primary = primary
        self.clients = [primary, *(extra or [])]
        self._routes: dict[str, Client] = {}
        self._catalog: list[dict[str, Any]] = []
        self._stack: AsyncExitStack | None = None

    @classmethod
    def from_config(cls, config: Config) -> "McpToolGateway":
        settings = json.dumps({"name": config.agent_name, "language": config.language})
        primary = Client(
            StreamableHttpTransport(
                config.joinly_url, headers={"joinly-settings": settings}
            )
        )
        extra = [Client(url) for url in config.extra_tool_servers]
        return cls(primary, extra)

    @property
    def catalog(self) -> list[dict[str, Any]]:
        return list(self._catalog)

    @property
    def tool_names(self) -> list[str]:
        return [tool["function"]["name"] for tool in self._catalog]

    async def connect(self) -> None:
        """Open every client and discover the (static) tool catalog."""
        stack = AsyncExitStack()
        try:
            for client in self.clients:
                await stack.enter_async_context(client)
            self._stack = stack
        except BaseException:
            await stack.aclose()
            raise
        LOG.info("Connected to %d MCP server(s)", len(self.clients))

        for client in self.clients:
            for tool in await client.list_tools():
                if tool.name in self._routes:
                    LOG.warning("Ignoring duplicate tool %s", tool.name)
                    continue
                self._routes[tool.name] = client
                self._catalog.append(to_function_tool(tool))
        LOG.info("Available tools: %s", ", ".join(self.tool_names))

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        client = self._routes.get(name)
        if client is None:
            raise KeyError(f"Unknown tool: {name}")
        result = await client.call_tool(name, arguments)
        return stringify_result(result)

    async def read_text_resource(self, uri: str) -> str | None:
        contents = await self.primary.read_resource(uri)
        if not contents:
            return None
        text = getattr(contents[0], "text", None)
        return text if isinstance(text, str) else None

    async def close(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            await stack.aclose()
            LOG.info("Disconnected from MCP server(s)")
