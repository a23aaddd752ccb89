"""Application settings via pydantic-settings."""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JOINLY_URL = "http://localhost:8000/mcp/"


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    meeting_url: str = Field(description="URL of the meeting the agent joins.")
    openai_api_key: str = Field(description="Credential for the model endpoint.")
    agent_name: str = Field(
        default="AI Assistant",
        description="Display name used when joining and in the system prompt.",
    )
    joinly_url: str = Field(
        default=DEFAULT_JOINLY_URL,
        description="Streamable HTTP URL of the meeting MCP server.",
    )
    transcript_uri: str = Field(
        default="transcript://live",
        description="Resource URI of the live transcript.",
    )
    language: str = Field(default="en", validation_alias="AGENT_LANGUAGE")
    llm_model: str = Field(default="gpt-4.1-mini")
    temperature: float = Field(default=0.7, validation_alias="LLM_TEMPERATURE")
    max_steps: int = Field(
        default=10,
        ge=1,
        description="Maximum model round-trips per model cycle.",
    )
    history_size: int = Field(
        default=14,
        ge=1,
        description="Turns kept after the system prompt when truncating.",
    )
    poll_interval: float = Field(default=1.0, gt=0)
    debounce_delay: float = Field(default=1.0, ge=0)
    schedule_policy: Literal["debounce", "immediate"] = "debounce"
    cursor_mode: Literal["time", "count"] = "time"
    join_delay: float = Field(
        default=0.0,
        ge=0,
        description="Seconds to wait after joining before the first poll.",
    )
    extra_tool_servers: list[str] = Field(
        default_factory=list,
        description="Additional MCP server URLs whose tools are offered to the model.",
    )
    log_level: str = Field(default="info", description="Logging level")

    @field_validator("meeting_url", "openai_api_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()
