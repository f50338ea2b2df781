"""Configuration for agentshell sub-agent orchestration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_STEPS = 10
DEFAULT_PROVIDER = "default"


class ProviderConfig(BaseModel):
    """Connection settings for a single LLM provider."""
    model: str = "claude-sonnet-4-20250514"
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4096


class AgentShellConfig(BaseModel):
    """Top-level configuration for the orchestrator and its runners."""
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0, description="Deepest level a spawn may create")
    default_max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1, description="Step budget per task")
    default_provider: str = DEFAULT_PROVIDER
    providers: dict[str, ProviderConfig] = Field(
        default_factory=lambda: {DEFAULT_PROVIDER: ProviderConfig()}
    )
    max_concurrent_agents: int = Field(default=8, ge=1, description="Parallel tasks per batch")
    task_timeout_seconds: float | None = Field(default=300.0, gt=0)
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


class Settings(BaseSettings):
    """Environment overrides (AGENTSHELL_* variables or a .env file)."""

    # Provider
    model: str = "claude-sonnet-4-20250514"
    api_key: str | None = None
    api_base: str | None = None

    # Orchestration
    max_depth: int = DEFAULT_MAX_DEPTH
    default_max_steps: int = DEFAULT_MAX_STEPS
    max_concurrent_agents: int = 8
    task_timeout_seconds: float | None = 300.0

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    model_config = {
        "env_prefix": "AGENTSHELL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def to_config(self) -> AgentShellConfig:
        return AgentShellConfig(
            max_depth=self.max_depth,
            default_max_steps=self.default_max_steps,
            default_provider=DEFAULT_PROVIDER,
            providers={
                DEFAULT_PROVIDER: ProviderConfig(
                    model=self.model,
                    api_key=self.api_key,
                    api_base=self.api_base,
                )
            },
            max_concurrent_agents=self.max_concurrent_agents,
            task_timeout_seconds=self.task_timeout_seconds,
            log_level=self.log_level,
            log_format=self.log_format,
        )
