"""Environment-driven application settings."""

import os
from dataclasses import dataclass, field
from enum import StrEnum

from browser_agent.clients.anthropic import AnthropicConfig
from browser_agent.utils.logging import LogConfig


class AgentMode(StrEnum):
    SINGLE = "single"
    ORCHESTRATOR = "orchestrator"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application settings."""

    anthropic_api_key: str | None = None
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    mode: AgentMode = AgentMode.ORCHESTRATOR
    stream: bool = True
    log_dir: str = "log"
    log: LogConfig = field(default_factory=LogConfig)


def load_settings() -> Settings:
    """Build settings from environment variables.

    Raises:
        ValueError: If ``AGENT_MODE`` is not a known mode
    """
    anthropic = AnthropicConfig()
    if model := os.getenv("ANTHROPIC_MODEL"):
        anthropic.model = model

    mode_value = os.getenv("AGENT_MODE", AgentMode.ORCHESTRATOR)
    try:
        mode = AgentMode(mode_value.lower())
    except ValueError as e:
        raise ValueError(f"Invalid AGENT_MODE '{mode_value}', expected one of: single, orchestrator") from e

    return Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        anthropic=anthropic,
        mode=mode,
        stream=_env_bool("AGENT_STREAM", True),
        log_dir=os.getenv("AGENT_LOG_DIR", "log"),
        log=LogConfig(level=os.getenv("LOG_LEVEL", "INFO")),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or load settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
