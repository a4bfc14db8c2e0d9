"""
Configuration management for react_orchestrator.

Loads configuration from environment variables with sensible defaults
for local development. When ``CONFIG_PATH`` points at a YAML file, its
values are layered on top (see ``config_loader``).
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class LLMConfig:
    """Configuration for the reasoning model endpoint."""
    base_url: str = field(default_factory=lambda: os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"))
    api_key: str = field(default_factory=lambda: os.getenv("LLM_API_KEY", os.getenv("OPENAI_API_KEY", "")))
    model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))
    temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.7")))
    max_tokens: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "2000")))
    timeout: float = field(default_factory=lambda: float(os.getenv("LLM_TIMEOUT", "120")))


@dataclass
class AgentDefaults:
    """Defaults for each reasoning run (overridable per request)."""
    max_iterations: int = field(default_factory=lambda: int(os.getenv("MAX_ITERATIONS", "10")))
    language: str = field(default_factory=lambda: os.getenv("AGENT_LANGUAGE", "auto"))
    pause_after_each_step: bool = field(default_factory=lambda: _env_bool("PAUSE_AFTER_EACH_STEP"))
    stream_output: bool = field(default_factory=lambda: _env_bool("STREAM_OUTPUT", "true"))
    announce_start: bool = field(default_factory=lambda: _env_bool("ANNOUNCE_START"))
    history_window: int = field(default_factory=lambda: int(os.getenv("HISTORY_WINDOW", "6")))
    observation_preview_chars: int = field(
        default_factory=lambda: int(os.getenv("OBSERVATION_PREVIEW_CHARS", "500"))
    )
    event_history_size: int = field(default_factory=lambda: int(os.getenv("EVENT_HISTORY_SIZE", "100")))
    max_conversations_per_session: int = field(
        default_factory=lambda: int(os.getenv("MAX_CONVERSATIONS_PER_SESSION", "20"))
    )
    max_events_per_conversation: int = field(
        default_factory=lambda: int(os.getenv("MAX_EVENTS_PER_CONVERSATION", "1000"))
    )
    max_history_sessions: int = field(default_factory=lambda: int(os.getenv("MAX_HISTORY_SESSIONS", "1000")))


@dataclass
class ToolConfig:
    """Configuration for tool endpoints."""
    searxng_endpoint: str = field(
        default_factory=lambda: os.getenv("SEARXNG_ENDPOINT", "http://localhost:8080/search")
    )
    searxng_timeout: int = field(default_factory=lambda: int(os.getenv("SEARXNG_TIMEOUT", "30")))
    rag_endpoint: str = field(default_factory=lambda: os.getenv("RAG_ENDPOINT", "http://localhost:3000/query"))
    rag_timeout: int = field(default_factory=lambda: int(os.getenv("RAG_TIMEOUT", "30")))


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = field(default_factory=lambda: os.getenv("SERVER_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("SERVER_PORT", "3333")))
    reload: bool = field(default_factory=lambda: _env_bool("SERVER_RELOAD"))


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = field(default_factory=lambda: os.getenv("LANGFUSE_PUBLIC_KEY", ""))
    secret_key: str = field(default_factory=lambda: os.getenv("LANGFUSE_SECRET_KEY", ""))
    host: str = field(default_factory=lambda: os.getenv("LANGFUSE_HOST", ""))
    debug: bool = field(default_factory=lambda: _env_bool("LANGFUSE_DEBUG"))

    @property
    def enabled(self) -> bool:
        """Auto-enable when both keys are configured."""
        return bool(self.public_key and self.secret_key)


@dataclass
class Config:
    """Main configuration container."""
    llm: LLMConfig = field(default_factory=LLMConfig)
    agent: AgentDefaults = field(default_factory=AgentDefaults)
    tools: ToolConfig = field(default_factory=ToolConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def get_config() -> Config:
    """Get the application configuration.

    Environment variables provide the base; a YAML file named by
    ``CONFIG_PATH`` overrides individual values.
    """
    from .config_loader import apply_config_file

    base = Config()
    path = os.getenv("CONFIG_PATH", "")
    if path:
        return apply_config_file(base, path)
    return base


# Global config instance
config = get_config()
