# src/aposbot/config.py
"""Configuration system for the aposbot backend.

This module handles loading settings from environment variables and an INI
file, providing sensible defaults for the Q&A pipeline, the embedding cache,
the Chroma vector store, and the LLM client.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os

from aposbot.constants.vectorstore import DEFAULT_CHROMA_PATH


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "ask": {
        "duplicate_threshold": (
            float,
            0.85,
            -1.0,
            1.0,
            "Similarity at which a question repeats an earlier one",
        ),
        "confidence_threshold": (
            float,
            0.7,
            -1.0,
            1.0,
            "Minimum best document similarity before answering",
        ),
        "retrieval_top_k": (int, 6, 1, 50, "Documents retrieved per question"),
    },
    "embeddings": {
        "model": (str, "text-embedding-3-small", None, None, "Embedding model name"),
        "cache_max_entries": (int, 2048, 1, 1_000_000, "Cached embeddings kept in memory"),
    },
    "vectorstore": {
        "collection_name": (str, "langchain", None, None, "Chroma collection name"),
        "init_attempts": (int, 3, 1, 20, "Connection attempts at startup"),
        "retry_delay_seconds": (float, 2.0, 0.0, 60.0, "Delay between connection attempts"),
        "default_url": (
            str,
            "https://docs.apostrophecms.org/",
            None,
            None,
            "Citation URL for documents without one",
        ),
    },
    "sessions": {
        "max_sessions": (int, 1000, 1, 1_000_000, "Conversation histories kept in memory"),
        "ttl_minutes": (int, 120, 1, 10080, "Idle minutes before a history is dropped"),
    },
    "llm": {
        "max_tokens": (int, 4096, 256, 32768, "Max response tokens"),
        "temperature": (float, 0.0, 0.0, 2.0, "LLM temperature"),
    },
}


@dataclass(frozen=True)
class AskConfig:
    """Q&A pipeline configuration."""

    duplicate_threshold: float
    confidence_threshold: float
    retrieval_top_k: int


@dataclass(frozen=True)
class EmbeddingsConfig:
    """Embedding provider configuration."""

    model: str
    cache_max_entries: int


@dataclass(frozen=True)
class VectorStoreConfig:
    """Chroma vector store configuration."""

    collection_name: str
    init_attempts: int
    retry_delay_seconds: float
    default_url: str


@dataclass(frozen=True)
class SessionsConfig:
    """Conversation history store configuration."""

    max_sessions: int
    ttl_minutes: int


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    temperature: float


_SECTION_TYPES: dict[str, type] = {
    "ask": AskConfig,
    "embeddings": EmbeddingsConfig,
    "vectorstore": VectorStoreConfig,
    "sessions": SessionsConfig,
    "llm": LLMConfig,
}


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _defaults(section: str) -> Any:
    values = {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}
    return _SECTION_TYPES[section](**values)


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Environment-derived fields keep their defaults; load_settings() fills
    them in.

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    sections = {
        name: _SECTION_TYPES[name](**_load_section(parser, name, schema))
        for name, schema in CONFIG_SCHEMA.items()
    }
    return Config(**sections)


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    chroma_path: Path = Path(DEFAULT_CHROMA_PATH)
    active_provider: str = "openai"
    active_model: str = "gpt-4o"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"
    llm_log_path: Optional[Path] = None
    log_to_slack: bool = False
    slack_hook: Optional[str] = None

    # Section configs, defaults filled in __post_init__
    ask: AskConfig = None  # type: ignore[assignment]
    embeddings: EmbeddingsConfig = None  # type: ignore[assignment]
    vectorstore: VectorStoreConfig = None  # type: ignore[assignment]
    sessions: SessionsConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        for section in _SECTION_TYPES:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _defaults(section))

    @property
    def llm_provider(self) -> str:
        """LLM provider name."""
        return self.active_provider

    @property
    def llm_model(self) -> str:
        """LLM model name."""
        return self.active_model

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the active LLM provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }
        return provider_keys.get(self.active_provider)

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Endpoint for LLM provider (mainly for Ollama)."""
        if self.active_provider == "ollama":
            return self.ollama_endpoint
        return None


PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20240620",
    "ollama": "llama3",
}


def _resolve_provider() -> tuple[str, str]:
    """Pick the chat provider and model from the environment.

    ACTIVE_PROVIDER/ACTIVE_MODEL win. Otherwise the legacy CHAT_MODEL switch
    applies: "ChatOpenAI" (the default) selects OpenAI, anything else
    selects Anthropic.

    Returns:
        Tuple of (provider, model).
    """
    active_provider = os.getenv("ACTIVE_PROVIDER")
    active_model = os.getenv("ACTIVE_MODEL")

    if not active_provider:
        chat_model = os.getenv("CHAT_MODEL", "ChatOpenAI")
        active_provider = "openai" if chat_model == "ChatOpenAI" else "anthropic"

    if not active_model:
        active_model = PROVIDER_DEFAULT_MODELS.get(active_provider, "gpt-4o")

    return active_provider, active_model


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If the config file holds invalid values.
    """
    config_path_str = os.getenv("APOSBOT_CONFIG")
    config_file = Path(config_path_str) if config_path_str else Path("config.ini")
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    active_provider, active_model = _resolve_provider()

    llm_log_path_str = os.getenv("LLM_LOG_PATH")

    return Config(
        chroma_path=Path(os.getenv("CHROMA_PATH", DEFAULT_CHROMA_PATH)),
        active_provider=active_provider,
        active_model=active_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        llm_log_path=Path(llm_log_path_str) if llm_log_path_str else None,
        log_to_slack=os.getenv("LOG_TO_SLACK", "").lower() == "true",
        slack_hook=os.getenv("SLACK_HOOK") or None,
        ask=base_config.ask,
        embeddings=base_config.embeddings,
        vectorstore=base_config.vectorstore,
        sessions=base_config.sessions,
        llm=base_config.llm,
    )


# Alias used by the API dependency layer
Settings = Config
