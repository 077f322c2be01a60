"""
Ollama oracle implementation.

Connects to Ollama instances via the OpenAI-compatible API.
"""

from dataclasses import dataclass
from typing import Any

from taskpilot.infrastructure.llm.openai_api import OpenAIOracle

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"


@dataclass
class OllamaOracleConfig:
    """Configuration for OllamaOracle.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = "qwen2.5-coder:7b"
    base_url: str = DEFAULT_OLLAMA_URL
    timeout: float = 120.0
    temperature: float = 0.7
    max_tokens: int = 4096


class OllamaOracle(OpenAIOracle):
    """Connects to Ollama instance using OpenAI-compatible API."""

    config_class = OllamaOracleConfig  # type: ignore[assignment]

    def __init__(self, config: OllamaOracleConfig | None = None, **kwargs: Any):
        """
        Args:
            config: Typed configuration object (preferred)
            **kwargs: Legacy kwargs for backward compatibility (deprecated)
        """
        # Support both config object and legacy kwargs
        if config is None:
            config = OllamaOracleConfig(**kwargs)

        self._init_client(
            config.model,
            config.timeout,
            config.temperature,
            config.max_tokens,
            base_url=config.base_url or DEFAULT_OLLAMA_URL,
            api_key="ollama",  # required but unused
        )
