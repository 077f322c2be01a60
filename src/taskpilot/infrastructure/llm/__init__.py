"""
LLM adapters implementing the oracle port.
"""

from taskpilot.infrastructure.llm.huggingface import (
    HuggingFaceOracle,
    HuggingFaceOracleConfig,
)
from taskpilot.infrastructure.llm.mock import MockOracle
from taskpilot.infrastructure.llm.ollama import OllamaOracle, OllamaOracleConfig
from taskpilot.infrastructure.llm.openai_api import OpenAIOracle, OpenAIOracleConfig

__all__ = [
    "HuggingFaceOracle",
    "HuggingFaceOracleConfig",
    "MockOracle",
    "OllamaOracle",
    "OllamaOracleConfig",
    "OpenAIOracle",
    "OpenAIOracleConfig",
]
