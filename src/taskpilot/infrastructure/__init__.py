"""
Infrastructure layer for taskpilot.

Contains adapters for external concerns (LLM providers, tools, registry,
environment configuration).
"""

from taskpilot.infrastructure.config import OracleSettings, create_oracle
from taskpilot.infrastructure.llm import (
    HuggingFaceOracle,
    MockOracle,
    OllamaOracle,
    OpenAIOracle,
)
from taskpilot.infrastructure.registry import OracleRegistry
from taskpilot.infrastructure.tools import InMemoryToolRegistry

__all__ = [
    # LLM
    "OpenAIOracle",
    "OllamaOracle",
    "HuggingFaceOracle",
    "MockOracle",
    # Registry and configuration
    "OracleRegistry",
    "OracleSettings",
    "create_oracle",
    # Tools
    "InMemoryToolRegistry",
]
