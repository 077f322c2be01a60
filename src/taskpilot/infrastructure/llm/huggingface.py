"""
HuggingFace Inference API oracle implementation.

Connects to HuggingFace Inference Providers via the huggingface_hub
InferenceClient for chat completion.
"""

import importlib
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, cast

from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.exceptions import ConfigurationError, TransportError
from taskpilot.domain.interfaces import OracleInterface
from taskpilot.domain.models import OracleResponse, TokenUsage
from taskpilot.infrastructure.llm.openai_api import validate_generation_settings

logger = logging.getLogger(__name__)


@dataclass
class HuggingFaceOracleConfig:
    """Configuration for HuggingFaceOracle.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = "Qwen/Qwen2.5-Coder-32B-Instruct"
    api_key: str | None = None  # Auto-detects from HF_TOKEN env var
    provider: str | None = None  # e.g. "auto", "hf-inference", "together"
    base_url: str | None = None  # Dedicated endpoint instead of a provider
    timeout: float = 120.0
    temperature: float = 0.7
    max_tokens: int = 4096


class HuggingFaceOracle(OracleInterface):
    """Connects to HuggingFace Inference API using huggingface_hub."""

    config_class = HuggingFaceOracleConfig

    def __init__(
        self, config: HuggingFaceOracleConfig | None = None, **kwargs: Any
    ) -> None:
        """
        Args:
            config: Typed configuration object (preferred)
            **kwargs: Legacy kwargs for backward compatibility (deprecated)
        """
        if config is None:
            config = HuggingFaceOracleConfig(**kwargs)

        try:
            from huggingface_hub import InferenceClient
        except ImportError as err:
            raise ImportError(
                "huggingface_hub library required: pip install huggingface_hub"
            ) from err

        validate_generation_settings(
            config.model, config.timeout, config.temperature, config.max_tokens
        )

        api_key = config.api_key
        if api_key is None:
            api_key = os.environ.get("HF_TOKEN")
            if not api_key:
                raise ConfigurationError(
                    "HuggingFace API key required: set HF_TOKEN environment "
                    "variable or pass api_key in config"
                )

        client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": config.timeout,
        }
        if config.provider is not None:
            client_kwargs["provider"] = config.provider
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url

        self._model = config.model
        self._client = InferenceClient(**client_kwargs)
        self._temperature = config.temperature
        self._max_tokens = config.max_tokens

    @property
    def model(self) -> str:
        return self._model

    def generate(self, prompt: str) -> OracleResponse:
        """Send ``prompt`` and return the full completion."""
        with _translate_errors(self._model):
            response = self._client.chat_completion(
                messages=cast(Any, [{"role": "user", "content": prompt}]),
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )

        content = response.choices[0].message.content or ""
        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        return OracleResponse(content=content, usage=usage)

    def generate_stream(
        self,
        prompt: str,
        cancellation: CancellationToken,
        on_chunk: Callable[[str], None],
    ) -> None:
        cancellation.raise_if_cancelled()
        with _translate_errors(self._model):
            stream = self._client.chat_completion(
                messages=cast(Any, [{"role": "user", "content": prompt}]),
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                stream=True,
            )
            for chunk in stream:
                if cancellation.is_cancelled:
                    logger.info(f"Stream from {self._model} cancelled")
                    break
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    on_chunk(delta)
        cancellation.raise_if_cancelled()


@contextmanager
def _translate_errors(model: str) -> Iterator[None]:
    """Re-raise huggingface_hub errors as TransportError."""
    from huggingface_hub.errors import HfHubHTTPError, InferenceTimeoutError

    try:
        yield
    except InferenceTimeoutError as err:
        raise TransportError(
            f"Request to {model} timed out", detail=str(err)
        ) from err
    except HfHubHTTPError as err:
        response = getattr(err, "response", None)
        status = getattr(response, "status_code", None)
        raise TransportError(
            f"HuggingFace inference request failed with status {status}",
            status=status,
            detail=str(err),
        ) from err
    except _connection_errors() as err:
        raise TransportError(
            f"Could not reach HuggingFace endpoint for {model}",
            detail=str(err) or type(err).__name__,
        ) from err


def _connection_errors() -> tuple[type[BaseException], ...]:
    """
    Exception types for failures below HTTP, such as refused connections
    or DNS errors.

    huggingface_hub lets these escape unwrapped. Older releases raise
    ``requests`` errors, which are OSErrors; newer ones raise the
    TransportError of whichever httpx distribution they ship with.
    """
    errors: list[type[BaseException]] = [OSError]
    for module_name in ("httpx", "httpx2"):
        try:
            errors.append(importlib.import_module(module_name).TransportError)
        except (ImportError, AttributeError):
            continue
    return tuple(errors)
