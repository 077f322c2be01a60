"""
OpenAI-compatible oracle implementation.

Talks to any endpoint exposing the OpenAI chat completions API (OpenAI
itself, vLLM, LM Studio, corporate gateways). Supports bearer-token and
cookie authentication.
"""

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

logger = logging.getLogger(__name__)

AUTH_TYPES = ("token", "cookie")


@dataclass
class OpenAIOracleConfig:
    """Configuration for OpenAIOracle.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = "gpt-4o-mini"
    base_url: str | None = None  # None uses the client default
    api_key: str | None = None  # Auto-detects from OPENAI_API_KEY env var
    auth_type: str = "token"  # "token" or "cookie"
    cookie: str | None = None  # Sent as the Cookie header when auth_type="cookie"
    timeout: float = 120.0
    temperature: float = 0.7
    max_tokens: int = 4096


def validate_generation_settings(
    model: str, timeout: float, temperature: float, max_tokens: int
) -> None:
    """
    Check settings shared by every chat-completion oracle.

    Raises:
        ConfigurationError: If any value is out of range
    """
    if not model:
        raise ConfigurationError("Model name is required")
    if timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout}")
    if not 0.0 <= temperature <= 2.0:
        raise ConfigurationError(
            f"temperature must be between 0 and 2, got {temperature}"
        )
    if max_tokens <= 0:
        raise ConfigurationError(f"max_tokens must be positive, got {max_tokens}")


class OpenAIOracle(OracleInterface):
    """Connects to an OpenAI-compatible chat completions endpoint."""

    config_class = OpenAIOracleConfig

    def __init__(self, config: OpenAIOracleConfig | None = None, **kwargs: Any):
        """
        Args:
            config: Typed configuration object (preferred)
            **kwargs: Legacy kwargs for backward compatibility (deprecated)
        """
        if config is None:
            config = OpenAIOracleConfig(**kwargs)

        client_kwargs = self._auth_kwargs(config)
        if config.base_url:
            client_kwargs["base_url"] = config.base_url
        self._init_client(
            config.model,
            config.timeout,
            config.temperature,
            config.max_tokens,
            **client_kwargs,
        )

    def _init_client(
        self,
        model: str,
        timeout: float,
        temperature: float,
        max_tokens: int,
        **client_kwargs: Any,
    ) -> None:
        """Validate generation settings and build the OpenAI client."""
        try:
            from openai import OpenAI
        except ImportError as err:
            raise ImportError("openai library required: pip install openai") from err

        validate_generation_settings(model, timeout, temperature, max_tokens)

        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = OpenAI(timeout=timeout, **client_kwargs)

    @staticmethod
    def _auth_kwargs(config: OpenAIOracleConfig) -> dict[str, Any]:
        if config.auth_type not in AUTH_TYPES:
            raise ConfigurationError(
                f"auth_type must be one of {', '.join(AUTH_TYPES)}, "
                f"got {config.auth_type!r}"
            )

        if config.auth_type == "cookie":
            if not config.cookie:
                raise ConfigurationError("Cookie authentication requires a cookie")
            # The client insists on a key; the gateway authenticates by cookie
            return {
                "api_key": config.api_key or "unused",
                "default_headers": {"Cookie": config.cookie},
            }

        api_key = config.api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "API token required: set OPENAI_API_KEY environment "
                "variable or pass api_key in config"
            )
        return {"api_key": api_key}

    @property
    def model(self) -> str:
        return self._model

    def generate(self, prompt: str) -> OracleResponse:
        """Send ``prompt`` and return the full completion."""
        with _translate_errors(self._model):
            response = self._client.chat.completions.create(
                model=self._model,
                messages=cast(Any, _messages(prompt)),
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
        logger.debug(f"{self._model} returned {len(content)} chars")
        return OracleResponse(content=content, usage=usage)

    def generate_stream(
        self,
        prompt: str,
        cancellation: CancellationToken,
        on_chunk: Callable[[str], None],
    ) -> None:
        """Stream the completion, closing the connection once cancelled."""
        cancellation.raise_if_cancelled()
        with _translate_errors(self._model):
            stream = self._client.chat.completions.create(
                model=self._model,
                messages=cast(Any, _messages(prompt)),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                stream=True,
            )
            try:
                for chunk in stream:
                    if cancellation.is_cancelled:
                        logger.info(f"Stream from {self._model} cancelled")
                        break
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta.content
                    if delta:
                        on_chunk(delta)
            finally:
                stream.close()
        cancellation.raise_if_cancelled()


def _messages(prompt: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": prompt}]


@contextmanager
def _translate_errors(model: str) -> Iterator[None]:
    """Re-raise openai client errors as TransportError."""
    import openai

    try:
        yield
    except openai.APITimeoutError as err:
        raise TransportError(
            f"Request to {model} timed out", detail=str(err)
        ) from err
    except openai.APIStatusError as err:
        raise TransportError(
            f"LLM API request failed with status {err.status_code}",
            status=err.status_code,
            detail=err.message if err.body is None else str(err.body),
        ) from err
    except openai.APIConnectionError as err:
        raise TransportError(
            f"Could not connect to LLM endpoint for {model}", detail=str(err)
        ) from err
    except openai.APIError as err:
        raise TransportError(f"LLM API error: {err}", detail=str(err)) from err
