"""
Oracle settings loaded from the environment.

Variables (all optional):

    TASKPILOT_PROVIDER     registry name of the oracle ("ollama" by default)
    TASKPILOT_MODEL        model identifier
    TASKPILOT_ENDPOINT     base URL of the provider API
    TASKPILOT_API_TOKEN    bearer token
    TASKPILOT_AUTH_TYPE    "token" or "cookie"
    TASKPILOT_COOKIE       cookie header value for cookie authentication
    TASKPILOT_MAX_TOKENS   completion token limit
    TASKPILOT_TEMPERATURE  sampling temperature
    TASKPILOT_TIMEOUT      request timeout in seconds
"""

import dataclasses
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from taskpilot.domain.exceptions import ConfigurationError
from taskpilot.domain.interfaces import OracleInterface
from taskpilot.infrastructure.registry import OracleRegistry

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKPILOT_"

# Settings field -> oracle config field
_CONFIG_FIELDS = {
    "model": "model",
    "endpoint": "base_url",
    "api_token": "api_key",
    "auth_type": "auth_type",
    "cookie": "cookie",
    "max_tokens": "max_tokens",
    "temperature": "temperature",
    "timeout": "timeout",
}


@dataclass(frozen=True)
class OracleSettings:
    """Provider-neutral oracle settings; ``None`` means provider default."""

    provider: str = "ollama"
    model: str | None = None
    endpoint: str | None = None
    api_token: str | None = None
    auth_type: str | None = None
    cookie: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    timeout: float | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "OracleSettings":
        """
        Read settings from ``TASKPILOT_*`` variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a numeric variable does not parse
        """
        env = os.environ if environ is None else environ

        def text(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        return cls(
            provider=text("PROVIDER") or "ollama",
            model=text("MODEL"),
            endpoint=text("ENDPOINT"),
            api_token=text("API_TOKEN"),
            auth_type=text("AUTH_TYPE"),
            cookie=text("COOKIE"),
            max_tokens=_number(text("MAX_TOKENS"), "MAX_TOKENS", int),
            temperature=_number(text("TEMPERATURE"), "TEMPERATURE", float),
            timeout=_number(text("TIMEOUT"), "TIMEOUT", float),
        )

    def oracle_kwargs(self, accepted: set[str] | None = None) -> dict[str, Any]:
        """
        Translate settings into oracle config kwargs.

        Args:
            accepted: Field names the target config supports; settings that
                map elsewhere are dropped with a warning
        """
        kwargs: dict[str, Any] = {}
        for name, target in _CONFIG_FIELDS.items():
            value = getattr(self, name)
            if value is None:
                continue
            if accepted is not None and target not in accepted:
                logger.warning(
                    f"Ignoring {ENV_PREFIX}{name.upper()}: not supported by "
                    f"provider '{self.provider}'"
                )
                continue
            kwargs[target] = value
        return kwargs


def create_oracle(settings: OracleSettings | None = None) -> OracleInterface:
    """
    Build the oracle named by ``settings.provider`` through the registry.

    Args:
        settings: Settings to use (defaults to ``OracleSettings.from_env()``)

    Raises:
        ConfigurationError: If the provider is unknown or misconfigured
    """
    settings = settings or OracleSettings.from_env()
    try:
        oracle_class = OracleRegistry.get(settings.provider)
    except KeyError as err:
        raise ConfigurationError(str(err.args[0])) from err

    config_class = getattr(oracle_class, "config_class", None)
    accepted = (
        {f.name for f in dataclasses.fields(config_class)}
        if config_class is not None
        else set()
    )
    kwargs = settings.oracle_kwargs(accepted)
    logger.info(f"Creating '{settings.provider}' oracle")
    return oracle_class(**kwargs)


def _number(
    raw: str | None, name: str, parse: Callable[[str], int | float]
) -> Any:
    if raw is None:
        return None
    try:
        return parse(raw)
    except ValueError as err:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be a number, got {raw!r}"
        ) from err
