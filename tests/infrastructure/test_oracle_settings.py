"""Tests for environment-driven oracle settings."""

import logging

import pytest

from taskpilot.domain.exceptions import ConfigurationError
from taskpilot.infrastructure import MockOracle, OracleRegistry
from taskpilot.infrastructure.config import OracleSettings, create_oracle
from taskpilot.infrastructure.llm.openai_api import OpenAIOracleConfig


@pytest.fixture(autouse=True)
def clean_registry():
    OracleRegistry.clear()
    yield
    OracleRegistry.clear()


class TestFromEnv:
    def test_defaults_when_unset(self) -> None:
        settings = OracleSettings.from_env({})

        assert settings == OracleSettings()
        assert settings.provider == "ollama"

    def test_reads_prefixed_variables(self) -> None:
        settings = OracleSettings.from_env(
            {
                "TASKPILOT_PROVIDER": "openai",
                "TASKPILOT_MODEL": "gpt-4o",
                "TASKPILOT_ENDPOINT": "https://gateway.example.com/v1",
                "TASKPILOT_AUTH_TYPE": "cookie",
                "TASKPILOT_COOKIE": "session=abc",
                "TASKPILOT_MAX_TOKENS": "2048",
                "TASKPILOT_TEMPERATURE": "0.2",
                "TASKPILOT_TIMEOUT": "30",
            }
        )

        assert settings.provider == "openai"
        assert settings.endpoint == "https://gateway.example.com/v1"
        assert settings.max_tokens == 2048
        assert settings.temperature == 0.2
        assert settings.timeout == 30.0

    def test_blank_values_ignored(self) -> None:
        settings = OracleSettings.from_env({"TASKPILOT_MODEL": "  "})

        assert settings.model is None

    def test_bad_number(self) -> None:
        with pytest.raises(ConfigurationError, match="TASKPILOT_MAX_TOKENS"):
            OracleSettings.from_env({"TASKPILOT_MAX_TOKENS": "lots"})


class TestOracleKwargs:
    def test_names_mapped_to_config_fields(self) -> None:
        settings = OracleSettings(endpoint="http://x/v1", api_token="t", model="m")

        assert settings.oracle_kwargs() == {
            "model": "m",
            "base_url": "http://x/v1",
            "api_key": "t",
        }

    def test_unsupported_fields_dropped_with_warning(self, caplog) -> None:
        settings = OracleSettings(provider="ollama", cookie="c", model="m")

        with caplog.at_level(logging.WARNING):
            kwargs = settings.oracle_kwargs({"model", "base_url"})

        assert kwargs == {"model": "m"}
        assert "TASKPILOT_COOKIE" in caplog.text


class TestCreateOracle:
    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="nowhere"):
            create_oracle(OracleSettings(provider="nowhere"))

    def test_builds_through_registry(self) -> None:
        created = {}

        class RecordingOracle(MockOracle):
            config_class = OpenAIOracleConfig

            def __init__(self, **kwargs):
                created.update(kwargs)
                super().__init__(["ok"])

        OracleRegistry.register("recording", RecordingOracle)

        oracle = create_oracle(
            OracleSettings(provider="recording", model="m", endpoint="http://gw/v1")
        )

        assert isinstance(oracle, RecordingOracle)
        assert created == {"model": "m", "base_url": "http://gw/v1"}
