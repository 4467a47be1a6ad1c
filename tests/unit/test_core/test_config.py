import logging

import pytest

from procspec.core.config import (
    CacheConfiguration,
    ExecutionConfiguration,
    ProcSpecConfig,
    RendererConfiguration,
    create_default_config,
    load_config_from_env,
)
from procspec.exceptions import ImproperConfigurationError
from procspec.parameters import ParameterStyle

ENV_VARS = (
    "PROCSPEC_SINGLE_FLIGHT",
    "PROCSPEC_ENABLE_CACHE_STATS",
    "PROCSPEC_COMMAND_TIMEOUT",
    "PROCSPEC_PARAMETER_STYLE",
    "PROCSPEC_LOG_EXECUTABLE_SQL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = create_default_config()
    assert config.cache == CacheConfiguration(single_flight=False, enable_stats=True)
    assert config.renderer.line_separator == "\n"
    assert config.execution.command_timeout is None
    assert config.execution.parameter_style is ParameterStyle.QMARK
    assert config.execution.log_executable_sql is False
    assert config.validate() == []


def test_configuration_is_frozen() -> None:
    config = ProcSpecConfig()
    with pytest.raises(AttributeError):
        config.cache = CacheConfiguration()  # type: ignore[misc]


def test_replace_returns_a_new_config() -> None:
    config = ProcSpecConfig()
    updated = config.replace(cache=CacheConfiguration(single_flight=True))
    assert updated.cache.single_flight
    assert not config.cache.single_flight


def test_validation_errors() -> None:
    config = ProcSpecConfig(
        renderer=RendererConfiguration(line_separator=""), execution=ExecutionConfiguration(command_timeout=-1)
    )
    assert config.validate() == ["command_timeout must be non-negative", "line_separator must not be empty"]
    with pytest.raises(ImproperConfigurationError, match="command_timeout"):
        config.ensure_valid()


def test_load_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCSPEC_SINGLE_FLIGHT", "true")
    monkeypatch.setenv("PROCSPEC_ENABLE_CACHE_STATS", "0")
    monkeypatch.setenv("PROCSPEC_COMMAND_TIMEOUT", "30")
    monkeypatch.setenv("PROCSPEC_PARAMETER_STYLE", "PYFORMAT_POSITIONAL")
    monkeypatch.setenv("PROCSPEC_LOG_EXECUTABLE_SQL", "yes")

    config = load_config_from_env()

    assert config.cache.single_flight
    assert not config.cache.enable_stats
    assert config.execution.command_timeout == 30
    assert config.execution.parameter_style is ParameterStyle.POSITIONAL_PYFORMAT
    assert config.execution.log_executable_sql


def test_load_from_env_defaults() -> None:
    assert load_config_from_env() == ProcSpecConfig()


def test_invalid_env_values_fall_back_with_warning(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("PROCSPEC_COMMAND_TIMEOUT", "soon")
    monkeypatch.setenv("PROCSPEC_PARAMETER_STYLE", "dollar")

    with caplog.at_level(logging.WARNING, logger="procspec.core.config"):
        config = load_config_from_env()

    assert config.execution.command_timeout is None
    assert config.execution.parameter_style is ParameterStyle.QMARK
    assert "PROCSPEC_COMMAND_TIMEOUT" in caplog.text
    assert "PROCSPEC_PARAMETER_STYLE" in caplog.text


def test_negative_timeout_from_env_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCSPEC_COMMAND_TIMEOUT", "-5")
    with pytest.raises(ImproperConfigurationError):
        load_config_from_env()
