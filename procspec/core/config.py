"""Configuration for the parameter cache, renderer and executors.

Settings are immutable dataclasses. :func:`load_config_from_env` builds a
configuration from ``PROCSPEC_*`` environment variables, falling back to the
defaults (with a warning) when a value cannot be parsed.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from procspec.exceptions import ImproperConfigurationError
from procspec.parameters.types import ParameterStyle
from procspec.utils.logging import get_logger

__all__ = (
    "CacheConfiguration",
    "ExecutionConfiguration",
    "ProcSpecConfig",
    "RendererConfiguration",
    "create_default_config",
    "load_config_from_env",
)

logger = get_logger("procspec.core.config")


@dataclass(frozen=True)
class CacheConfiguration:
    """Parameter cache settings.

    Attributes:
        single_flight: Let concurrent misses for the same key share one discovery
            instead of each running their own.
        enable_stats: Track hit/miss/discovery counters.
    """

    single_flight: bool = False
    enable_stats: bool = True


@dataclass(frozen=True)
class RendererConfiguration:
    """Executable SQL rendering settings."""

    line_separator: str = "\n"


@dataclass(frozen=True)
class ExecutionConfiguration:
    """Procedure executor settings.

    Attributes:
        command_timeout: Seconds before a command is abandoned, applied to
            cursors that expose a ``timeout`` attribute. ``None`` keeps the driver default.
        parameter_style: Placeholder style of the underlying DB-API driver.
        log_executable_sql: Log the rendered executable statement before each execution.
    """

    command_timeout: Optional[int] = None
    parameter_style: ParameterStyle = ParameterStyle.QMARK
    log_executable_sql: bool = False


@dataclass(frozen=True)
class ProcSpecConfig:
    """Top-level configuration."""

    cache: CacheConfiguration = field(default_factory=CacheConfiguration)
    renderer: RendererConfiguration = field(default_factory=RendererConfiguration)
    execution: ExecutionConfiguration = field(default_factory=ExecutionConfiguration)

    def validate(self) -> "list[str]":
        """Collect configuration problems.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []
        if self.execution.command_timeout is not None and self.execution.command_timeout < 0:
            errors.append("command_timeout must be non-negative")
        if not self.renderer.line_separator:
            errors.append("line_separator must not be empty")
        return errors

    def ensure_valid(self) -> "ProcSpecConfig":
        """Return ``self`` after validation.

        Raises:
            ImproperConfigurationError: If :meth:`validate` reports problems.
        """
        errors = self.validate()
        if errors:
            msg = f"Invalid configuration: {', '.join(errors)}"
            raise ImproperConfigurationError(msg)
        return self

    def replace(self, **changes: Any) -> "ProcSpecConfig":
        """Return a copy with the given sections replaced."""
        return replace(self, **changes)


def create_default_config() -> ProcSpecConfig:
    """Create a configuration with every default."""
    return ProcSpecConfig()


def load_config_from_env() -> ProcSpecConfig:
    """Build a configuration from ``PROCSPEC_*`` environment variables.

    Returns:
        ProcSpecConfig populated from the environment
    """
    cache_config = CacheConfiguration(
        single_flight=_env_bool("PROCSPEC_SINGLE_FLIGHT", False),
        enable_stats=_env_bool("PROCSPEC_ENABLE_CACHE_STATS", True),
    )
    execution_config = ExecutionConfiguration(
        command_timeout=_env_optional_int("PROCSPEC_COMMAND_TIMEOUT"),
        parameter_style=_env_parameter_style("PROCSPEC_PARAMETER_STYLE", ParameterStyle.QMARK),
        log_executable_sql=_env_bool("PROCSPEC_LOG_EXECUTABLE_SQL", False),
    )
    return ProcSpecConfig(cache=cache_config, execution=execution_config).ensure_valid()


def _env_bool(key: str, default: bool) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in {"true", "1", "yes", "on", "enabled"}


def _env_optional_int(key: str) -> Optional[int]:
    """Get an optional integer value from environment variable."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer value for %s: %s, using driver default", key, value)
        return None


def _env_parameter_style(key: str, default: ParameterStyle) -> ParameterStyle:
    """Get a parameter style from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return ParameterStyle(value.strip().lower())
    except ValueError:
        logger.warning("Invalid parameter style for %s: %s, using default %s", key, value, default)
        return default
