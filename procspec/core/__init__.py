"""Parameter cache, executable SQL renderer and configuration."""

from procspec.core.cache import RETURN_VALUE_KEY_SUFFIX, CacheStats, ParameterCache, create_cache_key
from procspec.core.config import (
    CacheConfiguration,
    ExecutionConfiguration,
    ProcSpecConfig,
    RendererConfiguration,
    create_default_config,
    load_config_from_env,
)
from procspec.core.renderer import (
    BINARY_NOT_SUPPORTED,
    CommandKind,
    DefaultDeclarationFormatter,
    DefaultValueFormatter,
    ExecutableStatementRenderer,
    MaskingValueFormatter,
    create_executable_sql_statement,
    detect_command_kind,
    resolve_command_kind,
)

__all__ = (
    "BINARY_NOT_SUPPORTED",
    "RETURN_VALUE_KEY_SUFFIX",
    "CacheConfiguration",
    "CacheStats",
    "CommandKind",
    "DefaultDeclarationFormatter",
    "DefaultValueFormatter",
    "ExecutableStatementRenderer",
    "ExecutionConfiguration",
    "MaskingValueFormatter",
    "ParameterCache",
    "ProcSpecConfig",
    "RendererConfiguration",
    "create_cache_key",
    "create_default_config",
    "create_executable_sql_statement",
    "detect_command_kind",
    "load_config_from_env",
    "resolve_command_kind",
)
