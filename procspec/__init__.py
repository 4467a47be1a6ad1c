"""procspec: cached stored procedure parameters and executable SQL rendering for DB-API drivers."""

from procspec import adapters, core, driver, exceptions, parameters, typing, utils
from procspec.__metadata__ import __version__
from procspec.core import (
    CacheConfiguration,
    CacheStats,
    CommandKind,
    ExecutableStatementRenderer,
    ExecutionConfiguration,
    ParameterCache,
    ProcSpecConfig,
    RendererConfiguration,
    create_executable_sql_statement,
    load_config_from_env,
)
from procspec.driver import AsyncProcedureExecutor, ProcedureExecutor
from procspec.exceptions import (
    ImproperConfigurationError,
    InvalidArgumentError,
    ParameterCountMismatchError,
    ProcedureNotFoundError,
    ProcSpecError,
    UnsupportedOperationError,
)
from procspec.parameters import (
    ParameterDescriptor,
    ParameterDirection,
    ParameterStyle,
    SqlDbType,
    assign_parameter_values,
    create_parameter,
)
from procspec.typing import DBNull

__all__ = (
    "AsyncProcedureExecutor",
    "CacheConfiguration",
    "CacheStats",
    "CommandKind",
    "DBNull",
    "ExecutableStatementRenderer",
    "ExecutionConfiguration",
    "ImproperConfigurationError",
    "InvalidArgumentError",
    "ParameterCache",
    "ParameterCountMismatchError",
    "ParameterDescriptor",
    "ParameterDirection",
    "ParameterStyle",
    "ProcSpecConfig",
    "ProcSpecError",
    "ProcedureExecutor",
    "ProcedureNotFoundError",
    "RendererConfiguration",
    "SqlDbType",
    "UnsupportedOperationError",
    "__version__",
    "adapters",
    "assign_parameter_values",
    "core",
    "create_executable_sql_statement",
    "create_parameter",
    "driver",
    "exceptions",
    "load_config_from_env",
    "parameters",
    "typing",
    "utils",
)
