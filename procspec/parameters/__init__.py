"""Parameter descriptors, types and value assignment."""

from procspec.parameters.assignment import assign_parameter_values, attach_null_values, extract_driver_values
from procspec.parameters.descriptor import ParameterDescriptor, clone_parameters, copy_value
from procspec.parameters.factory import create_parameter, infer_db_type
from procspec.parameters.types import (
    BINARY_TYPES,
    DATE_TYPES,
    QUOTED_TYPES,
    UNICODE_TYPES,
    ParameterDirection,
    ParameterStyle,
    SqlDbType,
)

__all__ = (
    "BINARY_TYPES",
    "DATE_TYPES",
    "QUOTED_TYPES",
    "UNICODE_TYPES",
    "ParameterDescriptor",
    "ParameterDirection",
    "ParameterStyle",
    "SqlDbType",
    "assign_parameter_values",
    "attach_null_values",
    "clone_parameters",
    "copy_value",
    "create_parameter",
    "extract_driver_values",
    "infer_db_type",
)
