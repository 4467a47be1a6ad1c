"""Positional assignment of raw values to a parameter set."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from procspec.exceptions import ParameterCountMismatchError
from procspec.typing import DBNull

if TYPE_CHECKING:
    from procspec.parameters.descriptor import ParameterDescriptor

__all__ = ("assign_parameter_values", "attach_null_values", "extract_driver_values")


def assign_parameter_values(
    parameters: "Optional[Sequence[ParameterDescriptor]]", values: "Optional[Sequence[Any]]"
) -> None:
    """Assign ``values`` to ``parameters`` by position.

    Nothing happens when either side is ``None``.

    Args:
        parameters: Ordered parameter set, typically a clone handed out by the cache.
        values: Ordered raw values, one per parameter.

    Raises:
        ParameterCountMismatchError: If the two sequences differ in length.
    """
    if parameters is None or values is None:
        return

    if len(parameters) != len(values):
        raise ParameterCountMismatchError(len(parameters), len(values))

    for parameter, value in zip(parameters, values):
        parameter.value = value


def attach_null_values(parameters: "Sequence[ParameterDescriptor]") -> None:
    """Bind ``DBNull`` to input parameters that have no value.

    Output parameters derived as ``InputOutput`` would otherwise fall back to
    the server-side default, which is the less common intent.
    """
    for parameter in parameters:
        if parameter.is_input and parameter.value is None:
            parameter.value = DBNull


def extract_driver_values(parameters: "Sequence[ParameterDescriptor]") -> "list[Any]":
    """Return the values a DB-API driver should receive for the input parameters."""
    return [None if parameter.is_null else parameter.value for parameter in parameters if parameter.is_input]
