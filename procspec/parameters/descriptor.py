"""Command parameter descriptors and their cloning rules."""

import copy
import datetime
import uuid
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Final, Optional

from mypy_extensions import mypyc_attr

from procspec.exceptions import InvalidArgumentError
from procspec.parameters.types import ParameterDirection, SqlDbType
from procspec.typing import DBNull, is_dbnull

__all__ = ("ParameterDescriptor", "clone_parameters", "copy_value")

PARAMETER_DESCRIPTOR_SLOTS: Final = ("db_type", "direction", "name", "precision", "size", "value")

_IMMUTABLE_VALUE_TYPES: Final = (
    str,
    bytes,
    int,
    float,
    complex,
    bool,
    Decimal,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    frozenset,
)


def copy_value(value: Any) -> Any:
    """Return an independently held copy of a parameter value.

    Immutable scalars are returned as-is. Mutable buffers are duplicated, and
    anything else is deep-copied.

    Args:
        value: The value to copy.

    Returns:
        A value equal to ``value`` that shares no mutable state with it.
    """
    if value is None or value is DBNull or isinstance(value, _IMMUTABLE_VALUE_TYPES):
        return value
    if isinstance(value, bytearray):
        return bytearray(value)
    if isinstance(value, memoryview):
        return memoryview(bytearray(value))
    return copy.deepcopy(value)


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterDescriptor:
    """One bindable command parameter.

    Args:
        name: Parameter name without the ``@`` prefix. Must not be blank.
        value: Current value. :data:`~procspec.typing.DBNull` binds SQL ``NULL``;
            ``None`` means no value has been assigned yet.
        db_type: Logical SQL type of the parameter.
        direction: Whether the parameter is sent, returned, or both.
        size: Maximum size, ``0`` when unspecified.
        precision: Numeric precision, ``0`` when unspecified.
    """

    __slots__ = PARAMETER_DESCRIPTOR_SLOTS

    def __init__(
        self,
        name: str,
        value: Any = None,
        db_type: SqlDbType = SqlDbType.NVARCHAR,
        direction: ParameterDirection = ParameterDirection.INPUT,
        size: int = 0,
        precision: int = 0,
    ) -> None:
        if name is None or not str(name).strip():
            msg = "Parameter name cannot be null or empty."
            raise InvalidArgumentError(msg, "name")
        if size < 0:
            msg = "Parameter size cannot be negative."
            raise InvalidArgumentError(msg, "size")
        if precision < 0:
            msg = "Parameter precision cannot be negative."
            raise InvalidArgumentError(msg, "precision")
        self.name = name
        self.value = value
        self.db_type = SqlDbType(db_type)
        self.direction = ParameterDirection(direction)
        self.size = size
        self.precision = precision

    @property
    def is_null(self) -> bool:
        """Whether the current value is SQL ``NULL`` (or unassigned)."""
        return is_dbnull(self.value)

    @property
    def is_input(self) -> bool:
        """Whether a value is sent to the server for this parameter."""
        return self.direction in {ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT}

    def clone(self) -> "ParameterDescriptor":
        """Copy every field into a new, fully independent descriptor."""
        return ParameterDescriptor(
            name=self.name,
            value=copy_value(self.value),
            db_type=self.db_type,
            direction=self.direction,
            size=self.size,
            precision=self.precision,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterDescriptor):
            return NotImplemented
        return (
            self.name == other.name
            and self.value == other.value
            and self.db_type == other.db_type
            and self.direction == other.direction
            and self.size == other.size
            and self.precision == other.precision
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, value={self.value!r}, db_type={self.db_type!s}, "
            f"direction={self.direction!s}, size={self.size!r}, precision={self.precision!r})"
        )


def clone_parameters(parameters: "Optional[Iterable[Optional[ParameterDescriptor]]]") -> "list[ParameterDescriptor]":
    """Deep-copy a parameter set, preserving order.

    Args:
        parameters: Descriptors to copy. ``None`` entries are copied as ``None``.

    Returns:
        A new list holding a new descriptor for every input descriptor.
    """
    if parameters is None:
        return []
    return [parameter.clone() if parameter is not None else None for parameter in parameters]  # type: ignore[misc]
