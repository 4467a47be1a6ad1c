"""Factory for building parameter descriptors from plain Python values."""

import datetime
import uuid
from decimal import Decimal
from typing import Any, Final, Optional

from procspec.parameters.descriptor import ParameterDescriptor
from procspec.parameters.types import MAX_32BIT_INT, MIN_32BIT_INT, ParameterDirection, SqlDbType
from procspec.typing import DBNull

__all__ = ("create_parameter", "infer_db_type")

_TYPE_MAP: Final["tuple[tuple[type, SqlDbType], ...]"] = (
    (bool, SqlDbType.BIT),
    (int, SqlDbType.INT),
    (float, SqlDbType.FLOAT),
    (Decimal, SqlDbType.DECIMAL),
    (str, SqlDbType.NVARCHAR),
    (datetime.datetime, SqlDbType.DATETIME),
    (datetime.date, SqlDbType.DATE),
    (datetime.time, SqlDbType.TIME),
    (uuid.UUID, SqlDbType.UNIQUEIDENTIFIER),
    (bytes, SqlDbType.VARBINARY),
    (bytearray, SqlDbType.VARBINARY),
    (memoryview, SqlDbType.VARBINARY),
)


def infer_db_type(value: Any) -> SqlDbType:
    """Infer the logical SQL type for a Python value.

    Order matters: ``bool`` is checked before ``int`` and ``datetime`` before
    ``date`` because of subclassing. Integers outside the 32-bit range map to
    ``BigInt``; timezone-aware datetimes map to ``DateTimeOffset``. Anything
    unrecognised, including ``None``, maps to ``NVarChar``.

    Args:
        value: The value to inspect.

    Returns:
        The inferred type.
    """
    for python_type, db_type in _TYPE_MAP:
        if isinstance(value, python_type):
            if db_type is SqlDbType.INT and not MIN_32BIT_INT <= value <= MAX_32BIT_INT:
                return SqlDbType.BIGINT
            if db_type is SqlDbType.DATETIME and value.tzinfo is not None:
                return SqlDbType.DATETIMEOFFSET
            return db_type
    return SqlDbType.NVARCHAR


def create_parameter(
    value: Any,
    name: str,
    db_type: Optional[SqlDbType] = None,
    direction: ParameterDirection = ParameterDirection.INPUT,
    size: int = 0,
    precision: int = 0,
) -> ParameterDescriptor:
    """Create a parameter holding ``value``, or ``DBNull`` when ``value`` is ``None``.

    Args:
        value: The parameter value.
        name: Name of the parameter.
        db_type: Explicit SQL type. Inferred from ``value`` when omitted.
        direction: Parameter direction.
        size: Maximum size, ``0`` when unspecified.
        precision: Numeric precision, ``0`` when unspecified.

    Raises:
        InvalidArgumentError: If ``name`` is blank.

    Returns:
        The new descriptor.
    """
    return ParameterDescriptor(
        name=name,
        value=DBNull if value is None else value,
        db_type=db_type if db_type is not None else infer_db_type(value),
        direction=direction,
        size=size,
        precision=precision,
    )
