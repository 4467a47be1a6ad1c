"""SQL Server stored procedure discovery via the ``sys.parameters`` catalog view."""

from typing import Any, Final

from procspec.adapters._discovery import DBAPIParameterDiscovery, row_values
from procspec.parameters.descriptor import ParameterDescriptor
from procspec.parameters.types import ParameterDirection, ParameterStyle, SqlDbType

__all__ = ("RETURN_VALUE_NAME", "MSSQLParameterDiscovery", "map_mssql_type")

RETURN_VALUE_NAME: Final = "RETURN_VALUE"

_TYPE_ALIASES: Final = {
    "numeric": SqlDbType.DECIMAL,
    "rowversion": SqlDbType.TIMESTAMP,
    "sql_variant": SqlDbType.VARIANT,
    "sysname": SqlDbType.NVARCHAR,
}
_SIZED_TYPES: Final = frozenset({
    SqlDbType.BINARY,
    SqlDbType.CHAR,
    SqlDbType.NCHAR,
    SqlDbType.NVARCHAR,
    SqlDbType.VARBINARY,
    SqlDbType.VARCHAR,
})
_DOUBLE_BYTE_TYPES: Final = frozenset({SqlDbType.NCHAR, SqlDbType.NVARCHAR})


def map_mssql_type(type_name: str, is_table_type: bool = False) -> SqlDbType:
    """Map a ``TYPE_NAME()`` result to a :class:`SqlDbType`.

    Table-valued parameters map to ``Structured`` and unknown (user defined)
    types to ``Udt``.
    """
    if is_table_type:
        return SqlDbType.STRUCTURED
    normalized = type_name.lower()
    return _TYPE_ALIASES.get(normalized) or SqlDbType.from_name(normalized) or SqlDbType.UDT


class MSSQLParameterDiscovery(DBAPIParameterDiscovery):
    """Discovers SQL Server procedure parameters for pyodbc style connections.

    ``OUTPUT`` parameters are reported as ``InputOutput`` because SQL Server
    does not distinguish the two, and a synthetic ``RETURN_VALUE`` descriptor
    is prepended since every procedure returns an ``int`` status.
    """

    __slots__ = ()

    default_parameter_style = ParameterStyle.QMARK

    procedure_lookup_sql = "SELECT OBJECT_ID({procedure_name}, 'P')"
    parameters_sql = (
        "SELECT p.name, TYPE_NAME(p.user_type_id), p.max_length, p.precision, p.scale, p.is_output, p.is_table_type"
        " FROM sys.parameters AS p"
        " WHERE p.object_id = {object_id} AND p.parameter_id > 0"
        " ORDER BY p.parameter_id"
    )

    def lookup_values(self, procedure_name: str) -> "dict[str, Any]":
        return {"procedure_name": procedure_name}

    def parameter_values(self, procedure_name: str, found: Any) -> "dict[str, Any]":
        return {"object_id": row_values(found)[0]}

    def build_descriptor(self, values: "list[Any]") -> ParameterDescriptor:
        name, type_name, max_length, precision, scale, is_output, is_table_type = values
        db_type = map_mssql_type(type_name, bool(is_table_type))

        size = 0
        numeric_precision = 0
        if db_type in _SIZED_TYPES and max_length and max_length > 0:
            size = max_length // 2 if db_type in _DOUBLE_BYTE_TYPES else max_length
        elif db_type is SqlDbType.DECIMAL:
            size = precision or 0
            numeric_precision = scale or 0

        return ParameterDescriptor(
            name=name.lstrip("@"),
            db_type=db_type,
            direction=ParameterDirection.INPUT_OUTPUT if is_output else ParameterDirection.INPUT,
            size=size,
            precision=numeric_precision,
        )

    def finalize(self, parameters: "list[ParameterDescriptor]") -> "list[ParameterDescriptor]":
        return_value = ParameterDescriptor(
            name=RETURN_VALUE_NAME, db_type=SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE
        )
        return [return_value, *parameters]
