"""MySQL stored procedure discovery via ``information_schema``."""

from typing import Any, Final, Optional

from procspec.adapters._discovery import DBAPIParameterDiscovery, row_values
from procspec.parameters.descriptor import ParameterDescriptor
from procspec.parameters.types import ParameterDirection, ParameterStyle, SqlDbType

__all__ = ("MySQLParameterDiscovery", "map_mysql_type", "split_procedure_name")

_MYSQL_TYPES: Final = {
    "bigint": SqlDbType.BIGINT,
    "binary": SqlDbType.BINARY,
    "bit": SqlDbType.BIT,
    "blob": SqlDbType.IMAGE,
    "bool": SqlDbType.BIT,
    "boolean": SqlDbType.BIT,
    "char": SqlDbType.CHAR,
    "date": SqlDbType.DATE,
    "datetime": SqlDbType.DATETIME,
    "decimal": SqlDbType.DECIMAL,
    "double": SqlDbType.FLOAT,
    "enum": SqlDbType.VARCHAR,
    "float": SqlDbType.REAL,
    "int": SqlDbType.INT,
    "integer": SqlDbType.INT,
    "json": SqlDbType.NVARCHAR,
    "longblob": SqlDbType.IMAGE,
    "longtext": SqlDbType.TEXT,
    "mediumblob": SqlDbType.IMAGE,
    "mediumint": SqlDbType.INT,
    "mediumtext": SqlDbType.TEXT,
    "numeric": SqlDbType.DECIMAL,
    "set": SqlDbType.VARCHAR,
    "smallint": SqlDbType.SMALLINT,
    "text": SqlDbType.TEXT,
    "time": SqlDbType.TIME,
    "timestamp": SqlDbType.DATETIME,
    "tinyblob": SqlDbType.IMAGE,
    "tinyint": SqlDbType.TINYINT,
    "tinytext": SqlDbType.TEXT,
    "varbinary": SqlDbType.VARBINARY,
    "varchar": SqlDbType.VARCHAR,
    "year": SqlDbType.SMALLINT,
}
_MODES: Final = {
    "IN": ParameterDirection.INPUT,
    "OUT": ParameterDirection.OUTPUT,
    "INOUT": ParameterDirection.INPUT_OUTPUT,
}
_SIZED_TYPES: Final = frozenset({SqlDbType.BINARY, SqlDbType.CHAR, SqlDbType.VARBINARY, SqlDbType.VARCHAR})


def map_mysql_type(data_type: str) -> SqlDbType:
    """Map an ``information_schema`` ``DATA_TYPE`` to a :class:`SqlDbType`, ``Variant`` when unknown."""
    return _MYSQL_TYPES.get(data_type.lower(), SqlDbType.VARIANT)


def split_procedure_name(procedure_name: str) -> "tuple[Optional[str], str]":
    """Split ``schema.name`` (with optional backticks) into its parts.

    Returns:
        The schema, ``None`` when unqualified, and the routine name.
    """
    schema, _, name = procedure_name.rpartition(".")
    return (schema.strip("`") or None), name.strip("`")


class MySQLParameterDiscovery(DBAPIParameterDiscovery):
    """Discovers MySQL procedure parameters for PyMySQL/aiomysql style connections.

    MySQL procedures have no return value, so no return value descriptor is produced.
    Unqualified names are resolved against the connection's current database.
    """

    __slots__ = ()

    default_parameter_style = ParameterStyle.POSITIONAL_PYFORMAT

    procedure_lookup_sql = (
        "SELECT ROUTINE_SCHEMA FROM information_schema.ROUTINES"
        " WHERE ROUTINE_SCHEMA = COALESCE({schema_name}, DATABASE())"
        " AND ROUTINE_NAME = {routine_name} AND ROUTINE_TYPE = 'PROCEDURE'"
    )
    parameters_sql = (
        "SELECT PARAMETER_NAME, DATA_TYPE, CHARACTER_MAXIMUM_LENGTH, NUMERIC_PRECISION, NUMERIC_SCALE, PARAMETER_MODE"
        " FROM information_schema.PARAMETERS"
        " WHERE SPECIFIC_SCHEMA = {schema_name} AND SPECIFIC_NAME = {routine_name}"
        " AND ROUTINE_TYPE = 'PROCEDURE' AND ORDINAL_POSITION > 0"
        " ORDER BY ORDINAL_POSITION"
    )

    def lookup_values(self, procedure_name: str) -> "dict[str, Any]":
        schema_name, routine_name = split_procedure_name(procedure_name)
        return {"schema_name": schema_name, "routine_name": routine_name}

    def parameter_values(self, procedure_name: str, found: Any) -> "dict[str, Any]":
        _, routine_name = split_procedure_name(procedure_name)
        return {"schema_name": row_values(found)[0], "routine_name": routine_name}

    def build_descriptor(self, values: "list[Any]") -> ParameterDescriptor:
        name, data_type, max_length, numeric_precision, numeric_scale, mode = values
        db_type = map_mysql_type(data_type)

        size = 0
        precision = 0
        if db_type in _SIZED_TYPES and max_length:
            size = int(max_length)
        elif db_type is SqlDbType.DECIMAL:
            size = int(numeric_precision or 0)
            precision = int(numeric_scale or 0)

        return ParameterDescriptor(
            name=name,
            db_type=db_type,
            direction=_MODES.get(str(mode).upper(), ParameterDirection.INPUT),
            size=size,
            precision=precision,
        )

    def get_connection_identity(self, connection: Any) -> str:
        """Prefer the explicit identity, then ``user@host:port/db`` read off the connection."""
        if self._connection_identity:
            return self._connection_identity
        host = getattr(connection, "host", None)
        if host is None:
            return super().get_connection_identity(connection)
        database = getattr(connection, "db", None)
        if isinstance(database, bytes):
            database = database.decode()
        user = getattr(connection, "user", None)
        if isinstance(user, bytes):
            user = user.decode()
        return f"mysql://{user}@{host}:{getattr(connection, 'port', '')}/{database or ''}"
