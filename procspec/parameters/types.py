"""Core parameter enumerations used throughout procspec."""

from enum import Enum
from typing import Final, Optional

__all__ = (
    "BINARY_TYPES",
    "DATE_TYPES",
    "MAX_32BIT_INT",
    "MIN_32BIT_INT",
    "QUOTED_TYPES",
    "UNICODE_TYPES",
    "ParameterDirection",
    "ParameterStyle",
    "SqlDbType",
)

MAX_32BIT_INT: Final[int] = 2147483647
MIN_32BIT_INT: Final[int] = -2147483648


class SqlDbType(str, Enum):
    """Logical SQL type of a parameter.

    Values are the provider's native type names; they are what a ``declare``
    statement prints.
    """

    BIGINT = "BigInt"
    BINARY = "Binary"
    BIT = "Bit"
    CHAR = "Char"
    DATETIME = "DateTime"
    DECIMAL = "Decimal"
    FLOAT = "Float"
    IMAGE = "Image"
    INT = "Int"
    MONEY = "Money"
    NCHAR = "NChar"
    NTEXT = "NText"
    NVARCHAR = "NVarChar"
    REAL = "Real"
    UNIQUEIDENTIFIER = "UniqueIdentifier"
    SMALLDATETIME = "SmallDateTime"
    SMALLINT = "SmallInt"
    SMALLMONEY = "SmallMoney"
    TEXT = "Text"
    TIMESTAMP = "Timestamp"
    TINYINT = "TinyInt"
    VARBINARY = "VarBinary"
    VARCHAR = "VarChar"
    VARIANT = "Variant"
    XML = "Xml"
    UDT = "Udt"
    STRUCTURED = "Structured"
    DATE = "Date"
    TIME = "Time"
    DATETIME2 = "DateTime2"
    DATETIMEOFFSET = "DateTimeOffset"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "Optional[SqlDbType]":
        """Look up a member by its type name, ignoring case.

        Args:
            name: A type name such as ``"nvarchar"`` or ``"DateTime2"``.

        Returns:
            The matching member, or ``None`` when the name is unknown.
        """
        return _SQL_DB_TYPES_BY_NAME.get(name.lower())


_SQL_DB_TYPES_BY_NAME: Final["dict[str, SqlDbType]"] = {member.value.lower(): member for member in SqlDbType}

UNICODE_TYPES: Final = frozenset({SqlDbType.NTEXT, SqlDbType.NVARCHAR})
QUOTED_TYPES: Final = frozenset({
    SqlDbType.CHAR,
    SqlDbType.NCHAR,
    SqlDbType.TEXT,
    SqlDbType.VARCHAR,
    SqlDbType.XML,
    SqlDbType.TIME,
    SqlDbType.UNIQUEIDENTIFIER,
})
DATE_TYPES: Final = frozenset({SqlDbType.DATE, SqlDbType.DATETIME, SqlDbType.DATETIME2, SqlDbType.DATETIMEOFFSET})
BINARY_TYPES: Final = frozenset({SqlDbType.BINARY, SqlDbType.VARBINARY, SqlDbType.IMAGE})


class ParameterDirection(str, Enum):
    """Direction of a command parameter."""

    INPUT = "Input"
    OUTPUT = "Output"
    INPUT_OUTPUT = "InputOutput"
    RETURN_VALUE = "ReturnValue"

    def __str__(self) -> str:
        return self.value


class ParameterStyle(str, Enum):
    """Placeholder style of the DB-API driver that executes commands."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    NAMED_COLON = "named_colon"
    NAMED_AT = "named_at"
    NAMED_PYFORMAT = "pyformat_named"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    def __str__(self) -> str:
        """String representation for better error messages.

        Returns:
            The enum value as a string.
        """
        return self.value

    @property
    def is_named(self) -> bool:
        """Whether values are bound by name rather than by position."""
        return self in {ParameterStyle.NAMED_COLON, ParameterStyle.NAMED_AT, ParameterStyle.NAMED_PYFORMAT}

    def placeholder(self, name: str, position: int) -> str:
        """Render the placeholder for one parameter.

        Args:
            name: Parameter name without any prefix.
            position: Zero-based position of the parameter.

        Returns:
            The placeholder text, e.g. ``?``, ``:1`` or ``%(name)s``.
        """
        if self is ParameterStyle.QMARK:
            return "?"
        if self is ParameterStyle.NUMERIC:
            return f":{position + 1}"
        if self is ParameterStyle.NAMED_COLON:
            return f":{name}"
        if self is ParameterStyle.NAMED_AT:
            return f"@{name}"
        if self is ParameterStyle.NAMED_PYFORMAT:
            return f"%({name})s"
        return "%s"
