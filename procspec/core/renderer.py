"""Executable SQL rendering for diagnostics.

Turns a command text plus its parameter descriptors into one literal T-SQL
statement that can be pasted into a query window: ``declare`` lines followed
by the query, or an ``EXEC`` call with every argument inlined.

The output is a best-effort approximation meant for humans. Binary values are
not rendered, and time zones are dropped from date values.
"""

import datetime
import re
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Final, Optional, Protocol, Union

from procspec.core.config import RendererConfiguration
from procspec.exceptions import InvalidArgumentError, UnsupportedOperationError
from procspec.parameters.types import BINARY_TYPES, DATE_TYPES, QUOTED_TYPES, UNICODE_TYPES, SqlDbType
from procspec.typing import is_dbnull

if TYPE_CHECKING:
    from procspec.parameters.descriptor import ParameterDescriptor

__all__ = (
    "BINARY_NOT_SUPPORTED",
    "CommandKind",
    "DeclarationFormatter",
    "DefaultDeclarationFormatter",
    "DefaultValueFormatter",
    "ExecutableStatementRenderer",
    "MaskingValueFormatter",
    "ValueFormatter",
    "create_executable_sql_statement",
    "detect_command_kind",
    "escape_single_quotes",
    "resolve_command_kind",
)

BINARY_NOT_SUPPORTED: Final = "-- The image and binary data types are not supported --"
NULL_LITERAL: Final = "null"

_WHITESPACE_RE: Final = re.compile(r"\s")
_MAX_LENGTH_TYPES: Final = frozenset({SqlDbType.TEXT, SqlDbType.NTEXT})
_TRUE_STRINGS: Final = frozenset({"true", "1"})
_FALSE_STRINGS: Final = frozenset({"false", "0"})


class CommandKind(str, Enum):
    """Shape of a command."""

    QUERY = "Text"
    STORED_PROCEDURE = "StoredProcedure"
    TABLE_DIRECT = "TableDirect"

    def __str__(self) -> str:
        return self.value


def detect_command_kind(command_text: str) -> CommandKind:
    """Guess the command kind from its text.

    Text without any whitespace is taken to be a stored procedure name and
    everything else a query. A procedure name containing a space is therefore
    misclassified; pass the kind explicitly when that matters.
    """
    if _WHITESPACE_RE.search(command_text):
        return CommandKind.QUERY
    return CommandKind.STORED_PROCEDURE


def resolve_command_kind(command_text: str, command_kind: "Optional[Union[CommandKind, str]]" = None) -> CommandKind:
    """Return the explicit command kind, or detect it from the text when omitted.

    Raises:
        UnsupportedOperationError: If ``command_kind`` is not a known kind.
    """
    if command_kind is None:
        return detect_command_kind(command_text)
    try:
        return CommandKind(command_kind)
    except ValueError:
        msg = f"The command type {command_kind} is not supported."
        raise UnsupportedOperationError(msg) from None


def escape_single_quotes(text: str) -> str:
    """Double every single quote so ``text`` can sit inside a SQL string literal."""
    if text is None:
        raise InvalidArgumentError("Value cannot be null.", "text")
    return text.replace("'", "''")


class ValueFormatter(Protocol):
    """Renders the literal value of a parameter."""

    def __call__(self, parameter: "ParameterDescriptor") -> str: ...


class DeclarationFormatter(Protocol):
    """Renders the ``declare`` clause of a parameter."""

    def __call__(self, parameter: "ParameterDescriptor") -> str: ...


def _format_datetime(parameter: "ParameterDescriptor") -> str:
    value = parameter.value
    if isinstance(value, datetime.datetime):
        moment = value
    elif isinstance(value, datetime.date):
        moment = datetime.datetime.combine(value, datetime.time())
    else:
        msg = f"Value of parameter {parameter.name!r} is not a date or datetime: {value!r}"
        raise InvalidArgumentError(msg, "parameter")
    return f"{moment:%Y-%m-%d %H:%M:%S}:{moment.microsecond // 1000:03d}"


def _format_bit(parameter: "ParameterDescriptor") -> str:
    value = parameter.value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return "1"
        if normalized in _FALSE_STRINGS:
            return "0"
        msg = f"Value of parameter {parameter.name!r} is not a valid boolean: {value!r}"
        raise InvalidArgumentError(msg, "parameter")
    return "1" if bool(value) else "0"


def _format_decimal(parameter: "ParameterDescriptor") -> str:
    value = parameter.value
    if isinstance(value, int):
        return str(value)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        msg = f"Value of parameter {parameter.name!r} is not a number: {value!r}"
        raise InvalidArgumentError(msg, "parameter") from exc
    return format(number, "f")


class DefaultValueFormatter:
    """Type driven literal formatting.

    - null: ``null``
    - ``NVarChar`` and ``NText``: ``N'...'``
    - other character types, ``Xml``, ``Time`` and ``UniqueIdentifier``: ``'...'``
    - date types: ``convert(datetime,'yyyy-mm-dd hh:mi:ss:mmm', 121)``
    - ``Bit``: ``1`` or ``0``
    - ``Decimal``: fixed-point digits
    - binary types: a comment saying they are unsupported
    - everything else: ``str(value)`` unquoted
    """

    __slots__ = ()

    def __call__(self, parameter: "ParameterDescriptor") -> str:
        if parameter is None:
            raise InvalidArgumentError("Value cannot be null.", "parameter")

        value = parameter.value
        if is_dbnull(value):
            return NULL_LITERAL

        db_type = parameter.db_type
        if db_type in UNICODE_TYPES:
            return f"N'{escape_single_quotes(str(value))}'"
        if db_type in QUOTED_TYPES:
            return f"'{escape_single_quotes(str(value))}'"
        if db_type in DATE_TYPES:
            return f"convert(datetime,'{_format_datetime(parameter)}', 121)"
        if db_type is SqlDbType.BIT:
            return _format_bit(parameter)
        if db_type is SqlDbType.DECIMAL:
            return _format_decimal(parameter)
        if db_type in BINARY_TYPES:
            return BINARY_NOT_SUPPORTED
        return escape_single_quotes(str(value))


class DefaultDeclarationFormatter:
    """Renders ``declare @name Type[(size[,precision])]``.

    ``Text`` and ``NText`` are always declared as ``nvarchar(max)``.
    """

    __slots__ = ()

    def __call__(self, parameter: "ParameterDescriptor") -> str:
        if parameter is None:
            raise InvalidArgumentError("Value cannot be null.", "parameter")

        if parameter.db_type in _MAX_LENGTH_TYPES:
            return f"declare @{parameter.name} nvarchar(max)"

        declaration = f"declare @{parameter.name} {parameter.db_type.value}"
        if parameter.size > 0:
            if parameter.precision > 0:
                declaration += f"({parameter.size},{parameter.precision})"
            else:
                declaration += f"({parameter.size})"
        return declaration


class MaskingValueFormatter:
    """Hides the values of sensitive parameters.

    Args:
        names: Parameter names to mask, compared case-insensitively.
        mask: Literal rendered in place of a masked value.
        inner: Formatter used for every other parameter.
    """

    __slots__ = ("_inner", "_mask", "_names")

    def __init__(
        self, names: "Iterable[str]", mask: str = "'*****'", inner: "Optional[ValueFormatter]" = None
    ) -> None:
        self._names = frozenset(name.casefold() for name in names)
        self._mask = mask
        self._inner: ValueFormatter = inner or DefaultValueFormatter()

    def __call__(self, parameter: "ParameterDescriptor") -> str:
        if parameter is not None and not parameter.is_null and parameter.name.casefold() in self._names:
            return self._mask
        return self._inner(parameter)


class ExecutableStatementRenderer:
    """Builds pasteable SQL from a command and its parameters.

    Value and declaration formatting are separate strategies, so either one
    can be swapped (e.g. to mask secrets) without touching the statement
    assembly.

    Args:
        value_formatter: Renders parameter values. Defaults to :class:`DefaultValueFormatter`.
        declaration_formatter: Renders ``declare`` clauses. Defaults to
            :class:`DefaultDeclarationFormatter`.
        config: Rendering settings.
    """

    __slots__ = ("config", "declaration_formatter", "value_formatter")

    def __init__(
        self,
        value_formatter: "Optional[ValueFormatter]" = None,
        declaration_formatter: "Optional[DeclarationFormatter]" = None,
        config: Optional[RendererConfiguration] = None,
    ) -> None:
        self.value_formatter: ValueFormatter = value_formatter or DefaultValueFormatter()
        self.declaration_formatter: DeclarationFormatter = declaration_formatter or DefaultDeclarationFormatter()
        self.config = config or RendererConfiguration()

    def render(
        self,
        command_text: str,
        parameters: "Optional[Iterable[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> str:
        """Render an executable statement.

        Args:
            command_text: Query text or stored procedure name.
            parameters: Parameters in order. ``None`` entries are skipped.
            command_kind: Kind of command. Guessed with :func:`detect_command_kind` when omitted.

        Raises:
            InvalidArgumentError: If ``command_text`` is ``None``.
            UnsupportedOperationError: If the command kind is neither a query nor a stored procedure.

        Returns:
            The executable statement.
        """
        if command_text is None:
            raise InvalidArgumentError("Value cannot be null.", "command_text")

        kind = resolve_command_kind(command_text, command_kind)
        safe_parameters = [parameter for parameter in parameters or () if parameter is not None]

        if kind is CommandKind.STORED_PROCEDURE:
            return self.render_stored_procedure(command_text, safe_parameters)
        if kind is CommandKind.QUERY:
            return self.render_query(command_text, safe_parameters)
        msg = f"The command type {kind} is not supported."
        raise UnsupportedOperationError(msg)

    def format_value(self, parameter: "ParameterDescriptor") -> str:
        """Render the literal value of ``parameter`` with the configured value formatter."""
        return self.value_formatter(parameter)

    def format_declaration(self, parameter: "ParameterDescriptor") -> str:
        """Render the ``declare`` clause of ``parameter`` with the configured declaration formatter."""
        return self.declaration_formatter(parameter)

    def render_stored_procedure(self, procedure_name: str, parameters: "Iterable[ParameterDescriptor]") -> str:
        """Render ``EXEC name @p1 = v1, @p2 = v2``."""
        arguments = ", ".join(f"@{parameter.name} = {self.format_value(parameter)}" for parameter in parameters)
        return f"EXEC {procedure_name} {arguments}"

    def render_query(self, sql: str, parameters: "Iterable[ParameterDescriptor]") -> str:
        """Render one ``declare`` line per parameter followed by ``sql``."""
        return "".join(self.format_parameter_text(parameter) for parameter in parameters) + sql

    def format_parameter_text(self, parameter: "ParameterDescriptor") -> str:
        """Render ``declare @name Type = value`` plus the line separator."""
        return (
            f"{self.format_declaration(parameter)} = {self.format_value(parameter)}"
            f"{self.config.line_separator}"
        )


_DEFAULT_RENDERER: Final = ExecutableStatementRenderer()


def create_executable_sql_statement(
    sql: str,
    parameters: "Optional[Iterable[Optional[ParameterDescriptor]]]" = None,
    command_kind: "Optional[Union[CommandKind, str]]" = None,
    *,
    renderer: Optional[ExecutableStatementRenderer] = None,
) -> str:
    """Render ``sql`` with its parameters as a statement for a query window.

    Args:
        sql: Query text or stored procedure name.
        parameters: Parameters used by the statement.
        command_kind: Kind of command, guessed from ``sql`` when omitted.
        renderer: Renderer to use instead of the default one.

    Returns:
        The executable statement.
    """
    return (renderer or _DEFAULT_RENDERER).render(sql, parameters, command_kind)

