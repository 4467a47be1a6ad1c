"""Attributes and helpers shared by the sync and async procedure executors."""

import dataclasses
import inspect
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Final, NamedTuple, Optional, TypeVar, Union
from xml.etree import ElementTree

from procspec.core.cache import ParameterCache
from procspec.core.config import ProcSpecConfig
from procspec.core.renderer import CommandKind, ExecutableStatementRenderer, resolve_command_kind
from procspec.exceptions import (
    ImproperConfigurationError,
    InvalidArgumentError,
    ProcSpecError,
    UnsupportedOperationError,
)
from procspec.parameters.assignment import assign_parameter_values, attach_null_values
from procspec.parameters.types import ParameterDirection
from procspec.typing import is_dbnull
from procspec.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from procspec.parameters.descriptor import ParameterDescriptor
    from procspec.protocols import ParameterDiscoveryProtocol
    from procspec.typing import DictRow

__all__ = (
    "AsyncCursor",
    "BulkInsertCommand",
    "CommonExecutorMixin",
    "PreparedCommand",
    "SyncCursor",
    "column_names",
    "convert_scalar",
    "default_action_executer",
    "default_async_action_executer",
    "first_value",
    "parse_xml_chunks",
    "rows_to_dicts",
)

logger = get_logger("procspec.driver")

T = TypeVar("T")

COMMON_EXECUTOR_SLOTS: Final = (
    "_connection_identity",
    "action_executer",
    "cache",
    "config",
    "connection",
    "discovery",
    "renderer",
)


class PreparedCommand(NamedTuple):
    """A command ready to hand to a DB-API cursor.

    Attributes:
        kind: Command kind after detection.
        sql: Statement text for ``cursor.execute``.
        driver_parameters: Values for ``cursor.execute``, a dict for named styles.
        procedure_name: Set for stored procedures, used with ``cursor.callproc``.
        procedure_values: Positional values for ``cursor.callproc``.
        parameters: The descriptors the command was prepared from.
    """

    kind: CommandKind
    sql: str
    driver_parameters: "Union[list[Any], dict[str, Any]]"
    procedure_name: Optional[str]
    procedure_values: "list[Any]"
    parameters: "list[ParameterDescriptor]"


def default_action_executer(action: str, operation: "Callable[[], T]") -> T:
    """Run a database action, logging failures before re-raising them unchanged."""
    try:
        return operation()
    except Exception as exc:
        log_with_context(logger, logging.ERROR, "Database action failed", action=action, error=type(exc).__name__)
        raise


async def default_async_action_executer(action: str, operation: "Callable[[], Awaitable[T]]") -> T:
    """Async variant of :func:`default_action_executer`."""
    try:
        return await operation()
    except Exception as exc:
        log_with_context(logger, logging.ERROR, "Database action failed", action=action, error=type(exc).__name__)
        raise


def column_names(cursor: Any) -> "list[str]":
    description = cursor.description
    return [column[0] for column in description] if description else []


def rows_to_dicts(columns: "Sequence[str]", rows: "Sequence[Any]") -> "list[DictRow]":
    """Convert fetched rows to dicts keyed by column name."""
    return [dict(row) if isinstance(row, Mapping) else dict(zip(columns, row)) for row in rows]


def first_value(row: Any) -> Any:
    return next(iter(row.values())) if isinstance(row, Mapping) else row[0]


def convert_scalar(value: Any, scalar_type: "Optional[type[T]]") -> Any:
    """Convert a scalar result to ``scalar_type``.

    ``None`` and ``DBNull`` stay ``None``; values already of the type are returned as is.

    Raises:
        InvalidArgumentError: If the value cannot be converted.
    """
    if scalar_type is None:
        return value
    if is_dbnull(value):
        return None
    if isinstance(value, scalar_type):
        return value
    try:
        return scalar_type(value)  # type: ignore[call-arg]
    except (TypeError, ValueError) as exc:
        msg = f"Cannot convert a {type(value).__name__} scalar to {scalar_type.__name__}."
        raise InvalidArgumentError(msg, "scalar_type") from exc


def parse_xml_chunks(chunks: "Iterable[Any]") -> "list[ElementTree.Element]":
    """Join the text chunks of a ``FOR XML`` result and parse its top-level elements.

    SQL Server splits long XML results across rows and omits a root element
    unless the query asks for one, so the chunks are parsed as a fragment.
    """
    text = "".join(chunk.decode() if isinstance(chunk, bytes) else str(chunk) for chunk in chunks if chunk is not None)
    if not text.strip():
        return []
    return list(ElementTree.fromstring(f"<fragment>{text}</fragment>"))


def _driver_value(parameter: "ParameterDescriptor") -> Any:
    return None if parameter.is_null else parameter.value


def _source_names(row: Any) -> "list[str]":
    if isinstance(row, Mapping):
        return [str(key) for key in row]
    if dataclasses.is_dataclass(row):
        return [field.name for field in dataclasses.fields(row)]
    fields = getattr(row, "_fields", None)
    if fields is not None:
        return list(fields)
    try:
        return [name for name in vars(row) if not name.startswith("_")]
    except TypeError:
        msg = f"Cannot infer columns from a {type(row).__name__} row; pass column_mapping."
        raise InvalidArgumentError(msg, "column_mapping") from None


def _source_value(row: Any, source: str) -> Any:
    if isinstance(row, Mapping):
        if source in row:
            value = row[source]
        else:
            folded = source.casefold()
            matches = [key for key in row if str(key).casefold() == folded]
            if not matches:
                msg = f"Row has no value for '{source}'."
                raise InvalidArgumentError(msg, "rows")
            value = row[matches[0]]
    else:
        try:
            value = getattr(row, source)
        except AttributeError:
            msg = f"{type(row).__name__} row has no attribute '{source}'."
            raise InvalidArgumentError(msg, "rows") from None
    return None if is_dbnull(value) else value


class BulkInsertCommand(NamedTuple):
    """An ``INSERT`` statement and one driver parameter set per row."""

    table_name: str
    sql: str
    batches: "list[Union[list[Any], dict[str, Any]]]"


class SyncCursor:
    """Context manager for DB-API cursor acquisition and cleanup."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self.cursor: Optional[Any] = None

    def __enter__(self) -> Any:
        self.cursor = self.connection.cursor()
        return self.cursor

    def __exit__(self, *_: Any) -> None:
        if self.cursor is not None:
            self.cursor.close()


class AsyncCursor:
    """Context manager for async driver cursors.

    Works with drivers whose ``cursor()`` returns the cursor directly and with
    those that return an awaitable, and with sync or async ``close()``.
    """

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self.cursor: Optional[Any] = None

    async def __aenter__(self) -> Any:
        cursor = self.connection.cursor()
        if inspect.isawaitable(cursor):
            cursor = await cursor
        self.cursor = cursor
        return cursor

    async def __aexit__(self, *_: Any) -> None:
        if self.cursor is not None:
            result = self.cursor.close()
            if inspect.isawaitable(result):
                await result


class CommonExecutorMixin:
    """State and command preparation common to both executors.

    Args:
        connection: Open DB-API connection. Transactions stay under the caller's control.
        cache: Parameter cache shared across executors. A private cache is created when omitted.
        discovery: Discovery capability used on cache misses. Required by the
            ``*_procedure`` operations only.
        config: Configuration. Defaults to :class:`ProcSpecConfig`.
        renderer: Renderer used for debug output.
        connection_identity: Cache identity of ``connection``. Defaults to
            ``discovery.get_connection_identity(connection)``.
    """

    __slots__ = COMMON_EXECUTOR_SLOTS

    def __init__(
        self,
        connection: Any,
        *,
        cache: Optional[ParameterCache] = None,
        discovery: "Optional[ParameterDiscoveryProtocol]" = None,
        config: Optional[ProcSpecConfig] = None,
        renderer: Optional[ExecutableStatementRenderer] = None,
        connection_identity: Optional[str] = None,
    ) -> None:
        if connection is None:
            raise InvalidArgumentError("Value cannot be null.", "connection")
        self.connection = connection
        self.config = (config or ProcSpecConfig()).ensure_valid()
        self.cache = cache if cache is not None else ParameterCache(self.config.cache)
        self.discovery = discovery
        self.renderer = renderer or ExecutableStatementRenderer(config=self.config.renderer)
        self._connection_identity = connection_identity

    @property
    def connection_identity(self) -> str:
        if self._connection_identity:
            return self._connection_identity
        return self._require_discovery().get_connection_identity(self.connection)

    def render(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> str:
        """Render the command as an executable statement for debugging."""
        return self.renderer.render(command_text, parameters, command_kind)

    def _require_discovery(self) -> "ParameterDiscoveryProtocol":
        if self.discovery is None:
            msg = "A parameter discovery capability is required to look up stored procedure parameters."
            raise ImproperConfigurationError(msg)
        return self.discovery

    def _bind_values(
        self, procedure_name: str, parameters: "list[ParameterDescriptor]", values: "Sequence[Any]"
    ) -> None:
        assign_parameter_values(parameters, values)
        attach_null_values(parameters)
        logger.debug("Assigned %d values to %s", len(values), procedure_name)

    def _prepare_command(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]",
        command_kind: "Optional[Union[CommandKind, str]]",
    ) -> PreparedCommand:
        if command_text is None or not command_text.strip():
            raise InvalidArgumentError(argument="command_text")

        kind = resolve_command_kind(command_text, command_kind)
        if kind not in {CommandKind.QUERY, CommandKind.STORED_PROCEDURE}:
            msg = f"The command type {kind} is not supported."
            raise UnsupportedOperationError(msg)

        safe_parameters = [parameter for parameter in parameters or () if parameter is not None]
        attach_null_values(safe_parameters)
        bound = [
            parameter
            for parameter in safe_parameters
            if parameter.direction in {ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT}
        ]
        style = self.config.execution.parameter_style

        if kind is CommandKind.STORED_PROCEDURE:
            arguments = ", ".join(
                f"@{parameter.name} = {style.placeholder(parameter.name, position)}"
                for position, parameter in enumerate(bound)
            )
            sql = f"EXEC {command_text} {arguments}".rstrip()
            procedure_name: Optional[str] = command_text
            procedure_values = [
                _driver_value(parameter)
                for parameter in safe_parameters
                if parameter.direction is not ParameterDirection.RETURN_VALUE
            ]
        else:
            sql = command_text
            procedure_name = None
            procedure_values = []

        if style.is_named:
            driver_parameters: Union[list[Any], dict[str, Any]] = {
                parameter.name: _driver_value(parameter) for parameter in bound
            }
        else:
            driver_parameters = [_driver_value(parameter) for parameter in bound]

        return PreparedCommand(kind, sql, driver_parameters, procedure_name, procedure_values, safe_parameters)

    def _apply_timeout(self, cursor: Any) -> None:
        timeout = self.config.execution.command_timeout
        if timeout is not None:
            if hasattr(cursor, "timeout"):
                cursor.timeout = timeout
            elif hasattr(self.connection, "timeout"):
                self.connection.timeout = timeout

    def _before_execute(self, cursor: Any, command: PreparedCommand) -> None:
        self._apply_timeout(cursor)
        if self.config.execution.log_executable_sql and logger.isEnabledFor(logging.DEBUG):
            try:
                rendered = self.renderer.render(command.procedure_name or command.sql, command.parameters, command.kind)
            except ProcSpecError as exc:
                logger.warning("Could not render executable SQL (%s), executing: %s", exc, command.sql)
            else:
                logger.debug("Executing: %s", rendered)

    def _prepare_bulk_insert(
        self,
        table_name: str,
        rows: "Iterable[Any]",
        column_mapping: "Optional[Mapping[str, str]]",
    ) -> Optional[BulkInsertCommand]:
        if table_name is None or not table_name.strip():
            raise InvalidArgumentError(argument="table_name")
        if rows is None:
            raise InvalidArgumentError("Value cannot be null.", "rows")
        materialized = list(rows)
        if not materialized:
            return None

        mapping = (
            dict(column_mapping)
            if column_mapping is not None
            else {name: name for name in _source_names(materialized[0])}
        )
        if not mapping:
            raise InvalidArgumentError("At least one column must be mapped.", "column_mapping")

        style = self.config.execution.parameter_style
        sources = list(mapping)
        keys = [f"p{position}" for position in range(len(sources))]
        placeholders = ", ".join(style.placeholder(key, position) for position, key in enumerate(keys))
        sql = f"INSERT INTO {table_name} ({', '.join(mapping.values())}) VALUES ({placeholders})"
        if style.is_named:
            batches: list[Union[list[Any], dict[str, Any]]] = [
                {key: _source_value(row, source) for key, source in zip(keys, sources)} for row in materialized
            ]
        else:
            batches = [[_source_value(row, source) for source in sources] for row in materialized]
        return BulkInsertCommand(table_name, sql, batches)

    def _before_bulk_insert(self, cursor: Any, command: BulkInsertCommand) -> None:
        self._apply_timeout(cursor)
        if hasattr(cursor, "fast_executemany"):
            cursor.fast_executemany = True
        logger.debug("Bulk inserting %d rows into %s", len(command.batches), command.table_name)

    @staticmethod
    def _uses_callproc(cursor: Any, command: PreparedCommand) -> bool:
        return command.procedure_name is not None and callable(getattr(cursor, "callproc", None))
