"""Synchronous procedure executor."""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from procspec.core.renderer import CommandKind
from procspec.driver._common import (
    BulkInsertCommand,
    CommonExecutorMixin,
    PreparedCommand,
    SyncCursor,
    column_names,
    convert_scalar,
    default_action_executer,
    first_value,
    parse_xml_chunks,
    rows_to_dicts,
)

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from procspec.core.cache import ParameterCache
    from procspec.core.config import ProcSpecConfig
    from procspec.core.renderer import ExecutableStatementRenderer
    from procspec.parameters.descriptor import ParameterDescriptor
    from procspec.protocols import ParameterDiscoveryProtocol
    from procspec.typing import DictRow

__all__ = ("ActionExecuter", "ProcedureExecutor")

ActionExecuter = Callable[[str, Callable[[], Any]], Any]
T = TypeVar("T")


class ProcedureExecutor(CommonExecutorMixin):
    """Runs commands and stored procedures on a DB-API connection.

    Every database round trip goes through ``action_executer(action_name, operation)``,
    which must call ``operation()`` and return its result. Override it to add
    retries, timing or tracing. The default logs failures and re-raises them.

    Example:
        .. code-block:: python

            connection = connect("Driver={ODBC Driver 18 for SQL Server};Server=db;Database=app")
            executor = ProcedureExecutor(connection, cache=cache, discovery=MSSQLParameterDiscovery())
            executor.execute_procedure_non_query("dbo.AddUser", "alice", None)
    """

    __slots__ = ()

    def __init__(
        self,
        connection: Any,
        *,
        cache: "Optional[ParameterCache]" = None,
        discovery: "Optional[ParameterDiscoveryProtocol]" = None,
        config: "Optional[ProcSpecConfig]" = None,
        renderer: "Optional[ExecutableStatementRenderer]" = None,
        action_executer: Optional[ActionExecuter] = None,
        connection_identity: Optional[str] = None,
    ) -> None:
        super().__init__(
            connection,
            cache=cache,
            discovery=discovery,
            config=config,
            renderer=renderer,
            connection_identity=connection_identity,
        )
        self.action_executer: ActionExecuter = action_executer or default_action_executer

    def with_cursor(self, connection: Any) -> SyncCursor:
        """Create a context manager that opens and closes a cursor."""
        return SyncCursor(connection)

    def get_procedure_parameters(
        self, procedure_name: str, include_return_value: bool = False
    ) -> "list[ParameterDescriptor]":
        """Return a fresh copy of the procedure's parameter set, discovering it on a cache miss."""
        discovery = self._require_discovery()
        identity = self.connection_identity

        def discover() -> "list[ParameterDescriptor]":
            return self.action_executer(
                "discover_parameters", lambda: discovery.discover(self.connection, procedure_name)
            )

        return self.cache.get_or_discover(identity, procedure_name, discover, include_return_value)

    def execute_non_query(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> int:
        """Execute a command and return the number of affected rows (``-1`` when unknown)."""
        command = self._prepare_command(command_text, parameters, command_kind)

        def operation() -> int:
            with self.with_cursor(self.connection) as cursor:
                self._execute(cursor, command)
                rowcount = getattr(cursor, "rowcount", -1)
                return rowcount if rowcount is not None else -1

        return self.action_executer("execute_non_query", operation)

    def execute_scalar(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
        scalar_type: "Optional[type[T]]" = None,
    ) -> Any:
        """Execute a command and return the first column of the first row, or ``None``.

        Args:
            command_text: Statement text or procedure name.
            parameters: Parameter descriptors, ``None`` entries are skipped.
            command_kind: Command kind, detected from the text when omitted.
            scalar_type: Type the value is converted to, e.g. ``int`` or ``Decimal``.
                ``None`` results stay ``None``.

        Raises:
            InvalidArgumentError: If the value cannot be converted to ``scalar_type``.
        """
        command = self._prepare_command(command_text, parameters, command_kind)

        def operation() -> Any:
            with self.with_cursor(self.connection) as cursor:
                self._execute(cursor, command)
                if not cursor.description:
                    return None
                row = cursor.fetchone()
                return None if row is None else first_value(row)

        return convert_scalar(self.action_executer("execute_scalar", operation), scalar_type)

    def execute_reader(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "Iterator[DictRow]":
        """Execute a command and stream the rows of its first result set.

        The cursor stays open until the generator is exhausted or closed.
        """
        command = self._prepare_command(command_text, parameters, command_kind)
        return self._stream(command)

    def _stream(self, command: PreparedCommand) -> "Iterator[DictRow]":
        with self.with_cursor(self.connection) as cursor:
            self.action_executer("execute_reader", lambda: self._execute(cursor, command))
            columns = column_names(cursor)
            if not columns:
                return
            for row in iter(cursor.fetchone, None):
                yield from rows_to_dicts(columns, (row,))

    def execute_dataset(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "list[list[DictRow]]":
        """Execute a command and fetch every result set it produces."""
        command = self._prepare_command(command_text, parameters, command_kind)

        def operation() -> "list[list[DictRow]]":
            result_sets: list[list[DictRow]] = []
            with self.with_cursor(self.connection) as cursor:
                self._execute(cursor, command)
                while True:
                    columns = column_names(cursor)
                    if columns:
                        result_sets.append(rows_to_dicts(columns, cursor.fetchall()))
                    nextset = getattr(cursor, "nextset", None)
                    if nextset is None or not nextset():
                        break
            return result_sets

        return self.action_executer("execute_dataset", operation)

    def execute_xml_reader(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "list[Element]":
        """Execute a ``FOR XML`` command and return the top-level elements of its result.

        The first column of every row of the first result set is joined before
        parsing. An empty result gives an empty list.
        """
        command = self._prepare_command(command_text, parameters, command_kind)

        def operation() -> "list[Element]":
            with self.with_cursor(self.connection) as cursor:
                self._execute(cursor, command)
                if not cursor.description:
                    return []
                return parse_xml_chunks(first_value(row) for row in cursor.fetchall())

        return self.action_executer("execute_xml_reader", operation)

    def bulk_insert(
        self,
        table_name: str,
        rows: "Iterable[Any]",
        column_mapping: "Optional[Mapping[str, str]]" = None,
    ) -> int:
        """Insert many rows with a single ``executemany`` call.

        Args:
            table_name: Destination table, used verbatim.
            rows: Dicts, dataclasses, named tuples or plain objects.
            column_mapping: Source field to destination column. Defaults to the
                fields of the first row mapped to columns of the same name.
                Fields are matched case-insensitively for dict rows.

        Returns:
            The number of rows sent. Nothing is executed for an empty ``rows``.
        """
        command = self._prepare_bulk_insert(table_name, rows, column_mapping)
        if command is None:
            return 0

        def operation() -> int:
            with self.with_cursor(self.connection) as cursor:
                self._execute_many(cursor, command)
            return len(command.batches)

        return self.action_executer("bulk_insert", operation)

    def execute_procedure_non_query(self, procedure_name: str, *values: Any) -> int:
        """Call a stored procedure with positional values and return the affected row count."""
        parameters = self._procedure_parameters(procedure_name, values)
        return self.execute_non_query(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    def execute_procedure_scalar(
        self, procedure_name: str, *values: Any, scalar_type: "Optional[type[T]]" = None
    ) -> Any:
        """Call a stored procedure with positional values and return its first value."""
        parameters = self._procedure_parameters(procedure_name, values)
        return self.execute_scalar(procedure_name, parameters, CommandKind.STORED_PROCEDURE, scalar_type)

    def execute_procedure_reader(self, procedure_name: str, *values: Any) -> "Iterator[DictRow]":
        """Call a stored procedure with positional values and stream its rows."""
        parameters = self._procedure_parameters(procedure_name, values)
        return self.execute_reader(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    def execute_procedure_dataset(self, procedure_name: str, *values: Any) -> "list[list[DictRow]]":
        """Call a stored procedure with positional values and fetch all of its result sets."""
        parameters = self._procedure_parameters(procedure_name, values)
        return self.execute_dataset(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    def execute_procedure_xml_reader(self, procedure_name: str, *values: Any) -> "list[Element]":
        """Call a ``FOR XML`` stored procedure with positional values and parse its result."""
        parameters = self._procedure_parameters(procedure_name, values)
        return self.execute_xml_reader(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    def _procedure_parameters(
        self, procedure_name: str, values: "Sequence[Any]"
    ) -> "Optional[list[ParameterDescriptor]]":
        if not values:
            return None
        parameters = self.get_procedure_parameters(procedure_name)
        self._bind_values(procedure_name, parameters, values)
        return parameters

    def _execute(self, cursor: Any, command: PreparedCommand) -> None:
        self._before_execute(cursor, command)
        if self._uses_callproc(cursor, command):
            cursor.callproc(command.procedure_name, command.procedure_values)
        else:
            cursor.execute(command.sql, command.driver_parameters)

    def _execute_many(self, cursor: Any, command: BulkInsertCommand) -> None:
        self._before_bulk_insert(cursor, command)
        cursor.executemany(command.sql, command.batches)
