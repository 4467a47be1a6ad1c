"""Asynchronous procedure executor."""

from collections.abc import AsyncIterator, Awaitable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from procspec.core.renderer import CommandKind
from procspec.driver._common import (
    AsyncCursor,
    BulkInsertCommand,
    CommonExecutorMixin,
    PreparedCommand,
    column_names,
    convert_scalar,
    default_async_action_executer,
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

__all__ = ("AsyncActionExecuter", "AsyncProcedureExecutor")

AsyncActionExecuter = Callable[[str, Callable[[], Awaitable[Any]]], Awaitable[Any]]
T = TypeVar("T")


class AsyncProcedureExecutor(CommonExecutorMixin):
    """Runs commands and stored procedures on an async DB-API style connection (aiomysql, aioodbc).

    ``action_executer(action_name, operation)`` must await ``operation()`` and
    return its result.
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
        action_executer: Optional[AsyncActionExecuter] = None,
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
        self.action_executer: AsyncActionExecuter = action_executer or default_async_action_executer

    def with_cursor(self, connection: Any) -> AsyncCursor:
        """Create an async context manager that opens and closes a cursor."""
        return AsyncCursor(connection)

    async def get_procedure_parameters(
        self, procedure_name: str, include_return_value: bool = False
    ) -> "list[ParameterDescriptor]":
        """Return a fresh copy of the procedure's parameter set, discovering it on a cache miss."""
        discovery = self._require_discovery()
        identity = self.connection_identity

        async def discover() -> "list[ParameterDescriptor]":
            return await self.action_executer(
                "discover_parameters", lambda: discovery.discover_async(self.connection, procedure_name)
            )

        return await self.cache.get_or_discover_async(identity, procedure_name, discover, include_return_value)

    async def execute_non_query(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> int:
        """Execute a command and return the number of affected rows (``-1`` when unknown)."""
        command = self._prepare_command(command_text, parameters, command_kind)

        async def operation() -> int:
            async with self.with_cursor(self.connection) as cursor:
                await self._execute(cursor, command)
                rowcount = getattr(cursor, "rowcount", -1)
                return rowcount if rowcount is not None else -1

        return await self.action_executer("execute_non_query", operation)

    async def execute_scalar(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
        scalar_type: "Optional[type[T]]" = None,
    ) -> Any:
        """Execute a command and return the first column of the first row, converted to ``scalar_type``."""
        command = self._prepare_command(command_text, parameters, command_kind)

        async def operation() -> Any:
            async with self.with_cursor(self.connection) as cursor:
                await self._execute(cursor, command)
                if not cursor.description:
                    return None
                row = await cursor.fetchone()
                return None if row is None else first_value(row)

        return convert_scalar(await self.action_executer("execute_scalar", operation), scalar_type)

    def execute_reader(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "AsyncIterator[DictRow]":
        """Execute a command and stream the rows of its first result set.

        Use with ``async for``. The cursor stays open until iteration ends.
        """
        command = self._prepare_command(command_text, parameters, command_kind)
        return self._stream(command)

    async def _stream(self, command: PreparedCommand) -> "AsyncIterator[DictRow]":
        async with self.with_cursor(self.connection) as cursor:
            await self.action_executer("execute_reader", lambda: self._execute(cursor, command))
            columns = column_names(cursor)
            if not columns:
                return
            while True:
                row = await cursor.fetchone()
                if row is None:
                    break
                for record in rows_to_dicts(columns, (row,)):
                    yield record

    async def execute_dataset(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "list[list[DictRow]]":
        """Execute a command and fetch every result set it produces."""
        command = self._prepare_command(command_text, parameters, command_kind)

        async def operation() -> "list[list[DictRow]]":
            result_sets: list[list[DictRow]] = []
            async with self.with_cursor(self.connection) as cursor:
                await self._execute(cursor, command)
                while True:
                    columns = column_names(cursor)
                    if columns:
                        result_sets.append(rows_to_dicts(columns, await cursor.fetchall()))
                    nextset = getattr(cursor, "nextset", None)
                    if nextset is None or not await nextset():
                        break
            return result_sets

        return await self.action_executer("execute_dataset", operation)

    async def execute_xml_reader(
        self,
        command_text: str,
        parameters: "Optional[Sequence[Optional[ParameterDescriptor]]]" = None,
        command_kind: "Optional[Union[CommandKind, str]]" = None,
    ) -> "list[Element]":
        """Execute a ``FOR XML`` command and return the top-level elements of its result."""
        command = self._prepare_command(command_text, parameters, command_kind)

        async def operation() -> "list[Element]":
            async with self.with_cursor(self.connection) as cursor:
                await self._execute(cursor, command)
                if not cursor.description:
                    return []
                return parse_xml_chunks(first_value(row) for row in await cursor.fetchall())

        return await self.action_executer("execute_xml_reader", operation)

    async def bulk_insert(
        self,
        table_name: str,
        rows: "Iterable[Any]",
        column_mapping: "Optional[Mapping[str, str]]" = None,
    ) -> int:
        """Insert many rows with a single ``executemany`` call and return the number sent."""
        command = self._prepare_bulk_insert(table_name, rows, column_mapping)
        if command is None:
            return 0

        async def operation() -> int:
            async with self.with_cursor(self.connection) as cursor:
                await self._execute_many(cursor, command)
            return len(command.batches)

        return await self.action_executer("bulk_insert", operation)

    async def execute_procedure_non_query(self, procedure_name: str, *values: Any) -> int:
        """Call a stored procedure with positional values and return the affected row count."""
        parameters = await self._procedure_parameters(procedure_name, values)
        return await self.execute_non_query(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    async def execute_procedure_scalar(
        self, procedure_name: str, *values: Any, scalar_type: "Optional[type[T]]" = None
    ) -> Any:
        """Call a stored procedure with positional values and return its first value."""
        parameters = await self._procedure_parameters(procedure_name, values)
        return await self.execute_scalar(procedure_name, parameters, CommandKind.STORED_PROCEDURE, scalar_type)

    async def execute_procedure_reader(self, procedure_name: str, *values: Any) -> "AsyncIterator[DictRow]":
        """Call a stored procedure with positional values and stream its rows."""
        parameters = await self._procedure_parameters(procedure_name, values)
        return self.execute_reader(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    async def execute_procedure_dataset(self, procedure_name: str, *values: Any) -> "list[list[DictRow]]":
        """Call a stored procedure with positional values and fetch all of its result sets."""
        parameters = await self._procedure_parameters(procedure_name, values)
        return await self.execute_dataset(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    async def execute_procedure_xml_reader(self, procedure_name: str, *values: Any) -> "list[Element]":
        """Call a ``FOR XML`` stored procedure with positional values and parse its result."""
        parameters = await self._procedure_parameters(procedure_name, values)
        return await self.execute_xml_reader(procedure_name, parameters, CommandKind.STORED_PROCEDURE)

    async def _procedure_parameters(
        self, procedure_name: str, values: "Sequence[Any]"
    ) -> "Optional[list[ParameterDescriptor]]":
        if not values:
            return None
        parameters = await self.get_procedure_parameters(procedure_name)
        self._bind_values(procedure_name, parameters, values)
        return parameters

    async def _execute(self, cursor: Any, command: PreparedCommand) -> None:
        self._before_execute(cursor, command)
        if self._uses_callproc(cursor, command):
            await cursor.callproc(command.procedure_name, command.procedure_values)
        else:
            await cursor.execute(command.sql, command.driver_parameters)

    async def _execute_many(self, cursor: Any, command: BulkInsertCommand) -> None:
        self._before_bulk_insert(cursor, command)
        await cursor.executemany(command.sql, command.batches)
