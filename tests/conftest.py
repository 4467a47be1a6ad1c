from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from procspec.utils.logging import set_correlation_id


class FakeCursor:
    """In-memory DB-API cursor.

    Every ``execute``/``callproc`` consumes the next response queued on the
    connection. A response is a list of result sets, each ``(columns, rows)``,
    or ``None`` for a statement that returns no rows.
    """

    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.description: Any = None
        self.rowcount = -1
        self.closed = False
        self._sets: list[Any] = []
        self._rows: list[Any] = []

    def _load(self, response: Any) -> None:
        self._sets = list(response or [])
        self.rowcount = self.connection.rowcount
        self._activate()

    def _activate(self) -> bool:
        if not self._sets:
            self.description = None
            self._rows = []
            return False
        result_set = self._sets.pop(0)
        if result_set is None:
            self.description = None
            self._rows = []
        else:
            columns, rows = result_set
            self.description = [(name, None, None, None, None, None, None) for name in columns]
            self._rows = list(rows)
        return True

    def execute(self, operation: str, parameters: Any = None) -> None:
        self.connection.executed.append((operation, parameters))
        if self.connection.error is not None:
            raise self.connection.error
        self._load(self.connection.responses.pop(0) if self.connection.responses else None)

    def executemany(self, operation: str, seq_of_parameters: Any) -> None:
        self.connection.executed_many.append((operation, list(seq_of_parameters)))
        if self.connection.error is not None:
            raise self.connection.error
        self.description = None
        self.rowcount = self.connection.rowcount

    def fetchone(self) -> Any:
        return self._rows.pop(0) if self._rows else None

    def fetchall(self) -> list[Any]:
        rows, self._rows = self._rows, []
        return rows

    def nextset(self) -> bool | None:
        return True if self._activate() else None

    def close(self) -> None:
        self.closed = True


class FakeCallProcCursor(FakeCursor):
    def callproc(self, procname: str, parameters: Any = ()) -> Any:
        self.connection.called.append((procname, list(parameters)))
        self._load(self.connection.responses.pop(0) if self.connection.responses else None)
        return parameters


class FakeConnection:
    def __init__(
        self,
        responses: list[Any] | None = None,
        *,
        rowcount: int = -1,
        callproc: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.rowcount = rowcount
        self.error = error
        self.executed: list[tuple[str, Any]] = []
        self.executed_many: list[tuple[str, list[Any]]] = []
        self.called: list[tuple[str, list[Any]]] = []
        self.cursors: list[FakeCursor] = []
        self._cursor_class = FakeCallProcCursor if callproc else FakeCursor

    def cursor(self) -> FakeCursor:
        cursor = self._cursor_class(self)
        self.cursors.append(cursor)
        return cursor


class FakeAsyncCursor:
    def __init__(self, connection: FakeAsyncConnection) -> None:
        self._cursor = FakeCursor(connection)  # type: ignore[arg-type]
        self.closed = False

    @property
    def description(self) -> Any:
        return self._cursor.description

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    async def execute(self, operation: str, parameters: Any = None) -> None:
        self._cursor.execute(operation, parameters)

    async def executemany(self, operation: str, seq_of_parameters: Any) -> None:
        self._cursor.executemany(operation, seq_of_parameters)

    async def fetchone(self) -> Any:
        return self._cursor.fetchone()

    async def fetchall(self) -> list[Any]:
        return self._cursor.fetchall()

    async def nextset(self) -> bool | None:
        return self._cursor.nextset()

    async def close(self) -> None:
        self.closed = True


class FakeAsyncCallProcCursor(FakeAsyncCursor):
    async def callproc(self, procname: str, parameters: Any = ()) -> Any:
        connection = self._cursor.connection
        connection.called.append((procname, list(parameters)))
        self._cursor._load(connection.responses.pop(0) if connection.responses else None)
        return parameters


class FakeAsyncConnection(FakeConnection):
    def cursor(self) -> Any:  # type: ignore[override]
        cursor_class = FakeAsyncCallProcCursor if self._cursor_class is FakeCallProcCursor else FakeAsyncCursor
        cursor = cursor_class(self)
        self.cursors.append(cursor)  # type: ignore[arg-type]
        return cursor


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_connection() -> type[FakeConnection]:
    return FakeConnection


@pytest.fixture
def fake_async_connection() -> type[FakeAsyncConnection]:
    return FakeAsyncConnection


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Iterator[None]:
    yield
    set_correlation_id(None)
