"""Runtime-checkable protocols for the collaborators procspec talks to.

These describe just enough of a DB-API 2.0 connection and cursor, and of the
stored procedure discovery capability, for static type checking and
``isinstance()`` checks.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from procspec.parameters.descriptor import ParameterDescriptor

__all__ = (
    "AsyncCursorProtocol",
    "CallProcCursorProtocol",
    "ConnectionProtocol",
    "CursorProtocol",
    "ParameterDiscoveryProtocol",
)


@runtime_checkable
class CursorProtocol(Protocol):
    """Protocol for DB-API cursors."""

    description: Any
    rowcount: int

    def execute(self, operation: str, parameters: Any = ...) -> Any:
        """Execute a statement."""
        ...

    def fetchone(self) -> Any:
        """Fetch the next row."""
        ...

    def fetchall(self) -> "Sequence[Any]":
        """Fetch all remaining rows."""
        ...

    def close(self) -> Any:
        """Close the cursor."""
        ...


@runtime_checkable
class CallProcCursorProtocol(CursorProtocol, Protocol):
    """Protocol for DB-API cursors that implement the optional ``callproc``."""

    def callproc(self, procname: str, parameters: "Sequence[Any]" = ...) -> Any:
        """Call a stored procedure."""
        ...


@runtime_checkable
class AsyncCursorProtocol(Protocol):
    """Protocol for cursors of async drivers (aiomysql, aioodbc, asyncmy)."""

    description: Any
    rowcount: int

    async def execute(self, operation: str, parameters: Any = ...) -> Any:
        """Execute a statement."""
        ...

    async def fetchone(self) -> Any:
        """Fetch the next row."""
        ...

    async def fetchall(self) -> "Sequence[Any]":
        """Fetch all remaining rows."""
        ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Protocol for DB-API connections."""

    def cursor(self) -> Any:
        """Open a cursor."""
        ...


@runtime_checkable
class ParameterDiscoveryProtocol(Protocol):
    """Capability that asks a database server to describe a stored procedure."""

    def get_connection_identity(self, connection: Any) -> str:
        """Return the cache identity of ``connection``."""
        ...

    def discover(
        self, connection: Any, procedure_name: str, *, transaction: Optional[Any] = None
    ) -> "list[ParameterDescriptor]":
        """Describe the parameters of ``procedure_name`` in call order.

        The return value parameter, when the server has one, comes first.
        """
        ...

    async def discover_async(
        self, connection: Any, procedure_name: str, *, transaction: Optional[Any] = None
    ) -> "list[ParameterDescriptor]":
        """Async variant of :meth:`discover`."""
        ...
