"""Connections that carry the identity of the database they reach."""

from typing import Any, Final

from procspec.exceptions import InvalidArgumentError

__all__ = ("IdentifiedConnection",)

IDENTIFIED_CONNECTION_SLOTS: Final = ("connection", "connection_identity")


class IdentifiedConnection:
    """DB-API connection proxy that remembers how it was opened.

    The parameter cache keys entries by connection identity, so the identity
    must name the database and credentials rather than the connection object.
    Attribute reads and writes pass through to the wrapped connection.

    Args:
        connection: Open DB-API connection.
        connection_identity: Connection string (or equivalent) the connection was opened with.
    """

    __slots__ = IDENTIFIED_CONNECTION_SLOTS

    def __init__(self, connection: Any, connection_identity: str) -> None:
        if connection is None:
            raise InvalidArgumentError("Value cannot be null.", "connection")
        if connection_identity is None or not connection_identity.strip():
            raise InvalidArgumentError(argument="connection_identity")
        object.__setattr__(self, "connection", connection)
        object.__setattr__(self, "connection_identity", connection_identity)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.connection, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in IDENTIFIED_CONNECTION_SLOTS:
            object.__setattr__(self, name, value)
        else:
            setattr(self.connection, name, value)

    def __enter__(self) -> "IdentifiedConnection":
        self.connection.__enter__()
        return self

    def __exit__(self, *args: Any) -> Any:
        return self.connection.__exit__(*args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection!r})"
