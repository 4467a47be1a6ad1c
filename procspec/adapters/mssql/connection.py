"""Opening SQL Server connections with pyodbc."""

from typing import Any

from procspec.adapters._connection import IdentifiedConnection
from procspec.exceptions import MissingDependencyError

__all__ = ("connect",)


def connect(connection_string: str, **kwargs: Any) -> IdentifiedConnection:
    """Open a pyodbc connection.

    Args:
        connection_string: ODBC connection string. It becomes the connection's
            cache identity, so parameter sets are shared per database and login.
        **kwargs: Passed through to ``pyodbc.connect``.

    Raises:
        MissingDependencyError: If the `pyodbc` package is not installed.

    Returns:
        The open pyodbc connection, wrapped so it carries its identity.
    """
    try:
        import pyodbc  # type: ignore[import-not-found]
    except ImportError as e:
        raise MissingDependencyError(package="pyodbc", install_package="mssql") from e
    return IdentifiedConnection(pyodbc.connect(connection_string, **kwargs), connection_string)
