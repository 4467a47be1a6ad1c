"""Opening MySQL connections with PyMySQL."""

from typing import Any

from procspec.exceptions import MissingDependencyError

__all__ = ("connect",)


def connect(**kwargs: Any) -> Any:
    """Open a PyMySQL connection.

    Raises:
        MissingDependencyError: If the `pymysql` package is not installed.
    """
    try:
        import pymysql
    except ImportError as e:
        raise MissingDependencyError(package="pymysql", install_package="mysql") from e
    return pymysql.connect(**kwargs)
