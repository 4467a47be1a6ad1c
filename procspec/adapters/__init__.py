"""Database specific stored procedure discovery."""

from procspec.adapters._connection import IdentifiedConnection
from procspec.adapters._discovery import DBAPIParameterDiscovery, default_connection_identity
from procspec.adapters.mssql import MSSQLParameterDiscovery
from procspec.adapters.mysql import MySQLParameterDiscovery

__all__ = (
    "DBAPIParameterDiscovery",
    "IdentifiedConnection",
    "MSSQLParameterDiscovery",
    "MySQLParameterDiscovery",
    "default_connection_identity",
)
