from procspec.adapters.mssql.connection import connect
from procspec.adapters.mssql.discovery import RETURN_VALUE_NAME, MSSQLParameterDiscovery, map_mssql_type

__all__ = ("RETURN_VALUE_NAME", "MSSQLParameterDiscovery", "connect", "map_mssql_type")
