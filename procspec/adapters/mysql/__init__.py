from procspec.adapters.mysql.connection import connect
from procspec.adapters.mysql.discovery import MySQLParameterDiscovery, map_mysql_type, split_procedure_name

__all__ = ("MySQLParameterDiscovery", "connect", "map_mysql_type", "split_procedure_name")
