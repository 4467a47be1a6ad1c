import sys
from types import SimpleNamespace
from typing import Any

import pytest

from procspec.adapters import IdentifiedConnection
from procspec.adapters.mssql import RETURN_VALUE_NAME, MSSQLParameterDiscovery, connect, map_mssql_type
from procspec.exceptions import ImproperConfigurationError, MissingDependencyError, ProcedureNotFoundError
from procspec.parameters import ParameterDirection, ParameterStyle, SqlDbType

LOOKUP = [(["object_id"], [(1234,)])]
PARAMETER_COLUMNS = ["name", "type_name", "max_length", "precision", "scale", "is_output", "is_table_type"]
PARAMETERS = [
    (
        PARAMETER_COLUMNS,
        [
            ("@Id", "int", 4, 10, 0, False, False),
            ("@Name", "nvarchar", 100, 0, 0, False, False),
            ("@Code", "char", 3, 0, 0, False, False),
            ("@Total", "numeric", 9, 18, 2, True, False),
            ("@Blob", "varbinary", -1, 0, 0, False, False),
            ("@Users", "UserList", -1, 0, 0, False, True),
            ("@Shape", "geography", -1, 0, 0, False, False),
        ],
    )
]


def _summary(parameters: Any) -> "list[tuple[str, SqlDbType, ParameterDirection, int, int]]":
    return [(p.name, p.db_type, p.direction, p.size, p.precision) for p in parameters]


EXPECTED = [
    (RETURN_VALUE_NAME, SqlDbType.INT, ParameterDirection.RETURN_VALUE, 0, 0),
    ("Id", SqlDbType.INT, ParameterDirection.INPUT, 0, 0),
    ("Name", SqlDbType.NVARCHAR, ParameterDirection.INPUT, 50, 0),
    ("Code", SqlDbType.CHAR, ParameterDirection.INPUT, 3, 0),
    ("Total", SqlDbType.DECIMAL, ParameterDirection.INPUT_OUTPUT, 18, 2),
    ("Blob", SqlDbType.VARBINARY, ParameterDirection.INPUT, 0, 0),
    ("Users", SqlDbType.STRUCTURED, ParameterDirection.INPUT, 0, 0),
    ("Shape", SqlDbType.UDT, ParameterDirection.INPUT, 0, 0),
]


def test_discover_maps_catalog_rows(fake_connection: Any) -> None:
    connection = fake_connection([LOOKUP, PARAMETERS])

    parameters = MSSQLParameterDiscovery().discover(connection, "dbo.GetUser")

    assert _summary(parameters) == EXPECTED
    assert connection.executed[0] == ("SELECT OBJECT_ID(?, 'P')", ["dbo.GetUser"])
    assert connection.executed[1][1] == [1234]
    assert "sys.parameters" in connection.executed[1][0]
    assert "ORDER BY p.parameter_id" in connection.executed[1][0]
    assert all(cursor.closed for cursor in connection.cursors)


def test_discover_procedure_without_parameters(fake_connection: Any) -> None:
    connection = fake_connection([LOOKUP, [(PARAMETER_COLUMNS, [])]])

    parameters = MSSQLParameterDiscovery().discover(connection, "dbo.Ping")

    assert _summary(parameters) == [EXPECTED[0]]


@pytest.mark.parametrize("lookup", [[(["object_id"], [(None,)])], [(["object_id"], [])]])
def test_unknown_procedure_raises(fake_connection: Any, lookup: Any) -> None:
    connection = fake_connection([lookup])

    with pytest.raises(ProcedureNotFoundError, match="dbo.Missing"):
        MSSQLParameterDiscovery().discover(connection, "dbo.Missing")
    assert connection.cursors[0].closed


def test_driver_errors_propagate_unchanged(fake_connection: Any) -> None:
    connection = fake_connection(error=PermissionError("EXECUTE permission denied"))

    with pytest.raises(PermissionError, match="permission denied"):
        MSSQLParameterDiscovery().discover(connection, "dbo.GetUser")
    assert connection.cursors[0].closed


def test_transaction_cursor_is_used(fake_connection: Any) -> None:
    connection = fake_connection()
    transaction = fake_connection([LOOKUP, PARAMETERS])

    MSSQLParameterDiscovery().discover(connection, "dbo.GetUser", transaction=transaction)

    assert connection.executed == []
    assert len(transaction.executed) == 2


def test_named_parameter_style(fake_connection: Any) -> None:
    connection = fake_connection([LOOKUP, PARAMETERS])

    MSSQLParameterDiscovery(parameter_style=ParameterStyle.NAMED_PYFORMAT).discover(connection, "dbo.GetUser")

    assert connection.executed[0] == ("SELECT OBJECT_ID(%(procedure_name)s, 'P')", {"procedure_name": "dbo.GetUser"})
    assert connection.executed[1][1] == {"object_id": 1234}


def test_dict_rows_are_supported(fake_connection: Any) -> None:
    lookup = [(["object_id"], [{"object_id": 1234}])]
    rows = [dict(zip(PARAMETER_COLUMNS, ("@Id", "bigint", 8, 19, 0, False, False)))]
    connection = fake_connection([lookup, [(PARAMETER_COLUMNS, rows)]])

    parameters = MSSQLParameterDiscovery().discover(connection, "dbo.GetUser")

    assert _summary(parameters)[1] == ("Id", SqlDbType.BIGINT, ParameterDirection.INPUT, 0, 0)


@pytest.mark.anyio
async def test_discover_async(fake_async_connection: Any) -> None:
    connection = fake_async_connection([LOOKUP, PARAMETERS])

    parameters = await MSSQLParameterDiscovery().discover_async(connection, "dbo.GetUser")

    assert _summary(parameters) == EXPECTED
    assert all(cursor.closed for cursor in connection.cursors)


@pytest.mark.anyio
async def test_discover_async_unknown_procedure(fake_async_connection: Any) -> None:
    connection = fake_async_connection([[(["object_id"], [(None,)])]])

    with pytest.raises(ProcedureNotFoundError):
        await MSSQLParameterDiscovery().discover_async(connection, "dbo.Missing")
    assert connection.cursors[0].closed


def test_connection_identity(fake_connection: Any) -> None:
    connection = fake_connection()
    assert MSSQLParameterDiscovery(connection_identity="Server=db;Database=app").get_connection_identity(
        connection
    ) == "Server=db;Database=app"
    assert (
        MSSQLParameterDiscovery().get_connection_identity(IdentifiedConnection(connection, "DSN=orders"))
        == "DSN=orders"
    )


def test_connection_without_identity_is_rejected(fake_connection: Any) -> None:
    with pytest.raises(ImproperConfigurationError, match="connection_identity"):
        MSSQLParameterDiscovery().get_connection_identity(fake_connection())


@pytest.mark.parametrize(
    ("type_name", "expected"),
    [
        ("NVARCHAR", SqlDbType.NVARCHAR),
        ("numeric", SqlDbType.DECIMAL),
        ("sql_variant", SqlDbType.VARIANT),
        ("rowversion", SqlDbType.TIMESTAMP),
        ("sysname", SqlDbType.NVARCHAR),
        ("datetimeoffset", SqlDbType.DATETIMEOFFSET),
        ("hierarchyid", SqlDbType.UDT),
    ],
)
def test_map_mssql_type(type_name: str, expected: SqlDbType) -> None:
    assert map_mssql_type(type_name) is expected


def test_connect_requires_pyodbc(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "pyodbc", None)
    with pytest.raises(MissingDependencyError, match="pyodbc"):
        connect("DSN=app")


def test_connect_records_connection_string_as_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_pyodbc = SimpleNamespace(connect=lambda connection_string, **kwargs: SimpleNamespace(kwargs=kwargs))
    monkeypatch.setitem(sys.modules, "pyodbc", fake_pyodbc)

    first = connect("DSN=orders", autocommit=True)
    second = connect("DSN=billing")

    assert first.kwargs == {"autocommit": True}
    assert MSSQLParameterDiscovery().get_connection_identity(first) == "DSN=orders"
    assert MSSQLParameterDiscovery().get_connection_identity(second) == "DSN=billing"
