import datetime
import uuid
from decimal import Decimal
from typing import Any

import pytest

from procspec.parameters import ParameterDirection, SqlDbType, create_parameter, infer_db_type
from procspec.typing import DBNull


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, SqlDbType.BIT),
        (5, SqlDbType.INT),
        (2**40, SqlDbType.BIGINT),
        (1.5, SqlDbType.FLOAT),
        (Decimal("1.5"), SqlDbType.DECIMAL),
        ("text", SqlDbType.NVARCHAR),
        (datetime.datetime(2024, 1, 1), SqlDbType.DATETIME),
        (datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc), SqlDbType.DATETIMEOFFSET),
        (datetime.date(2024, 1, 1), SqlDbType.DATE),
        (datetime.time(12, 0), SqlDbType.TIME),
        (uuid.uuid4(), SqlDbType.UNIQUEIDENTIFIER),
        (b"raw", SqlDbType.VARBINARY),
        (None, SqlDbType.NVARCHAR),
    ],
)
def test_infer_db_type(value: Any, expected: SqlDbType) -> None:
    assert infer_db_type(value) is expected


def test_create_parameter_infers_type() -> None:
    parameter = create_parameter(42, "Count")
    assert parameter.name == "Count"
    assert parameter.value == 42
    assert parameter.db_type is SqlDbType.INT
    assert parameter.direction is ParameterDirection.INPUT


def test_create_parameter_none_becomes_dbnull() -> None:
    assert create_parameter(None, "Missing").value is DBNull


def test_create_parameter_explicit_type_wins() -> None:
    parameter = create_parameter("abc", "Code", SqlDbType.CHAR, size=3)
    assert parameter.db_type is SqlDbType.CHAR
    assert parameter.size == 3
