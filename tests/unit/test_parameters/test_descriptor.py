import datetime
from decimal import Decimal

import pytest

from procspec.exceptions import InvalidArgumentError
from procspec.parameters import ParameterDescriptor, ParameterDirection, SqlDbType, clone_parameters, copy_value
from procspec.typing import DBNull


def test_defaults() -> None:
    parameter = ParameterDescriptor("Id")
    assert parameter.value is None
    assert parameter.db_type is SqlDbType.NVARCHAR
    assert parameter.direction is ParameterDirection.INPUT
    assert parameter.size == 0
    assert parameter.precision == 0
    assert parameter.is_null
    assert parameter.is_input


@pytest.mark.parametrize("name", ["", "   ", None])
def test_blank_name_rejected(name: "str | None") -> None:
    with pytest.raises(InvalidArgumentError):
        ParameterDescriptor(name)  # type: ignore[arg-type]


@pytest.mark.parametrize("field", ["size", "precision"])
def test_negative_size_or_precision_rejected(field: str) -> None:
    with pytest.raises(InvalidArgumentError, match=field):
        ParameterDescriptor("Id", **{field: -1})


def test_enum_values_accepted_by_name() -> None:
    parameter = ParameterDescriptor("Id", db_type="Int", direction="InputOutput")  # type: ignore[arg-type]
    assert parameter.db_type is SqlDbType.INT
    assert parameter.direction is ParameterDirection.INPUT_OUTPUT


def test_output_and_return_value_are_not_input() -> None:
    assert not ParameterDescriptor("o", direction=ParameterDirection.OUTPUT).is_input
    assert not ParameterDescriptor("r", direction=ParameterDirection.RETURN_VALUE).is_input
    assert ParameterDescriptor("io", direction=ParameterDirection.INPUT_OUTPUT).is_input


def test_dbnull_is_null() -> None:
    assert ParameterDescriptor("Id", DBNull).is_null
    assert not ParameterDescriptor("Id", 0).is_null


def test_clone_copies_every_field() -> None:
    original = ParameterDescriptor("Amount", Decimal("1.5"), SqlDbType.DECIMAL, ParameterDirection.INPUT_OUTPUT, 18, 2)
    clone = original.clone()
    assert clone == original
    assert clone is not original


def test_clone_is_independent_of_mutable_values() -> None:
    original = ParameterDescriptor("Data", bytearray(b"abc"), SqlDbType.VARBINARY)
    clone = original.clone()
    clone.value[0] = ord("z")
    assert original.value == bytearray(b"abc")

    nested = ParameterDescriptor("Tags", ["a", ["b"]])
    nested_clone = nested.clone()
    nested_clone.value[1].append("c")
    assert nested.value == ["a", ["b"]]


def test_clone_then_assign_does_not_touch_original() -> None:
    original = ParameterDescriptor("Name", "alice")
    clone = original.clone()
    clone.value = "bob"
    clone.size = 10
    assert original.value == "alice"
    assert original.size == 0


def test_copy_value_shares_immutables() -> None:
    moment = datetime.datetime(2024, 1, 1)
    assert copy_value(moment) is moment
    assert copy_value(DBNull) is DBNull
    assert copy_value(None) is None
    view = memoryview(b"xy")
    copied = copy_value(view)
    assert bytes(copied) == b"xy"
    assert copied is not view


def test_clone_parameters_preserves_order_and_none() -> None:
    first = ParameterDescriptor("a", 1)
    second = ParameterDescriptor("b", 2)
    clones = clone_parameters([first, None, second])
    assert [parameter.name if parameter else None for parameter in clones] == ["a", None, "b"]
    assert clones[0] is not first
    assert clone_parameters(None) == []


def test_descriptors_are_unhashable() -> None:
    with pytest.raises(TypeError):
        hash(ParameterDescriptor("a"))


def test_repr_mentions_name_and_type() -> None:
    text = repr(ParameterDescriptor("Id", 5, SqlDbType.INT))
    assert "name='Id'" in text
    assert "db_type=Int" in text
