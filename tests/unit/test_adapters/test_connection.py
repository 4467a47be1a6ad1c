from typing import Any

import pytest

from procspec.adapters import IdentifiedConnection, default_connection_identity
from procspec.exceptions import ImproperConfigurationError, InvalidArgumentError


class ContextConnection:
    def __init__(self) -> None:
        self.timeout = 0
        self.events: list[str] = []

    def cursor(self) -> str:
        return "cursor"

    def __enter__(self) -> "ContextConnection":
        self.events.append("enter")
        return self

    def __exit__(self, *args: Any) -> None:
        self.events.append("exit")


def test_attributes_pass_through_to_the_wrapped_connection() -> None:
    raw = ContextConnection()
    connection = IdentifiedConnection(raw, "DSN=orders")

    connection.timeout = 30

    assert raw.timeout == 30
    assert connection.cursor() == "cursor"
    assert connection.connection_identity == "DSN=orders"


def test_context_manager_is_delegated() -> None:
    raw = ContextConnection()

    with IdentifiedConnection(raw, "DSN=orders") as connection:
        assert isinstance(connection, IdentifiedConnection)

    assert raw.events == ["enter", "exit"]


@pytest.mark.parametrize("identity", ["", "   "])
def test_blank_identity_is_rejected(identity: str) -> None:
    with pytest.raises(InvalidArgumentError, match="connection_identity"):
        IdentifiedConnection(ContextConnection(), identity)


def test_identity_does_not_depend_on_the_connection_object() -> None:
    first = IdentifiedConnection(ContextConnection(), "DSN=orders")
    del first
    second = IdentifiedConnection(ContextConnection(), "DSN=billing")

    assert default_connection_identity(second) == "DSN=billing"
    assert default_connection_identity(IdentifiedConnection(ContextConnection(), "DSN=orders")) == "DSN=orders"


def test_plain_connection_has_no_default_identity() -> None:
    with pytest.raises(ImproperConfigurationError, match="ContextConnection"):
        default_connection_identity(ContextConnection())
