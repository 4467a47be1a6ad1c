"""Shared types and sentinels."""

from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Literal

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable
    from typing import Callable

    from procspec.parameters.descriptor import ParameterDescriptor

__all__ = (
    "AsyncDiscoverFn",
    "DBNull",
    "DBNullType",
    "DictRow",
    "DiscoverFn",
    "ParameterSet",
    "is_dbnull",
)


class _DBNullEnum(Enum):
    """A sentinel enum used to represent a database null value."""

    DBNULL = 0

    def __repr__(self) -> str:
        return "DBNull"

    def __str__(self) -> str:
        return ""

    def __bool__(self) -> bool:
        return False


DBNullType: TypeAlias = Literal[_DBNullEnum.DBNULL]
DBNull: Final = _DBNullEnum.DBNULL
"""Value of a parameter that is explicitly bound to SQL ``NULL``."""

DictRow: TypeAlias = "dict[str, Any]"
ParameterSet: TypeAlias = "list[ParameterDescriptor]"
DiscoverFn: TypeAlias = "Callable[[], Iterable[ParameterDescriptor]]"
AsyncDiscoverFn: TypeAlias = "Callable[[], Awaitable[Iterable[ParameterDescriptor]]]"


def is_dbnull(value: Any) -> bool:
    """Check whether ``value`` should be treated as SQL ``NULL``.

    Both the :data:`DBNull` sentinel and ``None`` qualify.
    """
    return value is None or value is DBNull
