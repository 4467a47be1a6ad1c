"""Shared machinery for stored procedure discovery over DB-API connections."""

from collections.abc import Mapping, Sequence
from string import Formatter
from typing import TYPE_CHECKING, Any, ClassVar, Final, Optional, Union

from procspec.driver._common import AsyncCursor, SyncCursor
from procspec.exceptions import ImproperConfigurationError, ProcedureNotFoundError
from procspec.parameters.types import ParameterStyle
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from procspec.parameters.descriptor import ParameterDescriptor

__all__ = ("DBAPIParameterDiscovery", "default_connection_identity", "row_values")

logger = get_logger("procspec.adapters.discovery")

_FORMATTER: Final = Formatter()


def default_connection_identity(connection: Any) -> str:
    """Return the identity a connection carries, such as an :class:`~procspec.adapters.IdentifiedConnection`.

    Raises:
        ImproperConfigurationError: If the connection does not say which database it reaches.
    """
    identity = getattr(connection, "connection_identity", None)
    if isinstance(identity, str) and identity.strip():
        return identity
    msg = (
        f"Cannot derive a cache identity for a {type(connection).__qualname__} connection. "
        "Pass connection_identity explicitly or open the connection with procspec's connect()."
    )
    raise ImproperConfigurationError(msg)


def row_values(row: Any) -> "list[Any]":
    """Return the column values of a row, whether the cursor yields tuples or dicts."""
    if isinstance(row, Mapping):
        return list(row.values())
    return list(row)


class DBAPIParameterDiscovery:
    """Base class for discovery capabilities backed by catalog queries.

    Subclasses provide the catalog statements as templates whose ``{name}``
    fields become placeholders in the configured parameter style, and turn the
    fetched rows into descriptors.

    Args:
        parameter_style: Placeholder style of the driver the connections come from.
        connection_identity: Cache identity reported for every connection.
            Defaults to the identity the connection itself carries.
    """

    __slots__ = ("_connection_identity", "parameter_style")

    default_parameter_style: ClassVar[ParameterStyle] = ParameterStyle.QMARK
    procedure_lookup_sql: ClassVar[str] = ""
    parameters_sql: ClassVar[str] = ""

    def __init__(
        self, parameter_style: Optional[ParameterStyle] = None, connection_identity: Optional[str] = None
    ) -> None:
        self.parameter_style = ParameterStyle(parameter_style or self.default_parameter_style)
        self._connection_identity = connection_identity

    def get_connection_identity(self, connection: Any) -> str:
        if self._connection_identity:
            return self._connection_identity
        return default_connection_identity(connection)

    def prepare(self, template: str, **values: Any) -> "tuple[str, Union[list[Any], dict[str, Any]]]":
        """Fill the placeholders of a catalog statement.

        Args:
            template: Statement with ``{name}`` fields.
            **values: Value for every field.

        Returns:
            The statement and the driver parameters, a dict for named styles and
            a list in field order otherwise.
        """
        names = [field for _, field, _, _ in _FORMATTER.parse(template) if field]
        placeholders = {name: self.parameter_style.placeholder(name, position) for position, name in enumerate(names)}
        sql = template.format(**placeholders)
        if self.parameter_style.is_named:
            return sql, {name: values[name] for name in names}
        return sql, [values[name] for name in names]

    def discover(
        self, connection: Any, procedure_name: str, *, transaction: Optional[Any] = None
    ) -> "list[ParameterDescriptor]":
        """Describe the parameters of ``procedure_name`` in call order.

        Args:
            connection: Open DB-API connection.
            procedure_name: Name of the stored procedure, optionally schema qualified.
            transaction: Object whose cursor should run the catalog queries instead
                of the connection's, e.g. a connection bound to an open transaction.

        Raises:
            ProcedureNotFoundError: If the server does not know the procedure.

        Returns:
            Descriptors in call order, led by the return value where the server has one.
        """
        with SyncCursor(transaction if transaction is not None else connection) as cursor:
            sql, parameters = self.prepare(self.procedure_lookup_sql, **self.lookup_values(procedure_name))
            cursor.execute(sql, parameters)
            found = cursor.fetchone()
            if found is None or row_values(found)[0] is None:
                raise ProcedureNotFoundError(procedure_name)

            sql, parameters = self.prepare(self.parameters_sql, **self.parameter_values(procedure_name, found))
            cursor.execute(sql, parameters)
            rows = cursor.fetchall()
        return self._build(procedure_name, rows)

    async def discover_async(
        self, connection: Any, procedure_name: str, *, transaction: Optional[Any] = None
    ) -> "list[ParameterDescriptor]":
        """Async variant of :meth:`discover` for aiomysql/aioodbc style connections."""
        async with AsyncCursor(transaction if transaction is not None else connection) as cursor:
            sql, parameters = self.prepare(self.procedure_lookup_sql, **self.lookup_values(procedure_name))
            await cursor.execute(sql, parameters)
            found = await cursor.fetchone()
            if found is None or row_values(found)[0] is None:
                raise ProcedureNotFoundError(procedure_name)

            sql, parameters = self.prepare(self.parameters_sql, **self.parameter_values(procedure_name, found))
            await cursor.execute(sql, parameters)
            rows = await cursor.fetchall()
        return self._build(procedure_name, rows)

    def _build(self, procedure_name: str, rows: "Sequence[Any]") -> "list[ParameterDescriptor]":
        parameters = [self.build_descriptor(row_values(row)) for row in rows]
        logger.debug("Discovered %d parameters for %s", len(parameters), procedure_name)
        return self.finalize(parameters)

    def lookup_values(self, procedure_name: str) -> "dict[str, Any]":
        """Values for :attr:`procedure_lookup_sql`."""
        raise NotImplementedError

    def parameter_values(self, procedure_name: str, found: Any) -> "dict[str, Any]":
        """Values for :attr:`parameters_sql`, given the row that located the procedure."""
        raise NotImplementedError

    def build_descriptor(self, values: "list[Any]") -> "ParameterDescriptor":
        """Turn one catalog row into a descriptor."""
        raise NotImplementedError

    def finalize(self, parameters: "list[ParameterDescriptor]") -> "list[ParameterDescriptor]":
        """Hook to adjust the discovered set, e.g. to prepend a return value."""
        return parameters
