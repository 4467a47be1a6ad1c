"""Stored procedure parameter cache.

Parameter sets discovered from the database are memoized per
``(connection identity, procedure name, return value flag)`` for the lifetime
of the cache object. Callers always receive deep copies, so assigning values
to a returned set never reaches the cache or any other caller.

Storage is guarded by a lock that is held only for dictionary access, never
across a discovery call, so misses for different keys do not block each
other. Without single-flight, concurrent misses for the same key each run
discovery and the last write wins.
"""

import asyncio
import threading
from collections.abc import Iterable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Final, Optional

from mypy_extensions import mypyc_attr

from procspec.core.config import CacheConfiguration
from procspec.exceptions import InvalidArgumentError
from procspec.parameters.descriptor import ParameterDescriptor, clone_parameters
from procspec.parameters.types import ParameterDirection
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from procspec.protocols import ParameterDiscoveryProtocol
    from procspec.typing import AsyncDiscoverFn, DiscoverFn

__all__ = ("RETURN_VALUE_KEY_SUFFIX", "CacheStats", "ParameterCache", "create_cache_key")

RETURN_VALUE_KEY_SUFFIX: Final = ":include ReturnValue Parameter"

CACHE_STATS_SLOTS: Final = ("discoveries", "hits", "misses", "writes")
PARAMETER_CACHE_SLOTS: Final = ("_async_inflight", "_config", "_entries", "_inflight", "_lock", "_stats")

logger = get_logger("procspec.core.cache")


def create_cache_key(connection_identity: str, command_text: str, include_return_value: bool = False) -> str:
    """Build the cache key for a parameter set.

    Keys are plain case-sensitive concatenations. The return value variant
    gets a suffix so that it never collides with the stripped variant.

    Args:
        connection_identity: Identity of the target database, e.g. its connection string.
        command_text: Stored procedure name or command text.
        include_return_value: Whether the set includes the return value parameter.

    Returns:
        The cache key.
    """
    key = f"{connection_identity}:{command_text}"
    if include_return_value:
        key += RETURN_VALUE_KEY_SUFFIX
    return key


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Parameter cache counters."""

    __slots__ = CACHE_STATS_SLOTS

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.discoveries = 0
        self.writes = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.discoveries = 0
        self.writes = 0

    def __repr__(self) -> str:
        return (
            f"CacheStats(hit_rate={self.hit_rate:.1f}%, hits={self.hits}, misses={self.misses}, "
            f"discoveries={self.discoveries}, writes={self.writes})"
        )


def _require_text(value: Optional[str], argument: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(argument=argument)
    return value


def _strip_return_value(
    parameters: "list[ParameterDescriptor]", include_return_value: bool
) -> "list[ParameterDescriptor]":
    if not include_return_value and parameters and parameters[0].direction is ParameterDirection.RETURN_VALUE:
        return parameters[1:]
    return parameters


def _freeze(parameters: "Iterable[Optional[ParameterDescriptor]]") -> "tuple[ParameterDescriptor, ...]":
    entry = []
    for parameter in parameters:
        if parameter is None:
            msg = "A parameter set cannot contain null entries."
            raise InvalidArgumentError(msg, "parameters")
        entry.append(parameter.clone())
    return tuple(entry)


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterCache:
    """Process-lifetime cache of stored procedure parameter sets.

    Create one instance at startup and hand it to everything that needs it;
    independent instances never share entries.

    Args:
        config: Cache settings. Defaults to :class:`CacheConfiguration`.
    """

    __slots__ = PARAMETER_CACHE_SLOTS

    def __init__(self, config: Optional[CacheConfiguration] = None) -> None:
        self._config = config or CacheConfiguration()
        self._entries: dict[str, tuple[ParameterDescriptor, ...]] = {}
        self._inflight: dict[str, Future[tuple[ParameterDescriptor, ...]]] = {}
        self._async_inflight: dict[str, asyncio.Future[Optional[tuple[ParameterDescriptor, ...]]]] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def config(self) -> CacheConfiguration:
        return self._config

    def get_or_discover(
        self,
        connection_identity: str,
        procedure_name: str,
        discover: "DiscoverFn",
        include_return_value: bool = False,
    ) -> "list[ParameterDescriptor]":
        """Return the parameter set for a stored procedure, discovering it on a miss.

        Args:
            connection_identity: Identity of the target database, e.g. its connection string.
            procedure_name: Name of the stored procedure, optionally schema qualified.
            discover: Called only on a miss; returns the procedure's parameters in
                call order, led by the return value parameter where the server has one.
            include_return_value: Keep the leading return value parameter.

        Raises:
            InvalidArgumentError: If ``connection_identity`` or ``procedure_name`` is blank.

        Returns:
            A deep copy of the cached parameter set.
        """
        _require_text(connection_identity, "connection_identity")
        _require_text(procedure_name, "procedure_name")
        key = create_cache_key(connection_identity, procedure_name, include_return_value)

        entry = self._lookup(key, record=True)
        if entry is None:
            if self._config.single_flight:
                entry = self._single_flight(key, procedure_name, discover, include_return_value)
            else:
                entry = self._discover_and_store(key, procedure_name, discover, include_return_value)
        return clone_parameters(entry)

    async def get_or_discover_async(
        self,
        connection_identity: str,
        procedure_name: str,
        discover: "AsyncDiscoverFn",
        include_return_value: bool = False,
    ) -> "list[ParameterDescriptor]":
        """Async variant of :meth:`get_or_discover` for awaitable discovery functions."""
        _require_text(connection_identity, "connection_identity")
        _require_text(procedure_name, "procedure_name")
        key = create_cache_key(connection_identity, procedure_name, include_return_value)

        entry = self._lookup(key, record=True)
        if entry is None:
            if self._config.single_flight:
                entry = await self._single_flight_async(key, procedure_name, discover, include_return_value)
            else:
                entry = await self._discover_and_store_async(key, procedure_name, discover, include_return_value)
        return clone_parameters(entry)

    def get_stored_procedure_parameter_set(
        self,
        connection: Any,
        procedure_name: str,
        discovery: "ParameterDiscoveryProtocol",
        *,
        transaction: Any = None,
        include_return_value: bool = False,
        connection_identity: Optional[str] = None,
    ) -> "list[ParameterDescriptor]":
        """Return the parameter set for a stored procedure on a live connection.

        Args:
            connection: Open DB-API connection used for discovery on a miss.
            procedure_name: Name of the stored procedure.
            discovery: Database specific discovery capability.
            transaction: Optional transaction handle to discover within.
            include_return_value: Keep the leading return value parameter.
            connection_identity: Cache identity of the connection. Defaults to
                ``discovery.get_connection_identity(connection)``.

        Raises:
            InvalidArgumentError: If ``connection`` is ``None`` or ``procedure_name`` is blank.

        Returns:
            A deep copy of the cached parameter set.
        """
        if connection is None:
            raise InvalidArgumentError("Value cannot be null.", "connection")
        _require_text(procedure_name, "procedure_name")
        identity = connection_identity or discovery.get_connection_identity(connection)

        def discover() -> "list[ParameterDescriptor]":
            return discovery.discover(connection, procedure_name, transaction=transaction)

        return self.get_or_discover(identity, procedure_name, discover, include_return_value)

    async def get_stored_procedure_parameter_set_async(
        self,
        connection: Any,
        procedure_name: str,
        discovery: "ParameterDiscoveryProtocol",
        *,
        transaction: Any = None,
        include_return_value: bool = False,
        connection_identity: Optional[str] = None,
    ) -> "list[ParameterDescriptor]":
        """Async variant of :meth:`get_stored_procedure_parameter_set`."""
        if connection is None:
            raise InvalidArgumentError("Value cannot be null.", "connection")
        _require_text(procedure_name, "procedure_name")
        identity = connection_identity or discovery.get_connection_identity(connection)

        async def discover() -> "list[ParameterDescriptor]":
            return await discovery.discover_async(connection, procedure_name, transaction=transaction)

        return await self.get_or_discover_async(identity, procedure_name, discover, include_return_value)

    def put(
        self, connection_identity: str, command_text: str, parameters: "Iterable[Optional[ParameterDescriptor]]"
    ) -> None:
        """Store a parameter set without touching the database.

        Any existing entry under ``connection_identity:command_text`` is replaced.

        Args:
            connection_identity: Identity of the target database.
            command_text: Stored procedure name or command text.
            parameters: The parameter set. The cache keeps its own copy.
        """
        _require_text(connection_identity, "connection_identity")
        _require_text(command_text, "command_text")
        self._store(create_cache_key(connection_identity, command_text), _freeze(parameters))

    def try_get(self, connection_identity: str, command_text: str) -> "Optional[list[ParameterDescriptor]]":
        """Look up a parameter set without discovery.

        Returns:
            A deep copy of the cached set, or ``None`` when nothing is cached.
        """
        entry = self._lookup(create_cache_key(connection_identity, command_text), record=False)
        if entry is None:
            return None
        return clone_parameters(entry)

    def contains(self, connection_identity: str, command_text: str, include_return_value: bool = False) -> bool:
        """Check whether a parameter set is cached."""
        key = create_cache_key(connection_identity, command_text, include_return_value)
        with self._lock:
            return key in self._entries

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        with self._lock:
            self._entries.clear()
            self._stats.reset()

    def get_stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _lookup(self, key: str, *, record: bool) -> "Optional[tuple[ParameterDescriptor, ...]]":
        with self._lock:
            entry = self._entries.get(key)
            if record and self._config.enable_stats:
                if entry is None:
                    self._stats.misses += 1
                else:
                    self._stats.hits += 1
        return entry

    def _store(self, key: str, entry: "tuple[ParameterDescriptor, ...]", *, discovered: bool = False) -> None:
        with self._lock:
            self._entries[key] = entry
            if self._config.enable_stats:
                self._stats.writes += 1
                if discovered:
                    self._stats.discoveries += 1

    def _discover_and_store(
        self, key: str, procedure_name: str, discover: "DiscoverFn", include_return_value: bool
    ) -> "tuple[ParameterDescriptor, ...]":
        logger.debug("Parameter cache miss for %s, discovering parameters", procedure_name)
        parameters = _strip_return_value(list(discover()), include_return_value)
        entry = _freeze(parameters)
        self._store(key, entry, discovered=True)
        return entry

    async def _discover_and_store_async(
        self, key: str, procedure_name: str, discover: "AsyncDiscoverFn", include_return_value: bool
    ) -> "tuple[ParameterDescriptor, ...]":
        logger.debug("Parameter cache miss for %s, discovering parameters", procedure_name)
        parameters = _strip_return_value(list(await discover()), include_return_value)
        entry = _freeze(parameters)
        self._store(key, entry, discovered=True)
        return entry

    def _single_flight(
        self, key: str, procedure_name: str, discover: "DiscoverFn", include_return_value: bool
    ) -> "tuple[ParameterDescriptor, ...]":
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry
            pending = self._inflight.get(key)
            if pending is None:
                pending = Future()
                self._inflight[key] = pending
                is_leader = True
            else:
                is_leader = False

        if not is_leader:
            logger.debug("Waiting for in-flight discovery of %s", procedure_name)
            return pending.result()

        try:
            entry = self._discover_and_store(key, procedure_name, discover, include_return_value)
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(entry)
            return entry
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    async def _single_flight_async(
        self, key: str, procedure_name: str, discover: "AsyncDiscoverFn", include_return_value: bool
    ) -> "tuple[ParameterDescriptor, ...]":
        loop = asyncio.get_running_loop()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry
            pending = self._async_inflight.get(key)
            if pending is None:
                pending = loop.create_future()
                self._async_inflight[key] = pending
                is_leader = True
            elif pending.get_loop() is not loop:
                is_leader = False
                pending = None
            else:
                is_leader = False

        if pending is None:
            # in flight on another event loop, whose future cannot be awaited here
            return await self._discover_and_store_async(key, procedure_name, discover, include_return_value)

        if not is_leader:
            logger.debug("Waiting for in-flight discovery of %s", procedure_name)
            shared = await asyncio.shield(pending)
            if shared is None:
                # discovery was cancelled in the task that started it
                return await self._discover_and_store_async(key, procedure_name, discover, include_return_value)
            return shared

        try:
            entry = await self._discover_and_store_async(key, procedure_name, discover, include_return_value)
        except asyncio.CancelledError:
            pending.set_result(None)
            raise
        except BaseException as exc:
            pending.set_exception(exc)
            pending.exception()
            raise
        else:
            pending.set_result(entry)
            return entry
        finally:
            with self._lock:
                if self._async_inflight.get(key) is pending:
                    del self._async_inflight[key]
