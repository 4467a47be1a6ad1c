"""Procedure executors for DB-API connections."""

from procspec.driver._async import AsyncActionExecuter, AsyncProcedureExecutor
from procspec.driver._common import (
    AsyncCursor,
    BulkInsertCommand,
    CommonExecutorMixin,
    PreparedCommand,
    SyncCursor,
    default_action_executer,
    default_async_action_executer,
)
from procspec.driver._sync import ActionExecuter, ProcedureExecutor

__all__ = (
    "ActionExecuter",
    "AsyncActionExecuter",
    "AsyncCursor",
    "AsyncProcedureExecutor",
    "BulkInsertCommand",
    "CommonExecutorMixin",
    "PreparedCommand",
    "ProcedureExecutor",
    "SyncCursor",
    "default_action_executer",
    "default_async_action_executer",
)
